"""Search provider adapters and the chunk data model.

Primary components:
- ``base``: abstract ``SearchProvider`` and ``ChunkStore`` interfaces,
  ``RankedResult``, and the provider exception hierarchy.
- ``models``: ``ChunkMetadata``, ``DocumentChunk`` and ``SearchOptions``.
- ``filters``: framework scoping and keyword term extraction.
- ``memory``: in-memory TF-IDF/BM25 provider over a bundled corpus.
- ``opensearch``: OpenSearch k-NN and BM25 provider.
- ``factory``: helpers to build providers from ``SearchConfig``.

Guidance:
- Prefer constructing via ``factory.create_search_providers`` so runtime
  services remain decoupled from specific backends.
"""
