"""API subpackage for the search service.

Routers expose endpoints for hybrid search and chunk lookup. The transport
layer stays thin and delegates to ``HybridSearchService``.
"""
