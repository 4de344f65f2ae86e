"""OpenSearch search provider implementation.

Chunks are stored one document per chunk with flat fields::

    chunk_id, content, framework, file_path, source_url, parent_id, title,
    embedding (knn_vector)

Semantic search runs a k-NN query on ``embedding`` using a query vector from
the embedding service; keyword search runs a BM25 ``multi_match`` over
``title`` and ``content``. The document ``_id`` is the ``chunk_id``.
"""

import asyncio
from typing import Any, Dict, List, Optional

import structlog
from opensearchpy import OpenSearch, exceptions
from pydantic import ValidationError

from .base import (
    ChunkStore,
    ProviderConnectionError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    RankedResult,
    ResultSource,
    SearchProvider,
)
from .embeddings import EmbeddingServiceClient
from .filters import COMMON_FRAMEWORK, MIN_TERM_LENGTH, extract_keyword_terms, normalize_framework
from .models import ChunkMetadata, DocumentChunk

logger = structlog.get_logger("search_provider.opensearch")


class OpenSearchSearchProvider(SearchProvider, ChunkStore):
    """OpenSearch-based provider for both retrieval signals and chunk lookup."""

    name = "opensearch"

    def __init__(
        self,
        hosts: List[str],
        index_name: str = "docs_chunks",
        embedding_client: Optional[EmbeddingServiceClient] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        verify_certs: bool = False,
        vector_field: str = "embedding",
        min_term_length: int = MIN_TERM_LENGTH,
        client: Optional[OpenSearch] = None,
    ):
        """Initialize the provider.

        Args:
            hosts: List of OpenSearch host URLs
            index_name: Index holding one document per chunk
            embedding_client: Client used to vectorize queries for k-NN search
            username: OpenSearch username
            password: OpenSearch password
            verify_certs: Whether to verify SSL certificates
            vector_field: Name of the ``knn_vector`` field
            min_term_length: Shortest term sent to keyword search
            client: Pre-built client, mainly for tests
        """
        if not hosts and client is None:
            raise ValueError("OpenSearch provider requires at least one host")

        self.hosts = hosts
        self.index_name = index_name
        self.embedding_client = embedding_client
        self.vector_field = vector_field
        self.min_term_length = min_term_length

        self.client = client or OpenSearch(
            hosts=hosts,
            http_auth=(username, password) if username and password else None,
            verify_certs=verify_certs,
            use_ssl=hosts[0].startswith("https"),
        )

    def _framework_filter(self, framework: str) -> List[Dict[str, Any]]:
        wanted = normalize_framework(framework)
        if not wanted:
            return []
        return [{"terms": {"framework": sorted({wanted, COMMON_FRAMEWORK})}}]

    async def _call(self, operation: str, func, **kwargs: Any) -> Any:
        """Run a blocking client call off the event loop, translating errors."""
        try:
            return await asyncio.to_thread(func, **kwargs)
        except exceptions.ConnectionTimeout as e:
            raise ProviderTimeoutError(f"OpenSearch {operation} timed out", provider=self.name) from e
        except exceptions.ConnectionError as e:
            raise ProviderConnectionError(f"OpenSearch {operation} connection failed: {e}", provider=self.name) from e
        except exceptions.TransportError as e:
            raise ProviderResponseError(f"OpenSearch {operation} failed: {e}", provider=self.name) from e

    def _to_results(self, response: Any, source: ResultSource, limit: int) -> List[RankedResult]:
        try:
            hits = response["hits"]["hits"]
        except (KeyError, TypeError) as e:
            raise ProviderResponseError("OpenSearch response has no hits", provider=self.name) from e

        results = []
        for hit in hits[:limit]:
            doc = dict(hit.get("_source") or {})
            chunk_id = doc.get("chunk_id") or hit.get("_id")
            if not chunk_id:
                raise ProviderResponseError("OpenSearch hit without chunk id", provider=self.name)

            content = str(doc.pop("content", "") or "")
            doc.pop(self.vector_field, None)
            doc["chunk_id"] = chunk_id
            try:
                ChunkMetadata.model_validate(doc)
            except ValidationError as e:
                raise ProviderResponseError(
                    f"OpenSearch hit {chunk_id} has invalid metadata", provider=self.name
                ) from e

            results.append(RankedResult(
                id=chunk_id,
                content=content,
                metadata=doc,
                score=max(float(hit.get("_score") or 0.0), 0.0),
                source=source,
            ))
        return results

    async def semantic_search(self, query: str, limit: int, framework: str = "") -> List[RankedResult]:
        if not isinstance(query, str) or not query.strip() or limit <= 0:
            return []
        if self.embedding_client is None:
            raise ProviderError("No embedding client configured for semantic search", provider=self.name)

        query_vector = await self.embedding_client.embed_query(query)
        body = {
            "size": limit,
            "_source": {"excludes": [self.vector_field]},
            "query": {
                "bool": {
                    "must": [
                        {
                            "knn": {
                                self.vector_field: {
                                    "vector": query_vector.tolist(),
                                    "k": limit
                                }
                            }
                        }
                    ],
                    "filter": self._framework_filter(framework)
                }
            }
        }

        response = await self._call("semantic search", self.client.search, index=self.index_name, body=body)
        results = self._to_results(response, ResultSource.SEMANTIC, limit)
        logger.info("OpenSearch semantic search completed", results_count=len(results), framework=framework)
        return results

    async def keyword_search(self, query: str, limit: int, framework: str = "") -> List[RankedResult]:
        if not isinstance(query, str) or not query.strip() or limit <= 0:
            return []
        terms = extract_keyword_terms(query, self.min_term_length)
        if not terms:
            return []

        body = {
            "size": limit,
            "_source": {"excludes": [self.vector_field]},
            "query": {
                "bool": {
                    "must": [
                        {
                            "multi_match": {
                                "query": " ".join(terms),
                                "fields": ["title^2", "content"]
                            }
                        }
                    ],
                    "filter": self._framework_filter(framework)
                }
            }
        }

        response = await self._call("keyword search", self.client.search, index=self.index_name, body=body)
        results = self._to_results(response, ResultSource.KEYWORD, limit)
        logger.info("OpenSearch keyword search completed", results_count=len(results), framework=framework)
        return results

    async def get_chunk(self, chunk_id: str) -> Optional[DocumentChunk]:
        try:
            response = await self._call(
                "chunk lookup",
                self.client.get,
                index=self.index_name,
                id=chunk_id,
                _source_excludes=[self.vector_field],
            )
        except ProviderResponseError as e:
            if isinstance(e.__cause__, exceptions.NotFoundError):
                return None
            raise

        if not response.get("found"):
            return None

        doc = dict(response.get("_source") or {})
        content = str(doc.pop("content", "") or "")
        doc.pop(self.vector_field, None)
        try:
            return DocumentChunk.from_metadata(content, doc, relevance_score=1.0, chunk_id=chunk_id)
        except ValidationError as e:
            raise ProviderResponseError(f"Chunk {chunk_id} has invalid metadata", provider=self.name) from e

    async def health_check(self) -> bool:
        try:
            return bool(await asyncio.to_thread(self.client.ping))
        except Exception as e:
            logger.error("OpenSearch health check failed", error=str(e))
            return False

    async def close(self) -> None:
        await asyncio.to_thread(self.client.close)
        if self.embedding_client is not None:
            await self.embedding_client.close()
