"""Search provider factory.

Centralizes creation of concrete providers so the search service does not
depend on backend details. New backends can be added without changing call
sites.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

import structlog

from libs.common.config import SearchConfig

from .base import ChunkStore, SearchProvider
from .embeddings import EmbeddingServiceClient
from .memory import InMemorySearchProvider
from .opensearch import OpenSearchSearchProvider

logger = structlog.get_logger("search_provider.factory")


class SearchBackend(Enum):
    """Supported provider backends."""
    MEMORY = "memory"
    OPENSEARCH = "opensearch"


@dataclass
class ProviderBundle:
    """Providers wired into one hybrid search service.

    A single backend usually fills all three roles with one instance.
    """
    semantic_provider: SearchProvider
    keyword_provider: SearchProvider
    chunk_store: ChunkStore

    async def close(self) -> None:
        """Close each distinct provider once."""
        seen = set()
        for provider in (self.semantic_provider, self.keyword_provider, self.chunk_store):
            if id(provider) in seen or not isinstance(provider, SearchProvider):
                continue
            seen.add(id(provider))
            await provider.close()


class SearchProviderFactory:
    """Factory for creating provider bundles."""

    @staticmethod
    def create(backend: SearchBackend, config: Dict[str, Any]) -> ProviderBundle:
        """Create providers for ``backend``.

        Parameters
        - backend: A ``SearchBackend`` enum value
        - config: Backend-specific parameters
        """
        if backend == SearchBackend.MEMORY:
            provider = InMemorySearchProvider.from_json_file(config.get("data_path"))
            return ProviderBundle(provider, provider, provider)

        elif backend == SearchBackend.OPENSEARCH:
            hosts = config.get("hosts")
            if not hosts:
                raise ValueError("OpenSearch requires 'hosts' in config")

            embedding_client = EmbeddingServiceClient(
                base_url=config.get("embedding_service_url", "http://localhost:9006"),
                timeout=config.get("embedding_timeout", 10.0),
            )
            provider = OpenSearchSearchProvider(
                hosts=hosts,
                index_name=config.get("index_name", "docs_chunks"),
                embedding_client=embedding_client,
                username=config.get("username"),
                password=config.get("password"),
                verify_certs=config.get("verify_certs", False),
            )
            return ProviderBundle(provider, provider, provider)

        else:
            raise ValueError(f"Unsupported search backend: {backend}")


def create_search_providers(config: SearchConfig) -> ProviderBundle:
    """Create the provider bundle selected by ``config.search_backend``."""
    try:
        backend = SearchBackend(config.search_backend.lower())
    except ValueError:
        raise ValueError(f"Unsupported search backend: {config.search_backend}")

    if backend == SearchBackend.MEMORY:
        backend_config = {"data_path": config.sample_data_path}
    else:
        backend_config = {
            "hosts": config.opensearch_host_list,
            "index_name": config.opensearch_index,
            "username": config.opensearch_username,
            "password": config.opensearch_password,
            "verify_certs": config.opensearch_verify_certs,
            "embedding_service_url": config.embedding_service_url,
            "embedding_timeout": config.embedding_timeout_seconds,
        }

    logger.info("Creating search providers", backend=backend.value)
    return SearchProviderFactory.create(backend, backend_config)
