"""Base search provider interface.

Defines the abstract contracts the search service depends on, independent of
the backing implementation (in-memory corpus, OpenSearch, etc.):

- ``SearchProvider``: ranked semantic and keyword retrieval
- ``ChunkStore``: lookup of a single chunk by identity

All methods are asynchronous so providers can be dispatched concurrently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .models import DocumentChunk


class ResultSource(str, Enum):
    """Retrieval signal that produced a ranked result."""
    SEMANTIC = "semantic"
    KEYWORD = "keyword"


@dataclass
class RankedResult:
    """A single provider hit.

    ``score`` is on the provider's own scale and is only meaningful for
    ordering within one result list.
    """
    id: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    score: float = 0.0
    source: ResultSource = ResultSource.SEMANTIC

    @property
    def framework(self) -> str:
        return str(self.metadata.get("framework", ""))


class SearchProvider(ABC):
    """Abstract base class for search providers.

    Contract shared by both methods
    - Return at most ``limit`` results ordered by descending relevance
    - Return ``[]`` for an empty or whitespace-only query, never raise
    - ``framework=''`` means unfiltered; otherwise only chunks whose
      framework equals ``framework`` or ``common`` are returned
    - Raise a ``ProviderError`` subclass for transport or backend failures
    """

    name: str = "provider"

    @abstractmethod
    async def semantic_search(
        self,
        query: str,
        limit: int,
        framework: str = ""
    ) -> List[RankedResult]:
        """Dense similarity search; results carry ``ResultSource.SEMANTIC``."""
        pass

    @abstractmethod
    async def keyword_search(
        self,
        query: str,
        limit: int,
        framework: str = ""
    ) -> List[RankedResult]:
        """Sparse keyword search; results carry ``ResultSource.KEYWORD``.

        Queries made only of stop-terms or terms below the minimum length
        return ``[]``.
        """
        pass

    async def health_check(self) -> bool:
        """Check if the provider backend is reachable."""
        return True

    async def close(self) -> None:
        """Release client resources held by the provider."""
        return None


class ChunkStore(ABC):
    """Lookup of documentation chunks by ``chunk_id``."""

    @abstractmethod
    async def get_chunk(self, chunk_id: str) -> Optional[DocumentChunk]:
        """Return the chunk, or ``None`` when no chunk has this id."""
        pass


class ProviderError(Exception):
    """Base exception for search provider operations."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the allotted time."""
    pass


class ProviderConnectionError(ProviderError):
    """Provider backend could not be reached."""
    pass


class ProviderResponseError(ProviderError):
    """Provider answered with an error status or a malformed payload."""
    pass


class AllProvidersFailedError(ProviderError):
    """Every provider dispatched for a request failed."""

    def __init__(self, message: str, errors: Optional[Dict[str, Exception]] = None):
        super().__init__(message)
        self.errors = errors or {}
