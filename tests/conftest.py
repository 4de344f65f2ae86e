"""Shared fixtures and fakes for search tests."""

import asyncio
from typing import Dict, List, Optional

import pytest

from libs.search_provider.base import ChunkStore, RankedResult, ResultSource, SearchProvider
from libs.search_provider.memory import InMemorySearchProvider
from libs.search_provider.models import DocumentChunk


def make_result(
    chunk_id: str,
    score: float = 1.0,
    source: ResultSource = ResultSource.SEMANTIC,
    framework: str = "flow",
    **extra
) -> RankedResult:
    """Build a ranked result with valid chunk metadata."""
    metadata = {
        "chunk_id": chunk_id,
        "framework": framework,
        "file_path": f"docs/{chunk_id}.md",
        "source_url": f"https://example.com/docs/{chunk_id}",
    }
    metadata.update(extra)
    return RankedResult(
        id=chunk_id,
        content=f"content of {chunk_id}",
        metadata=metadata,
        score=score,
        source=source,
    )


class FakeSearchProvider(SearchProvider):
    """Provider returning canned results and recording every call."""

    name = "fake"

    def __init__(
        self,
        semantic: Optional[List[RankedResult]] = None,
        keyword: Optional[List[RankedResult]] = None,
        semantic_error: Optional[Exception] = None,
        keyword_error: Optional[Exception] = None,
        delay: float = 0.0,
        healthy: bool = True,
    ):
        self.semantic = semantic or []
        self.keyword = keyword or []
        self.semantic_error = semantic_error
        self.keyword_error = keyword_error
        self.delay = delay
        self.healthy = healthy
        self.calls: List[Dict] = []

    async def semantic_search(self, query, limit, framework=""):
        self.calls.append({"method": "semantic", "query": query, "limit": limit, "framework": framework})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.semantic_error:
            raise self.semantic_error
        return list(self.semantic)

    async def keyword_search(self, query, limit, framework=""):
        self.calls.append({"method": "keyword", "query": query, "limit": limit, "framework": framework})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.keyword_error:
            raise self.keyword_error
        return list(self.keyword)

    async def health_check(self):
        return self.healthy


class FakeChunkStore(ChunkStore):
    """Chunk store over a dict, optionally failing every lookup."""

    def __init__(self, chunks: Optional[Dict[str, DocumentChunk]] = None, error: Optional[Exception] = None):
        self.chunks = chunks or {}
        self.error = error

    async def get_chunk(self, chunk_id):
        if self.error:
            raise self.error
        return self.chunks.get(chunk_id)


@pytest.fixture(scope="module")
def memory_provider() -> InMemorySearchProvider:
    """Provider over the bundled sample corpus."""
    return InMemorySearchProvider.from_json_file()
