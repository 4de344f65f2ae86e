"""Hybrid search service over semantic and keyword providers.

Dispatches both retrieval signals concurrently, merges them with Reciprocal
Rank Fusion (RRF), and maps fused hits to public ``DocumentChunk`` results.

Failure policy
- One provider failing or timing out: log, record the failure, and fuse
  the surviving list (unless ``strict_mode`` is set, which re-raises)
- Both providers failing: raise ``AllProvidersFailedError``
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import structlog
from pydantic import ValidationError

from libs.common.config import SearchConfig
from libs.common.metrics import MetricsCollector
from libs.search_provider.factory import ProviderBundle
from libs.search_provider.base import (
    AllProvidersFailedError,
    ChunkStore,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    RankedResult,
    ResultSource,
    SearchProvider,
)
from libs.search_provider.filters import framework_matches, normalize_framework
from libs.search_provider.models import DocumentChunk, SearchOptions
from ..ranking.fusion import FusedResult, RankFusionAlgorithm, ReciprocalRankFusion

logger = structlog.get_logger("search_service.hybrid")


class HybridSearchService:
    """Coordinates provider calls, fusion, and result mapping.

    Parameters
    - semantic_provider: provider whose ``semantic_search`` is used
    - keyword_provider: provider whose ``keyword_search`` is used
    - chunk_store: backing store for ``get_document_chunk``
    - fusion: fusion algorithm, RRF with k=60 by default
    - fetch_multiplier: provider fetch limit is ``max_results * fetch_multiplier``
    - provider_timeout: seconds allowed per provider call, ``None`` for no limit
    - strict_mode: fail the request when any single provider fails
    - metrics_collector: optional Prometheus metrics sink
    """

    def __init__(
        self,
        semantic_provider: SearchProvider,
        keyword_provider: SearchProvider,
        chunk_store: ChunkStore,
        fusion: Optional[RankFusionAlgorithm] = None,
        fetch_multiplier: int = 2,
        provider_timeout: Optional[float] = 5.0,
        strict_mode: bool = False,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        if fetch_multiplier < 1:
            raise ValueError("fetch_multiplier must be >= 1")

        self.semantic_provider = semantic_provider
        self.keyword_provider = keyword_provider
        self.chunk_store = chunk_store
        self.fusion = fusion or ReciprocalRankFusion()
        self.fetch_multiplier = fetch_multiplier
        self.provider_timeout = provider_timeout
        self.strict_mode = strict_mode
        self.metrics_collector = metrics_collector

    async def hybrid_search(self, query: str, options: Optional[SearchOptions] = None) -> List[DocumentChunk]:
        """Search both providers and return fused chunks, best first.

        Invalid input (blank query, non-positive ``max_results``, non-string
        framework) returns ``[]`` without calling any provider.
        """
        options = options or SearchOptions()
        max_results = options.max_results

        if not isinstance(query, str) or not query.strip():
            return []
        if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results <= 0:
            return []
        if options.framework is not None and not isinstance(options.framework, str):
            return []

        start_time = time.time()
        framework = normalize_framework(options.framework)
        fetch_limit = max_results * self.fetch_multiplier

        semantic_results, keyword_results = await self._dispatch(query, fetch_limit, framework)

        fused = self.fusion.fuse_results(semantic_results, keyword_results)
        chunks = self._to_chunks(fused, max_results)

        duration = time.time() - start_time
        if self.metrics_collector:
            self.metrics_collector.record_search(framework=framework, duration=duration)

        logger.info(
            "Hybrid search completed",
            query=query[:100],
            framework=framework,
            semantic_count=len(semantic_results),
            keyword_count=len(keyword_results),
            results_count=len(chunks),
            latency_ms=round(duration * 1000, 2)
        )
        return chunks

    async def get_document_chunk(self, chunk_id: str) -> Optional[DocumentChunk]:
        """Look up a chunk by identity; ``None`` when it does not exist."""
        if not isinstance(chunk_id, str) or not chunk_id.strip():
            return None

        try:
            chunk = await self.chunk_store.get_chunk(chunk_id)
        except Exception as e:
            logger.error("Chunk lookup failed", chunk_id=chunk_id, error=str(e))
            self._record_lookup("error")
            return None

        self._record_lookup("hit" if chunk is not None else "miss")
        return chunk

    async def health_check(self) -> bool:
        """Healthy when at least one provider answers its health check."""
        providers = {id(p): p for p in (self.semantic_provider, self.keyword_provider)}
        checks = await asyncio.gather(
            *(p.health_check() for p in providers.values()),
            return_exceptions=True
        )
        return any(result is True for result in checks)

    async def _dispatch(
        self,
        query: str,
        limit: int,
        framework: str,
    ) -> Tuple[List[RankedResult], List[RankedResult]]:
        """Run both provider calls concurrently and apply the failure policy."""
        branches = {
            ResultSource.SEMANTIC: self._call_provider(
                ResultSource.SEMANTIC,
                lambda: self.semantic_provider.semantic_search(query, limit, framework),
                limit,
                framework,
            ),
            ResultSource.KEYWORD: self._call_provider(
                ResultSource.KEYWORD,
                lambda: self.keyword_provider.keyword_search(query, limit, framework),
                limit,
                framework,
            ),
        }
        outcomes = await asyncio.gather(*branches.values(), return_exceptions=True)

        results: Dict[ResultSource, List[RankedResult]] = {}
        errors: Dict[str, Exception] = {}
        for source, outcome in zip(branches, outcomes):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, Exception):
                errors[source.value] = outcome
                results[source] = []
            else:
                results[source] = outcome

        if len(errors) == len(branches):
            logger.error(
                "All search providers failed",
                query=query[:100],
                errors={name: str(e) for name, e in errors.items()}
            )
            raise AllProvidersFailedError("All search providers failed", errors=errors)

        if errors:
            if self.strict_mode:
                name, error = next(iter(errors.items()))
                if isinstance(error, ProviderError):
                    raise error
                raise ProviderError(f"{name} provider failed: {error}", provider=name) from error
            logger.warning(
                "Search provider failed, continuing with remaining results",
                failed=sorted(errors),
                errors={name: str(e) for name, e in errors.items()}
            )

        return results[ResultSource.SEMANTIC], results[ResultSource.KEYWORD]

    async def _call_provider(
        self,
        source: ResultSource,
        func: Callable[[], Awaitable[Sequence[RankedResult]]],
        limit: int,
        framework: str,
    ) -> List[RankedResult]:
        """Await one provider call under the timeout and sanitize its output."""
        name = source.value
        try:
            call = func()
            if self.provider_timeout is not None:
                raw = await asyncio.wait_for(call, timeout=self.provider_timeout)
            else:
                raw = await call
        except asyncio.TimeoutError as e:
            self._record_provider(name, "timeout")
            raise ProviderTimeoutError(
                f"{name} provider timed out after {self.provider_timeout}s", provider=name
            ) from e
        except Exception:
            self._record_provider(name, "error")
            raise

        if not isinstance(raw, (list, tuple)) or not all(isinstance(r, RankedResult) for r in raw):
            self._record_provider(name, "error")
            raise ProviderResponseError(f"{name} provider returned a malformed result list", provider=name)

        self._record_provider(name, "success")

        # Providers are trusted to filter, but out-of-scope chunks never leak.
        scoped = [r for r in raw if framework_matches(framework, r.framework)]
        if len(scoped) != len(raw):
            logger.warning(
                "Provider returned chunks outside framework scope",
                provider=name,
                framework=framework,
                dropped=len(raw) - len(scoped)
            )
        return scoped[:limit]

    def _to_chunks(self, fused: Sequence[FusedResult], max_results: int) -> List[DocumentChunk]:
        chunks: List[DocumentChunk] = []
        for result in fused:
            if len(chunks) >= max_results:
                break
            try:
                chunks.append(DocumentChunk.from_metadata(
                    result.content,
                    result.metadata,
                    relevance_score=result.score,
                    chunk_id=result.id,
                ))
            except ValidationError as e:
                logger.warning("Dropping result with invalid metadata", chunk_id=result.id, error=str(e))
        return chunks

    def _record_provider(self, name: str, status: str) -> None:
        if self.metrics_collector:
            self.metrics_collector.record_provider_call(name, status)

    def _record_lookup(self, outcome: str) -> None:
        if self.metrics_collector:
            self.metrics_collector.record_chunk_lookup(outcome)


def create_hybrid_search_service(
    providers: ProviderBundle,
    config: SearchConfig,
    metrics_collector: Optional[MetricsCollector] = None,
) -> HybridSearchService:
    """Wire a ``HybridSearchService`` from a ``ProviderBundle`` and ``SearchConfig``."""
    return HybridSearchService(
        semantic_provider=providers.semantic_provider,
        keyword_provider=providers.keyword_provider,
        chunk_store=providers.chunk_store,
        fusion=ReciprocalRankFusion(k=config.rrf_k),
        fetch_multiplier=config.fetch_multiplier,
        provider_timeout=config.provider_timeout_seconds,
        strict_mode=config.strict_mode,
        metrics_collector=metrics_collector,
    )
