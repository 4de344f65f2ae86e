"""Result fusion algorithms for hybrid search."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Sequence

import structlog

from libs.search_provider.base import RankedResult, ResultSource

logger = structlog.get_logger("search_fusion")

DEFAULT_RRF_K = 60.0


@dataclass
class FusedResult:
    """A deduplicated result carrying its fused score.

    ``ranks`` maps each source that returned the id to its 1-based rank in
    that source's list.
    """
    id: str
    content: str
    metadata: Dict[str, Any]
    score: float
    sources: FrozenSet[ResultSource]
    ranks: Dict[ResultSource, int] = field(default_factory=dict)


class RankFusionAlgorithm:
    """Base class for rank fusion algorithms."""

    def fuse_results(
        self,
        semantic_results: Sequence[RankedResult],
        keyword_results: Sequence[RankedResult],
    ) -> List[FusedResult]:
        """Fuse semantic and keyword search results."""
        raise NotImplementedError


class ReciprocalRankFusion(RankFusionAlgorithm):
    """Reciprocal Rank Fusion (RRF) algorithm.

    Each list contributes ``1 / (k + rank)`` per id, with ranks taken from
    list position starting at 1. Provider scores are ignored because their
    scales are not comparable. Ties keep first-appearance order: semantic
    list order first, then ids only seen in the keyword list.
    """

    def __init__(self, k: float = DEFAULT_RRF_K):
        if k <= 0:
            raise ValueError("RRF k must be positive")
        self.k = k

    def fuse_results(
        self,
        semantic_results: Sequence[RankedResult],
        keyword_results: Sequence[RankedResult],
    ) -> List[FusedResult]:
        """Fuse results using the RRF algorithm."""
        # dict keeps first-appearance order for the stable sort below
        fused: Dict[str, FusedResult] = {}

        for source, results in (
            (ResultSource.SEMANTIC, semantic_results),
            (ResultSource.KEYWORD, keyword_results),
        ):
            for rank, result in enumerate(results, start=1):
                entry = fused.get(result.id)
                if entry is None:
                    entry = FusedResult(
                        id=result.id,
                        content=result.content,
                        metadata=dict(result.metadata),
                        score=0.0,
                        sources=frozenset(),
                    )
                    fused[result.id] = entry
                elif source in entry.ranks:
                    # Repeated id within one list only counts at its best rank.
                    continue

                entry.score += 1.0 / (self.k + rank)
                entry.ranks[source] = rank
                entry.sources = entry.sources | {source}

        fused_results = sorted(fused.values(), key=lambda r: r.score, reverse=True)

        logger.debug(
            "RRF fusion completed",
            semantic_count=len(semantic_results),
            keyword_count=len(keyword_results),
            fused_count=len(fused_results),
            k_parameter=self.k
        )

        return fused_results


def combine(
    semantic_results: Sequence[RankedResult],
    keyword_results: Sequence[RankedResult],
    k: float = DEFAULT_RRF_K,
) -> List[FusedResult]:
    """Fuse two ranked lists with RRF using smoothing constant ``k``."""
    return ReciprocalRankFusion(k=k).fuse_results(semantic_results, keyword_results)


def create_fusion_algorithm(algorithm: str = "rrf", **params: Any) -> RankFusionAlgorithm:
    """Create a fusion algorithm instance."""

    if algorithm == "rrf":
        k = params.get("k", DEFAULT_RRF_K)
        return ReciprocalRankFusion(k=k)

    else:
        raise ValueError(f"Unknown fusion algorithm: {algorithm}")
