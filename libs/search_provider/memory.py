"""In-memory search provider over a small chunk corpus.

Serves both retrieval signals and chunk lookup from a list of chunk records,
which makes it the default backend for local development and tests:

- semantic: TF-IDF vectors compared with cosine similarity
- keyword: Okapi BM25 over stop-word filtered terms

Records are plain mappings with a ``content`` key plus the fields of
``ChunkMetadata``. The bundled corpus lives in ``data/sample_chunks.json``.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import structlog
from rank_bm25 import BM25Okapi

from .base import ChunkStore, RankedResult, ResultSource, SearchProvider
from .filters import (
    MIN_TERM_LENGTH,
    STOP_WORDS,
    extract_keyword_terms,
    framework_matches,
    normalize_framework,
    tokenize,
)
from .models import ChunkMetadata, DocumentChunk

logger = structlog.get_logger("search_provider.memory")

SAMPLE_DATA_PATH = Path(__file__).parent / "data" / "sample_chunks.json"


def load_chunk_records(path: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
    """Load chunk records from a JSON array file (bundled corpus by default)."""
    source = Path(path) if path else SAMPLE_DATA_PATH
    with open(source, "r", encoding="utf-8") as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise ValueError(f"Chunk file {source} must contain a JSON array")
    return records


class InMemorySearchProvider(SearchProvider, ChunkStore):
    """Search provider and chunk store backed by process memory."""

    name = "memory"

    def __init__(
        self,
        chunks: Iterable[Mapping[str, Any]],
        min_similarity: float = 0.05,
        min_term_length: int = MIN_TERM_LENGTH,
        bm25_k1: float = 1.5,
        bm25_b: float = 0.75,
        bm25_epsilon: float = 0.25,
    ):
        self.min_similarity = min_similarity
        self.min_term_length = min_term_length
        self.bm25_k1 = bm25_k1
        self.bm25_b = bm25_b
        self.bm25_epsilon = bm25_epsilon

        self._chunks: Dict[str, Tuple[str, ChunkMetadata]] = {}
        for record in chunks:
            data = dict(record)
            content = str(data.pop("content", "") or "")
            metadata = ChunkMetadata.model_validate(data)
            self._chunks[metadata.chunk_id] = (content, metadata)

        self._ids: List[str] = list(self._chunks)
        self._frameworks: List[str] = [
            normalize_framework(meta.framework) for _, meta in self._chunks.values()
        ]

        self._build_semantic_index()
        self._build_keyword_index()

        logger.info("In-memory provider loaded", chunk_count=len(self._ids))

    @classmethod
    def from_json_file(cls, path: Optional[Union[str, Path]] = None, **kwargs: Any) -> "InMemorySearchProvider":
        """Create a provider from a chunk file; defaults to the bundled corpus."""
        return cls(load_chunk_records(path), **kwargs)

    def __len__(self) -> int:
        return len(self._ids)

    # Index construction ----------------------------------------------------

    @staticmethod
    def _document_text(content: str, metadata: ChunkMetadata) -> str:
        return f"{metadata.title or ''} {content}"

    @staticmethod
    def _semantic_terms(text: str) -> List[str]:
        return [t for t in tokenize(text) if len(t) > 1 and t not in STOP_WORDS]

    def _build_semantic_index(self) -> None:
        doc_terms = [
            self._semantic_terms(self._document_text(content, meta))
            for content, meta in self._chunks.values()
        ]
        self._vocab: Dict[str, int] = {}
        for terms in doc_terms:
            for term in terms:
                self._vocab.setdefault(term, len(self._vocab))

        matrix = np.zeros((len(doc_terms), len(self._vocab)), dtype=np.float64)
        for row, terms in enumerate(doc_terms):
            for term in terms:
                matrix[row, self._vocab[term]] += 1.0

        doc_count = len(doc_terms)
        df = np.count_nonzero(matrix, axis=0)
        self._idf = np.log((1.0 + doc_count) / (1.0 + df)) + 1.0
        matrix *= self._idf
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        self._doc_vectors = matrix / norms

    def _build_keyword_index(self) -> None:
        self._bm25: Optional[BM25Okapi] = None
        doc_terms = [
            extract_keyword_terms(self._document_text(content, meta), self.min_term_length)
            for content, meta in self._chunks.values()
        ]
        if not any(doc_terms):
            return

        self._bm25 = BM25Okapi(doc_terms, k1=self.bm25_k1, b=self.bm25_b, epsilon=self.bm25_epsilon)
        # Okapi idf is non-positive for terms in half the corpus or more; raise
        # those to a floor so every matching chunk scores above zero.
        positive = [v for v in self._bm25.idf.values() if v > 0]
        floor = self.bm25_epsilon * (sum(positive) / len(positive) if positive else 1.0)
        for term, value in self._bm25.idf.items():
            if value <= 0:
                self._bm25.idf[term] = floor

    # Scoring -----------------------------------------------------------------

    def _semantic_scores(self, query: str) -> Optional[np.ndarray]:
        vector = np.zeros(len(self._vocab), dtype=np.float64)
        for term in self._semantic_terms(query):
            col = self._vocab.get(term)
            if col is not None:
                vector[col] += 1.0
        if not vector.any():
            return None
        vector *= self._idf
        vector /= np.linalg.norm(vector)
        return self._doc_vectors @ vector

    def _keyword_scores(self, query: str) -> Optional[np.ndarray]:
        if self._bm25 is None:
            return None
        terms = [t for t in dict.fromkeys(extract_keyword_terms(query, self.min_term_length)) if t in self._bm25.idf]
        if not terms:
            return None
        return np.asarray(self._bm25.get_scores(terms), dtype=np.float64)

    def _rank(
        self,
        scores: np.ndarray,
        limit: int,
        framework: str,
        source: ResultSource,
        threshold: float,
    ) -> List[RankedResult]:
        results: List[RankedResult] = []
        for idx in np.argsort(-scores, kind="stable"):
            if len(results) >= limit:
                break
            score = float(scores[idx])
            if score <= threshold:
                break
            if not framework_matches(framework, self._frameworks[idx]):
                continue
            chunk_id = self._ids[idx]
            content, metadata = self._chunks[chunk_id]
            results.append(RankedResult(
                id=chunk_id,
                content=content,
                metadata=metadata.model_dump(exclude_none=True),
                score=round(score, 6),
                source=source,
            ))
        return results

    # SearchProvider interface ----------------------------------------------

    async def semantic_search(self, query: str, limit: int, framework: str = "") -> List[RankedResult]:
        if not isinstance(query, str) or not query.strip() or limit <= 0 or not self._ids:
            return []
        scores = self._semantic_scores(query)
        if scores is None:
            return []
        results = self._rank(scores, limit, framework, ResultSource.SEMANTIC, self.min_similarity)
        logger.debug("Semantic search completed", results_count=len(results), framework=framework)
        return results

    async def keyword_search(self, query: str, limit: int, framework: str = "") -> List[RankedResult]:
        if not isinstance(query, str) or not query.strip() or limit <= 0 or not self._ids:
            return []
        scores = self._keyword_scores(query)
        if scores is None:
            return []
        results = self._rank(scores, limit, framework, ResultSource.KEYWORD, 0.0)
        logger.debug("Keyword search completed", results_count=len(results), framework=framework)
        return results

    # ChunkStore interface ----------------------------------------------------

    async def get_chunk(self, chunk_id: str) -> Optional[DocumentChunk]:
        entry = self._chunks.get(chunk_id)
        if entry is None:
            return None
        content, metadata = entry
        # Identity lookups are exact matches.
        return DocumentChunk.from_metadata(
            content,
            metadata.model_dump(exclude_none=True),
            relevance_score=1.0,
        )
