"""Chunk data model shared by providers and the search service."""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChunkMetadata(BaseModel):
    """Metadata attached to every chunk by the ingestion pipeline.

    ``chunk_id``, ``framework`` and ``file_path`` are required. Unknown keys
    are kept as-is so provider-specific extras survive the round trip.
    """

    model_config = ConfigDict(extra="allow")

    chunk_id: str = Field(..., min_length=1)
    framework: str = Field(..., description="Framework scope, e.g. flow, hilla or common")
    file_path: str = Field(..., description="Path of the source document")
    source_url: str = Field("", description="Public URL of the source document")
    parent_id: Optional[str] = Field(None, description="Chunk id of the enclosing section")
    title: Optional[str] = Field(None, description="Section title")


class DocumentChunk(BaseModel):
    """Public search result shape."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(..., description="Chunk identity")
    content: str = Field(..., description="Chunk text")
    framework: str = Field(..., description="Framework scope")
    source_url: str = Field("", description="Public URL of the source document")
    parent_id: Optional[str] = Field(None, description="Parent chunk id, null for root chunks")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Chunk metadata, includes file_path")
    relevance_score: float = Field(0.0, ge=0.0, description="Fused relevance score")

    @classmethod
    def from_metadata(
        cls,
        content: str,
        metadata: Mapping[str, Any],
        relevance_score: float = 0.0,
        chunk_id: Optional[str] = None,
    ) -> "DocumentChunk":
        """Build a chunk from a raw metadata mapping.

        Raises ``pydantic.ValidationError`` when required metadata is missing.
        """
        raw = dict(metadata)
        if chunk_id and not raw.get("chunk_id"):
            raw["chunk_id"] = chunk_id
        parsed = ChunkMetadata.model_validate(raw)
        return cls(
            chunk_id=parsed.chunk_id,
            content=content,
            framework=parsed.framework,
            source_url=parsed.source_url,
            parent_id=parsed.parent_id,
            metadata=parsed.model_dump(exclude_none=True),
            relevance_score=relevance_score,
        )


@dataclass(frozen=True)
class SearchOptions:
    """Per-request search options.

    Values are validated by the search service rather than here so that
    bad input yields an empty result instead of an exception.
    """
    max_results: int = 5
    framework: Optional[str] = None
