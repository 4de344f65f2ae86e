"""API routes for the search service."""

import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
import structlog

from libs.search_provider.base import AllProvidersFailedError, ProviderError
from libs.search_provider.models import DocumentChunk, SearchOptions
from ..hybrid.search_service import HybridSearchService

logger = structlog.get_logger("search_service.api")

router = APIRouter()


class SearchRequest(BaseModel):
    """Request model for search endpoint."""
    query: str = Field(..., max_length=2000, description="Natural-language search query")
    max_results: int = Field(5, ge=0, le=100, description="Maximum number of results")
    framework: Optional[str] = Field(None, description="Framework scope, e.g. flow or hilla")


class SearchResponse(BaseModel):
    """Response model for search endpoint."""
    results: List[DocumentChunk] = Field(..., description="Search results, best first")
    total: int = Field(..., description="Number of results returned")
    query: str = Field(..., description="Original query")
    framework: Optional[str] = Field(None, description="Framework scope applied")
    latency_ms: float = Field(..., description="Search latency in milliseconds")


def get_search_service(request: Request) -> HybridSearchService:
    """Get search service from application state."""
    return request.app.state.search_service


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    search_service: HybridSearchService = Depends(get_search_service)
):
    """Perform hybrid search."""
    start_time = time.time()

    try:
        results = await search_service.hybrid_search(
            request.query,
            SearchOptions(max_results=request.max_results, framework=request.framework)
        )
    except AllProvidersFailedError as e:
        logger.error("Search unavailable", query=request.query, error=str(e))
        raise HTTPException(status_code=503, detail="Search providers unavailable")
    except ProviderError as e:
        logger.error("Search failed", query=request.query, error=str(e))
        raise HTTPException(status_code=502, detail=f"Search provider failed: {str(e)}")
    except Exception as e:
        logger.error("Search failed", query=request.query, error=str(e))
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")

    latency_ms = (time.time() - start_time) * 1000

    return SearchResponse(
        results=results,
        total=len(results),
        query=request.query,
        framework=request.framework,
        latency_ms=latency_ms
    )


@router.get("/chunks/{chunk_id}", response_model=DocumentChunk)
async def get_chunk(
    chunk_id: str,
    search_service: HybridSearchService = Depends(get_search_service)
):
    """Fetch a single documentation chunk by id."""
    chunk = await search_service.get_document_chunk(chunk_id)
    if chunk is None:
        raise HTTPException(status_code=404, detail=f"Chunk not found: {chunk_id}")
    return chunk
