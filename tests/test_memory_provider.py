"""Tests for the in-memory search provider."""

import json

import pytest
from pydantic import ValidationError

from libs.search_provider.base import ResultSource
from libs.search_provider.memory import InMemorySearchProvider, load_chunk_records


@pytest.mark.asyncio
async def test_semantic_search(memory_provider):
    results = await memory_provider.semantic_search("form binding", 3, "")

    assert 0 < len(results) <= 3
    assert results[0].score > 0
    assert all(r.source == ResultSource.SEMANTIC for r in results)
    assert "forms-binding-1" in [r.id for r in results]


@pytest.mark.asyncio
async def test_semantic_search_is_sorted(memory_provider):
    results = await memory_provider.semantic_search("grid column data", 10, "")

    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_semantic_search_framework_filter(memory_provider):
    flow_results = await memory_provider.semantic_search("grid", 5, "flow")
    assert flow_results
    assert all(r.metadata["framework"] in ("flow", "common") for r in flow_results)

    hilla_results = await memory_provider.semantic_search("form", 5, "hilla")
    assert hilla_results
    assert all(r.metadata["framework"] in ("hilla", "common") for r in hilla_results)


@pytest.mark.asyncio
async def test_semantic_search_no_match(memory_provider):
    assert await memory_provider.semantic_search("irrelevant query xyz", 5, "") == []


@pytest.mark.asyncio
async def test_semantic_search_empty_query(memory_provider):
    assert await memory_provider.semantic_search("", 5, "") == []
    assert await memory_provider.semantic_search("   ", 5, "") == []


@pytest.mark.asyncio
async def test_keyword_search(memory_provider):
    results = await memory_provider.keyword_search("Grid column", 3, "")

    assert 0 < len(results) <= 3
    assert results[0].source == ResultSource.KEYWORD
    assert any(
        "grid" in r.content.lower() or "grid" in r.metadata.get("title", "").lower()
        for r in results
    )


@pytest.mark.asyncio
async def test_keyword_search_framework_filter(memory_provider):
    results = await memory_provider.keyword_search("button", 5, "flow")

    assert results
    assert all(r.metadata["framework"] in ("flow", "common") for r in results)


@pytest.mark.asyncio
async def test_keyword_search_low_signal_queries(memory_provider):
    assert await memory_provider.keyword_search("", 5, "") == []
    assert await memory_provider.keyword_search("a an the", 5, "") == []
    assert await memory_provider.keyword_search("ui", 5, "") == []


@pytest.mark.asyncio
async def test_limit_respected(memory_provider):
    assert len(await memory_provider.keyword_search("component", 2, "")) <= 2
    assert await memory_provider.keyword_search("component", 0, "") == []
    assert await memory_provider.semantic_search("component", 0, "") == []


@pytest.mark.asyncio
async def test_get_chunk(memory_provider):
    chunk = await memory_provider.get_chunk("forms-binding-1")

    assert chunk is not None
    assert chunk.chunk_id == "forms-binding-1"
    assert chunk.framework == "flow"
    assert chunk.parent_id == "forms-index"
    assert chunk.metadata["file_path"] == "flow/binding-data/components-binder.md"
    assert chunk.source_url.startswith("https://")


@pytest.mark.asyncio
async def test_get_root_chunk(memory_provider):
    chunk = await memory_provider.get_chunk("grid-basic-1")

    assert chunk is not None
    assert chunk.parent_id is None


@pytest.mark.asyncio
async def test_get_unknown_chunk(memory_provider):
    assert await memory_provider.get_chunk("non-existent-id") is None


@pytest.mark.asyncio
async def test_custom_corpus():
    provider = InMemorySearchProvider([
        {"chunk_id": "a", "framework": "flow", "file_path": "a.md", "content": "router navigation target"},
        {"chunk_id": "b", "framework": "hilla", "file_path": "b.md", "content": "router configuration"},
    ])

    assert len(provider) == 2
    results = await provider.keyword_search("router", 5, "flow")
    assert [r.id for r in results] == ["a"]


@pytest.mark.asyncio
async def test_keyword_search_common_term_still_matches():
    provider = InMemorySearchProvider([
        {"chunk_id": "a", "framework": "flow", "file_path": "a.md", "content": "grid grid grid columns"},
        {"chunk_id": "b", "framework": "flow", "file_path": "b.md", "content": "grid sorting"},
        {"chunk_id": "c", "framework": "flow", "file_path": "c.md", "content": "grid filtering"},
    ])

    results = await provider.keyword_search("grid", 5, "")

    assert [r.id for r in results][0] == "a"
    assert {r.id for r in results} == {"a", "b", "c"}
    assert all(r.score > 0 for r in results)


@pytest.mark.asyncio
async def test_empty_corpus():
    provider = InMemorySearchProvider([])

    assert await provider.semantic_search("grid", 5, "") == []
    assert await provider.keyword_search("grid", 5, "") == []


def test_record_missing_required_metadata():
    with pytest.raises(ValidationError):
        InMemorySearchProvider([{"chunk_id": "a", "content": "no framework or path"}])


def test_load_chunk_records_rejects_non_list(tmp_path):
    path = tmp_path / "chunks.json"
    path.write_text(json.dumps({"chunk_id": "a"}))

    with pytest.raises(ValueError):
        load_chunk_records(path)


def test_load_bundled_records():
    records = load_chunk_records()

    assert len(records) >= 10
    assert {r["framework"] for r in records} >= {"flow", "hilla", "common"}
