"""Tests for the OpenSearch provider and embedding client using mocked clients."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import numpy as np
import pytest
from opensearchpy import exceptions

from libs.search_provider.base import (
    ProviderConnectionError,
    ProviderResponseError,
    ProviderTimeoutError,
    ResultSource,
)
from libs.search_provider.embeddings import EmbeddingServiceClient
from libs.search_provider.opensearch import OpenSearchSearchProvider


def _hit(chunk_id, score, framework="flow", **extra):
    source = {
        "chunk_id": chunk_id,
        "content": f"text of {chunk_id}",
        "framework": framework,
        "file_path": f"{chunk_id}.md",
        "source_url": f"https://example.com/{chunk_id}",
        "embedding": [0.1, 0.2],
    }
    source.update(extra)
    return {"_id": chunk_id, "_score": score, "_source": source}


def _provider(client, embedding_vector=(0.5, 0.25)):
    embedding_client = MagicMock(spec=EmbeddingServiceClient)
    embedding_client.embed_query = AsyncMock(return_value=np.array(embedding_vector, dtype=np.float32))
    embedding_client.close = AsyncMock()
    return OpenSearchSearchProvider(
        hosts=["http://localhost:9200"],
        index_name="docs_test",
        embedding_client=embedding_client,
        client=client,
    )


@pytest.mark.asyncio
async def test_keyword_search_builds_query_and_maps_hits():
    client = MagicMock()
    client.search.return_value = {"hits": {"hits": [_hit("grid-1", 7.5), _hit("grid-2", 3.1, framework="common")]}}
    provider = _provider(client)

    results = await provider.keyword_search("How to configure Grid columns", 5, "Flow")

    kwargs = client.search.call_args.kwargs
    assert kwargs["index"] == "docs_test"
    query = kwargs["body"]["query"]["bool"]
    assert query["must"][0]["multi_match"]["query"] == "configure grid columns"
    assert query["filter"] == [{"terms": {"framework": ["common", "flow"]}}]
    assert kwargs["body"]["size"] == 5

    assert [r.id for r in results] == ["grid-1", "grid-2"]
    assert all(r.source == ResultSource.KEYWORD for r in results)
    assert results[0].score == 7.5
    assert results[0].content == "text of grid-1"
    assert "embedding" not in results[0].metadata
    assert "content" not in results[0].metadata


@pytest.mark.asyncio
async def test_keyword_search_skips_low_signal_query():
    client = MagicMock()
    provider = _provider(client)

    assert await provider.keyword_search("a an the", 5, "") == []
    assert await provider.keyword_search("", 5, "") == []
    client.search.assert_not_called()


@pytest.mark.asyncio
async def test_semantic_search_uses_query_embedding():
    client = MagicMock()
    client.search.return_value = {"hits": {"hits": [_hit("forms-1", 0.92)]}}
    provider = _provider(client)

    results = await provider.semantic_search("form binding", 3, "")

    provider.embedding_client.embed_query.assert_awaited_once_with("form binding")
    body = client.search.call_args.kwargs["body"]
    knn = body["query"]["bool"]["must"][0]["knn"]["embedding"]
    assert knn["vector"] == pytest.approx([0.5, 0.25])
    assert knn["k"] == 3
    assert body["query"]["bool"]["filter"] == []
    assert results[0].source == ResultSource.SEMANTIC
    assert results[0].id == "forms-1"


@pytest.mark.asyncio
async def test_semantic_search_empty_query_skips_backend():
    client = MagicMock()
    provider = _provider(client)

    assert await provider.semantic_search("  ", 3, "") == []
    provider.embedding_client.embed_query.assert_not_awaited()
    client.search.assert_not_called()


@pytest.mark.asyncio
async def test_connection_timeout_becomes_provider_timeout():
    client = MagicMock()
    client.search.side_effect = exceptions.ConnectionTimeout("TIMEOUT", "timed out", Exception("slow"))
    provider = _provider(client)

    with pytest.raises(ProviderTimeoutError):
        await provider.keyword_search("grid", 5, "")


@pytest.mark.asyncio
async def test_connection_error_becomes_provider_connection_error():
    client = MagicMock()
    client.search.side_effect = exceptions.ConnectionError("N/A", "refused", Exception("down"))
    provider = _provider(client)

    with pytest.raises(ProviderConnectionError):
        await provider.keyword_search("grid", 5, "")


@pytest.mark.asyncio
async def test_malformed_response_is_rejected():
    client = MagicMock()
    client.search.return_value = {"unexpected": True}
    provider = _provider(client)

    with pytest.raises(ProviderResponseError):
        await provider.keyword_search("grid", 5, "")


@pytest.mark.asyncio
async def test_hit_without_required_metadata_is_rejected():
    client = MagicMock()
    client.search.return_value = {"hits": {"hits": [{"_id": "x", "_score": 1.0, "_source": {"content": "orphan"}}]}}
    provider = _provider(client)

    with pytest.raises(ProviderResponseError):
        await provider.keyword_search("grid", 5, "")


@pytest.mark.asyncio
async def test_get_chunk_found():
    client = MagicMock()
    client.get.return_value = {
        "found": True,
        "_source": {
            "chunk_id": "forms-binding-1",
            "content": "binding text",
            "framework": "flow",
            "file_path": "forms/binding.md",
            "parent_id": "forms-index",
        },
    }
    provider = _provider(client)

    chunk = await provider.get_chunk("forms-binding-1")

    assert chunk.chunk_id == "forms-binding-1"
    assert chunk.parent_id == "forms-index"
    assert chunk.metadata["file_path"] == "forms/binding.md"
    assert client.get.call_args.kwargs["id"] == "forms-binding-1"


@pytest.mark.asyncio
async def test_get_chunk_not_found():
    client = MagicMock()
    client.get.side_effect = exceptions.NotFoundError(404, "not_found", {"found": False})
    provider = _provider(client)

    assert await provider.get_chunk("missing") is None

    client.get.side_effect = None
    client.get.return_value = {"found": False}
    assert await provider.get_chunk("missing") is None


@pytest.mark.asyncio
async def test_health_check_and_close():
    client = MagicMock()
    client.ping.return_value = True
    provider = _provider(client)

    assert await provider.health_check() is True

    client.ping.side_effect = exceptions.ConnectionError("N/A", "refused", Exception("down"))
    assert await provider.health_check() is False

    await provider.close()
    client.close.assert_called_once()
    provider.embedding_client.close.assert_awaited_once()


def test_requires_hosts():
    with pytest.raises(ValueError):
        OpenSearchSearchProvider(hosts=[])


@pytest.mark.asyncio
async def test_embedding_client_returns_vector():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/embed"
        return httpx.Response(200, json={"vectors": [[0.1, 0.2, 0.3]]})

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = EmbeddingServiceClient("http://embedding:9006/", http_client=http_client)

    vector = await client.embed_query("grid")

    assert vector.shape == (3,)
    assert vector.tolist() == pytest.approx([0.1, 0.2, 0.3])
    await client.close()


@pytest.mark.asyncio
async def test_embedding_client_error_status():
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    client = EmbeddingServiceClient("http://embedding:9006", http_client=http_client)

    with pytest.raises(ProviderResponseError):
        await client.embed_query("grid")
    await client.close()


@pytest.mark.asyncio
async def test_embedding_client_empty_vectors():
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"vectors": []})))
    client = EmbeddingServiceClient("http://embedding:9006", http_client=http_client)

    with pytest.raises(ProviderResponseError):
        await client.embed_query("grid")
    await client.close()


@pytest.mark.asyncio
async def test_embedding_client_connection_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = EmbeddingServiceClient("http://embedding:9006", http_client=http_client)

    with pytest.raises(ProviderConnectionError):
        await client.embed_query("grid")
    await client.close()
