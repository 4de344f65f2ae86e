"""HTTP client for the embedding service that vectorizes search queries."""

from typing import List, Optional

import httpx
import numpy as np
import structlog

from .base import ProviderConnectionError, ProviderResponseError, ProviderTimeoutError

logger = structlog.get_logger("search_provider.embeddings")


class EmbeddingServiceClient:
    """Fetch query embeddings from ``POST {base_url}/api/v1/embed``.

    Request body is ``{"items": [{"text": ...}], "model": ...}`` and the
    response carries ``{"vectors": [[...], ...]}``.
    """

    def __init__(
        self,
        base_url: str,
        model: str = "default",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def embed_query(self, text: str) -> np.ndarray:
        """Return the embedding vector for ``text``."""
        try:
            response = await self.http_client.post(
                f"{self.base_url}/api/v1/embed",
                json={"items": [{"text": text}], "model": self.model},
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Embedding service timed out: {e}", provider="embedding") from e
        except httpx.HTTPError as e:
            raise ProviderConnectionError(f"Embedding service unreachable: {e}", provider="embedding") from e

        if response.status_code != 200:
            raise ProviderResponseError(
                f"Embedding service returned status {response.status_code}",
                provider="embedding",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseError("Embedding service returned invalid JSON", provider="embedding") from e

        vectors: List[List[float]] = data.get("vectors", []) if isinstance(data, dict) else []
        if not vectors:
            raise ProviderResponseError("Embedding service returned no vectors", provider="embedding")

        return np.asarray(vectors[0], dtype=np.float32)

    async def close(self) -> None:
        await self.http_client.aclose()
