"""OpenAI embeddings API provider (also works for compatible gateways)."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from seekmix.common.errors import EmbeddingError
from seekmix.embeddings.base import EmbeddingProvider

logger = structlog.stdlib.get_logger()

# Known models and their output sizes
MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}

DEFAULT_MODEL = "text-embedding-ada-002"


class OpenAIEmbeddingProvider(EmbeddingProvider):
    provider_name = "openai"

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        dimensions: int | None = None,
        *,
        api_key: str = "",
        api_base: str = "https://api.openai.com/v1",
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(model, dimensions or MODEL_DIMENSIONS.get(model))
        self.api_base = api_base.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._client = http_client
        self._owns_client = http_client is None

    async def _load(self) -> None:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10.0),
                follow_redirects=True,
            )
            self._owns_client = True

    def transform_request(self, text: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        """Returns (url, headers, body) for the embeddings endpoint."""
        url = f"{self.api_base}/embeddings"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        body = {"model": self.model, "input": text, "encoding_format": "float"}
        return url, headers, body

    async def _embed(self, text: str) -> Sequence[float]:
        if self._client is None:
            raise EmbeddingError(
                "OpenAI embedding provider is not initialized",
                details={"provider": self.provider_name},
            )
        url, headers, body = self.transform_request(text)

        try:
            response = await self._client.post(url, headers=headers, json=body)
        except httpx.HTTPError as e:
            await logger.aerror("embedding.openai.request_failed", error=str(e))
            raise EmbeddingError(
                f"OpenAI embeddings request failed: {e}",
                details={"provider": self.provider_name},
            ) from e

        if response.status_code != 200:
            await logger.aerror(
                "embedding.openai.error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise EmbeddingError(
                f"OpenAI returned {response.status_code}: {response.text[:200]}",
                details={"provider": self.provider_name, "status_code": response.status_code},
            )

        try:
            return response.json()["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError(
                "Unexpected embeddings response structure",
                details={"provider": self.provider_name},
            ) from e

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
        self._initialized = False
