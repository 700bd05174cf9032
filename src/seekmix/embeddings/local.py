"""
Local embedding model.

Uses fastembed (ONNX Runtime) for lightweight vector generation. No
PyTorch/GPU needed. The model is downloaded on first initialization and
kept for the lifetime of the provider.

Default model: BAAI/bge-small-en-v1.5 (384 dimensions, 45MB)
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog

from seekmix.common.errors import EmbeddingError
from seekmix.embeddings.base import EmbeddingProvider

if TYPE_CHECKING:
    from fastembed import TextEmbedding

logger = structlog.stdlib.get_logger()

DEFAULT_MODEL = "BAAI/bge-small-en-v1.5"


def _declared_dimensions(model_name: str) -> int | None:
    """Look the model up in fastembed's catalogue."""
    from fastembed import TextEmbedding

    for description in TextEmbedding.list_supported_models():
        if description.get("model", "").lower() == model_name.lower():
            return description.get("dim")
    return None


class LocalEmbeddingProvider(EmbeddingProvider):
    provider_name = "local"

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        dimensions: int | None = None,
        **model_options: Any,
    ) -> None:
        super().__init__(model, dimensions)
        self._model_options = model_options
        self._extractor: TextEmbedding | None = None

    async def _load(self) -> None:
        from fastembed import TextEmbedding

        await logger.ainfo("embedding.loading", model=self.model)
        self._extractor = await asyncio.to_thread(
            TextEmbedding, model_name=self.model, **self._model_options
        )

        declared = await asyncio.to_thread(_declared_dimensions, self.model)
        if declared is None:
            # Custom ONNX models are not in the catalogue; measure instead
            probe = await asyncio.to_thread(self._encode, "dimension probe")
            declared = len(probe)

        if self.dimensions is not None and self.dimensions != declared:
            await logger.awarning(
                "embedding.dimensions_overridden",
                model=self.model,
                configured=self.dimensions,
                actual=declared,
            )
        self.dimensions = declared
        await logger.ainfo("embedding.loaded", model=self.model, dimensions=self.dimensions)

    def _encode(self, text: str) -> list[float]:
        if self._extractor is None:
            raise EmbeddingError(
                f"Local embedding model '{self.model}' is not loaded",
                details={"provider": self.provider_name, "model": self.model},
            )
        embeddings = list(self._extractor.embed([text]))
        return embeddings[0].tolist()

    async def _embed(self, text: str) -> Sequence[float]:
        return await asyncio.to_thread(self._encode, text)

    async def close(self) -> None:
        self._extractor = None
        self._initialized = False
