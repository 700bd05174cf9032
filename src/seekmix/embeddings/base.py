"""Abstract base class for embedding providers."""

from __future__ import annotations

import asyncio
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence

import structlog

from seekmix.common.errors import DimensionMismatchError, EmbeddingError

logger = structlog.stdlib.get_logger()


class EmbeddingProvider(ABC):
    """
    Base class for all embedding providers.

    Subclasses must implement:
      - _embed() : produce the raw vector for one text

    and may override:
      - _load()  : one-time setup (model download, client creation)
      - close()  : release resources

    `initialize()` runs `_load()` at most once per instance. `embed()`
    validates every vector against `dimensions` before handing it out.
    """

    provider_name: str

    def __init__(self, model: str, dimensions: int | None = None) -> None:
        self.model = model
        self.dimensions = dimensions
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load whatever the provider needs. Repeated calls are no-ops."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            try:
                await self._load()
            except EmbeddingError:
                raise
            except Exception as e:
                await logger.aerror(
                    "embedding.init_failed",
                    provider=self.provider_name,
                    model=self.model,
                    error=str(e),
                )
                raise EmbeddingError(
                    f"Failed to initialize {self.provider_name} embedding model '{self.model}'",
                    details={"provider": self.provider_name, "model": self.model},
                ) from e
            if self.dimensions is None:
                raise EmbeddingError(
                    f"Embedding provider '{self.provider_name}' did not declare its dimensions",
                    details={"provider": self.provider_name, "model": self.model},
                )
            self._initialized = True

    async def _load(self) -> None:
        return None

    @abstractmethod
    async def _embed(self, text: str) -> Sequence[float]:
        """Return the raw embedding for `text`."""
        ...

    async def embed(self, text: str) -> list[float]:
        await self.initialize()

        try:
            raw = await self._embed(text)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(
                f"{self.provider_name} embedding failed: {e}",
                details={"provider": self.provider_name, "model": self.model},
            ) from e

        return self.validate(raw)

    def validate(self, raw: Sequence[float] | None) -> list[float]:
        """Coerce to a list of finite floats of exactly `dimensions` length."""
        if raw is None:
            raise EmbeddingError(
                f"{self.provider_name} returned no embedding",
                details={"provider": self.provider_name},
            )
        try:
            vector = [float(x) for x in raw]
        except (TypeError, ValueError) as e:
            raise EmbeddingError(
                f"{self.provider_name} returned a malformed embedding",
                details={"provider": self.provider_name},
            ) from e

        if len(vector) != self.dimensions:
            raise DimensionMismatchError(
                f"Expected {self.dimensions} dimensions, got {len(vector)}",
                details={
                    "provider": self.provider_name,
                    "model": self.model,
                    "expected": self.dimensions,
                    "actual": len(vector),
                },
            )
        if not all(math.isfinite(x) for x in vector):
            raise EmbeddingError(
                f"{self.provider_name} returned non-finite values",
                details={"provider": self.provider_name},
            )
        return vector

    async def close(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r}, dimensions={self.dimensions})"
