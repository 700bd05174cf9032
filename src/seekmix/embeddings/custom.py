"""Embedding provider backed by a caller-supplied function."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence

from seekmix.embeddings.base import EmbeddingProvider

EmbedFn = Callable[[str], Sequence[float] | Awaitable[Sequence[float]]]


class CallableEmbeddingProvider(EmbeddingProvider):
    """
    Wrap any sync or async `text -> vector` function.

    The model identity is what namespaces the cache, so give each distinct
    function its own `model` string.
    """

    provider_name = "custom"

    def __init__(self, fn: EmbedFn, *, model: str, dimensions: int) -> None:
        super().__init__(model, dimensions)
        self._fn = fn

    async def _embed(self, text: str) -> Sequence[float]:
        result = self._fn(text)
        if inspect.isawaitable(result):
            result = await result
        return result
