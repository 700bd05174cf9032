"""Maps configured provider kinds to embedding provider instances."""

from __future__ import annotations

from seekmix.config import EmbeddingProviderKind, EmbeddingSettings
from seekmix.embeddings.base import EmbeddingProvider
from seekmix.embeddings.custom import CallableEmbeddingProvider, EmbedFn
from seekmix.embeddings.local import LocalEmbeddingProvider
from seekmix.embeddings.openai import OpenAIEmbeddingProvider


def build_provider(
    settings: EmbeddingSettings,
    embed_fn: EmbedFn | None = None,
) -> EmbeddingProvider:
    """Instantiate the provider selected by `settings.provider`."""
    kind = settings.provider

    if kind == EmbeddingProviderKind.LOCAL:
        return LocalEmbeddingProvider(settings.model, settings.dimensions)

    if kind == EmbeddingProviderKind.OPENAI:
        return OpenAIEmbeddingProvider(
            settings.model,
            settings.dimensions,
            api_key=settings.api_key,
            api_base=settings.api_base,
            timeout_seconds=settings.timeout_seconds,
        )

    if kind == EmbeddingProviderKind.CUSTOM:
        if embed_fn is None or settings.dimensions is None:
            raise ValueError(
                "The 'custom' embedding provider needs an embed function and "
                "embedding.dimensions"
            )
        return CallableEmbeddingProvider(
            embed_fn, model=settings.model, dimensions=settings.dimensions
        )

    supported = ", ".join(list_supported_providers())
    raise ValueError(f"Unsupported embedding provider: '{kind}'. Supported: {supported}")


def list_supported_providers() -> list[str]:
    """Return all registered provider kinds."""
    return sorted(kind.value for kind in EmbeddingProviderKind)
