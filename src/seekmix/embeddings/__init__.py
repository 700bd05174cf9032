"""Pluggable embedding providers: local (fastembed), hosted (OpenAI API) and custom."""

from seekmix.embeddings.base import EmbeddingProvider
from seekmix.embeddings.custom import CallableEmbeddingProvider
from seekmix.embeddings.local import LocalEmbeddingProvider
from seekmix.embeddings.openai import OpenAIEmbeddingProvider
from seekmix.embeddings.registry import build_provider, list_supported_providers

__all__ = [
    "EmbeddingProvider",
    "CallableEmbeddingProvider",
    "LocalEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "build_provider",
    "list_supported_providers",
]
