"""SeekMix: semantic result cache backed by embeddings and nearest-neighbor search."""

__version__ = "0.3.0"

from seekmix.common.errors import (  # noqa: E402
    DimensionMismatchError,
    EmbeddingError,
    SeekMixError,
    SerializationError,
    StorageError,
)
from seekmix.core.cache import CacheHit, SemanticCache  # noqa: E402

__all__ = [
    "__version__",
    "SemanticCache",
    "CacheHit",
    "SeekMixError",
    "EmbeddingError",
    "DimensionMismatchError",
    "StorageError",
    "SerializationError",
]
