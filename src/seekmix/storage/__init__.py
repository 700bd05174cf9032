"""Storage adapters: per-namespace metadata table and vector index."""

from seekmix.storage.metadata_store import MetadataRecord, MetadataStore
from seekmix.storage.session import create_engine_from_settings
from seekmix.storage.vector_index import (
    Neighbor,
    NumpyVectorIndex,
    PgVectorIndex,
    VectorIndex,
    build_vector_index,
)

__all__ = [
    "MetadataRecord",
    "MetadataStore",
    "Neighbor",
    "NumpyVectorIndex",
    "PgVectorIndex",
    "VectorIndex",
    "build_vector_index",
    "create_engine_from_settings",
]
