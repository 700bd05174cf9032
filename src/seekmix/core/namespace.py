"""
Namespace resolution.

Each embedding model gets its own pair of tables so vectors produced by
different models are never compared. Table names are derived here and
nowhere else.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True)
class Namespace:
    model: str
    token: str

    @property
    def cache_table(self) -> str:
        return f"cache_{self.token}"

    @property
    def vec_table(self) -> str:
        return f"vec_{self.token}"


def sanitize_model_name(model: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return _UNSAFE.sub("_", model).lower()


def resolve_namespace(model: str) -> Namespace:
    """
    Map an embedding model identity to a stable, identifier-safe namespace.

    The sanitized name keeps tables readable; the digest suffix keeps
    "org/model-v1" and "org_model_v1" apart.
    """
    if not model:
        raise ValueError("Embedding model identity must be a non-empty string")
    digest = hashlib.sha256(model.encode("utf-8")).hexdigest()[:8]
    # Postgres truncates identifiers at 63 bytes; leave room for prefixes
    return Namespace(model=model, token=f"{sanitize_model_name(model)[:32]}_{digest}")
