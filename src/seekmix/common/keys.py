"""
Identifier and serialization helpers shared by the engine and the stores.

- fingerprint():     exact-text dedup key for a query
- canonical_tags():  sorted, deduplicated tag list
- dump_result() / load_result(): JSON (de)serialization of cached values
"""

from __future__ import annotations

import hashlib
import json
import time
from collections.abc import Iterable
from typing import Any

from seekmix.common.errors import SerializationError


def fingerprint(query: str) -> str:
    """SHA-256 of the raw query text. Stable for identical input."""
    try:
        encoded = query.encode("utf-8")
    except UnicodeEncodeError as e:
        raise SerializationError(
            "Query is not valid UTF-8 text",
            details={"position": e.start},
        ) from e
    return hashlib.sha256(encoded).hexdigest()


def canonical_tags(tags: Iterable[str] | None) -> list[str]:
    if not tags:
        return []
    if isinstance(tags, str):
        raise SerializationError("tags must be a collection of strings, not a string")
    return sorted({str(tag) for tag in tags})


def dump_tags(tags: Iterable[str] | None) -> str:
    return json.dumps(canonical_tags(tags))


def load_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    return list(json.loads(raw))


def dump_result(result: Any) -> str:
    try:
        return json.dumps(result, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(
            f"Result is not JSON-serializable: {e}",
            details={"result_type": type(result).__name__},
        ) from e


def load_result(raw: str) -> Any:
    return json.loads(raw)


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000
