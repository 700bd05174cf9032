"""Tests for namespace resolution."""

import re

import pytest

from seekmix.core.namespace import resolve_namespace, sanitize_model_name

SAFE = re.compile(r"^[a-z0-9_]+$")


@pytest.mark.unit
class TestNamespaceResolver:
    def test_deterministic(self) -> None:
        assert resolve_namespace("Xenova/multilingual-e5-large") == resolve_namespace(
            "Xenova/multilingual-e5-large"
        )

    def test_identifier_safe(self) -> None:
        ns = resolve_namespace("Xenova/multilingual-e5-large")
        assert SAFE.match(ns.token)
        assert ns.cache_table == f"cache_{ns.token}"
        assert ns.vec_table == f"vec_{ns.token}"
        assert ns.token.startswith("xenova_multilingual_e5_large_")

    def test_punctuation_variants_do_not_collide(self) -> None:
        a = resolve_namespace("org/model-v1")
        b = resolve_namespace("org_model_v1")
        assert sanitize_model_name("org/model-v1") == sanitize_model_name("org_model_v1")
        assert a.token != b.token

    def test_different_models_differ(self) -> None:
        tokens = {
            resolve_namespace(m).token
            for m in ("text-embedding-ada-002", "text-embedding-3-small", "text-embedding-3-large")
        }
        assert len(tokens) == 3

    def test_long_names_fit_identifier_limits(self) -> None:
        ns = resolve_namespace("vendor/" + "very-long-model-name-" * 10)
        assert len(f"ix_{ns.cache_table}_ts") <= 63
        assert len(f"ix_{ns.vec_table}_hnsw") <= 63

    def test_empty_model_rejected(self) -> None:
        with pytest.raises(ValueError):
            resolve_namespace("")
