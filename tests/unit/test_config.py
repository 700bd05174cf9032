"""Tests for settings defaults and validation."""

import pytest
from pydantic import ValidationError

from seekmix.config import CacheSettings, EmbeddingProviderKind, Settings


@pytest.mark.unit
class TestCacheSettings:
    def test_defaults(self) -> None:
        s = CacheSettings()
        assert s.similarity_threshold == 0.87
        assert s.ttl_seconds == -1
        assert s.expires is False
        assert s.tag_fanout == 50

    def test_max_distance(self) -> None:
        assert CacheSettings(similarity_threshold=0.9).max_distance == pytest.approx(0.1)

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_threshold_range(self, threshold: float) -> None:
        with pytest.raises(ValidationError):
            CacheSettings(similarity_threshold=threshold)

    def test_ttl_sentinel_only(self) -> None:
        assert CacheSettings(ttl_seconds=0).expires is True
        with pytest.raises(ValidationError):
            CacheSettings(ttl_seconds=-5)


@pytest.mark.unit
class TestSettings:
    def test_nested_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SEEKMIX_CACHE__TTL_SECONDS", "120")
        monkeypatch.setenv("SEEKMIX_EMBEDDING__PROVIDER", "openai")
        s = Settings()
        assert s.cache.ttl_seconds == 120
        assert s.embedding.provider == EmbeddingProviderKind.OPENAI

    def test_api_key_env_reference(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_OPENAI_KEY", "sk-from-env")
        s = Settings(embedding={"provider": "openai", "api_key": "${MY_OPENAI_KEY}"})
        assert s.embedding.api_key == "sk-from-env"

    def test_flat_aliases(self) -> None:
        s = Settings(master_api_key="k", log_level="debug")
        assert s.auth.master_api_key == "k"
        assert s.logging.level == "DEBUG"

    def test_env_wins_over_file_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SEEKMIX_ENV", "production")
        s = Settings(env="staging")
        assert s.env == "production"

    def test_max_fanout_bounded_by_index_search_width(self) -> None:
        assert Settings(cache={"max_fanout": 1000}).cache.max_fanout == 1000
        with pytest.raises(ValidationError):
            Settings(cache={"max_fanout": 1001})
