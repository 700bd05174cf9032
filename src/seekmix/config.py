"""
SeekMix configuration.

Resolution order (highest priority first):
  1. Environment variables   (SEEKMIX_CACHE__TTL_SECONDS=...)
  2. YAML config file        (seekmix.yaml)
  3. Defaults defined here
"""

from __future__ import annotations

import os
from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(StrEnum):
    JSON = "json"
    CONSOLE = "console"


class EmbeddingProviderKind(StrEnum):
    LOCAL = "local"
    OPENAI = "openai"
    CUSTOM = "custom"


class VectorBackend(StrEnum):
    AUTO = "auto"
    NUMPY = "numpy"
    PGVECTOR = "pgvector"


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1


class LoggingSettings(BaseModel):
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON


class AuthSettings(BaseModel):
    master_api_key: str = ""


class StorageSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///seekmix.db"
    echo: bool = False
    drop_index: bool = False  # drop and recreate namespace tables on connect
    drop_keys: bool = False   # clear all entries on connect
    vector_backend: VectorBackend = VectorBackend.AUTO


class EmbeddingSettings(BaseModel):
    provider: EmbeddingProviderKind = EmbeddingProviderKind.LOCAL
    model: str = "BAAI/bge-small-en-v1.5"
    dimensions: int | None = None
    api_key: str = ""
    api_base: str = "https://api.openai.com/v1"
    timeout_seconds: float = 30.0


class CacheSettings(BaseModel):
    similarity_threshold: float = Field(0.87, ge=0.0, le=1.0)
    ttl_seconds: int = -1  # -1 disables expiration
    tag_fanout: int = Field(50, ge=1)
    max_fanout: int = Field(1000, ge=1, le=1000)
    degrade_embedding_errors: bool = True

    @field_validator("ttl_seconds")
    @classmethod
    def _check_ttl(cls, value: int) -> int:
        if value != -1 and value < 0:
            raise ValueError("ttl_seconds must be -1 (no expiration) or >= 0")
        return value

    @property
    def max_distance(self) -> float:
        """Cosine distance cutoff: candidates farther than this are misses."""
        return 1.0 - self.similarity_threshold

    @property
    def expires(self) -> bool:
        return self.ttl_seconds != -1


class Settings(BaseSettings):
    """Root settings: env vars over YAML over defaults."""

    model_config = SettingsConfigDict(
        env_prefix="SEEKMIX_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    env: str = "development"
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML arrives as init kwargs; environment variables win over it
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    # Convenience aliases for flat env vars
    master_api_key: str = ""
    log_level: str = ""

    def model_post_init(self, __context: Any) -> None:
        if self.master_api_key:
            self.auth.master_api_key = self.master_api_key
        if self.log_level:
            self.logging.level = LogLevel(self.log_level.upper())

        # Resolve ${ENV_VAR} references in the embedding API key
        api_key = self.embedding.api_key
        if api_key.startswith("${") and api_key.endswith("}"):
            self.embedding.api_key = os.environ.get(api_key[2:-1], "")


def _load_yaml_config() -> dict[str, Any]:
    """Load YAML config file if it exists."""
    search_paths = [
        Path("seekmix.yaml"),
        Path("config/seekmix.yaml"),
        Path("/etc/seekmix/seekmix.yaml"),
    ]
    for path in search_paths:
        if path.is_file():
            with open(path) as f:
                return yaml.safe_load(f) or {}
    return {}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    yaml_data = _load_yaml_config()
    return Settings(**yaml_data)
