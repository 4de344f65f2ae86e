"""Configuration management for the documentation search services.

This module centralizes environment-driven configuration. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover commonly used environment variables
- Small service-specific subclasses to keep concerns clear

Usage
- Inject the appropriate config in your service entrypoint:
  ``config = SearchConfig()``
- Or select dynamically: ``config = get_config("search")``
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class for all services.

    Parameters are read from the process environment using the ``DOCS_``
    prefix (``log_level`` reads ``DOCS_LOG_LEVEL``). Defaults keep local
    development convenient while still being explicit.

    Notes
    - Add new shared settings here so downstream services inherit them.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # Observability
    metrics_enabled: bool = Field(default=True)


class SearchConfig(BaseConfig):
    """Configuration for the hybrid search service.

    Covers the HTTP port, fusion parameters, provider dispatch policy and
    the settings of each provider backend.
    """

    search_port: int = Field(default=9007)

    # Provider backend: ``memory`` (bundled corpus) or ``opensearch``
    search_backend: str = Field(default="memory")
    sample_data_path: Optional[str] = Field(default=None)

    # Fusion and dispatch
    rrf_k: float = Field(default=60.0)
    fetch_multiplier: int = Field(default=2)
    provider_timeout_seconds: float = Field(default=5.0)
    strict_mode: bool = Field(default=False)

    # OpenSearch
    opensearch_hosts: str = Field(default="http://localhost:9200")
    opensearch_index: str = Field(default="docs_chunks")
    opensearch_username: Optional[str] = Field(default=None)
    opensearch_password: Optional[str] = Field(default=None)
    opensearch_verify_certs: bool = Field(default=False)

    # Embedding service used for query vectors
    embedding_service_url: str = Field(default="http://localhost:9006")
    embedding_timeout_seconds: float = Field(default=10.0)

    @field_validator("rrf_k")
    @classmethod
    def _positive_k(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("rrf_k must be positive")
        return value

    @field_validator("fetch_multiplier")
    @classmethod
    def _multiplier_at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("fetch_multiplier must be >= 1")
        return value

    @property
    def opensearch_host_list(self) -> List[str]:
        """Comma-separated ``opensearch_hosts`` split into a list."""
        return [h.strip() for h in self.opensearch_hosts.split(",") if h.strip()]


def get_config(service_name: str) -> BaseConfig:
    """Get configuration for a specific service.

    Parameters
    - service_name: Literal name, currently only ``search``.

    Returns
    - A concrete ``BaseConfig`` subclass pre-wired to read the right env vars.
    """
    config_map = {
        "search": SearchConfig,
    }

    # Default to ``BaseConfig`` to avoid surprising crashes for unknown names.
    config_class = config_map.get(service_name, BaseConfig)
    return config_class()

