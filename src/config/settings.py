# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: AI provider,
key/value store, cache and quota limits, storage backend and logging.
Backend-specific storage settings are exposed as one frozen record per
backend (S3StorageConfig, PostgresStorageConfig, InlineStorageConfig) so a
half-configured backend can never be handed to an adapter.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


# --- Per-backend storage configuration (one record per backend) ---


class S3StorageConfig(BaseModel):
    """Object-store backend settings. All credentials are required."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["s3"] = "s3"
    region: str = Field(min_length=1)
    access_key_id: str = Field(min_length=1)
    secret_access_key: str = Field(min_length=1)
    bucket: str = Field(min_length=1)
    endpoint_url: str | None = None
    url_expiry_s: int = Field(default=3600, gt=0)


class PostgresStorageConfig(BaseModel):
    """Relational backend settings."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["postgresql"] = "postgresql"
    dsn: str = Field(min_length=1)
    server_base_url: str = Field(min_length=1)
    ssl: bool = False
    pool_max: int = Field(default=10, gt=0)


class InlineStorageConfig(BaseModel):
    """Inline backend settings: content travels inside document metadata."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["inline"] = "inline"
    max_bytes: int = Field(default=500 * 1024, gt=0)


StorageConfig = Union[S3StorageConfig, PostgresStorageConfig, InlineStorageConfig]

# Environment variable names per backend field, used in error messages.
_S3_ENV_NAMES = {
    "region": "S3_REGION",
    "access_key_id": "S3_ACCESS_KEY_ID",
    "secret_access_key": "S3_SECRET_ACCESS_KEY",
    "bucket": "S3_BUCKET",
}
_POSTGRES_ENV_NAMES = {
    "dsn": "POSTGRESQL_DSN",
    "server_base_url": "SERVER_BASE_URL",
}


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === AI provider ===
    ai_provider: str = "google"
    ai_model: str = "gemini-2.5-flash"
    ai_api_key: str = ""
    ai_temperature: float = 0.4
    ai_max_output_tokens: int = 1000
    ai_timeout_s: float = 5.0
    ai_max_retries: int = 2
    ai_retry_base_delay_s: float = 1.0

    # === Analysis result limits ===
    description_max_chars: int = 100
    summary_max_chars: int = 500

    # === Key/value store (cache, quota, document catalog) ===
    kv_backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://localhost:6379/0"

    # === Cache ===
    cache_ttl_s: int = 7 * 24 * 60 * 60

    # === Quota ===
    rate_limit_daily: int = 100

    # === Storage ===
    storage_backend: Literal["s3", "postgresql", "inline"] = "s3"
    s3_region: str = "us-east-1"
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_bucket: str = ""
    s3_endpoint_url: str = ""
    s3_url_expiry_s: int = 3600
    postgresql_dsn: str = ""
    postgresql_ssl: bool = False
    postgresql_pool_max: int = 10
    server_base_url: str = ""
    max_upload_mb: int = 10
    inline_max_kb: int = 500

    # === Documents ===
    documents_max_per_collection: int = 20

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "cache_ttl_s",
        "rate_limit_daily",
        "max_upload_mb",
        "inline_max_kb",
        "documents_max_per_collection",
        "s3_url_expiry_s",
        "postgresql_pool_max",
    )
    @classmethod
    def validate_positive_int(cls, v: int, info) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("ai_timeout_s", "ai_retry_base_delay_s")
    @classmethod
    def validate_non_negative_float(cls, v: float, info) -> float:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator("ai_max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("ai_max_retries must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.description_max_chars <= 0 or self.summary_max_chars <= 0:
            errors.append("DESCRIPTION_MAX_CHARS and SUMMARY_MAX_CHARS must be > 0")

        if self.ai_timeout_s == 0:
            errors.append("AI_TIMEOUT_S must be > 0")

        if self.kv_backend == "redis" and not self.redis_url:
            errors.append("REDIS_URL must be set when KV_BACKEND=redis")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def max_upload_bytes(self) -> int:
        """Upload ceiling in bytes."""
        return self.max_upload_mb * 1024 * 1024

    def storage_config(self) -> StorageConfig:
        """Build the configuration record for the selected storage backend.

        Raises:
            ConfigurationError: If required fields for the backend are empty.
                The message names the missing variables, never their values.
        """
        if self.storage_backend == "s3":
            _require(
                "S3",
                _S3_ENV_NAMES,
                {
                    "region": self.s3_region,
                    "access_key_id": self.s3_access_key_id,
                    "secret_access_key": self.s3_secret_access_key,
                    "bucket": self.s3_bucket,
                },
            )
            return S3StorageConfig(
                region=self.s3_region,
                access_key_id=self.s3_access_key_id,
                secret_access_key=self.s3_secret_access_key,
                bucket=self.s3_bucket,
                endpoint_url=self.s3_endpoint_url or None,
                url_expiry_s=self.s3_url_expiry_s,
            )

        if self.storage_backend == "postgresql":
            _require(
                "PostgreSQL",
                _POSTGRES_ENV_NAMES,
                {
                    "dsn": self.postgresql_dsn,
                    "server_base_url": self.server_base_url,
                },
            )
            return PostgresStorageConfig(
                dsn=self.postgresql_dsn,
                server_base_url=self.server_base_url.rstrip("/"),
                ssl=self.postgresql_ssl,
                pool_max=self.postgresql_pool_max,
            )

        if self.storage_backend == "inline":
            return InlineStorageConfig(max_bytes=self.inline_max_kb * 1024)

        raise ConfigurationError(
            f"Invalid storage backend: {self.storage_backend!r}. "
            "Must be 's3', 'postgresql' or 'inline'"
        )


def _require(label: str, env_names: dict[str, str], values: dict[str, str]) -> None:
    missing = [env_names[name] for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(
            f"Missing required {label} configuration: {', '.join(missing)}"
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
