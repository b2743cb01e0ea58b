from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

PLACEHOLDER_MARKERS = ("your-project", "changeme")


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation."""

    model_config = SettingsConfigDict(
        env_file=(str(Path(__file__).resolve().parents[1] / ".env"), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="Workflow Galaxy API", alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="production",
        alias="APP_ENV",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")

    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )

    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    cache_ttl_ms: int = Field(default=300_000, ge=0, alias="CACHE_TTL_MS")

    source_api_base: str = Field(default="https://api.github.com", alias="SOURCE_API_BASE")
    source_repo_owner: str = Field(default="DvCud", alias="SOURCE_REPO_OWNER")
    source_repo_name: str = Field(default="n8n-workflows", alias="SOURCE_REPO_NAME")
    source_repo_path: str = Field(default="", alias="SOURCE_REPO_PATH")
    source_token: SecretStr | None = Field(default=None, alias="SOURCE_TOKEN")
    workflow_file_extension: str = Field(default=".json", alias="WORKFLOW_FILE_EXTENSION")
    remote_timeout_seconds: float = Field(default=30.0, gt=0, le=300, alias="REMOTE_TIMEOUT_SECONDS")

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        """Ensure the API prefix starts with a slash and has no trailing slash."""
        normalized = value.strip()
        if not normalized.startswith("/"):
            raise ValueError("API_PREFIX must start with '/'.")
        if len(normalized) > 1 and normalized.endswith("/"):
            normalized = normalized.rstrip("/")
        return normalized

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str]) -> list[str]:
        """Support comma-separated CORS origins from environment variables."""
        if isinstance(value, str):
            if not value.strip():
                return []
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("workflow_file_extension")
    @classmethod
    def normalize_extension(cls, value: str) -> str:
        value = value.strip().lower()
        return value if value.startswith(".") else f".{value}"

    @property
    def cache_configured(self) -> bool:
        """False when no cache backend is set or the URL is still a template value."""
        url = (self.database_url or "").strip()
        if not url:
            return False
        lowered = url.lower()
        return not any(marker in lowered for marker in PLACEHOLDER_MARKERS)

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_ms / 1000

    @property
    def listing_path(self) -> str:
        path = f"/repos/{self.source_repo_owner}/{self.source_repo_name}/contents"
        sub = self.source_repo_path.strip("/")
        return f"{path}/{sub}" if sub else path


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings: Settings = get_settings()
