"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "IssueBoard"
    APP_ENV: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = ""  # Required - loaded from environment

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    @field_validator("VOTE_PATCH_MAX_RETRIES")
    @classmethod
    def validate_retry_budget(cls, v: int) -> int:
        """A vote toggle needs at least one patch attempt."""
        if v < 1:
            raise ValueError("VOTE_PATCH_MAX_RETRIES must be at least 1")
        return v

    # Authentication (tokens issued by this API)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Identity provider (Google Identity Toolkit REST API)
    IDENTITY_TOOLKIT_API_KEY: str | None = None
    IDENTITY_TOOLKIT_BASE_URL: str = "https://identitytoolkit.googleapis.com/v1"
    IDENTITY_REQUEST_URI: str = "http://localhost:3000"
    IDENTITY_TIMEOUT_SECONDS: float = 10.0

    # Azure Cosmos DB (durable issue store)
    AZURE_COSMOS_ENDPOINT: str | None = None
    AZURE_COSMOS_CONNECTION_STRING: str | None = None  # For local emulator only
    AZURE_COSMOS_DATABASE: str = "issueboard"
    AZURE_COSMOS_DISABLE_SSL: bool = False

    # Demo principals keep their issues in a local cache instead of Cosmos DB
    DEMO_MODE_ENABLED: bool = True
    LOCAL_CACHE_DIR: str | None = None  # None keeps the cache in process memory
    LOCAL_CACHE_SLOT: str = "demoIssues"

    # Issue rules
    ENFORCE_ISSUE_OWNERSHIP: bool = True
    VOTE_PATCH_MAX_RETRIES: int = 5

    # Live feed refresh for subscribers of the durable store
    ISSUE_FEED_REFRESH_SECONDS: int = 15

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def cosmos_configured(self) -> bool:
        """Check if Cosmos DB is configured."""
        return bool(self.AZURE_COSMOS_ENDPOINT or self.AZURE_COSMOS_CONNECTION_STRING)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
