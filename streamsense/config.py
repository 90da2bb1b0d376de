"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_env: Literal["development", "production", "test"] = "development"
    app_name: str = "StreamSense"

    # Database (PostgreSQL in production, SQLite for local runs and tests)
    database_url: str = "postgresql://localhost:5432/streamsense"

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only PostgreSQL and SQLite backends are supported."""
        if not v.startswith(("postgresql", "sqlite")):
            raise ValueError("DATABASE_URL must be a postgresql:// or sqlite:// URL")
        return v

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # External APIs
    tmdb_api_key: str = ""

    # Recommendations
    recommendation_relevance_weight: float = 0.7

    @field_validator("recommendation_relevance_weight")
    @classmethod
    def validate_relevance_weight(cls, v: float) -> float:
        """Relevance share of the blended ranking score."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("RECOMMENDATION_RELEVANCE_WEIGHT must be between 0 and 1")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def database_url_async(self) -> str:
        """Get async database URL (postgresql+asyncpg or sqlite+aiosqlite)."""
        url = self.database_url
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite://"):
            return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
