"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============== Environment ==============
    environment: Literal["development", "staging", "production"] = "development"

    # ============== Database ==============
    postgres_user: str = "mismatch_finder"
    postgres_password: str = "mismatch_finder_dev_password"
    postgres_db: str = "mismatch_finder"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url: PostgresDsn | None = None

    @property
    def db_url(self) -> str:
        """Construct database URL from components or use explicit URL."""
        if self.database_url:
            return str(self.database_url)
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def db_url_sync(self) -> str:
        """Synchronous database URL for Alembic migrations."""
        return self.db_url.replace("postgresql+asyncpg://", "postgresql://")

    # ============== API ==============
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    api_reload: bool = False
    cors_origins_str: str = Field(default="http://localhost:3000,http://localhost:8000", alias="cors_origins")

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # ============== Wikibase ==============
    wikibase_api_url: str = "https://www.wikidata.org/w/api.php"
    wikibase_user_agent: str = "MismatchFinder/0.1 (https://www.wikidata.org/wiki/Wikidata:Mismatch_Finder)"
    wikibase_timeout: float = Field(default=10.0, gt=0.0, le=120.0)
    wikibase_batch_size: int = Field(default=50, ge=1, le=500)
    enrichment_timeout: float = Field(default=30.0, gt=0.0, le=300.0)

    # ============== Metrics ==============
    metrics_enabled: bool = True
    statsv_url: str = "https://www.wikidata.org/beacon/statsv"
    statsv_namespace: str = "MediaWiki.wikidata.mismatchStats"
    metrics_timeout: float = Field(default=1.0, gt=0.0, le=10.0)

    # ============== Review ==============
    max_ids: int = Field(default=600, ge=1, le=5000)
    default_locale: str = "en"
    review_log_path: str | None = None

    # ============== Logging ==============
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # ============== Computed Properties ==============
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
