"""Application configuration via Pydantic Settings v2."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "ExportIngest"
    app_env: Literal["development", "testing", "staging", "production"] = "development"
    debug: bool = False

    # Datastore (SQLite file, created on first ingest)
    datastore_path: str = "./data/erp.sqlite"

    # Export files handed over by the automation job
    downloads_dir: str = "./downloads"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Ingest
    ingest_batch_size: int = 1000

    @field_validator("ingest_batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        """Validate the row chunk size used for bulk inserts.

        Args:
            v: Requested chunk size.

        Returns:
            Validated chunk size.

        Raises:
            ValueError: If the size is not positive.
        """
        if v < 1:
            raise ValueError(f"ingest_batch_size must be >= 1, got {v}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.app_env == "testing"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
