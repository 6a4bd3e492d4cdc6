"""Central configuration for the POS Search Service."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="POS_SEARCH_",
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Store
    database_url: str = Field(
        default="sqlite:///data/pos_search.db",
        description="SQLAlchemy URL of the shared store (catalog, suggestions, events)",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Logging
    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR")
    log_format: Literal["text", "json"] = Field(default="text")
    log_file_path: Path | None = Field(default=None, description="Optional log file")

    # Catalog collaborator (dotted class path)
    catalog_source: str = Field(
        default="pos_search.services.catalog.sql_catalog.SqlCatalogSource",
        description="SqlCatalogSource (default) or InMemoryCatalogSource",
    )
    catalog_seed_path: Path | None = Field(
        default=None,
        description="JSON file with catalog entries for InMemoryCatalogSource",
    )

    # Request bounds
    default_limit: int = Field(default=20, ge=1, le=100)
    max_limit: int = Field(default=100, ge=1, le=100)
    max_offset: int = Field(default=10_000, ge=0)

    # Suggestions
    suggestion_min_prefix: int = Field(default=2, ge=1)
    suggestion_default_limit: int = Field(default=10, ge=1, le=100)

    # Recording
    track_searches: bool = Field(
        default=True,
        description="Append a search event for every completed search",
    )
    recording_workers: int = Field(default=2, ge=1, le=32)
    recording_queue_size: int = Field(
        default=1000,
        ge=1,
        description="Max pending background writes before new ones are dropped",
    )

    # Analytics
    popularity_window_days: int = Field(default=30, ge=1)
    ctr_min_searches: int = Field(
        default=1,
        ge=1,
        description="Hide click-through rows with fewer searches in the window",
    )
    event_retention_days: int | None = Field(
        default=None,
        ge=1,
        description="Prune search events older than this; None keeps everything",
    )
    suggestion_retention_days: int | None = Field(
        default=None,
        ge=1,
        description="Prune suggestions unused for this long; None keeps everything",
    )

    # Relevance weights
    weight_exact_name: float = Field(default=100.0, ge=0)
    weight_exact_keyword: float = Field(default=60.0, ge=0)
    weight_name_substring: float = Field(default=40.0, ge=0)
    weight_keyword_substring: float = Field(default=25.0, ge=0)
    weight_attribute: float = Field(default=10.0, ge=0)

    @model_validator(mode="after")
    def _check_limits(self) -> "Settings":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must not exceed max_limit")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
