"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - pair_bonus_rate is a positive Decimal; max_tree_depth >= 1

Design Decisions:
    - Defaults provided for every setting: works out-of-the-box with docker-compose
    - strict_referrer / strict_placement make the registration policy explicit;
      both default to the permissive behavior (unplaced root, registration succeeds)
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://network:network@db:5432/network"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Commission
    pair_bonus_rate: Decimal = Decimal("400.00")

    # Traversal bound for placement search, recount and ancestor walk
    max_tree_depth: int = 64

    # Optimistic concurrency
    conflict_max_retries: int = 5
    conflict_base_delay_ms: int = 10
    conflict_max_delay_ms: int = 1000
    placement_max_attempts: int = 10

    # Registration policy
    strict_referrer: bool = False
    strict_placement: bool = False

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("pair_bonus_rate")
    @classmethod
    def validate_rate(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("pair_bonus_rate must be positive")
        return v

    @field_validator("max_tree_depth", "placement_max_attempts")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
