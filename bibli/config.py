"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache) — single instance per process
    - Barcode prefix/width, loan default, depth guard, fuzzy threshold and the
      accessibility policy are all policy knobs read from here

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all settings: works out-of-the-box with docker-compose
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from bibli.core.barcode_format import BarcodeFormat
from bibli.core.domain_types import LocationAccessibility


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://bibli:bibli@db:5432/bibli"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Barcodes
    barcode_prefix: str = "VOL"
    barcode_width: int = Field(8, ge=1, le=18)

    # Loans
    default_loan_duration_days: int = Field(21, gt=0)

    # Locations
    max_location_depth: int = Field(32, ge=1)
    location_accessibility: LocationAccessibility = LocationAccessibility.RANK

    # Duplicates
    fuzzy_match_threshold: float = Field(0.85, ge=0.0, le=1.0)

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def barcode_format(self) -> BarcodeFormat:
        return BarcodeFormat(prefix=self.barcode_prefix, width=self.barcode_width)


@lru_cache
def get_settings() -> Settings:
    return Settings()
