"""
Application configuration using Pydantic Settings.
"""
from decimal import Decimal
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "RestOps API"
    DEBUG: bool = False

    # Database (record store backend)
    DATABASE_URL: str = "sqlite:///./restops.db"

    # Reporting
    CURRENCY: str = "JOD"
    UNASSIGNED_OUTLET_LABEL: str = "All / Unassigned"

    # Inventory reconciliation thresholds for auto-created investigation tasks
    VARIANCE_COST_THRESHOLD: Decimal = Decimal("25")
    VARIANCE_PCT_THRESHOLD: Decimal = Decimal("10")

    @field_validator("VARIANCE_COST_THRESHOLD", "VARIANCE_PCT_THRESHOLD")
    @classmethod
    def validate_threshold(cls, v: Decimal) -> Decimal:
        """Thresholds are compared against absolute variances, so they can't be negative."""
        if v < 0:
            raise ValueError(f"Variance thresholds must be >= 0 (got {v})")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
