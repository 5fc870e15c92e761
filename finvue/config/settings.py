"""
Configuration Management for FinVue

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Storage location, valuation defaults and audit behaviour are all
validated once at startup instead of being read ad hoc.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finvue.models.entities import Currency


class StoreSettings(BaseSettings):
    """Entity store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINVUE_STORE_",
        extra="ignore"
    )

    backend: str = Field(
        default="sqlite",
        pattern="^(sqlite|memory)$",
        description="Storage engine: file-backed sqlite or ephemeral memory"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the database file"
    )
    db_filename: str = Field(
        default="finvue.db",
        min_length=1,
        description="Name of the SQLite database file"
    )

    @field_validator('db_filename')
    @classmethod
    def validate_db_filename(cls, v: str) -> str:
        """The filename must not smuggle in a directory."""
        if "/" in v or "\\" in v:
            raise ValueError(f"db_filename must be a bare filename, got {v!r}")
        return v

    @property
    def database_path(self) -> Path:
        """Full path to the SQLite database."""
        return self.data_dir / self.db_filename


class ValuationSettings(BaseSettings):
    """Valuation defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FINVUE_VALUATION_",
        extra="ignore"
    )

    base_currency: Currency = Field(
        default=Currency.CAD,
        description="Currency used for dashboards and snapshots when none is given"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINVUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Integrity
    repair_on_startup: bool = Field(
        default=True,
        description="Prune orphaned transactions and goal links when the tracker opens"
    )

    # Audit
    audit_history_size: int = Field(
        default=500,
        ge=0,
        le=10000,
        description="Number of audit events kept in memory"
    )

    # Backup
    backup_version: str = Field(
        default="1.0",
        description="Version tag written into exported backups"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def valuation(self) -> ValuationSettings:
        return ValuationSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    `<name>_error` entries describing any failure.
    """
    results = {}

    settings = get_settings()

    for name in ("store", "valuation", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
