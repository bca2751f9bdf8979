"""
Configuration Management for OrgLedger

Settings come from environment variables (and .env) through
pydantic-settings.

DESIGN DECISION: All configuration is centralized here.
Firebase settings are only loaded when the Firebase backends are
used, so tests and local development need no credentials.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FanOutMode(str, Enum):
    """
    How multi-document writes are issued.

    ATOMIC commits a fee and its assignments (or a payment and its
    transaction) as one store batch. BEST_EFFORT writes them one by one
    and never rolls back earlier writes.
    """
    ATOMIC = "atomic"
    BEST_EFFORT = "best_effort"


class FirebaseSettings(BaseSettings):
    """Firebase project configuration (Firestore, Auth, Storage)."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        extra="ignore"
    )

    project_id: str = Field(
        ...,
        description="Firebase / Google Cloud project ID"
    )
    credentials_path: str = Field(
        ...,
        description="Path to the service account credentials JSON"
    )
    web_api_key: str = Field(
        ...,
        description="Web API key used for password sign-in"
    )
    storage_bucket: Optional[str] = Field(
        default=None,
        description="Bucket for receipt uploads (defaults to <project>.appspot.com)"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Firebase credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v

    @property
    def bucket_name(self) -> str:
        return self.storage_bucket or f"{self.project_id}.appspot.com"


class AppSettings(BaseSettings):
    """
    Application behavior: logging, fan-out mode, phone parsing, receipts
    and audit persistence.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Consistency of multi-document writes
    fan_out_mode: FanOutMode = Field(
        default=FanOutMode.ATOMIC,
        description="atomic (single batch) or best_effort (sequential, no rollback)"
    )

    # Phone numbers
    default_phone_region: Optional[str] = Field(
        default=None,
        min_length=2,
        max_length=2,
        description="ISO region assumed for numbers without a leading '+'"
    )

    # Receipt upload limits
    max_receipt_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum receipt upload size in MB"
    )
    supported_receipt_types: str = Field(
        default="image/jpeg,image/png,image/webp,application/pdf",
        description="Comma-separated list of accepted receipt content types"
    )
    receipt_url_ttl_days: int = Field(
        default=7,
        ge=1,
        le=7,
        description="Lifetime of signed receipt URLs"
    )

    # Audit
    audit_to_store: bool = Field(
        default=True,
        description="Persist audit events to the audit_events collection"
    )

    @field_validator('default_phone_region')
    @classmethod
    def upper_region(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v

    @property
    def supported_receipt_types_list(self) -> list[str]:
        """Get supported receipt types as a list."""
        return [t.strip().lower() for t in self.supported_receipt_types.split(",")]

    @property
    def max_receipt_size_bytes(self) -> int:
        """Get max receipt size in bytes."""
        return self.max_receipt_size_mb * 1024 * 1024


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

    # Sub-settings are loaded lazily so tests can run without Firebase config

    @property
    def firebase(self) -> FirebaseSettings:
        return FirebaseSettings()

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


def validate_all_settings() -> dict[str, Union[bool, str]]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the sections that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("firebase", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
