"""
Configuration Management for Finance Sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each external service gets its own settings class so a missing
API key for one service does not block the others.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Supabase database, realtime and storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Supabase project URL"
    )
    key: str = Field(
        ...,
        description="Supabase anon or service key"
    )
    schema_name: str = Field(
        default="public",
        description="Database schema watched by the realtime feed"
    )
    receipts_bucket: str = Field(
        default="receipts",
        description="Storage bucket for uploaded receipts"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Accept http(s) URLs only; local Supabase runs on http."""
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Supabase URL must start with http:// or https://, got {v!r}")
        return v.rstrip("/")


class MindeeSettings(BaseSettings):
    """Mindee OCR service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MINDEE_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Mindee API key"
    )


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the finance assistant."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Root log level"
    )
    store_backend: str = Field(
        default="supabase",
        pattern="^(supabase|memory)$",
        description="Remote store implementation to use"
    )

    # Receipt upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum receipt upload size in MB"
    )
    supported_receipt_formats: str = Field(
        default="jpg,jpeg,png,webp,pdf,txt",
        description="Comma-separated list of accepted receipt file extensions"
    )
    min_ocr_confidence: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Below this, the scan is returned with a review warning"
    )
    archive_receipts: bool = Field(
        default=True,
        description="Upload scanned receipts to the storage bucket"
    )
    check_image_quality: bool = Field(
        default=True,
        description="Reject unreadable photos before they are sent for OCR"
    )
    max_document_size_mb: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum size in MB of a file kept in the documents library"
    )

    # Derived view thresholds
    budget_warning_ratio: float = Field(
        default=0.9,
        gt=0.0,
        lt=1.0,
        description="Share of the monthly limit at which spending is close to the limit"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_receipt_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def max_document_size_bytes(self) -> int:
        return self.max_document_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings are loaded lazily so the app can run with
    only part of the services configured.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def mindee(self) -> MindeeSettings:
        return MindeeSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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


def validate_all_settings() -> dict[str, bool | str]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the failing ones.
    """
    results: dict[str, bool | str] = {}
    settings = get_settings()

    for name in ("supabase", "mindee", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
