"""
Configuration Management for the ClearSpend Assistant

Every knob is read from the environment (or .env) through pydantic-settings.

DESIGN DECISION: Credentials for Sheets and Gemini are optional at
import time. The resolver starts without them and degrades to a
"Search failed" reply, so each group is loaded only when first used.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_KNOWN_VENDORS = (
    "walmart,target,amazon,starbucks,mcdonalds,costco,home depot,best buy"
)


class AssistantSettings(BaseSettings):
    """Query resolver behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_tenant_id: str = Field(
        default="00000000-0000-0000-0000-000000000001",
        description="Tenant used when the caller does not supply one"
    )

    # Lexical search
    search_page_limit: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum receipts fetched per lexical search (newest first)"
    )

    # Semantic search
    semantic_search_enabled: bool = Field(
        default=False,
        description="Attempt embedding similarity search before lexical search"
    )
    semantic_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="Upper bound for the whole semantic attempt"
    )
    similarity_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum cosine similarity for a line item to count"
    )
    similarity_max_results: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Maximum similar line items to retrieve"
    )

    # Entity extraction
    known_vendors: str = Field(
        default=DEFAULT_KNOWN_VENDORS,
        description="Comma-separated vendor terms matched before pattern guessing"
    )

    # Input limits
    max_message_length: int = Field(
        default=2000,
        ge=10,
        description="Longest accepted chat message"
    )

    @property
    def known_vendors_list(self) -> list[str]:
        """Get known vendors as a list, in configured order."""
        return [
            vendor.strip().lower()
            for vendor in self.known_vendors.split(",")
            if vendor.strip()
        ]


class GeminiSettings(BaseSettings):
    """Gemini embedding configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    embedding_model: str = Field(
        default="models/text-embedding-004",
        description="Embedding model used for query vectors"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets record store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    receipts_sheet_name: str = Field(
        default="Receipts",
        description="Name of the sheet for receipts"
    )
    vendors_sheet_name: str = Field(
        default="Vendors",
        description="Name of the sheet for vendors"
    )
    line_items_sheet_name: str = Field(
        default="ReceiptItems",
        description="Name of the sheet for receipt line items and embeddings"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """HTTP service settings (no prefix)."""

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

    # Reported by the health probe
    service_name: str = Field(
        default="ClearSpendly AI Chat Agent",
        description="Service name returned by the health probe"
    )
    service_version: str = Field(
        default="1.0.0",
        description="Service version returned by the health probe"
    )

    # HTTP
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed browser origins"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class Settings(BaseSettings):
    """Entry point to every settings group."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the resolver can run
    # without Sheets or Gemini credentials

    @property
    def assistant(self) -> AssistantSettings:
        return AssistantSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings; call get_settings.cache_clear() in tests to reload."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load each settings group.

    Returns {group: loaded_ok} plus a "{group}_error" entry for each failure.
    """
    results = {}

    settings = get_settings()

    for name in ("assistant", "gemini", "google_sheets", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
