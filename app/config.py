# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.DB_HOST)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists), via lib.env.Env
#
# The Settings class validates all values at startup, catching configuration
# errors early rather than at runtime.
# =============================================================================

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from lib.env import Env

# Project root (templates/ and lang/ live here)
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Validate types and constraints
    - Provide sensible defaults for development

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Database Configuration
    # -------------------------------------------------------------------------
    # Defaults match a local MySQL development install

    DB_HOST: str = Field(
        default="localhost",
        description="MySQL server host"
    )

    DB_PORT: int = Field(
        default=3306,
        ge=1,
        le=65535,
        description="MySQL server port"
    )

    DB_NAME: str = Field(
        default="ceylon_cinnamon",
        description="Database name"
    )

    DB_USER: str = Field(
        default="root",
        description="Database user"
    )

    DB_PASS: str = Field(
        default="",
        description="Database password"
    )

    # Takes precedence over the DB_* values when set (e.g. sqlite:///./dev.db)
    DATABASE_URL: str | None = Field(
        default=None,
        description="Full SQLAlchemy database URL"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    APP_DEBUG: bool = Field(
        default=False,
        description="Expose full error details and enable verbose logging"
    )

    APP_NAME: str = Field(
        default="Ceylon Cinnamon",
        description="Store name shown in page titles and emails"
    )

    APP_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL of the store"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the server"
    )

    ITEMS_PER_PAGE: int = Field(
        default=12,
        ge=1,
        le=100,
        description="Products per catalog page"
    )

    CURRENCY: str = Field(
        default="USD",
        description="Store currency code"
    )

    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated origins allowed to call /api/ from the browser"
    )

    # -------------------------------------------------------------------------
    # Security & Sessions
    # -------------------------------------------------------------------------

    SECRET_KEY: str = Field(
        default="dev-secret-key-change-in-production-0000",
        min_length=32,
        description="HS256 key for signing session cookies (at least 32 characters)"
    )

    SESSION_COOKIE_NAME: str = Field(
        default="storefront_session",
        description="Name of the session cookie"
    )

    SESSION_LIFETIME_MINUTES: int = Field(
        default=120,
        ge=1,
        description="Idle lifetime of a session"
    )

    # -------------------------------------------------------------------------
    # Localization
    # -------------------------------------------------------------------------

    DEFAULT_LANGUAGE: str = Field(
        default="en",
        description="Fallback language for translations"
    )

    SUPPORTED_LANGUAGES: str = Field(
        default="en,si",
        description="Supported language codes (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Email
    # -------------------------------------------------------------------------
    # Leave SMTP_HOST empty to disable outgoing mail

    SMTP_HOST: str = Field(default="", description="SMTP server host")
    SMTP_PORT: int = Field(default=587, description="SMTP server port")
    SMTP_USER: str = Field(default="", description="SMTP username")
    SMTP_PASS: str = Field(default="", description="SMTP password")
    MAIL_FROM: str = Field(
        default="noreply@ceyloncinnamon.com",
        description="Sender address for outgoing mail"
    )
    ADMIN_EMAIL: str = Field(
        default="admin@ceyloncinnamon.com",
        description="Recipient for new-order and contact notifications"
    )

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------
    # Card and PayPal payments are only offered when their keys are set

    STRIPE_SECRET_KEY: str = Field(default="", description="Stripe secret API key")
    PAYPAL_CLIENT_ID: str = Field(default="", description="PayPal REST client id")
    PAYPAL_SECRET: str = Field(default="", description="PayPal REST secret")
    PAYPAL_MODE: Literal["sandbox", "live"] = Field(
        default="sandbox",
        description="PayPal environment"
    )

    # -------------------------------------------------------------------------
    # File Upload Settings
    # -------------------------------------------------------------------------

    UPLOAD_DIR: str = Field(
        default="uploads",
        description="Directory for uploaded images and media (relative to the project root)"
    )

    MAX_UPLOAD_SIZE_MB: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Largest upload accepted for any file type, in MB"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        # The .env file is merged into os.environ by Env.load() first
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def database_url(self) -> str | URL:
        """
        SQLAlchemy URL for the configured database.

        DATABASE_URL is returned as written. Otherwise the URL is assembled
        from the DB_* parts; credentials stay as given and are never
        re-encoded.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return URL.create(
            "mysql+pymysql",
            username=self.DB_USER,
            password=self.DB_PASS or None,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            query={"charset": "utf8mb4"},
        )

    @property
    def upload_path(self) -> Path:
        """Absolute upload directory; files are served from /uploads."""
        path = Path(self.UPLOAD_DIR)
        return path if path.is_absolute() else BASE_DIR / path

    @property
    def max_upload_size_bytes(self) -> int:
        """
        Convert MB to bytes for file size validation.
        """
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def supported_languages_list(self) -> list[str]:
        """Parse SUPPORTED_LANGUAGES into a list, e.g. "en, si" -> ["en", "si"]."""
        return [code.strip() for code in self.SUPPORTED_LANGUAGES.split(",") if code.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def mail_enabled(self) -> bool:
        return bool(self.SMTP_HOST)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Loads the .env file into the process environment first, then validates.
    In production the secrets that must never fall back to a default are
    checked with Env.required, which makes a missing value fatal at startup.

    Returns:
        Settings: The application settings instance

    Raises:
        ConfigurationError: If a mandatory production variable is missing
    """
    Env.load(BASE_DIR / ".env")

    if Env.get("ENVIRONMENT") == "production":
        Env.required("SECRET_KEY")
        Env.required("DB_NAME")

    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
