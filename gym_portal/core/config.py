# gym_portal/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Portal configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,  # Environment vars are uppercase
        extra="ignore",      # Ignore unexpected vars instead of raising
    )

    # Core application settings
    BACKEND_API_URL: str = "http://localhost:5000"
    HOST: str = "0.0.0.0"
    PORT: int = 8102
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_FILE: str = "portal.log"

    # CORS settings
    ALLOWED_ORIGINS: list[str] = ["*"]  # In production, specify actual origins
    ALLOW_CREDENTIALS: bool = True
    ALLOWED_METHODS: list[str] = ["*"]
    ALLOWED_HEADERS: list[str] = ["*"]

    # Backend HTTP client
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Payment flow timing
    PAYMENT_POLL_INTERVAL_SECONDS: float = 5.0
    PAYMENT_SUCCESS_REDIRECT_SECONDS: float = 2.0
    PAYMENT_DEFAULT_WINDOW_SECONDS: int = 900  # 15 minutes
    COUNTDOWN_TICK_SECONDS: float = 1.0
    UPI_FALLBACK_HINT_SECONDS: float = 1.0

    # Admin session re-verification
    AUTH_REVERIFY_SECONDS: float = 300.0

    # Member photo uploads
    REGISTRATION_PHOTO_MAX_MB: int = 2
    RENEWAL_PHOTO_MAX_MB: int = 10

    # Pricing
    CURRENCY: str = "INR"

    # Local persistent key-value store (payment session cache)
    PORTAL_STORE_URL: str = "sqlite+aiosqlite:///./portal_store.sqlite"


def _normalize_settings(settings: Settings) -> None:
    """Normalize values that are joined with request paths later on."""
    if settings.BACKEND_API_URL:
        settings.BACKEND_API_URL = settings.BACKEND_API_URL.rstrip("/")
    settings.CURRENCY = settings.CURRENCY.upper()


def _validate_settings(settings: Settings) -> None:
    """Validate critical application settings."""
    if not settings.BACKEND_API_URL:
        raise ValueError("BACKEND_API_URL is required")
    if settings.PAYMENT_POLL_INTERVAL_SECONDS <= 0:
        raise ValueError("PAYMENT_POLL_INTERVAL_SECONDS must be positive")
    if settings.COUNTDOWN_TICK_SECONDS <= 0:
        raise ValueError("COUNTDOWN_TICK_SECONDS must be positive")

    # Environment-specific validations
    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        print("WARNING: DEBUG is enabled in production. Consider setting DEBUG=False.")
    if settings.ENVIRONMENT == "production" and settings.BACKEND_API_URL.startswith("http://localhost"):
        raise ValueError("BACKEND_API_URL must point at the real backend in production")


# Initialize settings with error handling
try:
    settings = Settings()
    _normalize_settings(settings)
    _validate_settings(settings)
except Exception as e:
    print(f"Error initializing settings: {e}")
    raise
