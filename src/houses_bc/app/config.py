"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve .env from the project root regardless of CWD
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"


class Settings(BaseSettings):
    """Central configuration loaded from environment variables / .env file."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./houses_bc.db"

    # AI chat
    gemini_api_key: str = ""
    chat_model: str = "gemini-2.5-flash"
    chat_rate_limit_per_hour: int = 20
    chat_session_days: int = 90
    chat_max_message_length: int = 2000
    chat_timeout_seconds: float = 30.0

    # Auth / JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440
    admin_phone_number: str = ""
    otp_expiry_minutes: int = 10

    # Twilio (OTP delivery)
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    # Listing search (RapidAPI Zillow)
    rapidapi_key: str = ""
    rapidapi_host: str = "zillow-com1.p.rapidapi.com"

    # Third-party calls fail closed after this many seconds
    upstream_timeout_seconds: float = 10.0

    # Mortgage rate table cache lifetime
    rate_cache_hours: int = 24

    # CORS / Frontend
    cors_origins: str = "http://localhost:5173"

    # General
    debug: bool = True

    model_config = {"env_file": str(_ENV_FILE), "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        In debug mode, returns ["*"] to allow any origin.
        """
        if self.debug:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def twilio_configured(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_phone_number
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
