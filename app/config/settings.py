"""
Application settings using Pydantic Settings.

Loads configuration from environment variables with validation.
"""

from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are loaded from .env file or environment variables.
    Uses Pydantic for validation and type checking.
    """

    # App Configuration
    APP_NAME: str = Field(default="Alphalert Trading Simulator")
    APP_VERSION: str = Field(default="1.0.0")
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=True)

    # Server
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Telegram (document store + notifications)
    TELEGRAM_BOT_TOKEN: Optional[str] = Field(default=None, description="Telegram bot token")
    SIMULATOR_CHANNEL_ID: str = Field(default="-1003691871409", description="Channel holding the pinned state document")
    SIGNAL_FORWARD_CHAT_ID: Optional[str] = Field(default=None, description="Chat that receives token addresses of new positions")
    STATE_FILE_NAME: str = Field(default="simulator-db.json")

    # Polling
    POLL_ITERATIONS: int = Field(default=3)
    POLL_DELAY_SECONDS: float = Field(default=20.0)
    SAVE_MAX_ATTEMPTS: int = Field(default=3)
    HISTORY_LIMIT: int = Field(default=1000)

    # Market data
    PRICE_CHUNK_SIZE: int = Field(default=30)
    PRICE_CHUNK_DELAY_SECONDS: float = Field(default=1.0)
    HTTP_TIMEOUT_SECONDS: float = Field(default=15.0)

    # Celery
    CELERY_BROKER_URL: str = Field(default="redis://localhost:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://localhost:6379/1")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE_PATH: str = Field(default="logs/app.log")

    # CORS
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v) -> List[str]:
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        elif isinstance(v, list):
            return v
        return []

    @field_validator("POLL_ITERATIONS", "SAVE_MAX_ATTEMPTS", "HISTORY_LIMIT", "PRICE_CHUNK_SIZE")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """Validate counters and limits are positive."""
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("POLL_DELAY_SECONDS", "PRICE_CHUNK_DELAY_SECONDS")
    @classmethod
    def validate_non_negative_delay(cls, v: float) -> float:
        """Validate delays are not negative."""
        if v < 0:
            raise ValueError("delay must not be negative")
        return v

    @field_validator("HTTP_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate HTTP timeout is positive."""
        if v <= 0:
            raise ValueError("HTTP_TIMEOUT_SECONDS must be positive")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


# Global settings instance
def get_settings() -> Settings:
    """Get settings instance (lazy loading)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

_settings: Settings | None = None

# Try to initialize settings on import
try:
    settings = get_settings()
except Exception as e:
    # Invalid values in .env; settings will be None and should be fixed before use
    print(f"Warning: Could not load settings: {str(e)}")
    print("Please check your .env file")
    settings = None  # type: ignore
