"""
Calendar sync configuration using Pydantic Settings
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings loaded from environment variables
    """
    # Database
    DATABASE_URL: str = "sqlite:///./calendar_sync.db"

    # Calendar
    TIMEZONE: str = "UTC"
    WEEK_START: int = 0  # Monday=0 .. Sunday=6
    WINDOW_WEEKS_BACK: int = 2
    WINDOW_WEEKS_FORWARD: int = 2
    FETCH_DEBOUNCE_MS: int = 300

    # Zone for ephemeral occurrences that carry no timezone of their own
    DEFAULT_OCCURRENCE_TIMEZONE: str = "UTC"

    # Application
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def get_sqlalchemy_url(self) -> str:
        """
        Convert DATABASE_URL to SQLAlchemy format (postgresql+psycopg://)
        """
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+psycopg://", 1)
        return url

    @property
    def debounce_seconds(self) -> float:
        return self.FETCH_DEBOUNCE_MS / 1000


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance (singleton)
    """
    return Settings()
