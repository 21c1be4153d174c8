"""Configuration management for famscore."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/famscore.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Session Configuration
    secret_key: str = Field(
        default="dev-secret-change-me",
        description="Secret used to sign caller session cookies",
    )
    is_production: bool = Field(default=False, description="Enable production-only hardening (secure cookies)")

    # Calendar Configuration
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used for 'today', week and month boundaries",
    )


# Application Constants
class Constants:
    """Application-wide constants."""

    # Scoring
    DEFAULT_SCORE_VALUE: int = 10  # Used when a submitted score value cannot be parsed

    # Streaks
    STREAK_BONUS_INTERVAL_DAYS: int = 7  # Bonus fires on every multiple of this streak length
    STREAK_BONUS_POINTS: int = 10

    # Weekday numbering (0=Sunday, 6=Saturday)
    MIN_WEEKDAY: int = 0
    MAX_WEEKDAY: int = 6

    # Cache TTLs
    CACHE_TTL_LEADERBOARD_SECONDS: int = 60  # 1 minute for leaderboard cache

    # Pagination Defaults
    MAX_PER_PAGE_LIMIT: int = 1000
    ACTIVITY_LOG_LIMIT: int = 50

    # Dashboard
    DAILY_CHART_DAYS: int = 7

    # Session
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 30  # 30 days


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
