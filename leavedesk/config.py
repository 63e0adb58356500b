from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "LeaveDesk"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://leavedesk:leavedesk@db:5432/leavedesk"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    log_level: str = "INFO"

    # Upper bound for a single lifecycle operation, persistence included.
    operation_timeout_seconds: float = 10.0
    # Upper bound for a notifier call; a slower notifier is abandoned and logged.
    notification_timeout_seconds: float = 2.0

    # Days granted the first time a (user, leave type) balance is touched.
    initial_allotments: dict[str, int] = {"annual": 20, "sick": 10}
    default_initial_allotment: int = 0
    balance_cap_days: int | None = None

    restrict_managers_to_team: bool = False
    weekend_days: list[int] = [5, 6]


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
