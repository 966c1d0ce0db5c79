from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str

    # JWT Authentication
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Application
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    APP_BASE_URL: str = "http://localhost:8000"
    DEFAULT_TIMEZONE: str = "Africa/Lagos"

    # Email Configuration
    EMAIL_NOTIFICATIONS_ENABLED: bool = True
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    EMAIL_FROM: Optional[str] = None
    EMAIL_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT_SECONDS: int = 8
    EMAIL_SEND_IN_BACKGROUND: bool = True

    # Video rooms (Daily.co)
    DAILY_API_KEY: Optional[str] = None
    DAILY_API_URL: str = "https://api.daily.co/v1"
    VIDEO_REQUEST_TIMEOUT_SECONDS: float = 10.0
    VIDEO_MAX_RETRIES: int = 2

    # Scheduled jobs
    CRON_SECRET: Optional[str] = None
    REMINDER_DEDUP_ENABLED: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
