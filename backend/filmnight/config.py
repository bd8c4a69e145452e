"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./filmnight.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    DEFAULT_TIMEZONE: str = "UTC"  # IANA tz applied to naive datetimes
    LOG_LEVEL: str = "INFO"
    LETTERBOXD_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/125.0 Safari/537.36"
    )
    LETTERBOXD_TIMEOUT_SECONDS: float = 10.0
    INVITE_TOKEN_ATTEMPTS: int = 5
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 5.0

    class Config:
        env_file = ".env"


settings = Settings()
