"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration, read from .env or the environment."""

    DATABASE_URL: str = "sqlite+aiosqlite:///./data/tripshare.db"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "data/logs"

    # Upper bound (seconds) for a single store read/write issued by the orchestrator.
    PERSISTENCE_TIMEOUT: float = 15.0

    # Suggestions are advisory; an empty key just disables them.
    ANTHROPIC_API_KEY: str = ""
    SUGGESTION_MODEL: str = "claude-sonnet-4-5-20250929"
    LLM_TIMEOUT: float = 60.0
    LLM_MAX_RETRIES: int = 1

    EMAILJS_SERVICE_ID: str = ""
    EMAILJS_TEMPLATE_ID: str = ""
    EMAILJS_PUBLIC_KEY: str = ""
    EMAILJS_API_URL: str = "https://api.emailjs.com/api/v1.0/email/send"
    EMAIL_TIMEOUT: float = 10.0
    APP_URL: str = "http://localhost:5173"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
