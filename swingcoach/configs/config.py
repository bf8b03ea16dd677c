from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_PRIMARY_MODEL: str = "gemini-1.5-flash"
    GEMINI_FALLBACK_MODEL: str = "gemini-1.5-pro"
    GEMINI_MAX_OUTPUT_TOKENS: Optional[int] = None
    GEMINI_HTTP_TIMEOUT_SECONDS: Optional[float] = None

    ENV: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    # Size limits in bytes
    INLINE_SIZE_LIMIT: int = 20 * 1024 * 1024  # provider's inline ceiling
    MAX_UPLOAD_SIZE: int = 2 * 1024 * 1024 * 1024

    # Files API processing poll
    PROCESSING_MAX_ATTEMPTS: int = 10
    PROCESSING_POLL_INTERVAL_SECONDS: float = 5.0

    FALLBACK_BACKOFF_SECONDS: float = 2.0
    REQUEST_TIMEOUT_SECONDS: float = 300.0

    TEMP_DIR: Optional[str] = None
    DEFAULT_MEDIA_TYPE: str = "video/mp4"
    ANALYSIS_LANGUAGE: str = "Japanese"

    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
