import sys
from functools import lru_cache
from typing import Optional

from loguru import logger
from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_api_base: Optional[HttpUrl] = Field(
        default=None, alias="OPENAI_API_BASE"
    )  # for self-hosted proxies
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    github_token: Optional[str] = Field(default=None, alias="GITHUB_TOKEN")
    github_token_required: bool = Field(default=True, alias="GITHUB_TOKEN_REQUIRED")
    github_base_url: HttpUrl = Field(
        default="https://api.github.com", alias="GITHUB_BASE_URL"
    )
    github_proxy: Optional[str] = Field(default=None, alias="GITHUB_PROXY")
    request_timeout_seconds: float = Field(default=20, alias="REQUEST_TIMEOUT_SECONDS")
    analysis_concurrency: int = Field(default=5, ge=1, alias="ANALYSIS_CONCURRENCY")
    readme_max_chars: int = Field(default=4000, ge=1, alias="README_MAX_CHARS")
    cache_ttl_seconds: int = Field(default=3600, alias="CACHE_TTL_SECONDS")
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"  # ignore unrelated env vars to avoid validation errors


@lru_cache
def get_settings() -> Settings:
    return Settings()


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink at ``level``."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}",
    )
