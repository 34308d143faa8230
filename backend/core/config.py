"""
Backend Configuration Module

Centralized settings management using Pydantic.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App Info
    app_name: str = Field(default="AI Car Navigator", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")

    # CORS (for frontend)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        alias="CORS_ORIGINS",
    )

    # Generative backend (OpenAI-compatible chat endpoint)
    llm_api_key: str = Field(default="", alias="LLM_API_KEY")
    llm_model: str = Field(default="llama-3.3-70b-versatile", alias="LLM_MODEL")
    llm_base_url: str = Field(
        default="https://api.groq.com/openai/v1", alias="LLM_BASE_URL"
    )
    llm_temperature: float = Field(default=0.7, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(default=2048, alias="LLM_MAX_TOKENS")

    # Timeouts
    backend_timeout: float = Field(default=30.0, alias="BACKEND_TIMEOUT")

    # Catalog
    catalog_path: Optional[str] = Field(default=None, alias="CATALOG_PATH")

    # Result sizes
    resolve_result_limit: int = Field(default=5, alias="RESOLVE_RESULT_LIMIT")
    recommend_count: int = Field(default=5, alias="RECOMMEND_COUNT")
    search_result_limit: int = Field(default=20, alias="SEARCH_RESULT_LIMIT")
    feed_count: int = Field(default=8, alias="FEED_COUNT")

    # Sessions (in-memory, least recently used evicted first)
    max_sessions: int = Field(default=1000, alias="MAX_SESSIONS")

    # Redis (for resolution cache)
    redis_host: str = Field(default="127.0.0.1", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_db: int = Field(default=0, alias="REDIS_DB")

    # Resolution Cache
    resolution_cache_enabled: bool = Field(default=False, alias="RESOLUTION_CACHE_ENABLED")
    resolution_cache_ttl: int = Field(default=86400, alias="RESOLUTION_CACHE_TTL")  # 24 hours

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
