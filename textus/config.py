from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment or defaults."""

    # Document store
    store_backend: str = "memory"
    database_url: str = "sqlite:///./textus.db"
    store_index: str = "textus"

    # Chunking and range queries
    text_chunk_size: int = 1000
    max_query_size: int = 1_000_000
    summary_query_size: int = 10_000
    verify_contiguity: bool = False

    # Application
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="TEXTUS_", case_sensitive=False
    )


@lru_cache
def get_settings() -> "Settings":
    """Late-bind settings so tests can override env vars."""
    return Settings()


settings = get_settings()
