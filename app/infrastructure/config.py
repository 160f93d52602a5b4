"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database (system of record)
    database_url: str = "postgresql+asyncpg://catalog:catalog_dev_password@db:5432/catalog"
    database_timeout: float = 10.0

    # Search index
    elasticsearch_url: str = "http://elasticsearch:9200"
    elasticsearch_index: str = "products"
    elasticsearch_timeout: float = 5.0
    elasticsearch_max_retries: int = 10
    elasticsearch_refresh: str = "wait_for"
    search_max_results: int = 50
    bulk_chunk_size: int = 500

    # Index bootstrap
    reindex_on_startup: bool = False
    index_bootstrap_attempts: int = 5
    index_bootstrap_retry_seconds: float = 5.0

    # Cache
    redis_url: str = "redis://redis:6379/0"
    redis_timeout: float = 2.0
    cache_ttl_seconds: int = 60

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
