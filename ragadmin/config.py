"""Application configuration using environment variables.

The settings defined here control the behaviour of the admin service.
Defaults are provided for all options so that the application can run
without a .env file, but any value can be overridden by setting
environment variables (``VECTOR_DATABASE_URL``, ``EMBEDDING_API_KEY``
and so on).  See ``Settings`` for a description of each field.
"""

from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Vector store (LibSQL-style connection URL; only local files are supported)
    vector_database_url: str = "file:./vector.db"

    # Embeddings (OpenAI-compatible API)
    embedding_dimension: int = 1536
    embedding_base_url: str = "https://api.siliconflow.cn/v1"
    embedding_api_key: Optional[str] = None
    embedding_model_name: str = "BAAI/bge-m3"
    embedding_batch_size: int = 32
    embedding_timeout: float = 60.0

    # Chunking
    chunk_size: int = 1000
    chunk_overlap: int = 200
    chunk_strategy: str = "recursive"  # recursive | window | markdown

    # Upload responses carry this many characters of extracted text
    preview_chars: int = 2000

    # Re-ranking
    rerank_alpha: float = 0.7  # weight for dense vs lexical when re-ranking
    rerank_pool_factor: int = 4

    # Project / index catalog
    catalog_path: str = "./data/catalog.json"

    # Credentials login
    admin_user_id: str = "1"
    admin_username: str = "admin"
    admin_password: str = "123456qq"
    session_ttl_seconds: int = 8 * 60 * 60

    # Internationalisation
    default_locale: str = "zh"

    # Other vector stores, reported as available when configured
    mongodb_uri: Optional[str] = None
    postgres_connection_string: Optional[str] = None
    pinecone_api_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"


settings = Settings()
