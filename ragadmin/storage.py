"""Shared instances of the vector store, catalog and embedding client.

Each getter builds its instance from ``config.settings`` on first use
and returns the same object afterwards, so every router operates on the
same underlying database.  The getters double as FastAPI dependencies,
which lets tests swap in instances bound to temporary paths through
``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from ragadmin.catalog import Catalog
from ragadmin.config import settings
from ragadmin.embeddings import EmbeddingClient
from ragadmin.vector_store import LibSQLVectorStore


@lru_cache(maxsize=1)
def get_store() -> LibSQLVectorStore:
    return LibSQLVectorStore(settings.vector_database_url)


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    return Catalog(settings.catalog_path, get_store())


@lru_cache(maxsize=1)
def get_embedder() -> EmbeddingClient:
    return EmbeddingClient.from_settings(settings)
