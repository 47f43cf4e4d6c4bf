"""API endpoints for managing vector indexes and the files stored in them.

These back the index management and file management panels of the
demo page: create, list and delete indexes, seed an index with sample
vectors, and browse or delete the files (chunks grouped by source)
inside an index.
"""

from __future__ import annotations

import logging
from typing import List, Union

from fastapi import APIRouter, Depends, HTTPException

from ragadmin.config import settings
from ragadmin.errors import IndexExistsError
from ragadmin.i18n import get_locale, translate
from ragadmin.models import (
    ChunkInfo,
    ChunkPreview,
    CreateIndexPayload,
    FileInfo,
    FileStats,
    IndexSummary,
    MessageResponse,
)
from ragadmin.pipeline import seed_sample_embeddings
from ragadmin.storage import get_store
from ragadmin.utils import preview_chunks
from ragadmin.vector_store import LibSQLVectorStore

log = logging.getLogger("api.indexes")

index_router = APIRouter(prefix="/demo", tags=["indexes"])


@index_router.get("/indexes", response_model=List[IndexSummary])
def list_indexes(store: LibSQLVectorStore = Depends(get_store)) -> List[IndexSummary]:
    """List all indexes with their dimension and vector count."""
    out: List[IndexSummary] = []
    for name in store.list_indexes():
        stats = store.describe_index(name)
        out.append(IndexSummary(name=name, dimension=stats.dimension, vector_count=stats.count))
    return out


@index_router.post("/indexes", response_model=MessageResponse)
def create_index(
    payload: CreateIndexPayload,
    store: LibSQLVectorStore = Depends(get_store),
    locale: str = Depends(get_locale),
) -> MessageResponse:
    """Create an index; the default dimension comes from settings."""
    name = payload.name.strip()
    created = store.create_index(name, payload.dimension or settings.embedding_dimension)
    if not created:
        raise IndexExistsError(translate("index.alreadyExists", locale, name=name))
    return MessageResponse(message=translate("index.created", locale, name=name))


@index_router.delete("/indexes/{name}", response_model=MessageResponse)
def delete_index(
    name: str,
    store: LibSQLVectorStore = Depends(get_store),
    locale: str = Depends(get_locale),
) -> MessageResponse:
    store.delete_index(name)
    return MessageResponse(message=translate("index.deleted", locale, name=name))


@index_router.post("/indexes/{name}/samples", response_model=MessageResponse)
def upsert_samples(
    name: str,
    store: LibSQLVectorStore = Depends(get_store),
    locale: str = Depends(get_locale),
) -> MessageResponse:
    """Upsert the demo texts with random vectors."""
    ids = seed_sample_embeddings(store, name)
    return MessageResponse(message=translate("index.samplesUpserted", locale, count=len(ids)))


@index_router.get("/indexes/{name}/stats", response_model=FileStats)
def index_stats(name: str, store: LibSQLVectorStore = Depends(get_store)) -> FileStats:
    return store.index_stats(name)


@index_router.get("/indexes/{name}/files", response_model=List[FileInfo])
def list_files(name: str, store: LibSQLVectorStore = Depends(get_store)) -> List[FileInfo]:
    """List files in an index, newest first."""
    return store.list_files(name)


@index_router.get(
    "/indexes/{name}/files/{source}/chunks",
    response_model=Union[ChunkPreview, List[ChunkInfo]],
)
def file_chunks(
    name: str,
    source: str,
    preview: bool = False,
    store: LibSQLVectorStore = Depends(get_store),
) -> Union[ChunkPreview, List[ChunkInfo]]:
    """Return a file's chunks in order; ``preview`` collapses the middle."""
    chunks = store.file_chunks(name, source)
    if not chunks:
        raise HTTPException(status_code=404, detail=f"File '{source}' not found in index '{name}'")
    return preview_chunks(chunks) if preview else chunks


@index_router.delete("/indexes/{name}/files/{source}", response_model=MessageResponse)
def delete_file(
    name: str,
    source: str,
    store: LibSQLVectorStore = Depends(get_store),
    locale: str = Depends(get_locale),
) -> MessageResponse:
    removed = store.delete_file(name, source)
    if removed == 0:
        raise HTTPException(status_code=404, detail=f"File '{source}' not found in index '{name}'")
    return MessageResponse(message=translate("file.deleted", locale, source=source))
