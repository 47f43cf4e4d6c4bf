"""API endpoints for document ingestion on the demo page.

This router defines ``POST /demo/upload`` which accepts a text,
Markdown or Word (``.docx``) file, extracts its text, splits the text
into chunks, computes embeddings (via the configured OpenAI-compatible
endpoint, or deterministically when no key is set) and upserts the
chunks into the named index, creating the index on first use.  It also
reports the default embedding dimension and the vector stores that are
configured.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from ragadmin.config import settings
from ragadmin.embeddings import EmbeddingClient
from ragadmin.i18n import get_locale, translate
from ragadmin.models import IngestResponse, VectorStoreOption
from ragadmin.pipeline import DEFAULT_STORE, available_vector_stores, ingest_document
from ragadmin.storage import get_embedder, get_store
from ragadmin.vector_store import LibSQLVectorStore

log = logging.getLogger("api.ingest")

ingest_router = APIRouter(prefix="/demo", tags=["ingest"])


@ingest_router.get("/dimension")
def default_dimension() -> dict:
    """Return the embedding dimension used for new indexes."""
    return {"dimension": settings.embedding_dimension}


@ingest_router.get("/vector-stores", response_model=List[VectorStoreOption])
def vector_stores() -> List[VectorStoreOption]:
    """List the vector stores that are configured."""
    return available_vector_stores(settings)


@ingest_router.post("/upload", response_model=IngestResponse)
async def upload_document(
    file: UploadFile = File(...),
    index_name: str = Form(...),
    vector_store: str = Form(DEFAULT_STORE),
    store: LibSQLVectorStore = Depends(get_store),
    embedder: EmbeddingClient = Depends(get_embedder),
    locale: str = Depends(get_locale),
) -> IngestResponse:
    """Ingest an uploaded document into ``index_name``.

    The document is extracted, chunked, embedded and stored.  The
    response carries the number of chunks and a preview of the
    extracted text.
    """
    if not index_name.strip():
        raise HTTPException(status_code=400, detail="No index name provided")
    data = await file.read()
    filename = file.filename or "upload"
    log.info(f"Upload '{filename}' ({len(data)} bytes) -> index '{index_name}' [{vector_store}]")
    result = await ingest_document(store, embedder, index_name.strip(), filename, data, vector_store=vector_store)
    return IngestResponse(
        message=translate(
            "upload.processed",
            locale,
            count=result.chunks_created,
            source=result.source,
            store=vector_store,
            index=index_name.strip(),
        ),
        source=result.source,
        chunks_created=result.chunks_created,
        extracted_text=result.extracted_preview,
    )
