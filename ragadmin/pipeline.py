"""Document ingestion: extract, chunk, embed and upsert.

Both the demo upload and the admin index uploads go through
``ingest_document`` (files) or ``ingest_text`` (pasted text).  Chunk
vectors are keyed ``<source>_chunk_<n>``; uploading a file with the
same name again replaces all of its previous chunks.  Sources never
contain path separators so they can be addressed as one URL segment.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ragadmin.chunking import chunk_document
from ragadmin.config import Settings, settings
from ragadmin.embeddings import EmbeddingClient, sample_embeddings
from ragadmin.errors import EmbeddingError, ExtractionError, UnsupportedStoreError
from ragadmin.extraction import extract_text
from ragadmin.models import VectorStoreOption
from ragadmin.vector_store import LibSQLVectorStore

log = logging.getLogger("api.pipeline")

DEFAULT_STORE = "libsql"

SAMPLE_TEXTS = [
    "Machine learning is a subset of artificial intelligence that focuses on algorithms that can learn from data.",
    "Vector databases are specialized databases designed to store and query high-dimensional vectors efficiently.",
    "Embeddings are dense vector representations of data that capture semantic meaning in a continuous space.",
]
SAMPLE_CATEGORIES = ["AI/ML", "Database", "Data Science"]


@dataclass
class IngestResult:
    source: str
    chunks_created: int
    extracted_preview: str
    ids: List[str] = field(default_factory=list)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def truncate_preview(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


_PATH_SEPARATORS = re.compile(r"[\\/]")


def file_source(filename: str) -> str:
    """Base name of an uploaded file; clients may send a path."""
    return _PATH_SEPARATORS.split(filename or "")[-1].strip() or "upload"


def title_source(title: str) -> str:
    return _PATH_SEPARATORS.sub("-", title).strip()


def available_vector_stores(cfg: Settings = settings) -> List[VectorStoreOption]:
    stores = [VectorStoreOption(id="libsql", name="LibSQL")]
    if cfg.mongodb_uri:
        stores.append(VectorStoreOption(id="mongodb", name="MongoDB"))
    if cfg.postgres_connection_string:
        stores.append(VectorStoreOption(id="pg", name="PostgreSQL"))
    if cfg.pinecone_api_key:
        stores.append(VectorStoreOption(id="pinecone", name="Pinecone"))
    return stores


async def _ingest(
    store: LibSQLVectorStore,
    embedder: EmbeddingClient,
    index_name: str,
    source: str,
    text: str,
    file_size: int,
    vector_store: str,
    extra_metadata: Optional[Dict[str, Any]],
    strategy: Optional[str],
    cfg: Settings,
) -> IngestResult:
    if vector_store != DEFAULT_STORE:
        raise UnsupportedStoreError(f"Vector store '{vector_store}' is not supported for ingestion; use '{DEFAULT_STORE}'")
    if not text.strip():
        raise ExtractionError("No text found in the document")

    chunks = chunk_document(text, strategy or cfg.chunk_strategy, cfg.chunk_size, cfg.chunk_overlap)
    log.info(f"Chunked '{source}' into {len(chunks)} chunks ({strategy or cfg.chunk_strategy})")
    if not chunks:
        raise ExtractionError("Failed to create text chunks")

    vectors = await embedder.embed(chunks)
    if len(vectors) != len(chunks):
        raise EmbeddingError(f"Embedding count mismatch: chunks={len(chunks)} embeddings={len(vectors)}")

    if not store.has_index(index_name):
        store.create_index(index_name, len(vectors[0]))

    created_at = utc_timestamp()
    base = {
        "category": "User Document",
        "author": "User Upload",
        "confidenceScore": 1.0,
    }
    base.update(extra_metadata or {})
    metadata: List[Dict[str, Any]] = []
    ids: List[str] = []
    for n, chunk in enumerate(chunks):
        chunk_id = f"{source}_chunk_{n + 1}"
        ids.append(chunk_id)
        meta = dict(base)
        meta.update(
            {
                "id": chunk_id,
                "text": chunk,
                "source": source,
                "chunkIndex": n,
                "totalChunks": len(chunks),
                "createdAt": created_at,
                "fileSize": file_size,
                "vectorStore": vector_store,
            }
        )
        metadata.append(meta)

    store.replace_file(index_name, source, vectors, metadata, ids=ids)
    log.info(f"Stored {len(chunks)} chunks of '{source}' in index '{index_name}'")
    return IngestResult(
        source=source,
        chunks_created=len(chunks),
        extracted_preview=truncate_preview(text, cfg.preview_chars),
        ids=ids,
    )


async def ingest_document(
    store: LibSQLVectorStore,
    embedder: EmbeddingClient,
    index_name: str,
    filename: str,
    data: bytes,
    vector_store: str = DEFAULT_STORE,
    extra_metadata: Optional[Dict[str, Any]] = None,
    strategy: Optional[str] = None,
    cfg: Settings = settings,
) -> IngestResult:
    """Extract text from an uploaded file and store its chunks in ``index_name``."""
    source = file_source(filename)
    text = extract_text(source, data)
    return await _ingest(
        store, embedder, index_name, source, text, len(data), vector_store, extra_metadata, strategy, cfg
    )


async def ingest_text(
    store: LibSQLVectorStore,
    embedder: EmbeddingClient,
    index_name: str,
    content: str,
    title: Optional[str] = None,
    extra_metadata: Optional[Dict[str, Any]] = None,
    strategy: Optional[str] = None,
    cfg: Settings = settings,
) -> IngestResult:
    """Store pasted text; the title (or a timestamped name) becomes the source."""
    source = title_source(title or "") or f"text-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}.txt"
    return await _ingest(
        store,
        embedder,
        index_name,
        source,
        content,
        len(content.encode("utf-8")),
        DEFAULT_STORE,
        extra_metadata,
        strategy,
        cfg,
    )


def seed_sample_embeddings(store: LibSQLVectorStore, index_name: str, seed: Optional[int] = None) -> List[str]:
    """Upsert the three demo texts with random vectors into ``index_name``."""
    dimension = store.describe_index(index_name).dimension
    rng = random.Random(seed)
    created_at = utc_timestamp()
    metadata = [
        {
            "id": f"doc_{i + 1}",
            "text": text,
            "category": SAMPLE_CATEGORIES[i],
            "createdAt": created_at,
            "version": "1.0",
            "author": "Demo System",
            "confidenceScore": rng.random() * 0.3 + 0.7,
        }
        for i, text in enumerate(SAMPLE_TEXTS)
    ]
    vectors = sample_embeddings(len(SAMPLE_TEXTS), dimension, seed=seed)
    return store.upsert(index_name, vectors, metadata, ids=[m["id"] for m in metadata])
