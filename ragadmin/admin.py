"""Admin API: dashboard, projects, project indexes and their documents.

Every route requires a session token (see ``auth.require_auth``) and
operates on the records owned by the logged-in user.  Index uploads and
searches run through the same pipeline as the demo endpoints, against
the vector table that backs the catalog index.
"""

from __future__ import annotations

import logging
from typing import List, Union

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ragadmin.auth import Session, require_auth
from ragadmin.catalog import Catalog
from ragadmin.config import settings
from ragadmin.embeddings import EmbeddingClient
from ragadmin.i18n import get_locale, translate
from ragadmin.models import (
    CatalogIndexPayload,
    CatalogIndexUpdatePayload,
    ChunkInfo,
    ChunkPreview,
    DashboardStats,
    FileInfo,
    FileStats,
    IndexRecord,
    IngestResponse,
    MessageResponse,
    Project,
    ProjectPayload,
    ProjectUpdatePayload,
    SearchPayload,
    SearchResponse,
    TextDocumentPayload,
)
from ragadmin.pipeline import ingest_document, ingest_text
from ragadmin.query import run_search
from ragadmin.storage import get_catalog, get_embedder, get_store
from ragadmin.utils import preview_chunks
from ragadmin.vector_store import LibSQLVectorStore

log = logging.getLogger("api.admin")

admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_auth)])


@admin_router.get("/dashboard", response_model=DashboardStats)
def dashboard(
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> DashboardStats:
    return catalog.dashboard(session.user_id)


# ---------- Projects ----------

@admin_router.get("/projects", response_model=List[Project])
def list_projects(
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> List[Project]:
    return catalog.list_projects(session.user_id)


@admin_router.post("/projects", response_model=Project, status_code=201)
def create_project(
    payload: ProjectPayload,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> Project:
    return catalog.create_project(session.user_id, payload.name, payload.description)


@admin_router.get("/projects/{project_id}", response_model=Project)
def get_project(
    project_id: str,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> Project:
    return catalog.get_project(session.user_id, project_id)


@admin_router.patch("/projects/{project_id}", response_model=Project)
def update_project(
    project_id: str,
    payload: ProjectUpdatePayload,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> Project:
    return catalog.update_project(session.user_id, project_id, payload.name, payload.description)


@admin_router.delete("/projects/{project_id}", response_model=MessageResponse)
def delete_project(
    project_id: str,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    locale: str = Depends(get_locale),
) -> MessageResponse:
    catalog.delete_project(session.user_id, project_id)
    return MessageResponse(message=translate("project.deleted", locale))


# ---------- Indexes ----------

@admin_router.get("/projects/{project_id}/indexes", response_model=List[IndexRecord])
def list_indexes(
    project_id: str,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> List[IndexRecord]:
    return catalog.list_indexes(session.user_id, project_id)


@admin_router.post("/projects/{project_id}/indexes", response_model=IndexRecord, status_code=201)
def create_index(
    project_id: str,
    payload: CatalogIndexPayload,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> IndexRecord:
    dimension = payload.dimension or settings.embedding_dimension
    return catalog.create_index(session.user_id, project_id, payload.name, dimension, payload.description)


@admin_router.get("/indexes/{index_id}", response_model=IndexRecord)
def get_index(
    index_id: str,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> IndexRecord:
    return catalog.get_index(session.user_id, index_id)


@admin_router.patch("/indexes/{index_id}", response_model=IndexRecord)
def update_index(
    index_id: str,
    payload: CatalogIndexUpdatePayload,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
) -> IndexRecord:
    return catalog.update_index(session.user_id, index_id, payload.name, payload.description)


@admin_router.delete("/indexes/{index_id}", response_model=MessageResponse)
def delete_index(
    index_id: str,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    locale: str = Depends(get_locale),
) -> MessageResponse:
    record = catalog.get_index(session.user_id, index_id)
    catalog.delete_index(session.user_id, index_id)
    return MessageResponse(message=translate("index.deleted", locale, name=record.name))


# ---------- Documents ----------

def _upload_metadata(session: Session, record: IndexRecord) -> dict:
    return {"indexId": record.id, "projectId": record.project_id, "uploadedBy": session.user_id}


@admin_router.post("/indexes/{index_id}/files", response_model=IngestResponse)
async def upload_file(
    index_id: str,
    file: UploadFile = File(...),
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    store: LibSQLVectorStore = Depends(get_store),
    embedder: EmbeddingClient = Depends(get_embedder),
    locale: str = Depends(get_locale),
) -> IngestResponse:
    """Upload a .txt, .md or .docx file into a catalog index."""
    record = catalog.get_index(session.user_id, index_id)
    data = await file.read()
    result = await ingest_document(
        store,
        embedder,
        record.vector_index,
        file.filename or "upload",
        data,
        extra_metadata=_upload_metadata(session, record),
    )
    return IngestResponse(
        message=translate("upload.fileUploadSuccess", locale, count=result.chunks_created, source=result.source),
        source=result.source,
        chunks_created=result.chunks_created,
        extracted_text=result.extracted_preview,
    )


@admin_router.post("/indexes/{index_id}/text", response_model=IngestResponse)
async def upload_text(
    index_id: str,
    payload: TextDocumentPayload,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    store: LibSQLVectorStore = Depends(get_store),
    embedder: EmbeddingClient = Depends(get_embedder),
    locale: str = Depends(get_locale),
) -> IngestResponse:
    """Store pasted text as a document; it is chunked automatically."""
    if not payload.content.strip():
        raise HTTPException(status_code=400, detail="Content is required")
    record = catalog.get_index(session.user_id, index_id)
    result = await ingest_text(
        store,
        embedder,
        record.vector_index,
        payload.content,
        title=payload.title,
        extra_metadata=_upload_metadata(session, record),
    )
    return IngestResponse(
        message=translate("upload.uploadSuccess", locale, count=result.chunks_created, source=result.source),
        source=result.source,
        chunks_created=result.chunks_created,
        extracted_text=result.extracted_preview,
    )


@admin_router.get("/indexes/{index_id}/stats", response_model=FileStats)
def index_stats(
    index_id: str,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    store: LibSQLVectorStore = Depends(get_store),
) -> FileStats:
    return store.index_stats(catalog.get_index(session.user_id, index_id).vector_index)


@admin_router.get("/indexes/{index_id}/files", response_model=List[FileInfo])
def list_files(
    index_id: str,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    store: LibSQLVectorStore = Depends(get_store),
) -> List[FileInfo]:
    return store.list_files(catalog.get_index(session.user_id, index_id).vector_index)


@admin_router.get(
    "/indexes/{index_id}/files/{source}/chunks",
    response_model=Union[ChunkPreview, List[ChunkInfo]],
)
def file_chunks(
    index_id: str,
    source: str,
    preview: bool = False,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    store: LibSQLVectorStore = Depends(get_store),
) -> Union[ChunkPreview, List[ChunkInfo]]:
    chunks = store.file_chunks(catalog.get_index(session.user_id, index_id).vector_index, source)
    if not chunks:
        raise HTTPException(status_code=404, detail=f"File '{source}' not found")
    return preview_chunks(chunks) if preview else chunks


@admin_router.delete("/indexes/{index_id}/files/{source}", response_model=MessageResponse)
def delete_file(
    index_id: str,
    source: str,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    store: LibSQLVectorStore = Depends(get_store),
    locale: str = Depends(get_locale),
) -> MessageResponse:
    removed = store.delete_file(catalog.get_index(session.user_id, index_id).vector_index, source)
    if removed == 0:
        raise HTTPException(status_code=404, detail=f"File '{source}' not found")
    return MessageResponse(message=translate("file.deleted", locale, source=source))


@admin_router.post("/indexes/{index_id}/query", response_model=SearchResponse)
async def query_index(
    index_id: str,
    payload: SearchPayload,
    session: Session = Depends(require_auth),
    catalog: Catalog = Depends(get_catalog),
    store: LibSQLVectorStore = Depends(get_store),
    embedder: EmbeddingClient = Depends(get_embedder),
    locale: str = Depends(get_locale),
) -> SearchResponse:
    record = catalog.get_index(session.user_id, index_id)
    return await run_search(store, embedder, record.vector_index, payload, locale)
