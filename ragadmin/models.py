"""Pydantic models for API request/response payloads and stored records.

These models define the schemas used throughout the service.  They are
plain Pydantic ``BaseModel`` subclasses with type hints and validation.
``QueryResult``, ``IndexStats``, ``FileInfo`` and ``ChunkInfo`` are
returned by the vector store; ``Project`` and ``IndexRecord`` are the
catalog records.  The remaining models encapsulate API requests and
responses.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

# Display names: surrounding whitespace is dropped, blank names are rejected
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


# ---------- Vector store ----------

class QueryResult(BaseModel):
    id: str
    score: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    vector: Optional[List[float]] = None
    rerank_score: Optional[float] = None


class IndexStats(BaseModel):
    dimension: int
    count: int
    metric: str = "cosine"


class IndexSummary(BaseModel):
    name: str
    dimension: Optional[int] = None
    vector_count: Optional[int] = None


class FileInfo(BaseModel):
    source: str
    file_size: int = 0
    created_at: Optional[str] = None
    chunk_count: int


class ChunkInfo(BaseModel):
    """A stored chunk: row identifiers plus its metadata fields."""
    model_config = ConfigDict(extra="allow")

    id: str
    vector_id: str
    text: str = ""
    chunk_index: int = 0
    total_chunks: int = 0


class FileStats(BaseModel):
    total_chunks: int
    total_files: int


class ChunkPreview(BaseModel):
    head: List[ChunkInfo]
    tail: List[ChunkInfo]
    hidden_count: int
    total: int


# ---------- Catalog ----------

class Project(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    created_at: str
    updated_at: str
    index_count: int = 0


class IndexRecord(BaseModel):
    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    vector_index: str
    dimension: int
    created_at: str


class DashboardStats(BaseModel):
    total_projects: int
    total_indexes: int
    total_files: int
    average_indexes_per_project: float
    recent_projects: List[Project]


# ---------- Requests ----------

class CreateIndexPayload(BaseModel):
    name: str = Field(..., min_length=1)
    dimension: Optional[int] = Field(None, gt=0)


class SearchPayload(BaseModel):
    query_text: str = Field("artificial intelligence", min_length=1)
    top_k: int = Field(5, ge=1, le=100)
    min_score: float = Field(0.0, ge=-1.0, le=1.0)
    category: Optional[str] = None
    author: Optional[str] = None
    rerank: bool = False


class ProjectPayload(BaseModel):
    name: Name
    description: Optional[str] = None


class ProjectUpdatePayload(BaseModel):
    name: Optional[Name] = None
    description: Optional[str] = None


class CatalogIndexPayload(BaseModel):
    name: Name
    description: Optional[str] = None
    dimension: Optional[int] = Field(None, gt=0)


class CatalogIndexUpdatePayload(BaseModel):
    name: Optional[Name] = None
    description: Optional[str] = None


class TextDocumentPayload(BaseModel):
    title: Optional[str] = None
    content: str = Field(..., min_length=1)


class LoginPayload(BaseModel):
    username: str
    password: str


# ---------- Responses ----------

class MessageResponse(BaseModel):
    success: bool = True
    message: str


class IngestResponse(BaseModel):
    success: bool = True
    message: str
    source: str
    chunks_created: int
    extracted_text: str


class SearchResponse(BaseModel):
    success: bool = True
    message: str
    results: List[QueryResult]


class VectorStoreOption(BaseModel):
    id: str
    name: str
    available: bool = True


class LoginResponse(BaseModel):
    token: str
    user_id: str
    username: str
    expires_at: str


class UserResponse(BaseModel):
    user_id: str
    username: str
