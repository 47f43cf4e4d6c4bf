"""Persistent vector store on a LibSQL/SQLite database file.

This module defines ``LibSQLVectorStore``, a small vector store laid out
the way LibSQL vector tables are: one table per index with the columns

``id``
    Integer row id.
``vector_id``
    Caller supplied (or generated) unique identifier.
``embedding``
    The vector, stored as a little-endian float32 blob.
``metadata``
    A JSON object.  Filters and the per-file bookkeeping queries read
    it with ``json_extract``.

A registry table, ``vector_indexes``, records each index's dimension
and metric.  Similarity search loads the rows that pass the metadata
filter and ranks them with a flat FAISS inner-product index over
L2-normalised vectors, i.e. cosine similarity.

All access goes through one connection guarded by a re-entrant lock so
that FastAPI's worker threads can share the store.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

try:
    import faiss  # type: ignore
except Exception as exc:
    raise ImportError(
        "faiss-cpu is required for similarity search. Please add faiss-cpu to your requirements and install it."
    ) from exc

from ragadmin.errors import (
    DimensionMismatchError,
    IndexExistsError,
    IndexNotFoundError,
    InvalidIndexNameError,
)
from ragadmin.models import ChunkInfo, FileInfo, FileStats, IndexStats, QueryResult

log = logging.getLogger("api.vector_store")

REGISTRY_TABLE = "vector_indexes"
_INDEX_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*$")
_COMPARISONS = {"$eq": "=", "$ne": "!=", "$gt": ">", "$gte": ">=", "$lt": "<", "$lte": "<="}


def parse_connection_url(url: str) -> str:
    """Turn ``file:./vector.db`` style URLs into a SQLite path.

    ``:memory:`` and bare paths are accepted as well.  Remote schemes
    (``libsql://``, ``https://``...) are rejected.
    """
    url = (url or "").strip()
    if not url:
        raise ValueError("vector database URL is empty")
    if url == ":memory:":
        return url
    if url.startswith("file://"):
        return url[len("file://"):]
    if url.startswith("file:"):
        return url[len("file:"):]
    if "://" in url:
        raise ValueError(f"Unsupported vector database URL {url!r}: only local file: URLs are supported")
    return url


def validate_index_name(name: str) -> str:
    if not isinstance(name, str) or not _INDEX_NAME.match(name):
        raise InvalidIndexNameError(
            f"Invalid index name {name!r}: use letters, digits and underscores, not starting with a digit"
        )
    if name == REGISTRY_TABLE or name.lower().startswith("sqlite_"):
        raise InvalidIndexNameError(f"Index name {name!r} is reserved")
    return name


# ------------------------------------------------------------------
# Metadata filters
#

def _json_path(field: str) -> str:
    if not isinstance(field, str) or not _FIELD_NAME.match(field):
        raise ValueError(f"Invalid filter field {field!r}")
    return f"$.{field}"


def _sql_value(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    if value is None or isinstance(value, (int, float, str)):
        return value
    raise ValueError(f"Unsupported filter value {value!r}")


def _field_condition(field: str, cond: Any) -> Tuple[str, List[Any]]:
    path = _json_path(field)
    expr = "json_extract(metadata, ?)"
    if not (isinstance(cond, dict) and cond and all(str(k).startswith("$") for k in cond)):
        if cond is None:
            return f"{expr} IS NULL", [path]
        return f"{expr} = ?", [path, _sql_value(cond)]

    parts: List[str] = []
    params: List[Any] = []
    for op, operand in cond.items():
        if op in _COMPARISONS:
            if operand is None and op in ("$eq", "$ne"):
                parts.append(f"{expr} IS {'NOT ' if op == '$ne' else ''}NULL")
                params.append(path)
            elif op == "$ne":
                parts.append(f"({expr} IS NULL OR {expr} != ?)")
                params.extend([path, path, _sql_value(operand)])
            else:
                parts.append(f"{expr} {_COMPARISONS[op]} ?")
                params.extend([path, _sql_value(operand)])
        elif op in ("$in", "$nin"):
            if not isinstance(operand, (list, tuple)):
                raise ValueError(f"{op} expects a list")
            values = [_sql_value(v) for v in operand]
            if not values:
                parts.append("0" if op == "$in" else "1")
                continue
            marks = ", ".join("?" for _ in values)
            if op == "$in":
                parts.append(f"{expr} IN ({marks})")
                params.extend([path, *values])
            else:
                parts.append(f"({expr} IS NULL OR {expr} NOT IN ({marks}))")
                params.extend([path, path, *values])
        elif op == "$exists":
            parts.append(f"{expr} IS {'NOT ' if operand else ''}NULL")
            params.append(path)
        else:
            raise ValueError(f"Unsupported filter operator {op!r}")
    return " AND ".join(parts), params


def translate_filter(flt: Optional[Dict[str, Any]]) -> Tuple[str, List[Any]]:
    """Translate a metadata filter document into a SQL condition.

    ``{"category": "AI/ML", "confidenceScore": {"$gte": 0.8}}`` becomes
    two ``json_extract`` comparisons joined with ``AND``.  ``$and`` and
    ``$or`` take lists of sub-filters.
    """
    if not flt:
        return "1=1", []
    if not isinstance(flt, dict):
        raise ValueError("filter must be an object")
    clauses: List[str] = []
    params: List[Any] = []
    for key, value in flt.items():
        if key in ("$and", "$or"):
            if not isinstance(value, list) or not value:
                raise ValueError(f"{key} expects a non-empty list")
            subs = [translate_filter(sub) for sub in value]
            joiner = " AND " if key == "$and" else " OR "
            clauses.append("(" + joiner.join(f"({sql})" for sql, _ in subs) + ")")
            for _, sub_params in subs:
                params.extend(sub_params)
        elif key.startswith("$"):
            raise ValueError(f"Unsupported filter operator {key!r}")
        else:
            sql, field_params = _field_condition(key, value)
            clauses.append(sql)
            params.extend(field_params)
    return " AND ".join(clauses), params


# ------------------------------------------------------------------
# Store
#

class LibSQLVectorStore:
    """Vector indexes stored as SQLite tables with JSON metadata."""

    def __init__(self, connection_url: str) -> None:
        self.path = parse_connection_url(connection_url)
        if self.path != ":memory:":
            parent = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(parent, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._lock, self._conn:
            self._conn.execute(
                f"""CREATE TABLE IF NOT EXISTS {REGISTRY_TABLE} (
                    name TEXT PRIMARY KEY,
                    dimension INTEGER NOT NULL,
                    metric TEXT NOT NULL DEFAULT 'cosine',
                    created_at TEXT NOT NULL
                )"""
            )
        log.info(f"Vector store ready at {self.path}. Indexes={len(self.list_indexes())}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Helpers
    #
    def _execute(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, tuple(params)).fetchall()

    def _dimension(self, name: str) -> int:
        validate_index_name(name)
        rows = self._execute(f"SELECT dimension FROM {REGISTRY_TABLE} WHERE name = ?", (name,))
        if not rows:
            raise IndexNotFoundError(f"Index '{name}' does not exist")
        return int(rows[0]["dimension"])

    # ------------------------------------------------------------------
    # Index management
    #
    def list_indexes(self) -> List[str]:
        rows = self._execute(f"SELECT name FROM {REGISTRY_TABLE} ORDER BY created_at, name")
        return [r["name"] for r in rows]

    def has_index(self, name: str) -> bool:
        validate_index_name(name)
        return bool(self._execute(f"SELECT 1 FROM {REGISTRY_TABLE} WHERE name = ?", (name,)))

    def create_index(self, name: str, dimension: int, metric: str = "cosine") -> bool:
        """Create ``name``; returns False when it already exists with ``dimension``."""
        validate_index_name(name)
        if not isinstance(dimension, int) or isinstance(dimension, bool) or dimension <= 0:
            raise ValueError("dimension must be a positive integer")
        if metric != "cosine":
            raise ValueError("only the cosine metric is supported")
        with self._lock, self._conn:
            rows = self._conn.execute(
                f"SELECT dimension FROM {REGISTRY_TABLE} WHERE name = ?", (name,)
            ).fetchall()
            if rows:
                existing = int(rows[0]["dimension"])
                if existing != dimension:
                    raise IndexExistsError(
                        f"Index '{name}' already exists with dimension {existing} (requested {dimension})"
                    )
                return False
            self._conn.execute(
                f"""CREATE TABLE IF NOT EXISTS "{name}" (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    vector_id TEXT UNIQUE NOT NULL,
                    embedding BLOB NOT NULL,
                    metadata TEXT NOT NULL DEFAULT '{{}}'
                )"""
            )
            self._conn.execute(
                f"INSERT INTO {REGISTRY_TABLE} (name, dimension, metric, created_at) VALUES (?, ?, ?, ?)",
                (name, dimension, metric, datetime.now(timezone.utc).isoformat()),
            )
        log.info(f"Created index '{name}' (dimension={dimension})")
        return True

    def describe_index(self, name: str) -> IndexStats:
        dimension = self._dimension(name)
        count = self._execute(f'SELECT COUNT(*) AS n FROM "{name}"')[0]["n"]
        return IndexStats(dimension=dimension, count=int(count))

    def delete_index(self, name: str) -> None:
        self._dimension(name)
        with self._lock, self._conn:
            self._conn.execute(f'DROP TABLE IF EXISTS "{name}"')
            self._conn.execute(f"DELETE FROM {REGISTRY_TABLE} WHERE name = ?", (name,))
        log.info(f"Deleted index '{name}'")

    # ------------------------------------------------------------------
    # Vectors
    #
    def _rows(
        self,
        name: str,
        vectors: Sequence[Sequence[float]],
        metadata: Optional[Sequence[Dict[str, Any]]],
        ids: Optional[Sequence[str]],
    ) -> Tuple[List[str], List[Tuple[str, bytes, str]]]:
        dimension = self._dimension(name)
        if metadata is not None and len(metadata) != len(vectors):
            raise ValueError("vectors and metadata must have the same length")
        if ids is not None and len(ids) != len(vectors):
            raise ValueError("vectors and ids must have the same length")
        vector_ids = [str(i) for i in ids] if ids is not None else [str(uuid.uuid4()) for _ in vectors]

        rows: List[Tuple[str, bytes, str]] = []
        for pos, vec in enumerate(vectors):
            arr = np.asarray(vec, dtype="<f4")
            if arr.ndim != 1 or arr.shape[0] != dimension:
                raise DimensionMismatchError(
                    f"Vector {pos} has dimension {arr.shape[-1] if arr.ndim else 0}; index '{name}' expects {dimension}"
                )
            meta = metadata[pos] if metadata is not None else {}
            rows.append((vector_ids[pos], arr.tobytes(), json.dumps(meta or {}, ensure_ascii=False)))
        return vector_ids, rows

    def _write(self, name: str, rows: List[Tuple[str, bytes, str]]) -> None:
        self._conn.executemany(
            f"""INSERT INTO "{name}" (vector_id, embedding, metadata) VALUES (?, ?, ?)
                ON CONFLICT(vector_id) DO UPDATE SET
                    embedding = excluded.embedding,
                    metadata = excluded.metadata""",
            rows,
        )

    def upsert(
        self,
        name: str,
        vectors: Sequence[Sequence[float]],
        metadata: Optional[Sequence[Dict[str, Any]]] = None,
        ids: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """Insert or replace vectors; returns their ids in input order."""
        vector_ids, rows = self._rows(name, vectors, metadata, ids)
        with self._lock, self._conn:
            self._write(name, rows)
        log.debug(f"Upserted {len(rows)} vectors into '{name}'")
        return vector_ids

    def replace_file(
        self,
        name: str,
        source: str,
        vectors: Sequence[Sequence[float]],
        metadata: Optional[Sequence[Dict[str, Any]]] = None,
        ids: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """Swap every chunk of ``source`` for the given vectors in one transaction."""
        vector_ids, rows = self._rows(name, vectors, metadata, ids)
        with self._lock, self._conn:
            cur = self._conn.execute(
                f"""DELETE FROM "{name}" WHERE json_extract(metadata, '$.source') = ?""",
                (source,),
            )
            self._write(name, rows)
        log.info(f"Replaced {cur.rowcount} chunks of '{source}' in '{name}' with {len(rows)}")
        return vector_ids

    def query(
        self,
        name: str,
        query_vector: Sequence[float],
        top_k: int = 10,
        filter: Optional[Dict[str, Any]] = None,
        include_vector: bool = False,
    ) -> List[QueryResult]:
        """Return the ``top_k`` most similar vectors passing ``filter``.

        Scores are cosine similarities, highest first.
        """
        dimension = self._dimension(name)
        q = np.asarray(query_vector, dtype="float32").reshape(1, -1)
        if q.shape[1] != dimension:
            raise DimensionMismatchError(f"Query vector has dimension {q.shape[1]}; index '{name}' expects {dimension}")
        if top_k <= 0:
            return []
        where, params = translate_filter(filter)
        rows = self._execute(f'SELECT vector_id, embedding, metadata FROM "{name}" WHERE {where}', params)
        if not rows:
            return []

        mat = np.vstack([np.frombuffer(r["embedding"], dtype="<f4") for r in rows]).astype("float32")
        raw = mat.copy() if include_vector else None
        faiss.normalize_L2(mat)
        q = np.ascontiguousarray(q)
        faiss.normalize_L2(q)
        index = faiss.IndexFlatIP(dimension)
        index.add(mat)
        scores, idxs = index.search(q, min(top_k, len(rows)))

        results: List[QueryResult] = []
        for score, idx in zip(scores[0], idxs[0]):
            if idx < 0:
                continue
            row = rows[int(idx)]
            results.append(
                QueryResult(
                    id=row["vector_id"],
                    score=float(score),
                    metadata=json.loads(row["metadata"] or "{}"),
                    vector=raw[int(idx)].tolist() if raw is not None else None,
                )
            )
        return results

    # ------------------------------------------------------------------
    # Files (chunks grouped by metadata.source)
    #
    def list_files(self, name: str) -> List[FileInfo]:
        self._dimension(name)
        rows = self._execute(
            f"""SELECT
                    json_extract(metadata, '$.source') AS source,
                    MAX(json_extract(metadata, '$.fileSize')) AS file_size,
                    MAX(json_extract(metadata, '$.createdAt')) AS created_at,
                    COUNT(*) AS chunk_count
                FROM "{name}"
                WHERE json_extract(metadata, '$.source') IS NOT NULL
                GROUP BY json_extract(metadata, '$.source')
                ORDER BY created_at DESC, source"""
        )
        return [
            FileInfo(
                source=str(r["source"]),
                file_size=int(r["file_size"] or 0),
                created_at=r["created_at"],
                chunk_count=int(r["chunk_count"]),
            )
            for r in rows
        ]

    def file_chunks(self, name: str, source: str) -> List[ChunkInfo]:
        self._dimension(name)
        rows = self._execute(
            f"""SELECT id, vector_id, metadata FROM "{name}"
                WHERE json_extract(metadata, '$.source') = ?
                ORDER BY json_extract(metadata, '$.chunkIndex') ASC, id ASC""",
            (source,),
        )
        chunks: List[ChunkInfo] = []
        for r in rows:
            meta = json.loads(r["metadata"] or "{}")
            chunks.append(
                ChunkInfo(
                    id=str(meta.pop("id", r["id"])),
                    vector_id=r["vector_id"],
                    text=meta.pop("text", ""),
                    chunk_index=int(meta.pop("chunkIndex", 0)),
                    total_chunks=int(meta.pop("totalChunks", 0)),
                    **meta,
                )
            )
        return chunks

    def delete_file(self, name: str, source: str) -> int:
        self._dimension(name)
        with self._lock, self._conn:
            cur = self._conn.execute(
                f"""DELETE FROM "{name}" WHERE json_extract(metadata, '$.source') = ?""",
                (source,),
            )
        log.info(f"Deleted {cur.rowcount} chunks of '{source}' from '{name}'")
        return cur.rowcount

    def index_stats(self, name: str) -> FileStats:
        self._dimension(name)
        row = self._execute(
            f"""SELECT COUNT(*) AS total_chunks,
                       COUNT(DISTINCT json_extract(metadata, '$.source')) AS total_files
                FROM "{name}" """
        )[0]
        return FileStats(total_chunks=int(row["total_chunks"]), total_files=int(row["total_files"]))
