"""Persistent catalog of projects and their indexes.

This module defines the ``Catalog`` class which keeps the admin
records (projects owned by a user and the indexes that belong to each
project) in a single JSON file under ``settings.catalog_path``.  Each
catalog index owns one table in the vector store; its name is
generated (``idx_<hex>``) so that user-facing index names can contain
any characters.

The catalog is small and read far more often than written, so the
whole file is loaded on start up and written back after every change.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ragadmin.errors import NotFoundError
from ragadmin.models import DashboardStats, IndexRecord, Project
from ragadmin.vector_store import LibSQLVectorStore

log = logging.getLogger("api.catalog")

RECENT_PROJECTS = 5


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("name must not be blank")
    return cleaned


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Catalog:
    """Projects and indexes persisted to a JSON file."""

    def __init__(self, path: str, store: LibSQLVectorStore) -> None:
        self.path = path
        self.store = store
        self.projects: List[Dict[str, Any]] = []
        self.indexes: List[Dict[str, Any]] = []
        self._lock = threading.RLock()
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    #
    def load(self) -> None:
        """Load projects and indexes from disk, if present."""
        if os.path.exists(self.path):
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self.projects = data.get("projects", [])
            self.indexes = data.get("indexes", [])
        log.info(f"Catalog loaded from {self.path}. Projects={len(self.projects)} Indexes={len(self.indexes)}")

    def save(self) -> None:
        """Persist the catalog atomically."""
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(
                {"projects": self.projects, "indexes": self.indexes},
                f,
                ensure_ascii=False,
                indent=2,
            )
        os.replace(tmp_path, self.path)

    # ------------------------------------------------------------------
    # Projects
    #
    def _project(self, user_id: str, project_id: str) -> Dict[str, Any]:
        for p in self.projects:
            if p["id"] == project_id and p["user_id"] == user_id:
                return p
        raise NotFoundError(f"Project '{project_id}' not found")

    def _as_project(self, p: Dict[str, Any]) -> Project:
        count = sum(1 for i in self.indexes if i["project_id"] == p["id"])
        return Project(**p, index_count=count)

    def list_projects(self, user_id: str) -> List[Project]:
        with self._lock:
            owned = [p for p in self.projects if p["user_id"] == user_id]
            owned.sort(key=lambda p: p["updated_at"], reverse=True)
            return [self._as_project(p) for p in owned]

    def get_project(self, user_id: str, project_id: str) -> Project:
        with self._lock:
            return self._as_project(self._project(user_id, project_id))

    def create_project(self, user_id: str, name: str, description: Optional[str] = None) -> Project:
        now = _now()
        record = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "name": _clean_name(name),
            "description": description,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self.projects.append(record)
            self.save()
        log.info(f"Created project '{record['name']}' ({record['id']}) for user {user_id}")
        return self._as_project(record)

    def update_project(
        self,
        user_id: str,
        project_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Project:
        with self._lock:
            p = self._project(user_id, project_id)
            if name is not None:
                p["name"] = _clean_name(name)
            if description is not None:
                p["description"] = description
            p["updated_at"] = _now()
            self.save()
            return self._as_project(p)

    def delete_project(self, user_id: str, project_id: str) -> None:
        """Delete a project together with its indexes and their vector tables."""
        with self._lock:
            p = self._project(user_id, project_id)
            for idx in [i for i in self.indexes if i["project_id"] == project_id]:
                self._drop_vectors(idx)
            self.indexes = [i for i in self.indexes if i["project_id"] != project_id]
            self.projects = [q for q in self.projects if q["id"] != p["id"]]
            self.save()
        log.info(f"Deleted project {project_id}")

    # ------------------------------------------------------------------
    # Indexes
    #
    def _index(self, user_id: str, index_id: str) -> Dict[str, Any]:
        for i in self.indexes:
            if i["id"] == index_id:
                # ownership goes through the project
                self._project(user_id, i["project_id"])
                return i
        raise NotFoundError(f"Index '{index_id}' not found")

    def _drop_vectors(self, idx: Dict[str, Any]) -> None:
        if self.store.has_index(idx["vector_index"]):
            self.store.delete_index(idx["vector_index"])

    def _touch(self, project: Dict[str, Any]) -> None:
        project["updated_at"] = _now()

    def list_indexes(self, user_id: str, project_id: str) -> List[IndexRecord]:
        with self._lock:
            self._project(user_id, project_id)
            owned = [i for i in self.indexes if i["project_id"] == project_id]
            owned.sort(key=lambda i: i["created_at"], reverse=True)
            return [IndexRecord(**i) for i in owned]

    def get_index(self, user_id: str, index_id: str) -> IndexRecord:
        with self._lock:
            return IndexRecord(**self._index(user_id, index_id))

    def create_index(
        self,
        user_id: str,
        project_id: str,
        name: str,
        dimension: int,
        description: Optional[str] = None,
    ) -> IndexRecord:
        with self._lock:
            project = self._project(user_id, project_id)
            record = {
                "id": str(uuid.uuid4()),
                "project_id": project_id,
                "name": _clean_name(name),
                "description": description,
                "vector_index": f"idx_{uuid.uuid4().hex}",
                "dimension": dimension,
                "created_at": _now(),
            }
            self.store.create_index(record["vector_index"], dimension)
            self.indexes.append(record)
            self._touch(project)
            self.save()
        log.info(f"Created index '{record['name']}' -> {record['vector_index']} in project {project_id}")
        return IndexRecord(**record)

    def update_index(
        self,
        user_id: str,
        index_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> IndexRecord:
        with self._lock:
            i = self._index(user_id, index_id)
            if name is not None:
                i["name"] = _clean_name(name)
            if description is not None:
                i["description"] = description
            self.save()
            return IndexRecord(**i)

    def delete_index(self, user_id: str, index_id: str) -> None:
        with self._lock:
            i = self._index(user_id, index_id)
            self._drop_vectors(i)
            self.indexes = [x for x in self.indexes if x["id"] != index_id]
            self._touch(self._project(user_id, i["project_id"]))
            self.save()
        log.info(f"Deleted index {index_id}")

    # ------------------------------------------------------------------
    # Dashboard
    #
    def dashboard(self, user_id: str) -> DashboardStats:
        projects = self.list_projects(user_id)
        project_ids = {p.id for p in projects}
        with self._lock:
            owned = [i for i in self.indexes if i["project_id"] in project_ids]
        total_files = 0
        for i in owned:
            if self.store.has_index(i["vector_index"]):
                total_files += self.store.index_stats(i["vector_index"]).total_files
        total_indexes = len(owned)
        average = round(total_indexes / len(projects), 1) if projects else 0.0
        return DashboardStats(
            total_projects=len(projects),
            total_indexes=total_indexes,
            total_files=total_files,
            average_indexes_per_project=average,
            recent_projects=projects[:RECENT_PROJECTS],
        )
