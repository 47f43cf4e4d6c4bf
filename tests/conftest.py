"""
Pytest configuration for the ragadmin test suite.

Configures:
- a vector store, catalog and session manager bound to ``tmp_path``
- a TestClient whose storage dependencies point at those instances
"""
import pytest
from fastapi.testclient import TestClient

from ragadmin.app import create_app
from ragadmin.auth import SessionManager, get_sessions
from ragadmin.catalog import Catalog
from ragadmin.config import Settings
from ragadmin.embeddings import EmbeddingClient
from ragadmin.storage import get_catalog, get_embedder, get_store
from ragadmin.vector_store import LibSQLVectorStore

DIM = 8


@pytest.fixture
def cfg(tmp_path):
    return Settings(
        _env_file=None,
        vector_database_url=f"file:{tmp_path / 'vector.db'}",
        catalog_path=str(tmp_path / "catalog.json"),
        embedding_dimension=DIM,
        embedding_api_key=None,
        chunk_size=200,
        chunk_overlap=40,
        preview_chars=50,
    )


@pytest.fixture
def store(cfg):
    s = LibSQLVectorStore(cfg.vector_database_url)
    yield s
    s.close()


@pytest.fixture
def embedder():
    """Offline embedder: no API key, deterministic vectors."""
    return EmbeddingClient(base_url="http://embeddings.test/v1", model="test-model", dimension=DIM)


@pytest.fixture
def catalog(cfg, store):
    return Catalog(cfg.catalog_path, store)


@pytest.fixture
def sessions(cfg):
    return SessionManager(cfg)


@pytest.fixture
def app(store, catalog, embedder, sessions):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_sessions] = lambda: sessions
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(client, cfg):
    r = client.post("/auth/login", json={"username": cfg.admin_username, "password": cfg.admin_password})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def upload(client):
    """Post ``data`` as a multipart file upload with extra form fields."""
    def _upload(url, filename, data, headers=None, **form):
        files = {"file": (filename, data, "application/octet-stream")}
        return client.post(url, files=files, data=form, headers=headers)
    return _upload
