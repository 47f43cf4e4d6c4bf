import re

import pytest

from ragadmin.config import Settings
from ragadmin.errors import ExtractionError, UnsupportedFileError, UnsupportedStoreError
from ragadmin.pipeline import (
    available_vector_stores,
    ingest_document,
    ingest_text,
    seed_sample_embeddings,
    truncate_preview,
    utc_timestamp,
)

LONG_TEXT = "\n\n".join(f"Paragraph {i}. " + "Vectors capture meaning. " * 5 for i in range(6))


def test_utc_timestamp_format():
    assert re.match(r"^\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z$", utc_timestamp())


def test_truncate_preview():
    assert truncate_preview("abc", 5) == "abc"
    assert truncate_preview("abcdef", 3) == "abc..."


def test_available_vector_stores():
    cfg = Settings(_env_file=None, mongodb_uri=None, postgres_connection_string=None, pinecone_api_key=None)
    assert [s.id for s in available_vector_stores(cfg)] == ["libsql"]
    cfg = Settings(_env_file=None, mongodb_uri="mongodb://x", postgres_connection_string=None, pinecone_api_key="k")
    assert [s.id for s in available_vector_stores(cfg)] == ["libsql", "mongodb", "pinecone"]


class TestIngestDocument:
    @pytest.mark.asyncio
    async def test_creates_index_and_stores_chunks(self, store, embedder, cfg):
        result = await ingest_document(store, embedder, "uploads", "notes.txt", LONG_TEXT.encode(), cfg=cfg)
        assert result.chunks_created > 1
        assert result.source == "notes.txt"
        assert result.extracted_preview.endswith("...")
        assert len(result.extracted_preview) == cfg.preview_chars + 3
        assert result.ids[0] == "notes.txt_chunk_1"

        assert store.describe_index("uploads").dimension == embedder.dimension
        chunks = store.file_chunks("uploads", "notes.txt")
        assert len(chunks) == result.chunks_created
        first = chunks[0]
        assert first.id == "notes.txt_chunk_1"
        assert first.chunk_index == 0
        assert first.total_chunks == result.chunks_created
        extra = first.model_extra
        assert extra["category"] == "User Document"
        assert extra["author"] == "User Upload"
        assert extra["confidenceScore"] == 1.0
        assert extra["fileSize"] == len(LONG_TEXT.encode())
        assert extra["vectorStore"] == "libsql"

    @pytest.mark.asyncio
    async def test_reupload_overwrites(self, store, embedder, cfg):
        await ingest_document(store, embedder, "uploads", "notes.txt", LONG_TEXT.encode(), cfg=cfg)
        first = store.index_stats("uploads").total_chunks
        await ingest_document(store, embedder, "uploads", "notes.txt", LONG_TEXT.encode(), cfg=cfg)
        stats = store.index_stats("uploads")
        assert (stats.total_chunks, stats.total_files) == (first, 1)

    @pytest.mark.asyncio
    async def test_extra_metadata_and_strategy(self, store, embedder, cfg):
        result = await ingest_document(
            store,
            embedder,
            "uploads",
            "guide.md",
            b"# Setup\n- install\n- run\n\n# Usage\nCall the API.",
            extra_metadata={"indexId": "i1", "category": "Manual"},
            strategy="markdown",
            cfg=cfg,
        )
        assert result.chunks_created == 2
        chunk = store.file_chunks("uploads", "guide.md")[0]
        assert chunk.text == "# Setup\n- install\n- run"
        assert chunk.model_extra["indexId"] == "i1"
        assert chunk.model_extra["category"] == "Manual"

    @pytest.mark.asyncio
    async def test_empty_document(self, store, embedder, cfg):
        with pytest.raises(ExtractionError, match="No text"):
            await ingest_document(store, embedder, "uploads", "empty.txt", b"   \n ", cfg=cfg)
        assert not store.has_index("uploads")

    @pytest.mark.asyncio
    async def test_unsupported_inputs(self, store, embedder, cfg):
        with pytest.raises(UnsupportedFileError):
            await ingest_document(store, embedder, "uploads", "scan.pdf", b"%PDF", cfg=cfg)
        with pytest.raises(UnsupportedStoreError):
            await ingest_document(store, embedder, "uploads", "a.txt", b"text", vector_store="pinecone", cfg=cfg)


class TestIngestText:
    @pytest.mark.asyncio
    async def test_title_becomes_source(self, store, embedder, cfg):
        result = await ingest_text(store, embedder, "notes", "Short note.", title=" My note ", cfg=cfg)
        assert result.source == "My note"
        assert result.chunks_created == 1
        assert store.list_files("notes")[0].file_size == len("Short note.")

    @pytest.mark.asyncio
    async def test_generated_source(self, store, embedder, cfg):
        result = await ingest_text(store, embedder, "notes", "Short note.", cfg=cfg)
        assert re.match(r"^text-\d{14}\.txt$", result.source)


def test_seed_sample_embeddings(store):
    store.create_index("demo", 4)
    ids = seed_sample_embeddings(store, "demo", seed=7)
    assert ids == ["doc_1", "doc_2", "doc_3"]
    seed_sample_embeddings(store, "demo", seed=8)
    assert store.describe_index("demo").count == 3
    hits = store.query("demo", [1, 1, 1, 1], top_k=3, filter={"category": "Database"})
    assert len(hits) == 1
    meta = hits[0].metadata
    assert meta["author"] == "Demo System"
    assert meta["version"] == "1.0"
    assert 0.7 <= meta["confidenceScore"] <= 1.0


class TestReupload:
    @pytest.mark.asyncio
    async def test_shorter_reupload_replaces_all_chunks(self, store, embedder, cfg):
        first = await ingest_document(store, embedder, "uploads", "notes.txt", LONG_TEXT.encode(), cfg=cfg)
        assert first.chunks_created > 1
        await ingest_document(store, embedder, "uploads", "other.txt", b"Unrelated file.", cfg=cfg)

        result = await ingest_document(store, embedder, "uploads", "notes.txt", b"Short replacement.", cfg=cfg)
        assert result.chunks_created == 1
        chunks = store.file_chunks("uploads", "notes.txt")
        assert [c.text for c in chunks] == ["Short replacement."]
        assert chunks[0].total_chunks == 1
        counts = {f.source: f.chunk_count for f in store.list_files("uploads")}
        assert counts == {"notes.txt": 1, "other.txt": 1}


class TestSourceNames:
    @pytest.mark.parametrize(
        "filename, source",
        [("reports/2024/notes.txt", "notes.txt"), ("C:\\docs\\notes.txt", "notes.txt"), ("notes.txt", "notes.txt")],
    )
    @pytest.mark.asyncio
    async def test_directory_parts_are_dropped(self, store, embedder, cfg, filename, source):
        result = await ingest_document(store, embedder, "uploads", filename, b"Some text.", cfg=cfg)
        assert result.source == source
        assert result.ids == [f"{source}_chunk_1"]
        assert [f.source for f in store.list_files("uploads")] == [source]

    @pytest.mark.asyncio
    async def test_title_separators_are_replaced(self, store, embedder, cfg):
        result = await ingest_text(store, embedder, "notes", "Quarterly numbers.", title="Q3/Q4 report", cfg=cfg)
        assert result.source == "Q3-Q4 report"
        assert store.file_chunks("notes", "Q3-Q4 report")[0].text == "Quarterly numbers."
