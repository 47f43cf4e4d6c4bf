import pytest

from ragadmin.errors import DimensionMismatchError, IndexExistsError, IndexNotFoundError, InvalidIndexNameError
from ragadmin.vector_store import LibSQLVectorStore, parse_connection_url, translate_filter


@pytest.fixture
def docs(store):
    store.create_index("docs", 3)
    store.upsert(
        "docs",
        [[1, 0, 0], [0, 1, 0], [0.9, 0.1, 0], [0, 0, 1]],
        [
            {"category": "AI/ML", "author": "ann", "confidenceScore": 0.9, "public": True, "source": "a.txt",
             "chunkIndex": 1, "totalChunks": 2, "text": "second", "createdAt": "2024-01-01T00:00:00Z", "fileSize": 10},
            {"category": "Database", "author": "bob", "confidenceScore": 0.5, "public": False, "source": "b.txt",
             "chunkIndex": 0, "totalChunks": 1, "text": "only", "createdAt": "2024-02-01T00:00:00Z", "fileSize": 5},
            {"category": "AI/ML", "author": "bob", "confidenceScore": 0.7, "source": "a.txt",
             "chunkIndex": 0, "totalChunks": 2, "text": "first", "createdAt": "2024-01-01T00:00:00Z", "fileSize": 10,
             "id": "a.txt_chunk_1"},
            {"category": "Data Science", "author": "cat", "nested": {"level": 2}},
        ],
        ids=["v1", "v2", "v3", "v4"],
    )
    return store


class TestConnectionUrl:
    @pytest.mark.parametrize(
        "url, path",
        [("file:./vector.db", "./vector.db"), ("file:///tmp/v.db", "/tmp/v.db"), (":memory:", ":memory:"), ("v.db", "v.db")],
    )
    def test_local_urls(self, url, path):
        assert parse_connection_url(url) == path

    def test_remote_url_rejected(self):
        with pytest.raises(ValueError):
            parse_connection_url("libsql://db.example.com")


class TestIndexes:
    def test_create_list_describe_delete(self, store):
        assert store.create_index("alpha", 4) is True
        assert store.create_index("alpha", 4) is False
        assert store.list_indexes() == ["alpha"]
        stats = store.describe_index("alpha")
        assert (stats.dimension, stats.count, stats.metric) == (4, 0, "cosine")
        store.delete_index("alpha")
        assert store.list_indexes() == []
        assert not store.has_index("alpha")

    def test_recreate_with_other_dimension(self, store):
        store.create_index("alpha", 4)
        with pytest.raises(IndexExistsError):
            store.create_index("alpha", 8)

    @pytest.mark.parametrize("name", ["1abc", "has-dash", "drop table", "vector_indexes", "sqlite_master", ""])
    def test_invalid_names(self, store, name):
        with pytest.raises(InvalidIndexNameError):
            store.create_index(name, 4)

    def test_unknown_index(self, store):
        with pytest.raises(IndexNotFoundError):
            store.describe_index("missing")
        with pytest.raises(IndexNotFoundError):
            store.query("missing", [1.0], top_k=1)

    def test_persists_across_connections(self, cfg, store):
        store.create_index("alpha", 2)
        store.upsert("alpha", [[1, 2]], ids=["x"])
        other = LibSQLVectorStore(cfg.vector_database_url)
        try:
            assert other.describe_index("alpha").count == 1
        finally:
            other.close()


class TestVectors:
    def test_upsert_overwrites_by_id(self, store):
        store.create_index("alpha", 2)
        store.upsert("alpha", [[1, 0]], [{"v": 1}], ids=["x"])
        store.upsert("alpha", [[0, 1]], [{"v": 2}], ids=["x"])
        assert store.describe_index("alpha").count == 1
        [hit] = store.query("alpha", [0, 1], top_k=1, include_vector=True)
        assert hit.metadata == {"v": 2}
        assert hit.vector == [0.0, 1.0]
        assert hit.score == pytest.approx(1.0)

    def test_generated_ids(self, store):
        store.create_index("alpha", 2)
        ids = store.upsert("alpha", [[1, 0], [0, 1]])
        assert len(set(ids)) == 2

    def test_dimension_mismatch(self, store):
        store.create_index("alpha", 2)
        with pytest.raises(DimensionMismatchError):
            store.upsert("alpha", [[1, 0, 0]])
        with pytest.raises(DimensionMismatchError):
            store.query("alpha", [1, 0, 0])

    def test_query_orders_by_cosine(self, docs):
        results = docs.query("docs", [1, 0, 0], top_k=3)
        assert [r.id for r in results] == ["v1", "v3", results[2].id]
        assert results[0].score == pytest.approx(1.0)
        assert results[0].score >= results[1].score >= results[2].score
        assert results[0].vector is None

    def test_top_k_larger_than_index(self, docs):
        assert len(docs.query("docs", [1, 0, 0], top_k=50)) == 4


class TestFilters:
    def ids(self, store, flt):
        return sorted(r.id for r in store.query("docs", [1, 1, 1], top_k=10, filter=flt))

    def test_equality(self, docs):
        assert self.ids(docs, {"category": "AI/ML"}) == ["v1", "v3"]
        assert self.ids(docs, {"category": "AI/ML", "author": "bob"}) == ["v3"]

    def test_comparisons(self, docs):
        assert self.ids(docs, {"confidenceScore": {"$gte": 0.7}}) == ["v1", "v3"]
        assert self.ids(docs, {"confidenceScore": {"$gt": 0.5, "$lt": 0.9}}) == ["v3"]

    def test_ne_and_nin_match_missing_fields(self, docs):
        assert self.ids(docs, {"author": {"$ne": "bob"}}) == ["v1", "v4"]
        assert self.ids(docs, {"category": {"$nin": ["AI/ML"]}}) == ["v2", "v4"]

    def test_in_exists_bool_nested(self, docs):
        assert self.ids(docs, {"author": {"$in": ["ann", "cat"]}}) == ["v1", "v4"]
        assert self.ids(docs, {"public": {"$exists": True}}) == ["v1", "v2"]
        assert self.ids(docs, {"public": True}) == ["v1"]
        assert self.ids(docs, {"nested.level": 2}) == ["v4"]

    def test_eq_and_lte(self, docs):
        assert self.ids(docs, {"author": {"$eq": "bob"}}) == ["v2", "v3"]
        assert self.ids(docs, {"confidenceScore": {"$lte": 0.7}}) == ["v2", "v3"]
        assert self.ids(docs, {"confidenceScore": {"$lte": 0.5}}) == ["v2"]

    def test_and(self, docs):
        flt = {"$and": [{"category": "AI/ML"}, {"confidenceScore": {"$lte": 0.7}}]}
        assert self.ids(docs, flt) == ["v3"]
        nested = {"$and": [{"$or": [{"author": "ann"}, {"author": "bob"}]}, {"category": {"$ne": "AI/ML"}}]}
        assert self.ids(docs, nested) == ["v2"]

    def test_or(self, docs):
        assert self.ids(docs, {"$or": [{"author": "ann"}, {"category": "Database"}]}) == ["v1", "v2"]

    def test_rejects_unknown_operator_and_bad_field(self):
        with pytest.raises(ValueError):
            translate_filter({"a": {"$regex": "x"}})
        with pytest.raises(ValueError):
            translate_filter({"a; DROP": 1})


class TestFiles:
    def test_list_files_groups_by_source(self, docs):
        files = docs.list_files("docs")
        assert [(f.source, f.chunk_count, f.file_size) for f in files] == [("b.txt", 1, 5), ("a.txt", 2, 10)]

    def test_file_chunks_ordered(self, docs):
        chunks = docs.file_chunks("docs", "a.txt")
        assert [c.text for c in chunks] == ["first", "second"]
        assert chunks[0].id == "a.txt_chunk_1"
        assert chunks[0].vector_id == "v3"
        assert chunks[0].chunk_index == 0 and chunks[0].total_chunks == 2
        assert chunks[0].model_extra["category"] == "AI/ML"

    def test_delete_file_and_stats(self, docs):
        stats = docs.index_stats("docs")
        assert (stats.total_chunks, stats.total_files) == (4, 2)
        assert docs.delete_file("docs", "a.txt") == 2
        assert docs.delete_file("docs", "a.txt") == 0
        stats = docs.index_stats("docs")
        assert (stats.total_chunks, stats.total_files) == (2, 1)

    def test_replace_file_swaps_only_that_source(self, docs):
        ids = docs.replace_file(
            "docs",
            "a.txt",
            [[0, 0, 1]],
            [{"source": "a.txt", "chunkIndex": 0, "totalChunks": 1, "text": "new"}],
            ids=["a.txt_chunk_1"],
        )
        assert ids == ["a.txt_chunk_1"]
        assert [c.text for c in docs.file_chunks("docs", "a.txt")] == ["new"]
        assert [c.text for c in docs.file_chunks("docs", "b.txt")] == ["only"]
        assert docs.index_stats("docs").total_chunks == 3

    def test_replace_file_is_atomic(self, docs):
        with pytest.raises(DimensionMismatchError):
            docs.replace_file("docs", "a.txt", [[1, 0]], [{"source": "a.txt"}])
        assert len(docs.file_chunks("docs", "a.txt")) == 2
