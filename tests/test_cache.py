"""
Unit tests for the chunked cache store and its document backends.
"""

import asyncio

import pytest
from conftest import build_job

from remotejobs.errors import CacheReadFailure, CacheWriteFailure
from remotejobs.io.cache import ChunkedCacheStore, chunk_id
from remotejobs.io.documents import CHUNK_MARKER, MemoryDocumentStore, WriteBatch
from remotejobs.io.sql import SqlDocumentStore
from remotejobs.models import AggregationMetadata, SourceReport

META = AggregationMetadata(
    last_updated="2024-03-05T12:00:00+00:00",
    job_count=0,
    sources={"remoteok": SourceReport("remoteok", 250, True)},
    update_duration_ms=1234,
)


def jobs(n, prefix="job"):
    return [build_job(f"{prefix}-{i}") for i in range(n)]


class FailingCommitStore(MemoryDocumentStore):
    async def commit(self, batch):
        raise RuntimeError("quota exceeded")


class FailingReadStore(MemoryDocumentStore):
    async def get(self, doc_id):
        raise RuntimeError("backend unreachable")


class GatedReadStore(MemoryDocumentStore):
    """Holds the read of one document until `gate` is set."""

    def __init__(self, held_id):
        super().__init__()
        self.held_id = held_id
        self.waiting = asyncio.Event()
        self.gate = asyncio.Event()

    async def get(self, doc_id):
        if doc_id == self.held_id and not self.gate.is_set():
            self.waiting.set()
            await self.gate.wait()
        return await super().get(doc_id)


def test_250_jobs_are_split_100_100_50_and_reload_in_order():
    documents = MemoryDocumentStore()
    store = ChunkedCacheStore(documents)
    original = jobs(250)

    saved = asyncio.run(store.save(original, META))
    generation = asyncio.run(store.load())

    assert saved.chunk_count == 3
    assert saved.job_count == 250
    assert [len(c.jobs) for c in generation.chunks] == [100, 100, 50]
    assert [c.chunk_index for c in generation.chunks] == [0, 1, 2]
    assert list(generation.jobs) == original
    assert generation.metadata.job_count == 250
    assert generation.metadata.sources["remoteok"].count == 250
    assert generation.metadata.update_duration_ms == 1234
    assert documents.doc_ids() == ["chunk_0", "chunk_1", "chunk_2", "metadata"]


def test_load_without_cache_returns_none():
    assert asyncio.run(ChunkedCacheStore(MemoryDocumentStore()).load()) is None


def test_smaller_generation_removes_stale_chunks():
    documents = MemoryDocumentStore()
    store = ChunkedCacheStore(documents, chunk_size=10)

    asyncio.run(store.save(jobs(35, "old"), META))
    assert documents.doc_ids() == ["chunk_0", "chunk_1", "chunk_2", "chunk_3", "metadata"]

    asyncio.run(store.save(jobs(12, "new"), META))
    generation = asyncio.run(store.load())

    assert documents.doc_ids() == ["chunk_0", "chunk_1", "metadata"]
    assert generation.metadata.chunk_count == 2
    assert all(j.id.startswith("new-") for j in generation.jobs)
    assert len(generation.jobs) == 12


def test_empty_generation_has_no_chunks():
    documents = MemoryDocumentStore()
    store = ChunkedCacheStore(documents)
    asyncio.run(store.save(jobs(5), META))

    asyncio.run(store.save([], META))
    generation = asyncio.run(store.load())

    assert documents.doc_ids() == ["metadata"]
    assert generation.jobs == ()
    assert generation.metadata.chunk_count == 0


def test_missing_chunk_is_a_read_failure():
    documents = MemoryDocumentStore()
    store = ChunkedCacheStore(documents)
    asyncio.run(store.save(jobs(150), META))
    # simulate a lost document: keep metadata, rewrite chunk_1 away
    remaining = {k: v for k, v in documents._docs.items() if k != chunk_id(1)}
    broken = ChunkedCacheStore(MemoryDocumentStore(remaining))

    with pytest.raises(CacheReadFailure, match="chunk_1"):
        asyncio.run(broken.load())


def test_job_count_mismatch_is_a_read_failure():
    documents = MemoryDocumentStore()
    asyncio.run(ChunkedCacheStore(documents).save(jobs(3), META))
    meta = asyncio.run(documents.get("metadata"))
    meta["jobCount"] = 4
    asyncio.run(documents.commit(WriteBatch().set("metadata", meta)))

    with pytest.raises(CacheReadFailure, match="metadata says 4"):
        asyncio.run(ChunkedCacheStore(documents).load())


def test_malformed_metadata_is_a_read_failure():
    documents = MemoryDocumentStore({"metadata": {"lastUpdated": "x"}})
    with pytest.raises(CacheReadFailure):
        asyncio.run(ChunkedCacheStore(documents).load())


def test_backend_read_error_is_a_read_failure():
    with pytest.raises(CacheReadFailure, match="backend unreachable"):
        asyncio.run(ChunkedCacheStore(FailingReadStore()).load())


def test_commit_failure_leaves_previous_generation():
    documents = MemoryDocumentStore()
    asyncio.run(ChunkedCacheStore(documents).save(jobs(3, "kept"), META))

    failing = FailingCommitStore(documents._docs)
    store = ChunkedCacheStore(failing)
    with pytest.raises(CacheWriteFailure, match="quota exceeded"):
        asyncio.run(store.save(jobs(7, "lost"), META))

    generation = asyncio.run(store.load())
    assert [j.id for j in generation.jobs] == ["kept-0", "kept-1", "kept-2"]


def test_chunk_documents_carry_marker_and_index():
    documents = MemoryDocumentStore()
    asyncio.run(ChunkedCacheStore(documents, chunk_size=2).save(jobs(3), META))

    chunk = asyncio.run(documents.get("chunk_1"))
    assert chunk[CHUNK_MARKER] is True
    assert chunk["chunkIndex"] == 1
    assert [j["id"] for j in chunk["jobs"]] == ["job-2"]
    meta = asyncio.run(documents.get("metadata"))
    assert CHUNK_MARKER not in meta
    assert meta["chunkCount"] == 2


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        ChunkedCacheStore(MemoryDocumentStore(), chunk_size=0)


def test_sql_store_round_trip_and_replacement(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}"

    async def run():
        documents = SqlDocumentStore.from_url(url)
        try:
            await documents.create_tables()
            store = ChunkedCacheStore(documents, chunk_size=4)
            assert await store.load() is None

            await store.save(jobs(10, "first"), META)
            first = await store.load()

            await store.save(jobs(3, "second"), META)
            second = await store.load()
            stale = await documents.get("chunk_2")
            return first, second, stale
        finally:
            await documents.close()

    first, second, stale = asyncio.run(run())

    assert first.metadata.chunk_count == 3
    assert [j.id for j in first.jobs] == [f"first-{i}" for i in range(10)]
    assert second.metadata.chunk_count == 1
    assert [j.id for j in second.jobs] == ["second-0", "second-1", "second-2"]
    assert stale is None


def test_save_landing_mid_load_is_a_read_failure():
    # same job count in both generations, so only the token can tell them apart
    async def run():
        documents = GatedReadStore(held_id=chunk_id(1))
        store = ChunkedCacheStore(documents, chunk_size=2)
        documents.gate.set()
        await store.save(jobs(4, "old"), META)
        documents.gate.clear()

        loading = asyncio.create_task(store.load())
        await documents.waiting.wait()
        await store.save(jobs(4, "new"), META)
        documents.gate.set()
        return await loading

    with pytest.raises(CacheReadFailure, match="chunk_1 belongs to another generation"):
        asyncio.run(run())


def test_every_document_of_a_generation_shares_its_token():
    documents = MemoryDocumentStore()
    store = ChunkedCacheStore(documents, chunk_size=2)

    first = asyncio.run(store.save(jobs(3), META))
    second = asyncio.run(store.save(jobs(3), META))

    assert first.generation and second.generation
    assert first.generation != second.generation
    for doc_id in documents.doc_ids():
        assert asyncio.run(documents.get(doc_id))["generation"] == second.generation
    assert asyncio.run(store.load()).metadata.generation == second.generation
