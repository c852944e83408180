# src/remotejobs/io/cache.py
"""
Chunked cache of the last aggregation.

Storage layout (one "collection", see io/documents.py):
- "metadata": generation, lastUpdated, jobCount, chunkCount, sources,
  updateDurationMs
- "chunk_0" .. "chunk_{N-1}": generation, chunkIndex, isChunk=True, jobs (at
  most chunk_size each, in order)

Document stores cap the size of a single document, hence the chunks. A new
generation replaces the old one in a single commit: metadata, deletion of
every old chunk, and the new chunks all land together or not at all.

Chunks are read one document at a time, so a save can land between two reads.
Every document of a generation carries the same random generation token, and
load() rejects chunks whose token differs from the metadata it started from.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from remotejobs.errors import CacheReadFailure, CacheWriteFailure
from remotejobs.io.documents import CHUNK_MARKER, DocumentStore, WriteBatch
from remotejobs.models import AggregationMetadata, Job, SourceReport

LOGGER = logging.getLogger(__name__)

METADATA_ID = "metadata"
DEFAULT_CHUNK_SIZE = 100


def chunk_id(index: int) -> str:
    return f"chunk_{index}"


@dataclass(frozen=True)
class CacheMetadata:
    last_updated: str
    job_count: int
    chunk_count: int
    sources: Dict[str, SourceReport] = field(default_factory=dict)
    update_duration_ms: Optional[int] = None
    generation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "lastUpdated": self.last_updated,
            "jobCount": self.job_count,
            "chunkCount": self.chunk_count,
            "sources": {name: r.to_dict() for name, r in self.sources.items()},
        }
        if self.update_duration_ms is not None:
            out["updateDurationMs"] = self.update_duration_ms
        if self.generation is not None:
            out["generation"] = self.generation
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheMetadata":
        return cls(
            last_updated=data["lastUpdated"],
            job_count=int(data["jobCount"]),
            chunk_count=int(data["chunkCount"]),
            sources={n: SourceReport.from_dict(r) for n, r in (data.get("sources") or {}).items()},
            update_duration_ms=data.get("updateDurationMs"),
            generation=data.get("generation"),
        )


@dataclass(frozen=True)
class CacheChunk:
    chunk_index: int
    jobs: Tuple[Job, ...]
    generation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "chunkIndex": self.chunk_index,
            CHUNK_MARKER: True,
            "jobs": [j.to_dict() for j in self.jobs],
        }
        if self.generation is not None:
            out["generation"] = self.generation
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheChunk":
        return cls(
            chunk_index=int(data["chunkIndex"]),
            jobs=tuple(Job.from_dict(j) for j in data["jobs"]),
            generation=data.get("generation"),
        )


@dataclass(frozen=True)
class CacheGeneration:
    metadata: CacheMetadata
    chunks: Tuple[CacheChunk, ...]

    @property
    def jobs(self) -> Tuple[Job, ...]:
        return tuple(job for chunk in self.chunks for job in chunk.jobs)


class ChunkedCacheStore:
    def __init__(self, documents: DocumentStore, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.documents = documents
        self.chunk_size = chunk_size

    def partition(self, jobs: Sequence[Job], generation: Optional[str] = None) -> List[CacheChunk]:
        return [
            CacheChunk(
                chunk_index=i,
                jobs=tuple(jobs[start:start + self.chunk_size]),
                generation=generation,
            )
            for i, start in enumerate(range(0, len(jobs), self.chunk_size))
        ]

    async def save(self, jobs: Sequence[Job], metadata: AggregationMetadata) -> CacheMetadata:
        """
        Replace the cached generation with `jobs`.

        Raises CacheWriteFailure when the commit fails; the previous
        generation is then still intact.
        """
        jobs = list(jobs)
        generation = uuid.uuid4().hex
        chunks = self.partition(jobs, generation)
        cache_meta = CacheMetadata(
            last_updated=metadata.last_updated,
            job_count=len(jobs),
            chunk_count=len(chunks),
            sources=dict(metadata.sources),
            update_duration_ms=metadata.update_duration_ms,
            generation=generation,
        )

        batch = WriteBatch().set(METADATA_ID, cache_meta.to_dict()).delete_chunks()
        for chunk in chunks:
            batch.set(chunk_id(chunk.chunk_index), chunk.to_dict())

        try:
            await self.documents.commit(batch)
        except Exception as exc:
            raise CacheWriteFailure(f"could not write cache generation: {exc}") from exc

        LOGGER.info("cached %d jobs in %d chunks", cache_meta.job_count, cache_meta.chunk_count)
        return cache_meta

    async def load(self) -> Optional[CacheGeneration]:
        """
        Read the current generation; None when nothing was ever cached.

        Raises CacheReadFailure for anything short of a complete, consistent
        generation (missing chunk, bad record, chunk from another generation,
        wrong job total).
        """
        try:
            raw = await self.documents.get(METADATA_ID)
        except Exception as exc:
            raise CacheReadFailure(f"could not read cache metadata: {exc}") from exc
        if raw is None:
            return None

        try:
            metadata = CacheMetadata.from_dict(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise CacheReadFailure(f"malformed cache metadata: {exc}") from exc

        results = await asyncio.gather(
            *(self._read_chunk(i, metadata.generation) for i in range(metadata.chunk_count)),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            raise failures[0]
        chunks = tuple(results)

        total = sum(len(c.jobs) for c in chunks)
        if total != metadata.job_count:
            raise CacheReadFailure(
                f"cache holds {total} jobs but metadata says {metadata.job_count}"
            )
        return CacheGeneration(metadata=metadata, chunks=chunks)

    async def _read_chunk(self, index: int, generation: Optional[str]) -> CacheChunk:
        doc_id = chunk_id(index)
        try:
            raw = await self.documents.get(doc_id)
        except Exception as exc:
            raise CacheReadFailure(f"could not read {doc_id}: {exc}") from exc
        if raw is None:
            raise CacheReadFailure(f"{doc_id} is missing")
        try:
            chunk = CacheChunk.from_dict(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise CacheReadFailure(f"malformed {doc_id}: {exc}") from exc
        if chunk.chunk_index != index:
            raise CacheReadFailure(f"{doc_id} claims index {chunk.chunk_index}")
        if chunk.generation != generation:
            raise CacheReadFailure(f"{doc_id} belongs to another generation")
        return chunk
