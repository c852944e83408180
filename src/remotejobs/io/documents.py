# src/remotejobs/io/documents.py
"""
Document store interface used by the chunked cache.

The cache needs very little from storage: read one document by id, and
commit a batch of writes all-or-nothing. A batch may also delete every
document flagged with the chunk marker, which is how stale chunks from a
larger previous generation disappear in the same commit that writes the new
ones.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

CHUNK_MARKER = "isChunk"

SET = "set"
DELETE_CHUNKS = "delete_chunks"


@dataclass
class WriteBatch:
    ops: List[Tuple[str, Optional[str], Optional[Dict[str, Any]]]] = field(default_factory=list)

    def set(self, doc_id: str, body: Dict[str, Any]) -> "WriteBatch":
        self.ops.append((SET, doc_id, body))
        return self

    def delete_chunks(self) -> "WriteBatch":
        self.ops.append((DELETE_CHUNKS, None, None))
        return self

    def __len__(self) -> int:
        return len(self.ops)


class DocumentStore(Protocol):
    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def commit(self, batch: WriteBatch) -> None:
        """Apply every op in `batch`, or none of them."""
        ...


class MemoryDocumentStore:
    """
    Dict-backed store for tests and one-off runs.

    commit() applies the batch to a copy and swaps it in, so a reader holds
    either the old or the new generation, never a mix.
    """

    def __init__(self, docs: Optional[Dict[str, Dict[str, Any]]] = None):
        self._docs: Dict[str, Dict[str, Any]] = copy.deepcopy(docs or {})

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        body = self._docs.get(doc_id)
        return copy.deepcopy(body) if body is not None else None

    async def commit(self, batch: WriteBatch) -> None:
        docs = dict(self._docs)
        for op, doc_id, body in batch.ops:
            if op == DELETE_CHUNKS:
                docs = {k: v for k, v in docs.items() if not v.get(CHUNK_MARKER)}
            elif op == SET:
                docs[doc_id] = copy.deepcopy(body)
            else:
                raise ValueError(f"unknown batch op {op!r}")
        self._docs = docs

    def doc_ids(self) -> List[str]:
        return sorted(self._docs)
