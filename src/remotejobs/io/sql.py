# src/remotejobs/io/sql.py
"""SQL-backed document store.

Works with any SQLAlchemy async driver:
- Local: SQLite file via aiosqlite (default, `sqlite+aiosqlite:///remote_jobs.db`)
- Hosted: PostgreSQL via asyncpg, same table

One row per document in `remote_jobs`: `doc_id` ("metadata", "chunk_0", ...),
the chunk marker as an indexed boolean for bulk cleanup, and the JSON body.
A batch commit is one transaction.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, Column, String, delete, insert, select
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from remotejobs.io.documents import CHUNK_MARKER, DELETE_CHUNKS, SET, WriteBatch

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///remote_jobs.db"


class CacheBase(DeclarativeBase):
    """Base class for cache tables."""
    pass


class CacheDocument(CacheBase):
    __tablename__ = "remote_jobs"

    doc_id = Column(String, primary_key=True)
    is_chunk = Column(Boolean, nullable=False, default=False, index=True)
    body = Column(JSON, nullable=False)
    written_at = Column(String, default=lambda: datetime.now(timezone.utc).isoformat())


class SqlDocumentStore:
    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_url(cls, url: str = DEFAULT_DATABASE_URL) -> "SqlDocumentStore":
        return cls(create_async_engine(url))

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(CacheBase.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                select(CacheDocument.body).where(CacheDocument.doc_id == doc_id)
            )
            return result.scalar_one_or_none()

    async def commit(self, batch: WriteBatch) -> None:
        table = CacheDocument.__table__
        now = datetime.now(timezone.utc).isoformat()
        async with self.engine.begin() as conn:
            for op, doc_id, body in batch.ops:
                if op == DELETE_CHUNKS:
                    await conn.execute(delete(table).where(table.c.is_chunk.is_(True)))
                elif op == SET:
                    await conn.execute(delete(table).where(table.c.doc_id == doc_id))
                    await conn.execute(insert(table).values(
                        doc_id=doc_id,
                        is_chunk=bool(body.get(CHUNK_MARKER)),
                        body=body,
                        written_at=now,
                    ))
                else:
                    raise ValueError(f"unknown batch op {op!r}")
