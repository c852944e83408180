# src/remotejobs/sources/base.py
"""
Source adapter contract.

A source knows one provider: where to fetch, how to parse, how to map fields
onto Job. Subclasses implement `_fetch()` and may raise anything; callers only
ever use `fetch()`, which always returns a SourceOutcome so that one broken
provider cannot take the others down.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx

from remotejobs.clients.http import DEFAULT_MAX_ATTEMPTS, Sleep
from remotejobs.models import Job

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceOutcome:
    """Value-or-error result of one source fetch."""

    source: str
    jobs: Tuple[Job, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class JobSource(ABC):
    name: str
    default_logo: str

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.max_attempts = max_attempts
        self.sleep = sleep

    @abstractmethod
    async def _fetch(self) -> List[Job]:
        """Fetch and normalize; may raise."""

    async def fetch(self) -> SourceOutcome:
        try:
            jobs = await self._fetch()
        except Exception as exc:
            LOGGER.error("%s: fetch failed: %s", self.name, exc)
            return SourceOutcome(source=self.name, error=str(exc) or type(exc).__name__)
        LOGGER.info("%s: %d jobs", self.name, len(jobs))
        return SourceOutcome(source=self.name, jobs=tuple(jobs))

    def build(self, index: int, **fields) -> Optional[Job]:
        """
        Construct a Job, or None when the record cannot be repaired.

        Dropping here keeps one malformed record from costing the whole source.
        """
        try:
            return Job(source=self.name, **fields)
        except (TypeError, ValueError) as exc:
            LOGGER.debug("%s: dropping record %d: %s", self.name, index, exc)
            return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
