# src/remotejobs/pipeline/aggregate.py
"""
Fan out to every source, then merge -> sort -> dedupe.

Each source runs as its own coroutine and reports a SourceOutcome. A source
that fails contributes zero jobs and a failed SourceReport; it never cancels
or delays the result of its siblings beyond its own retries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from remotejobs.models import AggregationMetadata, AggregationResult, Job, SourceReport
from remotejobs.pipeline.filter import dedupe_by_id, sort_by_date
from remotejobs.sources.base import JobSource, SourceOutcome

LOGGER = logging.getLogger(__name__)


class Aggregator:
    def __init__(self, sources: Sequence[JobSource]):
        self.sources = list(sources)

    async def _run(self, source: JobSource) -> SourceOutcome:
        # fetch() already absorbs source errors; this catches adapter bugs
        try:
            return await source.fetch()
        except Exception as exc:
            LOGGER.exception("%s: adapter raised", source.name)
            return SourceOutcome(source=source.name, error=str(exc) or type(exc).__name__)

    async def aggregate(self) -> AggregationResult:
        """
        Run all sources concurrently and build one AggregationResult.

        Never raises because of a source; with every source down the result
        simply holds zero jobs.
        """
        started = time.perf_counter()
        outcomes: List[SourceOutcome] = await asyncio.gather(*(self._run(s) for s in self.sources))

        merged: List[Job] = []
        reports: Dict[str, SourceReport] = {}
        for outcome in outcomes:
            merged.extend(outcome.jobs)
            reports[outcome.source] = SourceReport(
                source_name=outcome.source,
                count=len(outcome.jobs),
                success=outcome.ok,
                error=outcome.error,
            )

        jobs = tuple(dedupe_by_id(sort_by_date(merged)))
        duration_ms = int((time.perf_counter() - started) * 1000)
        metadata = AggregationMetadata(
            last_updated=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            job_count=len(jobs),
            sources=reports,
            update_duration_ms=duration_ms,
        )

        failed = [name for name, r in reports.items() if not r.success]
        if not jobs:
            LOGGER.warning("aggregation produced 0 jobs (failed sources: %s)", ", ".join(failed) or "none")
        else:
            LOGGER.info(
                "aggregated %d jobs from %d sources in %dms (%d duplicates dropped, failed: %s)",
                len(jobs), len(reports), duration_ms, len(merged) - len(jobs), ", ".join(failed) or "none",
            )
        return AggregationResult(jobs=jobs, metadata=metadata)
