"""Shared fixtures: Job factory and static sources."""

import pytest

from remotejobs.models import Job, JobImage
from remotejobs.pipeline.normalize import to_utc_string
from remotejobs.sources.base import JobSource


def build_job(id="1", date="2024-01-01T00:00:00Z", source="test", **fields) -> Job:
    values = dict(
        id=id,
        company="Acme",
        position="Engineer",
        date=to_utc_string(date),
        image=JobImage(uri="https://example.com/logo.png"),
        description="Build things.",
        url=f"https://example.com/jobs/{id}",
        source=source,
    )
    values.update(fields)
    return Job(**values)


class StaticSource(JobSource):
    """Source returning a fixed list of jobs, or raising `error`."""

    default_logo = "https://example.com/default.png"

    def __init__(self, name, jobs=(), error=None):
        super().__init__(client=None)
        self.name = name
        self._jobs = list(jobs)
        self._error = error
        self.calls = 0

    async def _fetch(self):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return list(self._jobs)


class ExplodingSource(StaticSource):
    """Adapter bug: fetch() itself raises instead of returning an outcome."""

    async def fetch(self):
        raise RuntimeError("adapter bug")


@pytest.fixture
def make_job():
    return build_job
