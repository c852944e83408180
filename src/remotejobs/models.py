# src/remotejobs/models.py
"""
Typed records for job listings and the metadata of an aggregation run.

Everything the adapters emit is a frozen dataclass with a fixed shape, so a
record is either complete or never built. `to_dict()` / `from_dict()` give the
JSON shape used by the read endpoint and by the cache documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from remotejobs.pipeline.normalize import parse_timestamp

DEFAULT_TAG = "remote"


@dataclass(frozen=True)
class JobImage:
    uri: str

    def to_dict(self) -> Dict[str, str]:
        return {"uri": self.uri}


@dataclass(frozen=True)
class Job:
    """
    One normalized job listing.

    Notes:
    - `date` is RFC 1123 UTC text ("Tue, 15 Nov 1994 08:12:31 GMT").
    - `tags` is never empty; sources without categories get DEFAULT_TAG.
    - `location` is only set by sources that publish structured location data.
    """

    id: str
    company: str
    position: str
    date: str
    image: JobImage
    description: str
    url: str
    source: str
    tags: Tuple[str, ...] = (DEFAULT_TAG,)
    location: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("job id is required")
        if not (self.company or self.position):
            raise ValueError(f"job {self.id!r} has neither company nor position")
        if parse_timestamp(self.date) is None:
            raise ValueError(f"job {self.id!r} has unparseable date {self.date!r}")
        tags = tuple(t for t in self.tags if t) or (DEFAULT_TAG,)
        object.__setattr__(self, "tags", tags)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "company": self.company,
            "position": self.position,
            "date": self.date,
            "image": self.image.to_dict(),
            "description": self.description,
            "url": self.url,
            "tags": list(self.tags),
            "source": self.source,
        }
        if self.location is not None:
            out["location"] = self.location
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        image = data.get("image") or {}
        return cls(
            id=str(data["id"]),
            company=data.get("company") or "",
            position=data.get("position") or "",
            date=data["date"],
            image=JobImage(uri=image.get("uri", "")),
            description=data.get("description") or "",
            url=data.get("url") or "",
            source=data.get("source") or "",
            tags=tuple(data.get("tags") or ()),
            location=data.get("location"),
        )


@dataclass(frozen=True)
class SourceReport:
    """Outcome of one source in one aggregation run."""

    source_name: str
    count: int
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceName": self.source_name,
            "count": self.count,
            "success": self.success,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceReport":
        return cls(
            source_name=data["sourceName"],
            count=int(data.get("count", 0)),
            success=bool(data.get("success")),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class AggregationMetadata:
    last_updated: str  # ISO-8601, UTC
    job_count: int
    sources: Dict[str, SourceReport] = field(default_factory=dict)
    update_duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "jobCount": self.job_count,
            "sources": {name: r.to_dict() for name, r in self.sources.items()},
            "updateDurationMs": self.update_duration_ms,
        }


@dataclass(frozen=True)
class AggregationResult:
    jobs: Tuple[Job, ...]
    metadata: AggregationMetadata
