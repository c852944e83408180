# src/remotejobs/sources/remoteok.py
"""
RemoteOK JSON API.

The response is a JSON array whose first element is not a job but a legal
notice ({"legal": "..."}); everything after it is a listing.
"""

from __future__ import annotations

from typing import Any, List

from remotejobs.clients.http import get_json
from remotejobs.models import Job, JobImage
from remotejobs.pipeline.normalize import clean_html, to_utc_string
from remotejobs.sources.base import JobSource

REMOTEOK_API = "https://remoteok.com/api"
REMOTEOK_LOGO = "https://remoteok.com/assets/logo.png"


def _is_sentinel(record: Any) -> bool:
    if not isinstance(record, dict):
        return True
    return "legal" in record or not ({"id", "position"} & record.keys())


class RemoteOkSource(JobSource):
    name = "remoteok"
    default_logo = REMOTEOK_LOGO

    def __init__(self, client, *, url: str = REMOTEOK_API, **kwargs):
        super().__init__(client, **kwargs)
        self.url = url

    async def _fetch(self) -> List[Job]:
        payload = await get_json(
            self.client,
            self.url,
            label=self.name,
            max_attempts=self.max_attempts,
            sleep=self.sleep,
        )
        return self.normalize(payload)

    def normalize(self, payload: Any) -> List[Job]:
        if not isinstance(payload, list):
            raise ValueError(f"expected a JSON array, got {type(payload).__name__}")
        records = payload[1:] if payload and _is_sentinel(payload[0]) else payload

        out: List[Job] = []
        for index, x in enumerate(records):
            if not isinstance(x, dict):
                continue
            job = self.build(
                index,
                id=str(x.get("id") or ""),
                company=(x.get("company") or "").strip(),
                position=(x.get("position") or "").strip(),
                # "date" is ISO-8601; "epoch" is the same instant in unix seconds
                date=to_utc_string(x.get("date")) or to_utc_string(x.get("epoch")),
                image=JobImage(uri=x.get("logo") or x.get("company_logo") or self.default_logo),
                description=clean_html(x.get("description")),
                url=x.get("url") or x.get("apply_url") or "",
                tags=tuple(str(t).strip() for t in (x.get("tags") or ()) if t),
            )
            if job is not None:
                out.append(job)
        return out
