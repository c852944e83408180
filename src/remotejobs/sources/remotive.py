# src/remotejobs/sources/remotive.py
"""
Remotive JSON API.

Provider quirk: the jobs are not the top-level value. The endpoint answers
with a wrapper array and the job array is its element at index 2. The plain
{"jobs": [...]} object the public docs describe is accepted too.

Remotive ids are small integers that could collide with other numeric ids,
so they are prefixed with "remotive-".
"""

from __future__ import annotations

from typing import Any, List

from remotejobs.clients.http import get_json
from remotejobs.models import Job, JobImage
from remotejobs.pipeline.normalize import clean_html, to_utc_string
from remotejobs.sources.base import JobSource

REMOTIVE_API = "https://remotive.com/api/remote-jobs"
REMOTIVE_LOGO = "https://remotive.com/remotive-logo.png"
PAYLOAD_INDEX = 2


def jobs_array(payload: Any) -> list:
    if isinstance(payload, dict) and isinstance(payload.get("jobs"), list):
        return payload["jobs"]
    if isinstance(payload, list) and len(payload) > PAYLOAD_INDEX:
        wrapped = payload[PAYLOAD_INDEX]
        if isinstance(wrapped, list):
            return wrapped
        if isinstance(wrapped, dict) and isinstance(wrapped.get("jobs"), list):
            return wrapped["jobs"]
    raise ValueError(f"no job array at index {PAYLOAD_INDEX} of the response")


class RemotiveSource(JobSource):
    name = "remotive"
    default_logo = REMOTIVE_LOGO

    def __init__(self, client, *, url: str = REMOTIVE_API, **kwargs):
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
        out: List[Job] = []
        for index, x in enumerate(jobs_array(payload)):
            if not isinstance(x, dict) or x.get("id") in (None, ""):
                continue
            tags = tuple(str(t).strip() for t in (x.get("tags") or ()) if t)
            if not tags and x.get("category"):
                tags = (str(x["category"]).strip(),)
            job = self.build(
                index,
                id=f"remotive-{x['id']}",
                company=(x.get("company_name") or "").strip(),
                position=(x.get("title") or "").strip(),
                date=to_utc_string(x.get("publication_date")),
                image=JobImage(uri=x.get("company_logo") or x.get("company_logo_url") or self.default_logo),
                description=clean_html(x.get("description")),
                url=x.get("url") or "",
                tags=tags,
                location=(x.get("candidate_required_location") or "").strip() or None,
            )
            if job is not None:
                out.append(job)
        return out
