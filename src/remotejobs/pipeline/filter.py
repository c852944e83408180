# src/remotejobs/pipeline/filter.py
from typing import Iterable, List, Set

from remotejobs.models import Job
from remotejobs.pipeline.normalize import sort_key


def sort_by_date(jobs: Iterable[Job]) -> List[Job]:
    """
    Most recent first. The sort is stable, so jobs with equal dates keep
    their merge order; unparseable dates end up last.
    """
    return sorted(jobs, key=lambda j: sort_key(j.date), reverse=True)


def dedupe_by_id(jobs: Iterable[Job]) -> List[Job]:
    """
    Keep the first occurrence of each id, drop later ones.
    Run it after sort_by_date so the surviving copy is the most recent one
    (ties go to whichever source was merged first).
    """
    seen: Set[str] = set()
    out: List[Job] = []
    for j in jobs:
        if j.id in seen:
            continue
        seen.add(j.id)
        out.append(j)
    return out
