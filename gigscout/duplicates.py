from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from gigscout.models import JobPosting

logger = logging.getLogger(__name__)

REPOST_SIMILARITY_THRESHOLD = 0.9

_WS_RE = re.compile(r"\s+")


def dedupe_by_id(jobs: Iterable[JobPosting]) -> List[JobPosting]:
    """First occurrence per id wins; jobs without an id are dropped."""
    seen = set()
    out: List[JobPosting] = []
    for j in jobs:
        if not j.id or j.id in seen:
            continue
        seen.add(j.id)
        out.append(j)
    return out


def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def description_similarity(a: str, b: str) -> float:
    """
    Dice coefficient over character bigrams, case-insensitive and ignoring
    whitespace. 1.0 for identical text, 0.0 when either side is too short.
    """
    a = _WS_RE.sub("", (a or "").lower())
    b = _WS_RE.sub("", (b or "").lower())
    if a == b and a:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    first = _bigrams(a)
    second = _bigrams(b)
    overlap = sum((first & second).values())
    return (2.0 * overlap) / (len(a) + len(b) - 2)


def find_repost_of(
        job: JobPosting,
        existing: Sequence[JobPosting],
        threshold: float = REPOST_SIMILARITY_THRESHOLD,
) -> Optional[JobPosting]:
    """First existing posting (other than the job itself) with a near-identical description."""
    if not job.description:
        return None
    for other in existing:
        if other.id == job.id or not other.description:
            continue
        if description_similarity(job.description, other.description) >= threshold:
            return other
    return None


def mark_duplicates_and_reposts(
        fetched: Sequence[JobPosting],
        existing: Sequence[JobPosting] = (),
        threshold: float = REPOST_SIMILARITY_THRESHOLD,
) -> List[JobPosting]:
    """
    Dedupe a fetch by id, then flag what is already known:
      - is_duplicate: the id is already tracked
      - is_repost:    the description matches a different tracked posting
    Returns new JobPosting copies; inputs are not modified.
    """
    unique = dedupe_by_id(fetched)
    known_ids = {e.id for e in existing}

    out: List[JobPosting] = []
    duplicates = 0
    reposts = 0
    for job in unique:
        is_duplicate = job.id in known_ids
        original = find_repost_of(job, existing, threshold)
        if is_duplicate:
            duplicates += 1
        if original is not None:
            reposts += 1
        out.append(
            replace(
                job,
                is_duplicate=job.is_duplicate or is_duplicate,
                is_repost=job.is_repost or original is not None,
                repost_of_id=original.id if original is not None else job.repost_of_id,
            )
        )

    logger.info(
        "Deduplicated %d -> %d jobs (%d already tracked, %d reposts)",
        len(fetched), len(out), duplicates, reposts,
    )
    return out
