from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from gigscout.models import JobPosting, ManualOverride, TrackingRecord, TriageRun, utc_now
from gigscout.scoring.types import ScoredJob

logger = logging.getLogger(__name__)


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _lockdown_file_permissions(path: Path) -> None:
    """
    Best-effort privacy: on Unix, set 600. Windows ignores the mode bits.
    """
    try:
        os.chmod(path, 0o600)
    except OSError as exc:
        logger.debug("Could not restrict permissions on %s: %s", path, exc)


class JobRepository(Protocol):
    def load_records(self) -> Dict[str, TrackingRecord]:
        ...

    def known_postings(self) -> List[JobPosting]:
        ...

    def upsert_scored(self, scored: Sequence[ScoredJob]) -> Tuple[int, int]:
        """
        Returns: (created_count, updated_count)
        """
        ...

    def mark_seen(self, job_ids: Sequence[str], at: Optional[datetime] = None) -> int:
        ...

    def record_run(self, run: TriageRun, *, meta: Optional[dict] = None) -> None:
        ...


class JsonJobRepository:
    """
    Local persistence using JSON files.

    Layout:
      <base_dir>/
        jobs.json  -> { "<job_id>": {TrackingRecord...}, ... }
        runs.jsonl -> JSON lines: {"ran_at": "...", "meta": {...}}
    """

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir
        self.jobs_path = base_dir / "jobs.json"
        self.runs_path = base_dir / "runs.jsonl"
        _ensure_dir(self.base_dir)

    def load_records(self) -> Dict[str, TrackingRecord]:
        if not self.jobs_path.exists():
            return {}

        raw_text = self.jobs_path.read_text(encoding="utf-8").strip()
        if not raw_text:
            return {}

        data = json.loads(raw_text)
        return {job_id: TrackingRecord.from_dict(entry) for job_id, entry in data.items()}

    def _write_records(self, records: Dict[str, TrackingRecord]) -> None:
        payload = {job_id: rec.to_dict() for job_id, rec in records.items()}
        self.jobs_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        _lockdown_file_permissions(self.jobs_path)

    def known_postings(self) -> List[JobPosting]:
        return [rec.posting() for rec in self.load_records().values()]

    def upsert_scored(self, scored: Sequence[ScoredJob]) -> Tuple[int, int]:
        """
        Insert new postings, refresh scores of known ones. Manual overrides and
        applied/won markers already on file are kept.
        """
        records = self.load_records()
        now = utc_now()
        created = 0
        updated = 0

        for s in scored:
            job_id = s.job.id
            previous = records.get(job_id)
            job_dict = s.job.to_dict()
            override = s.job.manual_override

            if previous is None:
                created += 1
                records[job_id] = TrackingRecord(
                    job_id=job_id,
                    job=job_dict,
                    score=s.score,
                    internal_score=s.internal_score,
                    classification=s.classification,
                    pathway=s.decision.pathway.value,
                    first_seen_at=now,
                    last_scored_at=now,
                    last_seen_at=now,
                    manual_override=override,
                )
                continue

            updated += 1
            kept_override = previous.manual_override or override
            job_dict["manual_override"] = kept_override.to_dict() if kept_override else None
            records[job_id] = replace(
                previous,
                job=job_dict,
                score=s.score,
                internal_score=s.internal_score,
                classification=s.classification,
                pathway=s.decision.pathway.value,
                last_scored_at=now,
                last_seen_at=now,
                manual_override=kept_override,
            )

        self._write_records(records)
        return created, updated

    def mark_seen(self, job_ids: Sequence[str], at: Optional[datetime] = None) -> int:
        """
        Bump last_seen_at on tracked postings seen again in a fetch. Scores,
        classification and the job snapshot are left as stored. Unknown ids
        are skipped; returns how many records were touched.
        """
        records = self.load_records()
        seen_at = at or utc_now()
        touched = 0
        for job_id in dict.fromkeys(job_ids):
            rec = records.get(job_id)
            if rec is None:
                continue
            records[job_id] = replace(rec, last_seen_at=seen_at)
            touched += 1
        if touched:
            self._write_records(records)
        return touched

    def _update(self, job_id: str, **changes) -> TrackingRecord:
        records = self.load_records()
        if job_id not in records:
            raise KeyError(f"Unknown job id: {job_id}")
        rec = replace(records[job_id], **changes)
        records[job_id] = rec
        self._write_records(records)
        return rec

    def set_manual_override(self, job_id: str, force_recommended: Optional[bool]) -> TrackingRecord:
        """force_recommended=None clears the override."""
        override = None if force_recommended is None else ManualOverride(force_recommended=force_recommended)
        rec = self.load_records().get(job_id)
        job = dict(rec.job) if rec else {}
        job["manual_override"] = override.to_dict() if override else None
        return self._update(job_id, manual_override=override, job=job)

    def mark_applied(self, job_id: str, at: Optional[datetime] = None) -> TrackingRecord:
        return self._update(job_id, applied_at=at or utc_now())

    def mark_won(self, job_id: str, at: Optional[datetime] = None) -> TrackingRecord:
        return self._update(job_id, won_at=at or utc_now())

    def record_run(self, run: TriageRun, *, meta: Optional[dict] = None) -> None:
        record = {
            "ran_at": run.ran_at.isoformat(),
            "meta": meta or {},
        }
        line = json.dumps(record, sort_keys=True)
        with self.runs_path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
        _lockdown_file_permissions(self.runs_path)


def default_repo_dir() -> Path:
    """
    Default local persistence dir.
    """
    return Path(".gigscout")
