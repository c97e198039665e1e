from __future__ import annotations

import argparse
import json
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from gigscout import config
from gigscout.duplicates import mark_duplicates_and_reposts
from gigscout.io.settings_loader import SettingsError, load_jobs, load_settings
from gigscout.llm.scorer import ExternalScorer, ExternalScoreResult, build_default_scorer
from gigscout.models import Classification, JobPosting, Settings, TriageRun, default_settings
from gigscout.pricing import PricingRecommendation, calculate_pricing_recommendation, format_pricing_as_text
from gigscout.scoring.engine import rank_jobs, run_external_scorer, score_job
from gigscout.scoring.types import ScoredJob
from gigscout.tracking import JobRepository, JsonJobRepository, default_repo_dir

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"

# Patched in tests
_sleep = time.sleep


@dataclass(frozen=True)
class TriageResult:
    fetched_jobs: int
    considered_jobs: int
    duplicates: int
    reposts: int
    external_scored: int
    ranked: List[ScoredJob]
    tracking_created: int
    tracking_updated: int
    duration_ms: int
    dry_run: bool
    pricing: Dict[str, PricingRecommendation] = field(default_factory=dict)

    @property
    def recommended(self) -> List[ScoredJob]:
        return [s for s in self.ranked if s.final_classification == Classification.RECOMMENDED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fetched_jobs": self.fetched_jobs,
            "considered_jobs": self.considered_jobs,
            "duplicates": self.duplicates,
            "reposts": self.reposts,
            "external_scored": self.external_scored,
            "recommended": len(self.recommended),
            "ranked": [
                {
                    **s.to_dict(),
                    "pricing": self.pricing[s.job.id].to_dict() if s.job.id in self.pricing else None,
                }
                for s in self.ranked
            ],
            "tracking": {
                "created": self.tracking_created,
                "updated": self.tracking_updated,
            },
            "duration_ms": self.duration_ms,
            "dry_run": self.dry_run,
        }


def _batches(items: Sequence[JobPosting], size: int) -> List[Sequence[JobPosting]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def score_externally(
        jobs: Sequence[JobPosting],
        scorer: ExternalScorer,
        *,
        max_concurrency: int,
        batch_delay_seconds: float,
) -> Dict[str, ExternalScoreResult]:
    """
    Run the external scorer over `jobs` in batches of `max_concurrency`
    parallel calls, pausing between batches. Failed calls are left out of
    the result (the rule-based scorers cover them).
    """
    results: Dict[str, ExternalScoreResult] = {}
    batches = _batches(list(jobs), max(1, max_concurrency))

    with ThreadPoolExecutor(max_workers=max(1, max_concurrency)) as pool:
        for idx, batch in enumerate(batches):
            if idx > 0 and batch_delay_seconds > 0:
                _sleep(batch_delay_seconds)
            logger.debug("Scoring batch %d/%d (%d jobs)", idx + 1, len(batches), len(batch))
            for job, res in zip(batch, pool.map(lambda j: run_external_scorer(scorer, j), batch)):
                if res is not None:
                    results[job.id] = res
    return results


def run_triage(
        *,
        jobs: Sequence[JobPosting],
        settings: Settings,
        scorer: Optional[ExternalScorer] = None,
        repo: Optional[JobRepository] = None,
        dry_run: bool = False,
        max_concurrency: Optional[int] = None,
        batch_delay_seconds: Optional[float] = None,
        now: Optional[datetime] = None,
        top_k: Optional[int] = None,
        with_pricing: bool = False,
        rescore_tracked: bool = False,
) -> TriageResult:
    """
    Dedupe, flag reposts against tracked postings, score, rank and persist.

    Postings already tracked are not scored again: their stored record keeps
    its score and classification and only last_seen_at moves. With
    rescore_tracked=True they are scored and upserted like new postings.
    """
    start = time.time()
    batch_cfg = config.load_batch_config()
    features = config.load_feature_flags()
    max_concurrency = max_concurrency or batch_cfg.max_concurrency
    if batch_delay_seconds is None:
        batch_delay_seconds = batch_cfg.batch_delay_seconds

    if repo is None and not dry_run:
        repo = JsonJobRepository(default_repo_dir())
    existing = repo.known_postings() if repo is not None else []

    fetched = len(jobs)
    considered = mark_duplicates_and_reposts(jobs, existing)
    tracked_ids = [j.id for j in considered if j.is_duplicate]

    if rescore_tracked:
        to_process = [replace(j, is_duplicate=False) if j.is_duplicate else j for j in considered]
    else:
        to_process = [j for j in considered if not j.is_duplicate]

    external: Dict[str, ExternalScoreResult] = {}
    if scorer is not None and to_process:
        external = score_externally(
            to_process,
            scorer,
            max_concurrency=max_concurrency,
            batch_delay_seconds=batch_delay_seconds,
        )

    scored = [
        score_job(j, settings, external=external.get(j.id), now=now, features=features)
        for j in to_process
    ]
    ranked = rank_jobs(scored, top_n=top_k)

    pricing: Dict[str, PricingRecommendation] = {}
    if with_pricing:
        for s in ranked:
            if s.final_classification == Classification.RECOMMENDED:
                pricing[s.job.id] = calculate_pricing_recommendation(s)

    created = 0
    updated = 0
    if not dry_run and repo is not None:
        created, updated = repo.upsert_scored(scored)
        if not rescore_tracked:
            updated += repo.mark_seen(tracked_ids, at=now)
        repo.record_run(
            TriageRun(),
            meta={
                "fetched_jobs": fetched,
                "considered_jobs": len(considered),
                "already_tracked": len(tracked_ids),
                "external_scored": len(external),
                "recommended": sum(1 for s in scored if s.final_classification == Classification.RECOMMENDED),
                "created": created,
                "updated": updated,
            },
        )

    duration_ms = int((time.time() - start) * 1000)
    logger.info(
        "Triage done: %d fetched, %d already tracked, %d scored (%d external), %d created, %d updated in %dms",
        fetched, len(tracked_ids), len(scored), len(external), created, updated, duration_ms,
    )

    return TriageResult(
        fetched_jobs=fetched,
        considered_jobs=len(considered),
        duplicates=len(tracked_ids),
        reposts=sum(1 for j in considered if j.is_repost),
        external_scored=len(external),
        ranked=ranked,
        tracking_created=created,
        tracking_updated=updated,
        duration_ms=duration_ms,
        dry_run=dry_run,
        pricing=pricing,
    )


def print_human_summary(result: TriageResult) -> None:
    print("\n=== gigscout triage ===")
    print(f"Fetched jobs: {result.fetched_jobs} | After dedupe: {result.considered_jobs}")
    print(f"Already tracked: {result.duplicates} | Reposts: {result.reposts}")
    print(f"Externally scored: {result.external_scored}")
    if result.dry_run:
        print("Mode: DRY RUN (nothing written)")
    else:
        print(f"Tracking: +{result.tracking_created} new, {result.tracking_updated} updated")
    print(f"Duration: {result.duration_ms}ms")

    print("\nRanked jobs:")
    for idx, s in enumerate(result.ranked, start=1):
        j = s.job
        mark = "*" if s.final_classification == Classification.RECOMMENDED else " "
        print(f"\n{idx}){mark} {j.title}  [{j.id}]")
        print(f"   score: {s.score} (internal {s.internal_score}) | EHR: ${s.enrichment.estimated_ehr:.0f}/h")
        print(f"   {s.decision.reason}")
        if s.enrichment.tags:
            print(f"   tags: {', '.join(s.enrichment.tags)}")
        if s.enrichment.bonuses:
            print(f"   bonuses: {', '.join(b.label for b in s.enrichment.bonuses)}")

        rec = result.pricing.get(j.id)
        if rec is not None:
            print("   pricing:")
            for line in format_pricing_as_text(rec).rstrip().splitlines():
                print(f"     {line}")


def configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def main() -> None:
    parser = argparse.ArgumentParser(description="gigscout: score and triage Upwork job postings")
    parser.add_argument("--jobs", type=str, required=True, help="Path to a JSON list of raw job records")
    parser.add_argument("--settings", type=str, default="", help="Path to settings.json (defaults built in)")
    parser.add_argument("--top-k", type=int, default=None, help="Only show the top K ranked jobs")
    parser.add_argument("--json", action="store_true", help="Print JSON only (machine-readable)")
    parser.add_argument("--dry-run", action="store_true", help="Run without writing jobs/runs")
    parser.add_argument("--no-llm", action="store_true", help="Rule-based scoring only, even when an LLM key is set")
    parser.add_argument("--pricing", action="store_true", help="Add a pricing proposal to recommended jobs")
    parser.add_argument("--rescore", action="store_true", help="Score already tracked postings again and overwrite their records")
    args = parser.parse_args()

    configure_logging()

    try:
        jobs = load_jobs(Path(args.jobs))
        if args.settings:
            settings = load_settings(Path(args.settings))
        else:
            settings = default_settings()
    except SettingsError as exc:
        print(f"\n[gigscout] {exc}\n")
        raise SystemExit(2)

    scorer = None
    if not args.no_llm:
        skills = settings.user_skills
        scorer = build_default_scorer(
            core_skills=skills.core_skills if skills else (),
            flagged_platforms=skills.flagged_platforms if skills else (),
        )
        if scorer is None:
            logger.info("No LLM key configured, using rule-based scoring")

    result = run_triage(
        jobs=jobs,
        settings=settings,
        scorer=scorer,
        dry_run=args.dry_run,
        top_k=args.top_k,
        with_pricing=args.pricing,
        rescore_tracked=args.rescore,
    )

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_human_summary(result)


if __name__ == "__main__":
    main()
