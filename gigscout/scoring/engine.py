from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gigscout.config import FeatureFlags
from gigscout.core.numbers import clamp, round_half_up
from gigscout.core.text_processing import scoring_text
from gigscout.detection.signals import detect_custom_application, detect_us_based
from gigscout.detection.tags import detect_job_tags
from gigscout.llm.scorer import ExternalScorer, ExternalScoreResult
from gigscout.models import JobPosting, Settings
from gigscout.recommendation import evaluate_recommendation
from gigscout.scoring.bonuses import BonusContext, calculate_all_bonuses, calculate_perfect_job_multiplier
from gigscout.scoring.dimensions import (
    BUSINESS_IMPACT_MAX,
    EHR_POTENTIAL_MAX,
    JOB_CLARITY_MAX,
    has_open_budget,
    score_business_impact,
    score_client_quality,
    score_ehr_potential,
    score_job_clarity,
    score_keywords_match,
    score_professional_signals,
    score_red_flags,
)
from gigscout.scoring.estimates import estimate_price_and_hours
from gigscout.scoring.types import EnrichmentBuilder, JobClarityDetail, ScoreBreakdown, ScoredJob

logger = logging.getLogger(__name__)

SCORE_MIN = 0
SCORE_MAX = 100


def run_external_scorer(scorer: Optional[ExternalScorer], job: JobPosting) -> Optional[ExternalScoreResult]:
    """
    The adapter boundary: any failure is logged and turned into None, so the
    rule-based scorers stay authoritative.
    """
    if scorer is None:
        return None
    try:
        return scorer.score(
            title=job.title,
            description=job.description,
            budget=job.budget,
            budget_type=job.budget_type.value,
            hourly_min=job.hourly_budget_min,
            hourly_max=job.hourly_budget_max,
        )
    except Exception as exc:
        # Type name only: exception text may carry request details
        logger.warning(
            "External scoring failed for job %s (%s), using rule-based scores", job.id, type(exc).__name__
        )
        return None


def _rule_based_estimates(job: JobPosting, text: str) -> Dict[str, Any]:
    est = estimate_price_and_hours(text, job.budget)
    return {
        "estimated_price": est.price,
        "estimated_hours": est.hours,
        "estimated_ehr": est.ehr,
        "ehr_source": "rule_based",
        "complexity_score": est.complexity,
    }


def _external_deltas(result: ExternalScoreResult) -> Dict[str, Any]:
    ehr = result.ehr_potential
    clarity = result.job_clarity
    impact = result.business_impact
    return {
        "estimated_price": ehr.estimated_price,
        "estimated_hours": ehr.estimated_hours,
        "estimated_ehr": ehr.estimated_ehr,
        "ehr_source": "external",
        "complexity_score": None,
        "job_clarity": JobClarityDetail(
            technical_matches=clarity.technical_matches,
            clarity_matches=clarity.clarity_matches,
            total=clarity.total_matches,
        ),
        "detected_outcomes": list(impact.detected_outcomes),
        "is_technical_only": impact.is_technical_only,
        "skills_match": result.skills_match.to_dict(),
        "external_reasoning": {
            "ehr_potential": ehr.reasoning,
            "job_clarity": clarity.reasoning,
            "business_impact": impact.reasoning,
        },
    }


def score_job(
        job: JobPosting,
        settings: Settings,
        *,
        scorer: Optional[ExternalScorer] = None,
        external: Optional[ExternalScoreResult] = None,
        now: Optional[datetime] = None,
        features: Optional[FeatureFlags] = None,
) -> ScoredJob:
    """
    Score and classify one job. Pure for a fixed job, settings, `now` and
    external result (or no scorer).

    `external` lets batch orchestration run the scorer call elsewhere; when
    given, `scorer` is not called.
    """
    features = features or FeatureFlags()
    text = scoring_text(job.title, job.description)
    acc = EnrichmentBuilder()

    if external is None:
        external = run_external_scorer(scorer, job)

    # --- Estimates (external wins, rule-based otherwise) ---
    if external is not None:
        acc.merge(_external_deltas(external))
    else:
        acc.merge(_rule_based_estimates(job, text))

    acc.merge({"tags": detect_job_tags(job.title, job.description)})

    # --- Rule-only dimensions ---
    client_quality, delta = score_client_quality(job, settings, now=now)
    acc.merge(delta)

    professional, delta = score_professional_signals(job, settings)
    acc.merge(delta)

    red_flags, delta = score_red_flags(job, settings)
    acc.merge(delta)

    # --- Specialty detection -> bonuses -> Keywords Match ---
    custom = detect_custom_application(job.text)
    us_based = detect_us_based(job.text)
    open_budget = has_open_budget(job)
    acc.merge({"custom_analysis": custom, "us_based_analysis": us_based})

    bonuses = calculate_all_bonuses(
        BonusContext(
            text=text,
            custom=custom,
            us_based=us_based,
            has_open_budget=open_budget,
            estimated_price=acc.get("estimated_price"),
            features=features,
        )
    )
    keywords_match, delta = score_keywords_match(job, settings, bonuses=bonuses)
    acc.merge(delta)

    # --- Externally scorable dimensions ---
    if external is not None:
        business_impact = int(clamp(external.business_impact.score, 0, BUSINESS_IMPACT_MAX))
        job_clarity = int(clamp(external.job_clarity.score, 0, JOB_CLARITY_MAX))
        ehr_potential = int(clamp(external.ehr_potential.score, 0, EHR_POTENTIAL_MAX))
    else:
        business_impact, delta = score_business_impact(job, settings)
        acc.merge(delta)
        job_clarity, delta = score_job_clarity(job, settings)
        acc.merge(delta)
        ehr_potential, delta = score_ehr_potential(job, settings, estimated_ehr=acc.get("estimated_ehr"))
        acc.merge(delta)

    breakdown = ScoreBreakdown(
        client_quality=client_quality,
        keywords_match=keywords_match,
        professional_signals=professional,
        business_impact=business_impact,
        job_clarity=job_clarity,
        ehr_potential=ehr_potential,
        red_flags=red_flags,
    )

    # --- Aggregate + perfect-job multiplier ---
    raw_total = breakdown.total()
    perfect = calculate_perfect_job_multiplier(
        is_custom=custom.is_detected,
        is_us_based=us_based.is_detected,
        has_open_budget=open_budget,
        features=features,
    )
    internal_score = round_half_up(raw_total * perfect.multiplier)
    score = int(clamp(internal_score, SCORE_MIN, SCORE_MAX))
    acc.merge(
        {
            "internal_score": internal_score,
            "is_perfect_job": perfect.is_perfect,
            "perfect_job_criteria": perfect.criteria,
        }
    )

    enrichment = acc.build()
    decision = evaluate_recommendation(
        job, score=score, breakdown=breakdown, enrichment=enrichment, settings=settings
    )

    return ScoredJob(
        job=job,
        score=score,
        internal_score=internal_score,
        breakdown=breakdown,
        enrichment=enrichment,
        decision=decision,
        classification=decision.classification,
    )


def sort_key(scored: ScoredJob) -> Tuple[int, int]:
    return scored.internal_score, scored.score


def rank_jobs(scored: Sequence[ScoredJob], top_n: Optional[int] = None) -> List[ScoredJob]:
    """Highest internal score first (display score breaks ties); stable."""
    ranked = sorted(scored, key=sort_key, reverse=True)
    return ranked if top_n is None else ranked[:top_n]


def score_and_rank(
        jobs: Sequence[JobPosting],
        settings: Settings,
        *,
        now: Optional[datetime] = None,
        top_n: Optional[int] = None,
) -> List[ScoredJob]:
    """Rule-based only; for batches with an external scorer use gigscout.triage."""
    return rank_jobs([score_job(j, settings, now=now) for j in jobs], top_n=top_n)
