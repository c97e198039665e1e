"""
gigscout/recommendation.py

Recommendation filter: a scored job goes through the pathways in order and
the first one that decides wins.

  1. hard exclusions (non-development work, excluded platforms) -> not recommended
  2. star criteria                                               -> recommended
  3. exceptional-quality bypass (ignores payment verification)   -> recommended
  4. normal thresholds                                           -> recommended
  5. otherwise                                                   -> not recommended

The manual override on the job is never read or written here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from gigscout.core.text_processing import contains_word, scoring_text
from gigscout.models import Classification, JobPosting, Settings

if TYPE_CHECKING:
    from gigscout.scoring.types import Enrichment, ScoreBreakdown

logger = logging.getLogger(__name__)


class Pathway(str, Enum):
    NON_DEV_EXCLUDED = "non_dev_excluded"
    PLATFORM_EXCLUDED = "platform_excluded"
    STAR = "star"
    EXCEPTIONAL = "exceptional"
    NORMAL = "normal"
    REJECTED = "rejected"


# --- Thresholds ---

STAR_MIN_ESTIMATED_PRICE = 5000
STAR_MIN_CLIENT_RATING = 4.0

EXCEPTIONAL_JOB_CLARITY = 15
EXCEPTIONAL_MIN_EHR_SCORE = 13
EXCEPTIONAL_WE_LANGUAGE = 5
EXCEPTIONAL_MIN_SCORE = 60

# --- Hard exclusions ---

NON_DEV_PATTERNS: Tuple[str, ...] = (
    "lead generation team",
    "lead generation agency",
    "lead gen team",
    "lead gen agency",
    "linkedin outreach",
    "email outreach",
    "cold email",
    "cold outreach",
    "email campaign management",
    "run marketing campaigns",
    "marketing agency",
    "social media marketing",
    "social media manager",
    "sales development",
    "business development representative",
    "appointment setting",
    "cold calling",
    "outbound sales team",
    "sales team",
    "recruiting",
    "recruitment",
    "headhunter",
    "talent acquisition",
    "hr services",
    "outstaffing",
    "staff augmentation",
    "it outsourcing",
    "offshore development team",
    "content writing",
    "copywriting",
    "blog writing",
    "article writing",
    "technical writing only",
)

# group -> aliases. Single words match on word boundaries, phrases as substrings.
EXCLUDED_PLATFORMS: Dict[str, Tuple[str, ...]] = {
    "go high level": ("go high level", "gohighlevel", "go highlevel", "ghl"),
    "shopify": ("shopify", "shopify plus", "shopify store"),
    "bubble": ("bubble.io", "bubble io", "bubble app", "bubble"),
}

# group -> platforms that make a mention a migration away from it
MIGRATION_TARGETS: Dict[str, Tuple[str, ...]] = {
    "go high level": ("webflow",),
}


@dataclass(frozen=True)
class RecommendationDecision:
    classification: Classification
    pathway: Pathway
    reason: str
    criteria: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_recommended(self) -> bool:
        return self.classification == Classification.RECOMMENDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "classification": self.classification.value,
            "pathway": self.pathway.value,
            "reason": self.reason,
            "criteria": dict(self.criteria),
        }


def _alias_hit(text: str, alias: str) -> bool:
    if " " in alias:
        return alias in text
    return contains_word(text, alias)


def find_non_dev_pattern(text: str) -> Optional[str]:
    for p in NON_DEV_PATTERNS:
        if p in text:
            return p
    return None


def find_excluded_platform(text: str) -> Optional[Tuple[str, str]]:
    """
    (group, alias) of the first excluded platform mentioned, or None.
    A group is skipped entirely when one of its migration targets is also
    mentioned; the remaining groups are still checked.
    """
    for group, aliases in EXCLUDED_PLATFORMS.items():
        targets = MIGRATION_TARGETS.get(group, ())
        if targets and any(t in text for t in targets):
            continue
        for alias in aliases:
            if _alias_hit(text, alias):
                return group, alias
    return None


def check_star_criteria(
        *,
        breakdown: ScoreBreakdown,
        enrichment: Enrichment,
        client_rating: float,
) -> Dict[str, bool]:
    rating_ok = client_rating == 0 or client_rating >= STAR_MIN_CLIENT_RATING
    return {
        "open_budget": breakdown.professional_signals.open_budget > 0,
        "we_language": breakdown.professional_signals.we_language > 0,
        "high_value": enrichment.estimated_price >= STAR_MIN_ESTIMATED_PRICE,
        "client_rating": rating_ok,
    }


def _check_exceptional(
        *,
        job: JobPosting,
        score: int,
        breakdown: ScoreBreakdown,
        enrichment: Enrichment,
        settings: Settings,
) -> Dict[str, bool]:
    return {
        "perfect_clarity": breakdown.job_clarity == EXCEPTIONAL_JOB_CLARITY,
        "high_ehr_potential": breakdown.ehr_potential >= EXCEPTIONAL_MIN_EHR_SCORE,
        "max_we_language": breakdown.professional_signals.we_language == EXCEPTIONAL_WE_LANGUAGE,
        "score": score >= EXCEPTIONAL_MIN_SCORE,
        "ehr": enrichment.estimated_ehr >= settings.min_ehr,
        "not_duplicate": not job.is_duplicate and not job.is_repost,
    }


def _check_normal(
        *,
        job: JobPosting,
        score: int,
        enrichment: Enrichment,
        settings: Settings,
) -> Dict[str, bool]:
    return {
        "score": score >= settings.min_score,
        "ehr": enrichment.estimated_ehr >= settings.min_ehr,
        "payment_verified": job.client.payment_verified is True,
        "not_duplicate": not job.is_duplicate,
        "not_repost": not job.is_repost,
    }


def _failed(criteria: Dict[str, bool]) -> List[str]:
    return [k for k, ok in criteria.items() if not ok]


def evaluate_recommendation(
        job: JobPosting,
        *,
        score: int,
        breakdown: ScoreBreakdown,
        enrichment: Enrichment,
        settings: Settings,
) -> RecommendationDecision:
    text = scoring_text(job.title, job.description)

    non_dev = find_non_dev_pattern(text)
    if non_dev:
        decision = RecommendationDecision(
            Classification.NOT_RECOMMENDED,
            Pathway.NON_DEV_EXCLUDED,
            f"Non-development job: '{non_dev}'",
            {"pattern": non_dev},
        )
        logger.debug("job %s: %s", job.id, decision.reason)
        return decision

    platform = find_excluded_platform(text)
    if platform:
        group, alias = platform
        decision = RecommendationDecision(
            Classification.NOT_RECOMMENDED,
            Pathway.PLATFORM_EXCLUDED,
            f"Excluded platform: {group} ('{alias}')",
            {"platform": group, "alias": alias},
        )
        logger.debug("job %s: %s", job.id, decision.reason)
        return decision

    star = check_star_criteria(breakdown=breakdown, enrichment=enrichment, client_rating=job.client.rating)
    if all(star.values()):
        logger.debug("job %s: star criteria met", job.id)
        return RecommendationDecision(
            Classification.RECOMMENDED, Pathway.STAR, "Star criteria met", star
        )

    exceptional = _check_exceptional(
        job=job, score=score, breakdown=breakdown, enrichment=enrichment, settings=settings
    )
    if all(exceptional.values()):
        logger.debug("job %s: exceptional quality, payment verification bypassed", job.id)
        return RecommendationDecision(
            Classification.RECOMMENDED,
            Pathway.EXCEPTIONAL,
            "Exceptional quality (payment verification bypassed)",
            exceptional,
        )

    normal = _check_normal(job=job, score=score, enrichment=enrichment, settings=settings)
    if all(normal.values()):
        logger.debug("job %s: normal filters passed", job.id)
        return RecommendationDecision(
            Classification.RECOMMENDED, Pathway.NORMAL, "Passed normal filters", normal
        )

    failed = _failed(normal)
    logger.debug("job %s: not recommended (failed: %s)", job.id, ", ".join(failed))
    return RecommendationDecision(
        Classification.NOT_RECOMMENDED,
        Pathway.REJECTED,
        f"Failed normal filters: {', '.join(failed)}",
        {"star": star, "exceptional": exceptional, "normal": normal},
    )
