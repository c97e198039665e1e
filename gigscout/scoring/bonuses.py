"""
gigscout/scoring/bonuses.py

Turns specialty detections into Keywords Match bonuses, and decides the
perfect-job multiplier.

Every granted bonus carries its label, tier and the metadata that justified
it; grants are logged at DEBUG.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from gigscout.config import FeatureFlags
from gigscout.core.text_processing import matched_phrases
from gigscout.detection.signals import (
    Confidence,
    DetectionResult,
    detect_dashboard,
    detect_portal,
    detect_webflow,
)
from gigscout.scoring.types import BonusResult

logger = logging.getLogger(__name__)

# --- Custom application ---

CUSTOM_TIER_POINTS = {1: 12, 2: 8, 3: 5, 4: 3}
CUSTOM_TIER_LABELS = {
    1: "Custom app + open budget + skill match",
    2: "Custom app (high confidence)",
    3: "Custom app (medium confidence)",
    4: "Custom app (low signal)",
}
HIGH_VALUE_PRICE = 5000

SKILL_KEYWORDS = (
    "web app",
    "application",
    "portal",
    "dashboard",
    "platform",
    "saas",
    "system",
    "software",
    "database",
    " api",
    "backend",
    "frontend",
    "full-stack",
    "full stack",
)

# --- US-based ---

US_BASE_HIGH = 6
US_BASE_MEDIUM = 4
US_AMPLIFIER = 5

# --- Narrow specialties ---

DASHBOARD_BONUS = 7
WEBFLOW_BONUS = 8
PORTAL_BONUS = 5

# --- Perfect job ---

PERFECT_JOB_MULTIPLIER = 1.15


def calculate_custom_app_bonus(
        detection: DetectionResult,
        *,
        text: str,
        has_open_budget: bool,
        estimated_price: float,
) -> Optional[BonusResult]:
    """
    Tier 1: high confidence + open budget + skill match -> 12
    Tier 2: high confidence + (open budget or skill match) -> 8
    Tier 3: medium confidence + (open budget, skill match or high value) -> 5
    Tier 4: any other detection -> 3
    """
    if not detection.is_detected:
        return None

    skill_hits = matched_phrases(f" {text} ", SKILL_KEYWORDS)
    has_skill_match = bool(skill_hits)
    has_high_value = estimated_price >= HIGH_VALUE_PRICE
    high = detection.confidence == Confidence.HIGH

    if high and has_open_budget and has_skill_match:
        tier = 1
    elif high and (has_open_budget or has_skill_match):
        tier = 2
    elif detection.confidence == Confidence.MEDIUM and (has_open_budget or has_skill_match or has_high_value):
        tier = 3
    else:
        tier = 4

    return BonusResult(
        points=CUSTOM_TIER_POINTS[tier],
        label=CUSTOM_TIER_LABELS[tier],
        tier=tier,
        metadata={
            "confidence_level": detection.confidence.value,
            "has_open_budget": has_open_budget,
            "has_skill_match": has_skill_match,
            "skill_keywords": [s.strip() for s in skill_hits],
            "has_high_value": has_high_value,
            "patterns": list(detection.patterns),
        },
    )


def calculate_us_based_bonus(detection: DetectionResult) -> Optional[BonusResult]:
    """Base 6 (high) or 4 (medium), plus the US amplifier."""
    if not detection.is_detected:
        return None
    high = detection.confidence == Confidence.HIGH
    base = US_BASE_HIGH if high else US_BASE_MEDIUM
    return BonusResult(
        points=base + US_AMPLIFIER,
        label="US-based client" if high else "US-based client (likely)",
        tier=1 if high else 2,
        metadata={
            "base_bonus": base,
            "amplifier_bonus": US_AMPLIFIER,
            "time_zone_mentioned": bool(detection.metadata.get("time_zone_mentioned")),
            "time_zones": list(detection.metadata.get("time_zones", [])),
            "patterns": list(detection.patterns),
        },
    )


def _presence_bonus(detection: DetectionResult, points: int, label: str) -> Optional[BonusResult]:
    if not detection.is_detected:
        return None
    return BonusResult(points=points, label=label, tier=1, metadata={"patterns": list(detection.patterns)})


@dataclass(frozen=True)
class BonusContext:
    text: str
    custom: DetectionResult
    us_based: DetectionResult
    has_open_budget: bool
    estimated_price: float
    features: FeatureFlags = field(default_factory=FeatureFlags)


def calculate_all_bonuses(ctx: BonusContext) -> List[BonusResult]:
    """Every applicable bonus, in a fixed order. Disabled features grant nothing."""
    f = ctx.features
    candidates = [
        calculate_custom_app_bonus(
            ctx.custom,
            text=ctx.text,
            has_open_budget=ctx.has_open_budget,
            estimated_price=ctx.estimated_price,
        ) if f.custom_bonus else None,
        calculate_us_based_bonus(ctx.us_based) if f.us_bonus else None,
        _presence_bonus(detect_dashboard(ctx.text), DASHBOARD_BONUS, "Dashboard") if f.dashboard_bonus else None,
        _presence_bonus(detect_webflow(ctx.text), WEBFLOW_BONUS, "Webflow") if f.webflow_bonus else None,
        _presence_bonus(detect_portal(ctx.text), PORTAL_BONUS, "Portal") if f.portal_bonus else None,
    ]
    bonuses = [b for b in candidates if b is not None]
    for b in bonuses:
        logger.debug("bonus granted: +%d %s (tier %d) %s", b.points, b.label, b.tier, b.metadata)
    return bonuses


@dataclass(frozen=True)
class PerfectJobResult:
    multiplier: float
    is_perfect: bool
    criteria: Dict[str, bool]


def calculate_perfect_job_multiplier(
        *,
        is_custom: bool,
        is_us_based: bool,
        has_open_budget: bool,
        features: Optional[FeatureFlags] = None,
) -> PerfectJobResult:
    criteria = {
        "custom_application": is_custom,
        "us_based": is_us_based,
        "open_budget": has_open_budget,
    }
    enabled = (features or FeatureFlags()).perfect_multiplier
    is_perfect = enabled and all(criteria.values())
    return PerfectJobResult(
        multiplier=PERFECT_JOB_MULTIPLIER if is_perfect else 1.0,
        is_perfect=is_perfect,
        criteria=criteria,
    )
