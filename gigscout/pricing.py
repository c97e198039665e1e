"""
gigscout/pricing.py

Pricing proposal for a scored job: an hourly rate band, or a 2-3 phase
fixed-price breakdown, priced at a fraction of the estimated fair market
value and rounded to a fixed increment.

All knobs live in PricingConfig; DEFAULT_PRICING_CONFIG holds the shipped
strategy.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from gigscout.core.numbers import round_half_up, round_to_nearest
from gigscout.models import BudgetType
from gigscout.scoring.types import ScoredJob


class ComplexityTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class RateBand:
    min: int
    max: int
    default: int


@dataclass(frozen=True)
class PhaseTemplate:
    percentage: int
    name: str
    deliverables: Tuple[str, ...]


TWO_PHASES: Tuple[PhaseTemplate, ...] = (
    PhaseTemplate(50, "Discovery & Development Setup", (
        "Requirements gathering and analysis",
        "UX/UI design and mockups",
        "Technical architecture planning",
        "Development environment setup",
    )),
    PhaseTemplate(50, "Implementation & Deployment", (
        "Full feature implementation",
        "Testing and QA",
        "Bug fixes and refinement",
        "Production deployment and launch",
    )),
)

THREE_PHASES: Tuple[PhaseTemplate, ...] = (
    PhaseTemplate(30, "Discovery, Design & Architecture", (
        "Requirements gathering and analysis",
        "UX/UI design and prototypes",
        "Technical architecture document",
        "Project timeline and milestones",
    )),
    PhaseTemplate(50, "Core Development & Features", (
        "Database design and setup",
        "Backend API development",
        "Frontend implementation",
        "Third-party integrations",
        "Core feature development",
    )),
    PhaseTemplate(20, "Testing, Refinement & Launch", (
        "Comprehensive QA testing",
        "Bug fixes and optimization",
        "Performance tuning",
        "Production deployment",
        "Post-launch support (2 weeks)",
    )),
)


@dataclass(frozen=True)
class PricingConfig:
    # 0.9 = price at 90% of fair market value
    fair_market_value_multiplier: float = 0.9

    hourly_rates: Dict[ComplexityTier, RateBand] = field(
        default_factory=lambda: {
            ComplexityTier.LOW: RateBand(min=40, max=55, default=45),
            ComplexityTier.MEDIUM: RateBand(min=55, max=75, default=60),
            ComplexityTier.HIGH: RateBand(min=70, max=90, default=75),
        }
    )

    # complexity score thresholds: < low_to_medium = low, >= medium_to_high = high
    low_to_medium: int = 70
    medium_to_high: int = 85

    perfect_clarity_bonus: int = 10
    high_ehr_bonus: int = 5
    expert_level_bonus: int = 5
    team_language_bonus: int = 5

    three_phase_threshold: int = 10000
    two_phases: Tuple[PhaseTemplate, ...] = TWO_PHASES
    three_phases: Tuple[PhaseTemplate, ...] = THREE_PHASES

    min_hourly_rate: int = 45
    min_fixed_price: int = 500
    min_estimated_hours: int = 5

    round_to: int = 5
    show_reasoning: bool = True


DEFAULT_PRICING_CONFIG = PricingConfig()


@dataclass(frozen=True)
class HourlyPricing:
    recommended_rate: int
    estimated_hours: int
    total_estimate: int
    complexity: ComplexityTier
    reasoning: List[str]
    rate_range: Tuple[int, int]


@dataclass(frozen=True)
class ProjectPhase:
    number: int
    name: str
    price: int
    percentage: int
    deliverables: List[str]


@dataclass(frozen=True)
class FixedPricePricing:
    total_price: int
    phases: List[ProjectPhase]
    payment_schedule: str


@dataclass(frozen=True)
class PricingRecommendation:
    kind: str  # "hourly" | "fixed" | "error"
    hourly: Optional[HourlyPricing] = None
    fixed: Optional[FixedPricePricing] = None
    message: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.kind == "error"

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": self.kind}
        if self.hourly is not None:
            data = asdict(self.hourly)
            data["complexity"] = self.hourly.complexity.value
            d["data"] = data
        elif self.fixed is not None:
            d["data"] = asdict(self.fixed)
        if self.message is not None:
            d["message"] = self.message
        return d


def _error(message: str) -> PricingRecommendation:
    return PricingRecommendation(kind="error", message=message)


def apply_fair_market_multiplier(value: float, cfg: PricingConfig = DEFAULT_PRICING_CONFIG) -> int:
    return round_to_nearest(value * cfg.fair_market_value_multiplier, cfg.round_to)


def complexity_score(scored: ScoredJob, cfg: PricingConfig = DEFAULT_PRICING_CONFIG) -> int:
    b = scored.breakdown
    total = scored.score
    if b.job_clarity == 15:
        total += cfg.perfect_clarity_bonus
    if b.ehr_potential >= 13:
        total += cfg.high_ehr_bonus
    if scored.job.experience_level == "expert":
        total += cfg.expert_level_bonus
    if b.professional_signals.we_language > 0:
        total += cfg.team_language_bonus
    return total


def determine_complexity(scored: ScoredJob, cfg: PricingConfig = DEFAULT_PRICING_CONFIG) -> ComplexityTier:
    value = complexity_score(scored, cfg)
    if value >= cfg.medium_to_high:
        return ComplexityTier.HIGH
    if value >= cfg.low_to_medium:
        return ComplexityTier.MEDIUM
    return ComplexityTier.LOW


def _hourly_reasoning(scored: ScoredJob, complexity: ComplexityTier) -> List[str]:
    b = scored.breakdown
    reasons = [f"{complexity.value.capitalize()} complexity project"]

    if b.job_clarity == 15:
        reasons.append("Perfect job clarity (15/15) - well-defined requirements")
    elif b.job_clarity >= 12:
        reasons.append("High job clarity - clear requirements")

    level = scored.job.experience_level
    if level == "expert":
        reasons.append("Expert-level expertise required")
    elif level == "intermediate":
        reasons.append("Intermediate-level expertise required")

    if b.professional_signals.we_language > 0:
        reasons.append("Professional client (team/company language)")

    if scored.score >= 85:
        reasons.append(f"High quality job (Score: {scored.score}/100)")
    elif scored.score >= 70:
        reasons.append(f"Good quality job (Score: {scored.score}/100)")
    return reasons


def calculate_hourly_recommendation(scored: ScoredJob, cfg: PricingConfig = DEFAULT_PRICING_CONFIG) -> HourlyPricing:
    complexity = determine_complexity(scored, cfg)
    band = cfg.hourly_rates[complexity]
    rate = band.default

    fair_value = apply_fair_market_multiplier(scored.enrichment.estimated_price or 0, cfg)
    hours = round_half_up(fair_value / rate) if fair_value > 0 else 0
    if 0 < hours < cfg.min_estimated_hours:
        hours = cfg.min_estimated_hours

    return HourlyPricing(
        recommended_rate=rate,
        estimated_hours=hours,
        total_estimate=round_to_nearest(hours * rate, cfg.round_to),
        complexity=complexity,
        reasoning=_hourly_reasoning(scored, complexity),
        rate_range=(band.min, band.max),
    )


def calculate_fixed_price_phases(scored: ScoredJob, cfg: PricingConfig = DEFAULT_PRICING_CONFIG) -> FixedPricePricing:
    total = apply_fair_market_multiplier(scored.enrichment.estimated_price or 0, cfg)
    templates = cfg.three_phases if total >= cfg.three_phase_threshold else cfg.two_phases

    phases = [
        ProjectPhase(
            number=i,
            name=t.name,
            price=round_to_nearest(total * t.percentage / 100, cfg.round_to),
            percentage=t.percentage,
            deliverables=list(t.deliverables),
        )
        for i, t in enumerate(templates, start=1)
    ]
    return FixedPricePricing(
        total_price=total,
        phases=phases,
        payment_schedule=" / ".join(f"{p.percentage}%" for p in phases),
    )


def calculate_pricing_recommendation(
        scored: ScoredJob,
        cfg: PricingConfig = DEFAULT_PRICING_CONFIG,
) -> PricingRecommendation:
    """
    Hourly jobs get a rate band; fixed and negotiable jobs get a phase
    breakdown. Missing or too-small estimates come back as an error variant.
    """
    price = scored.enrichment.estimated_price
    if not price:
        return _error("Unable to calculate pricing - no fair market value available")

    budget_type = scored.job.budget_type
    if budget_type == BudgetType.FIXED and price < cfg.min_fixed_price:
        return _error(
            f"Project value (${price:,.0f}) is below minimum threshold (${cfg.min_fixed_price:,})"
        )

    if budget_type == BudgetType.HOURLY:
        hourly = calculate_hourly_recommendation(scored, cfg)
        if hourly.recommended_rate < cfg.min_hourly_rate:
            return _error(
                f"Recommended rate (${hourly.recommended_rate}/hr) is below minimum (${cfg.min_hourly_rate}/hr)"
            )
        return PricingRecommendation(kind="hourly", hourly=hourly)

    return PricingRecommendation(kind="fixed", fixed=calculate_fixed_price_phases(scored, cfg))


def format_pricing_as_text(rec: PricingRecommendation, cfg: PricingConfig = DEFAULT_PRICING_CONFIG) -> str:
    if rec.kind == "error":
        return rec.message or ""

    lines: List[str] = []
    if rec.hourly is not None:
        h = rec.hourly
        lines.append(f"Hourly Rate: ${h.recommended_rate}/hour")
        lines.append(f"Estimated Time: {h.estimated_hours} hours")
        lines.append(f"Total Estimate: ${h.total_estimate:,}")
        lines.append("")
        if cfg.show_reasoning:
            lines.append(f"Why ${h.recommended_rate}/hour?")
            lines.extend(f"• {r}" for r in h.reasoning)
        return "\n".join(lines) + "\n"

    if rec.fixed is not None:
        f = rec.fixed
        lines.append(f"Total Project: ${f.total_price:,}")
        lines.append(f"Payment Schedule: {f.payment_schedule}")
        lines.append("")
        for p in f.phases:
            lines.append(f"Phase {p.number} ({p.percentage}% - ${p.price:,}): {p.name}")
            lines.extend(f"• {d}" for d in p.deliverables)
            lines.append("")
        return "\n".join(lines) + "\n"

    return ""
