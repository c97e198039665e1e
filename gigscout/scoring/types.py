from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict, replace
from typing import Any, Dict, List, Optional

from gigscout.detection.signals import DetectionResult
from gigscout.models import Classification, JobPosting


@dataclass(frozen=True)
class ClientQuality:
    payment_verified: int
    spend_history: int
    recency_and_competition: int

    @property
    def subtotal(self) -> int:
        return self.payment_verified + self.spend_history + self.recency_and_competition

    def to_dict(self) -> Dict[str, int]:
        return {**asdict(self), "subtotal": self.subtotal}


@dataclass(frozen=True)
class ProfessionalSignals:
    open_budget: int
    we_language: int

    @property
    def subtotal(self) -> int:
        return self.open_budget + self.we_language

    def to_dict(self) -> Dict[str, int]:
        return {**asdict(self), "subtotal": self.subtotal}


@dataclass(frozen=True)
class ScoreBreakdown:
    client_quality: ClientQuality
    keywords_match: int
    professional_signals: ProfessionalSignals
    business_impact: int
    job_clarity: int
    ehr_potential: int
    red_flags: int  # signed penalty, <= 0

    def total(self) -> int:
        """Pre-multiplier total: every subtotal, red flags included."""
        return (
                self.client_quality.subtotal
                + self.keywords_match
                + self.professional_signals.subtotal
                + self.business_impact
                + self.job_clarity
                + self.ehr_potential
                + self.red_flags
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "client_quality": self.client_quality.to_dict(),
            "keywords_match": self.keywords_match,
            "professional_signals": self.professional_signals.to_dict(),
            "business_impact": self.business_impact,
            "job_clarity": self.job_clarity,
            "ehr_potential": self.ehr_potential,
            "red_flags": self.red_flags,
        }


@dataclass(frozen=True)
class BonusResult:
    points: int
    label: str
    tier: int
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JobClarityDetail:
    technical_matches: int
    clarity_matches: int
    total: int


@dataclass(frozen=True)
class Enrichment:
    """
    Diagnostic fields produced while scoring one job. Consumed by the
    pricing calculator, tracking and presentation.
    """
    estimated_price: float = 0.0
    estimated_hours: float = 0.0
    estimated_ehr: float = 0.0
    ehr_source: str = "rule_based"  # "rule_based" | "external"
    complexity_score: Optional[int] = None

    matched_keywords: List[str] = field(default_factory=list)
    bonuses: List[BonusResult] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    detected_outcomes: List[str] = field(default_factory=list)
    is_technical_only: bool = False
    job_clarity: Optional[JobClarityDetail] = None

    language_analysis: Dict[str, Any] = field(default_factory=dict)
    budget_is_placeholder: bool = False

    custom_analysis: Optional[DetectionResult] = None
    us_based_analysis: Optional[DetectionResult] = None

    detected_red_flags: List[str] = field(default_factory=list)

    skills_match: Optional[Dict[str, Any]] = None
    external_reasoning: Dict[str, str] = field(default_factory=dict)

    internal_score: int = 0
    is_perfect_job: bool = False
    perfect_job_criteria: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["custom_analysis"] = self.custom_analysis.to_dict() if self.custom_analysis else None
        d["us_based_analysis"] = self.us_based_analysis.to_dict() if self.us_based_analysis else None
        return d


_ENRICHMENT_FIELDS = frozenset(f.name for f in fields(Enrichment))


class EnrichmentBuilder:
    """
    Accumulates the deltas returned by each dimension scorer, in pipeline
    order. Later deltas win on key collisions.
    """

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def merge(self, delta: Dict[str, Any]) -> "EnrichmentBuilder":
        unknown = set(delta) - _ENRICHMENT_FIELDS
        if unknown:
            raise KeyError(f"Unknown enrichment field(s): {sorted(unknown)}")
        self._values.update(delta)
        return self

    def get(self, name: str, default: Any = None) -> Any:
        if name in self._values:
            return self._values[name]
        return getattr(_EMPTY, name, default)

    def build(self) -> Enrichment:
        return replace(_EMPTY, **self._values)


_EMPTY = Enrichment()


@dataclass(frozen=True)
class ScoredJob:
    job: JobPosting
    score: int  # displayed, clamped to [0, 100]
    internal_score: int  # multiplied and uncapped, used for ranking
    breakdown: ScoreBreakdown
    enrichment: Enrichment
    decision: Any  # RecommendationDecision
    classification: Classification

    @property
    def final_classification(self) -> Classification:
        """An operator's manual override wins over the computed classification."""
        override = self.job.manual_override
        if override is None:
            return self.classification
        return Classification.RECOMMENDED if override.force_recommended else Classification.NOT_RECOMMENDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job": self.job.to_dict(),
            "score": self.score,
            "internal_score": self.internal_score,
            "breakdown": self.breakdown.to_dict(),
            "enrichment": self.enrichment.to_dict(),
            "decision": self.decision.to_dict() if self.decision is not None else None,
            "classification": self.classification.value,
            "final_classification": self.final_classification.value,
        }
