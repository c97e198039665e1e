from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class BudgetType(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"
    NEGOTIABLE = "negotiable"


class Classification(str, Enum):
    RECOMMENDED = "recommended"
    NOT_RECOMMENDED = "not_recommended"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_whitespace(text: str) -> str:
    return " ".join((text or "").split()).strip()


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """First present (non-None) value among camelCase / snake_case aliases."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_optional_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Accepts datetime, ISO-8601 strings ("Z" suffix allowed) and epoch
    seconds/milliseconds. Returns an aware UTC datetime or None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_budget_type(value: Any) -> BudgetType:
    raw = str(value or "").strip().lower()
    try:
        return BudgetType(raw)
    except ValueError:
        return BudgetType.NEGOTIABLE


@dataclass(frozen=True)
class ClientProfile:
    payment_verified: bool = False
    total_spent: float = 0.0
    total_hires: int = 0
    rating: float = 0.0  # 0 = no reviews yet
    review_count: int = 0
    location: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ClientProfile":
        if not isinstance(data, Mapping):
            data = {}
        return cls(
            payment_verified=_as_bool(_pick(data, "paymentVerified", "payment_verified")),
            total_spent=_as_float(_pick(data, "totalSpent", "total_spent")),
            total_hires=int(_as_float(_pick(data, "totalHires", "total_hires"))),
            rating=_as_float(data.get("rating")),
            review_count=int(_as_float(_pick(data, "reviewCount", "review_count"))),
            location=normalize_whitespace(str(data.get("location") or "")),
        )


@dataclass(frozen=True)
class ManualOverride:
    """
    Operator decision applied after scoring. Scoring copies it through as-is.
    """
    force_recommended: bool
    overridden_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["ManualOverride"]:
        if not isinstance(data, Mapping) or not data:
            return None
        raw_force = _pick(data, "forceRecommended", "force_recommended")
        if raw_force is None:
            return None
        return cls(
            force_recommended=_as_bool(raw_force),
            overridden_at=parse_timestamp(_pick(data, "overriddenAt", "overridden_at")) or utc_now(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "force_recommended": self.force_recommended,
            "overridden_at": self.overridden_at.isoformat(),
        }


@dataclass(frozen=True)
class JobPosting:
    """
    The canonical job record scored by gigscout.
    Built by the fetch collaborator (or JobPosting.from_dict over its raw output).
    """
    id: str
    title: str = ""
    description: str = ""

    budget: float = 0.0  # 0 = unset
    budget_type: BudgetType = BudgetType.NEGOTIABLE
    hourly_budget_min: Optional[float] = None
    hourly_budget_max: Optional[float] = None

    client: ClientProfile = field(default_factory=ClientProfile)

    proposals_count: Optional[int] = None  # None = unknown
    posted_at: Optional[datetime] = None
    experience_level: str = ""
    url: Optional[str] = None

    # Set by duplicate/repost detection, never by scoring
    is_duplicate: bool = False
    is_repost: bool = False
    repost_of_id: Optional[str] = None

    manual_override: Optional[ManualOverride] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "title", normalize_whitespace(self.title))
        object.__setattr__(self, "description", (self.description or "").strip())
        if self.posted_at is not None and self.posted_at.tzinfo is None:
            object.__setattr__(self, "posted_at", self.posted_at.replace(tzinfo=timezone.utc))

    @property
    def text(self) -> str:
        """Title + description, the primary signal source for every scorer."""
        return f"{self.title} {self.description}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobPosting":
        """
        Tolerant constructor over raw job records (camelCase as emitted by the
        fetch client, snake_case accepted too). Never raises on missing fields.
        """
        job_id = _pick(data, "id", "upworkId", "upwork_id", "job_id")
        return cls(
            id=str(job_id or ""),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            budget=_as_float(data.get("budget")),
            budget_type=_parse_budget_type(_pick(data, "budgetType", "budget_type")),
            hourly_budget_min=_as_optional_float(_pick(data, "hourlyBudgetMin", "hourly_budget_min")),
            hourly_budget_max=_as_optional_float(_pick(data, "hourlyBudgetMax", "hourly_budget_max")),
            client=ClientProfile.from_dict(data.get("client")),
            proposals_count=_as_optional_int(_pick(data, "proposalsCount", "proposals_count")),
            posted_at=parse_timestamp(_pick(data, "postedAt", "posted_at")),
            experience_level=str(_pick(data, "experienceLevel", "experience_level") or "").strip().lower(),
            url=_pick(data, "url"),
            is_duplicate=_as_bool(_pick(data, "isDuplicate", "is_duplicate")),
            is_repost=_as_bool(_pick(data, "isRepost", "is_repost")),
            repost_of_id=_pick(data, "repostOfId", "repost_of_id"),
            manual_override=ManualOverride.from_dict(_pick(data, "manualOverride", "manual_override")),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["budget_type"] = self.budget_type.value
        if self.posted_at:
            d["posted_at"] = self.posted_at.isoformat()
        d["manual_override"] = self.manual_override.to_dict() if self.manual_override else None
        return d


# ------------------------------------------------------------------
# Settings
# ------------------------------------------------------------------

KEYWORD_GROUP_ALIASES: Dict[str, str] = {
    "wideNet": "wide_net",
    "webflow": "webflow",
    "portals": "portals",
    "ecommerce": "ecommerce",
    "speedSEO": "speed_seo",
    "automation": "automation",
    "vertical": "vertical",
    "appDevelopment": "app_development",
}


@dataclass(frozen=True)
class KeywordGroups:
    wide_net: List[str] = field(default_factory=list)
    webflow: List[str] = field(default_factory=list)
    portals: List[str] = field(default_factory=list)
    ecommerce: List[str] = field(default_factory=list)
    speed_seo: List[str] = field(default_factory=list)
    automation: List[str] = field(default_factory=list)
    vertical: List[str] = field(default_factory=list)
    app_development: List[str] = field(default_factory=list)

    def all_keywords(self) -> List[str]:
        """Every keyword across groups, in group order, first occurrence kept."""
        out: List[str] = []
        seen = set()
        for group in (
                self.wide_net, self.webflow, self.portals, self.ecommerce,
                self.speed_seo, self.automation, self.vertical, self.app_development,
        ):
            for kw in group:
                key = normalize_whitespace(kw).lower()
                if key and key not in seen:
                    seen.add(key)
                    out.append(kw)
        return out


@dataclass(frozen=True)
class ScoringWeights:
    """
    Advisory point budgets shown to the operator. Dimension scorers use their
    own fixed ceilings; these values are carried for display only.
    """
    client_quality: int = 25
    keywords_match: int = 15
    professional_signals: int = 10
    business_impact: int = 15
    job_clarity: int = 15
    ehr_potential: int = 15
    red_flag_penalty: int = 10

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class UserSkills:
    core_skills: List[str] = field(default_factory=list)
    flagged_platforms: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Settings:
    keywords: KeywordGroups
    min_score: float
    min_ehr: float
    scoring_weights: ScoringWeights = field(default_factory=ScoringWeights)
    user_skills: Optional[UserSkills] = None


def default_settings() -> Settings:
    """Operator defaults shipped with the dashboard."""
    return Settings(
        keywords=KeywordGroups(
            wide_net=["website", "web development", "landing page", "web app", "React", "Vue", "Next.js"],
            webflow=["webflow", "web flow"],
            portals=["client portal", "customer portal", "member portal", "membership site", "dashboard"],
            ecommerce=["checkout optimization", "conversion optimization", "online booking"],
            speed_seo=["page speed", "site speed", "conversion rate optimization"],
            automation=["zapier", "make", "crm integration"],
            vertical=["video portal", "clinic portal", "patient portal"],
            app_development=["app development", "custom app", "mobile app"],
        ),
        min_score=80,
        min_ehr=60,
    )


# ------------------------------------------------------------------
# Tracking
# ------------------------------------------------------------------

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class TrackingRecord:
    """
    One tracked posting. `job` is the JobPosting snapshot (to_dict form) from
    the last time it was scored; operator fields survive re-scoring.
    """
    job_id: str
    job: Dict[str, Any]
    score: int
    internal_score: int
    classification: Classification
    pathway: str = ""
    first_seen_at: datetime = field(default_factory=utc_now)
    last_scored_at: datetime = field(default_factory=utc_now)
    last_seen_at: Optional[datetime] = None

    manual_override: Optional[ManualOverride] = None
    applied_at: Optional[datetime] = None
    won_at: Optional[datetime] = None

    @property
    def final_classification(self) -> Classification:
        if self.manual_override is not None:
            return Classification.RECOMMENDED if self.manual_override.force_recommended else Classification.NOT_RECOMMENDED
        return self.classification

    def posting(self) -> JobPosting:
        return JobPosting.from_dict(self.job)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrackingRecord":
        return cls(
            job_id=data["job_id"],
            job=dict(data.get("job") or {}),
            score=int(data.get("score") or 0),
            internal_score=int(data.get("internal_score") or 0),
            classification=Classification(data.get("classification") or Classification.NOT_RECOMMENDED.value),
            pathway=data.get("pathway") or "",
            first_seen_at=parse_timestamp(data.get("first_seen_at")) or utc_now(),
            last_scored_at=parse_timestamp(data.get("last_scored_at")) or utc_now(),
            last_seen_at=parse_timestamp(data.get("last_seen_at")),
            manual_override=ManualOverride.from_dict(data.get("manual_override")),
            applied_at=parse_timestamp(data.get("applied_at")),
            won_at=parse_timestamp(data.get("won_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "job": self.job,
            "score": self.score,
            "internal_score": self.internal_score,
            "classification": self.classification.value,
            "final_classification": self.final_classification.value,
            "pathway": self.pathway,
            "first_seen_at": _iso(self.first_seen_at),
            "last_scored_at": _iso(self.last_scored_at),
            "last_seen_at": _iso(self.last_seen_at),
            "manual_override": self.manual_override.to_dict() if self.manual_override else None,
            "applied_at": _iso(self.applied_at),
            "won_at": _iso(self.won_at),
        }


@dataclass(frozen=True)
class TriageRun:
    ran_at: datetime = field(default_factory=utc_now)
