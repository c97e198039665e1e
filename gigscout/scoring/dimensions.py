"""
gigscout/scoring/dimensions.py

The seven dimension scorers. Each takes the job (plus settings where it
needs them) and returns ``(value, delta)``: the dimension score and the
enrichment fields it produced, which the engine merges into one
EnrichmentBuilder.

Ceilings are fixed per dimension and do not read settings.scoring_weights.
Missing text counts as "", missing numbers as 0; nothing here raises for
data-quality reasons.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gigscout.core.numbers import clamp, round_half_up
from gigscout.core.text_processing import count_word, matched_phrases, pad, scoring_text
from gigscout.models import BudgetType, JobPosting, Settings, utc_now
from gigscout.scoring.types import BonusResult, ClientQuality, JobClarityDetail, ProfessionalSignals

Delta = Dict[str, Any]

CLIENT_QUALITY_MAX = 25
KEYWORDS_MATCH_MAX = 15
PROFESSIONAL_SIGNALS_MAX = 10
BUSINESS_IMPACT_MAX = 15
JOB_CLARITY_MAX = 15
EHR_POTENTIAL_MAX = 15
RED_FLAGS_FLOOR = -10


def _text(job: JobPosting) -> str:
    return scoring_text(job.title, job.description)


# ------------------------------------------------------------------
# 1. Client Quality (25)
# ------------------------------------------------------------------

PAYMENT_VERIFIED_POINTS = 15


def _spend_history_points(total_spent: float, total_hires: int) -> int:
    if total_spent >= 10000 and total_hires >= 10:
        return 5
    if total_spent >= 5000 or total_hires >= 5:
        return 4
    if total_spent >= 1000 or total_hires >= 2:
        return 3
    if total_spent > 0 or total_hires > 0:
        return 2
    return 1  # new client


def _recency_points(posted_at: Optional[datetime], proposals: Optional[int], now: datetime) -> int:
    # Unknown posting time or unknown competition earns nothing.
    if posted_at is None or proposals is None:
        return 0
    hours_old = (now - posted_at).total_seconds() / 3600.0
    if hours_old < 0:
        hours_old = 0.0
    if hours_old <= 24 and proposals < 5:
        return 5
    if hours_old <= 48 and proposals < 10:
        return 3
    return 0


def score_client_quality(
        job: JobPosting,
        settings: Optional[Settings] = None,
        *,
        now: Optional[datetime] = None,
) -> Tuple[ClientQuality, Delta]:
    client = job.client
    cq = ClientQuality(
        payment_verified=PAYMENT_VERIFIED_POINTS if client.payment_verified else 0,
        spend_history=_spend_history_points(client.total_spent, client.total_hires),
        recency_and_competition=_recency_points(job.posted_at, job.proposals_count, now or utc_now()),
    )
    return cq, {}


# ------------------------------------------------------------------
# 2. Keywords Match (15, bonuses included)
# ------------------------------------------------------------------

def keyword_match_count(text: str, keywords: Sequence[str]) -> Tuple[float, List[str]]:
    """
    Exact substring = 1. Multi-word keyword whose words all appear, but not
    contiguously = 0.5 (reported as "<kw> (partial)").
    """
    count = 0.0
    matched: List[str] = []
    for kw in keywords:
        k = " ".join(kw.lower().split())
        if not k:
            continue
        if k in text:
            count += 1
            matched.append(kw)
            continue
        words = k.split(" ")
        if len(words) > 1 and all(w in text for w in words):
            count += 0.5
            matched.append(f"{kw} (partial)")
    return count, matched


def score_keywords_match(
        job: JobPosting,
        settings: Settings,
        *,
        bonuses: Sequence[BonusResult] = (),
) -> Tuple[int, Delta]:
    count, matched = keyword_match_count(_text(job), settings.keywords.all_keywords())
    base = round_half_up(min(count * 5, KEYWORDS_MATCH_MAX))
    bonus_points = sum(b.points for b in bonuses)
    total = int(clamp(base + bonus_points, 0, KEYWORDS_MATCH_MAX))
    return total, {"matched_keywords": matched, "bonuses": list(bonuses)}


# ------------------------------------------------------------------
# 3. Professional Signals (10)
# ------------------------------------------------------------------

OPEN_BUDGET_POINTS = 5
PLACEHOLDER_BUDGET_POINTS = 3
PLACEHOLDER_BUDGET_CEILING = 500
PLACEHOLDER_MIN_DESCRIPTION = 200

COMPANY_KEYWORDS = (
    "company",
    "team",
    "organization",
    "business",
    "startup",
    "agency",
    "firm",
    "clients",
    "customers",
)


def has_open_budget(job: JobPosting) -> bool:
    if job.budget_type == BudgetType.NEGOTIABLE:
        return True
    if job.budget_type == BudgetType.HOURLY and (job.hourly_budget_max or job.hourly_budget_min):
        return False
    return not job.budget


def _open_budget_points(job: JobPosting) -> Tuple[int, bool]:
    if has_open_budget(job):
        return OPEN_BUDGET_POINTS, False
    if job.budget < PLACEHOLDER_BUDGET_CEILING and len(job.description) > PLACEHOLDER_MIN_DESCRIPTION:
        return PLACEHOLDER_BUDGET_POINTS, True
    return 0, False


def analyze_language(text: str) -> Dict[str, Any]:
    we = count_word(text, "we")
    our = count_word(text, "our")
    us = count_word(text, "us")
    i = count_word(text, "i")
    my = count_word(text, "my")
    company = matched_phrases(text, COMPANY_KEYWORDS)
    return {
        "we_count": we,
        "our_count": our,
        "us_count": us,
        "team_mentions": we + our + us,
        "i_count": i,
        "my_count": my,
        "me_mentions": i + my,
        "has_company_keywords": bool(company),
        "company_keywords_found": company,
    }


def _we_language_points(la: Dict[str, Any]) -> int:
    team = la["team_mentions"]
    me = la["me_mentions"]
    company = la["has_company_keywords"]
    if team >= 3 and me == 0:
        return 5
    if team >= 2 and company:
        return 5
    if team > me and team >= 2:
        return 3
    if company and me <= 1:
        return 2
    return 0


def score_professional_signals(job: JobPosting, settings: Optional[Settings] = None) -> Tuple[ProfessionalSignals, Delta]:
    open_points, placeholder = _open_budget_points(job)
    la = analyze_language(_text(job))
    we_points = _we_language_points(la)
    la["is_professional"] = we_points >= 3
    ps = ProfessionalSignals(open_budget=open_points, we_language=we_points)
    return ps, {"language_analysis": la, "budget_is_placeholder": placeholder}


# ------------------------------------------------------------------
# 4. Business Impact (15, forced to 0 for technical-only asks)
# ------------------------------------------------------------------

OUTCOME_CATEGORY_POINTS = 5
BUSINESS_CONTEXT_POINTS = 2
TIMELINE_POINTS = 1

OUTCOME_CATEGORIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("revenue", (
        "leads", "lead capture", "lead generation", "sales", "revenue", "customers",
        "conversions", "conversion rate", "bookings", "clients",
    )),
    ("efficiency", (
        "time saved", "save time", "automate", "streamline", "reduce", "faster",
        "communications", "communicate",
    )),
    ("growth", ("scale", "grow", "expand", "increase", "improve")),
    ("metrics", ("tracking", "analytics", "reporting", "kpi", "metrics")),
)

BUSINESS_CONTEXT_PHRASES = (
    "our business",
    "our company",
    "our team",
    "our clients",
    "our customers",
    "help us",
    "we need",
)

_TIMELINE_RE = re.compile(r"\b\d+\s*(week|month|day)s?\b")

TECHNICAL_ONLY_PATTERNS: Tuple[re.Pattern, ...] = tuple(
    re.compile(p)
    for p in (
        r"\bneeds? (?:an? )?(?:[\w.+#-]+ ){0,2}(?:developer|programmer|coder|engineer)\b",
        r"\blooking for (?:an? )?(?:[\w.+#-]+ ){0,2}(?:developer|programmer|coder)\b",
        r"\bmust know\b",
        r"\bmust have experience (?:in|with)\b",
        r"\bproficient in\b",
        r"\bbug fix",
        r"\bpull requests?\b",
    )
)


def detect_outcomes(text: str) -> List[Tuple[str, str]]:
    """(category, first matching keyword) per category hit."""
    out = []
    for category, keywords in OUTCOME_CATEGORIES:
        for kw in keywords:
            if kw in text:
                out.append((category, kw))
                break
    return out


def is_technical_only_ask(text: str) -> bool:
    return any(p.search(text) for p in TECHNICAL_ONLY_PATTERNS)


def score_business_impact(job: JobPosting, settings: Optional[Settings] = None) -> Tuple[int, Delta]:
    text = _text(job)
    outcomes = detect_outcomes(text)
    detected = [kw for _, kw in outcomes]

    technical_only = is_technical_only_ask(text) and not outcomes
    if technical_only:
        return 0, {"detected_outcomes": detected, "is_technical_only": True}

    score = OUTCOME_CATEGORY_POINTS * len(outcomes)
    if matched_phrases(text, BUSINESS_CONTEXT_PHRASES):
        score += BUSINESS_CONTEXT_POINTS
        detected.append("business context")
    if _TIMELINE_RE.search(text) or "timeline" in text or "deadline" in text or "flexible" in text:
        score += TIMELINE_POINTS
        detected.append("timeline mentioned")

    return min(score, BUSINESS_IMPACT_MAX), {"detected_outcomes": detected, "is_technical_only": False}


# ------------------------------------------------------------------
# 5. Job Clarity (15)
# ------------------------------------------------------------------

TECHNICAL_SIGNALS = (
    "webflow",
    "shopify",
    "zapier",
    "make.com",
    "portal",
    "dashboard",
    "landing page",
    "website",
    "page speed",
    " seo",
    " cms",
    " blog",
    "ecommerce",
    "booking",
    "scheduling",
    "integration",
    "automation",
    "optimization",
)

CLARITY_SIGNALS = (
    "pages",
    "sections",
    "features",
    "timeline",
    "weeks",
    "month",
    "requirements",
    "specifications",
    "deliverables",
    "forms",
    "responsive",
    "mobile",
    "clean",
    "modern",
    "professional",
)

# (minimum matches, score), first rung met wins
CLARITY_LADDER = ((6, 15), (4, 14), (3, 13), (2, 10), (1, 7))
CLARITY_VAGUE = 3


def clarity_score_for(total_matches: int) -> int:
    for minimum, score in CLARITY_LADDER:
        if total_matches >= minimum:
            return score
    return CLARITY_VAGUE


def score_job_clarity(job: JobPosting, settings: Optional[Settings] = None) -> Tuple[int, Delta]:
    padded = pad(_text(job))
    technical = len(matched_phrases(padded, TECHNICAL_SIGNALS))
    clarity = len(matched_phrases(padded, CLARITY_SIGNALS))
    detail = JobClarityDetail(technical_matches=technical, clarity_matches=clarity, total=technical + clarity)
    return clarity_score_for(detail.total), {"job_clarity": detail}


# ------------------------------------------------------------------
# 6. EHR Potential (15)
# ------------------------------------------------------------------

EHR_LADDER = ((120, 15), (100, 13), (80, 10), (70, 7), (50, 3))


def ehr_score_for(estimated_ehr: float) -> int:
    for minimum, score in EHR_LADDER:
        if estimated_ehr >= minimum:
            return score
    return 0


def score_ehr_potential(
        job: JobPosting,
        settings: Optional[Settings] = None,
        *,
        estimated_ehr: float,
) -> Tuple[int, Delta]:
    """Estimates come from the external scorer or the rule-based estimator, set upstream."""
    return ehr_score_for(estimated_ehr), {}


# ------------------------------------------------------------------
# 7. Red Flags (>= -10)
# ------------------------------------------------------------------

RED_FLAG_PENALTY = 2

RED_FLAGS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("budget", ("cheap", "low budget", "tight budget", "limited budget")),
    ("urgency", (" asap", "urgent", " quick ", "immediately", "right now")),
    ("commodity", ("bug fix", "quick fix", "small change", "simple edit")),
    ("platform", ("wordpress", " wix", "squarespace", "elementor")),
    ("scope", ("ongoing", "long term", "long-term", "hourly only")),
)


def score_red_flags(job: JobPosting, settings: Optional[Settings] = None) -> Tuple[int, Delta]:
    padded = pad(_text(job))
    detected: List[str] = []
    for _, flags in RED_FLAGS:
        detected.extend(f.strip() for f in matched_phrases(padded, flags))
    penalty = max(-RED_FLAG_PENALTY * len(detected), RED_FLAGS_FLOOR)
    return penalty, {"detected_red_flags": detected}
