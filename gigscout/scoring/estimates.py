"""
gigscout/scoring/estimates.py

Rule-based price/hours estimator, used whenever the external scorer is
disabled or fails. Complexity is a keyword-weighted sum mapped through two
fixed ladders. An explicit budget of at least EXPLICIT_BUDGET_FLOOR is taken
as the price as-is.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from gigscout.core.text_processing import matched_phrases, pad

EXPLICIT_BUDGET_FLOOR = 1000

# (weight, keywords) from most to least complex
COMPLEXITY_WEIGHTS: Tuple[Tuple[int, Tuple[str, ...]], ...] = (
    (4, (  # very high
        "saas",
        "platform",
        "marketplace",
        "portal",
        "custom app",
        "custom application",
        "web app",
        "web application",
        "from scratch",
        "enterprise",
    )),
    (3, (  # high
        "dashboard",
        "ecommerce",
        "e-commerce",
        " crm",
        "booking system",
        "membership",
        "user accounts",
        "authentication",
        "api integration",
        "real-time",
    )),
    (2, (  # medium-high
        "custom",
        "automation",
        "integration",
        "database",
        "payment",
        "migration",
        "multiple pages",
        "complex",
    )),
    (1, (  # medium
        "website",
        "redesign",
        " cms",
        " seo",
        " blog",
        "responsive",
        "pages",
    )),
    (-1, (  # simple indicators
        "landing page",
        "single page",
        "one page",
        "simple",
        "small",
        "quick",
    )),
)

# (minimum complexity, value); first rung whose minimum is met wins
PRICE_LADDER: Tuple[Tuple[int, int], ...] = (
    (12, 35000),
    (9, 25000),
    (6, 15000),
    (4, 8000),
    (2, 5000),
    (0, 3000),
)
PRICE_FLOOR = 2000

HOURS_LADDER: Tuple[Tuple[int, int], ...] = (
    (12, 300),
    (9, 200),
    (6, 120),
    (4, 70),
    (2, 45),
    (0, 30),
)
HOURS_FLOOR = 20


@dataclass(frozen=True)
class FallbackEstimate:
    price: float
    hours: float
    complexity: int
    matched: Dict[int, List[str]]
    price_from_budget: bool

    @property
    def ehr(self) -> float:
        return self.price / self.hours if self.hours > 0 else 0.0


def complexity_score(text: str) -> Tuple[int, Dict[int, List[str]]]:
    padded = pad(text)
    score = 0
    matched: Dict[int, List[str]] = {}
    for weight, keywords in COMPLEXITY_WEIGHTS:
        hits = matched_phrases(padded, keywords)
        if hits:
            score += weight * len(hits)
            matched[weight] = [h.strip() for h in hits]
    return score, matched


def _ladder(value: int, ladder: Tuple[Tuple[int, int], ...], floor: int) -> int:
    for minimum, result in ladder:
        if value >= minimum:
            return result
    return floor


def estimate_price_and_hours(text: str, budget: float) -> FallbackEstimate:
    """`text` is the lowercased title + description."""
    complexity, matched = complexity_score(text)
    hours = _ladder(complexity, HOURS_LADDER, HOURS_FLOOR)

    if budget and budget >= EXPLICIT_BUDGET_FLOOR:
        return FallbackEstimate(
            price=float(budget), hours=float(hours), complexity=complexity, matched=matched, price_from_budget=True
        )

    price = _ladder(complexity, PRICE_LADDER, PRICE_FLOOR)
    return FallbackEstimate(
        price=float(price), hours=float(hours), complexity=complexity, matched=matched, price_from_budget=False
    )
