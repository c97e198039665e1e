"""
gigscout/detection/signals.py

Specialty detectors over job text. Each one is a pure function returning a
DetectionResult; invocation order does not matter.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List

from gigscout.core.text_processing import contains_word, matched_phrases, normalize_text


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


@dataclass(frozen=True)
class DetectionResult:
    is_detected: bool
    confidence: Confidence = Confidence.NONE
    patterns: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["confidence"] = self.confidence.value
        return d


NOT_DETECTED = DetectionResult(is_detected=False)


# ------------------------------------------------------------------
# Custom application work
# ------------------------------------------------------------------

CUSTOM_APP_HIGH_TIER = (
    "custom application",
    "custom app",
    "custom platform",
    "custom software",
    "custom solution",
    "custom web app",
    "custom system",
    "custom internal tool",
    "saas platform",
    "build from scratch",
    "built from scratch",
    "from scratch",
    "custom-built",
    "fully custom",
    "completely custom",
    "bespoke application",
    "bespoke platform",
)

CUSTOM_APP_MEDIUM_TIER = (
    "custom website",
    "custom development",
    "internal tool",
    "bespoke",
)

_CUSTOMIZATION_ONLY = ("customize existing", "customization of")


def detect_custom_application(text: str) -> DetectionResult:
    """
    Tier 1 (high): explicit custom-build language.
    Tier 2 (medium): custom website/development or internal tooling.
    "customer" on its own, or customizing an existing product, is not custom work.
    """
    t = normalize_text(text).lower()

    high = matched_phrases(t, CUSTOM_APP_HIGH_TIER)
    medium = matched_phrases(t, CUSTOM_APP_MEDIUM_TIER)

    only_customer = "customer" in t and "custom " not in t and "custom-" not in t
    customization_only = not high and any(p in t for p in _CUSTOMIZATION_ONLY)
    if only_customer or customization_only:
        return DetectionResult(
            is_detected=False,
            metadata={"false_positive": "customer" if only_customer else "customization"},
        )

    if high:
        return DetectionResult(
            is_detected=True,
            confidence=Confidence.HIGH,
            patterns=high + medium,
            metadata={"tier": 1},
        )
    if medium:
        return DetectionResult(
            is_detected=True,
            confidence=Confidence.MEDIUM,
            patterns=medium,
            metadata={"tier": 2},
        )
    return NOT_DETECTED


# ------------------------------------------------------------------
# US-based client
# ------------------------------------------------------------------

US_LOCATION_PHRASES = (
    "us based",
    "us-based",
    "usa based",
    "usa-based",
    "based in the us",
    "based in the usa",
    "based in the united states",
    "located in the us",
    "located in usa",
    "located in the united states",
    "united states based",
    "united states only",
    "us only",
    "us freelancer",
    "usa freelancer",
    "american freelancer",
    "american developer",
    "american designer",
)

US_TIME_ZONE_PHRASES = (
    "us time zone",
    "usa time zone",
    "us timezone",
    "work in us time",
    "eastern time",
    "pacific time",
    "central time",
    "mountain time",
)

# Abbreviations only count as whole words ("est" must not fire on "best").
US_TIME_ZONE_ABBREVIATIONS = ("est", "pst", "cst", "mst", "edt", "pdt", "cdt", "mdt")

# Case-sensitive on purpose: lowercase "us" is a pronoun.
_STANDALONE_US_RE = re.compile(r"\b(US|USA|U\.S\.|U\.S\.A\.)(?![A-Za-z])")


def detect_us_based(text: str) -> DetectionResult:
    """
    Independent cues: explicit location phrase, US time zone, standalone
    uppercase "US"/"USA". An explicit phrase, or any two cue kinds, is high
    confidence; a single weaker cue is medium.
    """
    raw = normalize_text(text)
    t = raw.lower()

    location = matched_phrases(t, US_LOCATION_PHRASES)
    time_zones = matched_phrases(t, US_TIME_ZONE_PHRASES)
    time_zones += [abbr for abbr in US_TIME_ZONE_ABBREVIATIONS if contains_word(t, abbr)]
    standalone = sorted({m.group(1) for m in _STANDALONE_US_RE.finditer(raw)})

    cue_kinds = sum(1 for cues in (location, time_zones, standalone) if cues)
    if cue_kinds == 0:
        return NOT_DETECTED

    confidence = Confidence.HIGH if (location or cue_kinds >= 2) else Confidence.MEDIUM
    return DetectionResult(
        is_detected=True,
        confidence=confidence,
        patterns=location + time_zones + standalone,
        metadata={
            "time_zone_mentioned": bool(time_zones),
            "time_zones": time_zones,
            "explicit_location": bool(location),
            "cue_kinds": cue_kinds,
        },
    )


# ------------------------------------------------------------------
# Presence detectors
# ------------------------------------------------------------------

DASHBOARD_PATTERNS = (
    "dashboard",
    "admin panel",
    "data visualization",
    "business intelligence",
    "bi dashboard",
    "kpi dashboard",
    "reporting dashboard",
    "analytics dashboard",
    "metrics dashboard",
)

WEBFLOW_PATTERNS = ("webflow", "web flow")

PORTAL_PATTERNS = ("portal", "member area", "membership site", "membership", "member site")


def _presence(text: str, patterns: tuple) -> DetectionResult:
    hits = matched_phrases(normalize_text(text).lower(), patterns)
    if not hits:
        return NOT_DETECTED
    return DetectionResult(is_detected=True, confidence=Confidence.HIGH, patterns=hits)


def detect_dashboard(text: str) -> DetectionResult:
    return _presence(text, DASHBOARD_PATTERNS)


def detect_webflow(text: str) -> DetectionResult:
    return _presence(text, WEBFLOW_PATTERNS)


def detect_portal(text: str) -> DetectionResult:
    return _presence(text, PORTAL_PATTERNS)
