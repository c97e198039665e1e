from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

from gigscout.models import (
    KEYWORD_GROUP_ALIASES,
    JobPosting,
    KeywordGroups,
    ScoringWeights,
    Settings,
    UserSkills,
)

logger = logging.getLogger(__name__)


class SettingsError(Exception):
    """Settings file missing or invalid."""


_WEIGHT_ALIASES: Dict[str, str] = {
    "clientQuality": "client_quality",
    "keywordsMatch": "keywords_match",
    "professionalSignals": "professional_signals",
    "businessImpact": "business_impact",
    "jobClarity": "job_clarity",
    "ehrPotential": "ehr_potential",
    "redFlagPenalty": "red_flag_penalty",
}


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise SettingsError(f"File not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Invalid JSON in {path}: {exc.msg} (line {exc.lineno})") from None


def _required_number(data: Mapping[str, Any], *keys: str) -> float:
    for key in keys:
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise SettingsError(f"'{key}' must be a number, got {value!r}")
            return float(value)
    raise SettingsError(f"Missing required setting '{keys[0]}'")


def _string_list(value: Any, where: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SettingsError(f"'{where}' must be a list of strings")
    return [str(v) for v in value if str(v).strip()]


def _parse_keywords(raw: Any) -> KeywordGroups:
    if raw is None:
        return KeywordGroups()
    if not isinstance(raw, Mapping):
        raise SettingsError("'keywords' must be an object of keyword groups")

    groups: Dict[str, List[str]] = {}
    for name, value in raw.items():
        field_name = KEYWORD_GROUP_ALIASES.get(name)
        if field_name is None and name in KEYWORD_GROUP_ALIASES.values():
            field_name = name
        if field_name is None:
            logger.warning("Ignoring unknown keyword group '%s'", name)
            continue
        groups[field_name] = _string_list(value, f"keywords.{name}")
    return KeywordGroups(**groups)


def _parse_weights(raw: Any) -> ScoringWeights:
    if not isinstance(raw, Mapping):
        return ScoringWeights()
    values: Dict[str, int] = {}
    for key, value in raw.items():
        field_name = _WEIGHT_ALIASES.get(key, key)
        if field_name in _WEIGHT_ALIASES.values() and isinstance(value, (int, float)):
            values[field_name] = int(value)
    return ScoringWeights(**values)


def _parse_user_skills(raw: Any) -> UserSkills | None:
    if not isinstance(raw, Mapping):
        return None
    return UserSkills(
        core_skills=_string_list(raw.get("coreSkills", raw.get("core_skills")), "userSkills.coreSkills"),
        flagged_platforms=_string_list(
            raw.get("flaggedPlatforms", raw.get("flagged_platforms")), "userSkills.flaggedPlatforms"
        ),
    )


def settings_from_dict(data: Mapping[str, Any]) -> Settings:
    if not isinstance(data, Mapping):
        raise SettingsError("Settings must be a JSON object")
    return Settings(
        keywords=_parse_keywords(data.get("keywords")),
        min_score=_required_number(data, "minScore", "min_score"),
        min_ehr=_required_number(data, "minEHR", "min_ehr"),
        scoring_weights=_parse_weights(data.get("scoringWeights", data.get("scoring_weights"))),
        user_skills=_parse_user_skills(data.get("userSkills", data.get("user_skills"))),
    )


def load_settings(path: Path) -> Settings:
    """
    Load operator settings (camelCase as stored by the dashboard; snake_case
    accepted). minScore and minEHR are required; keyword groups default to empty.
    """
    return settings_from_dict(_read_json(path))


def load_jobs(path: Path) -> List[JobPosting]:
    """Raw job records: a JSON list, or an object with a "jobs" list."""
    data = _read_json(path)
    if isinstance(data, Mapping):
        data = data.get("jobs")
    if not isinstance(data, list):
        raise SettingsError(f"{path} must contain a list of job records")
    return [JobPosting.from_dict(item) for item in data if isinstance(item, Mapping)]
