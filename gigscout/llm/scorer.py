"""
gigscout/llm/scorer.py

ExternalScorer protocol + LLM-backed implementations.

Design principles:
- One scoring call per job; the rule-based scorers are the fallback
- Hard timeout per call (GIGSCOUT_LLM_TIMEOUT_SECONDS)
- All response parsing and repair happens here: callers either get a
  validated ExternalScoreResult or an ExternalScorerError
- API key MUST NOT appear in any log, exception or structured output
"""
from __future__ import annotations

import json
import random
import re
import threading
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from gigscout import config as _config
from gigscout.core.numbers import clamp, round_half_up
from gigscout.llm.prompt import _SYSTEM_PROMPT, build_scoring_prompt

# Substrings (lowercased) of errors worth retrying on the same candidate
_TRANSIENT_MARKERS: Tuple[str, ...] = (
    "ratelimit",
    "rate limit",
    "429",
    "overloaded",
    "529",
    "503",
    "internalservererror",
    "apiconnectionerror",
    "timed out",
    "timeout",
)

# Optional SDKs, resolved as module attributes. A missing package is
# reported as ExternalScorerError when that provider is first called.
try:
    import anthropic
except ImportError:
    anthropic = None  # type: ignore[assignment]

try:
    import openai
except ImportError:
    openai = None  # type: ignore[assignment]


class ExternalScorerError(Exception):
    """Raised when external scoring fails for any reason (timeout, bad output, API error)."""


# ------------------------------------------------------------------
# Result contract
# ------------------------------------------------------------------

@dataclass(frozen=True)
class EhrEstimate:
    score: int
    estimated_price: float
    estimated_hours: float
    estimated_ehr: float
    reasoning: str = ""


@dataclass(frozen=True)
class ClarityAssessment:
    score: int
    technical_matches: int
    clarity_matches: int
    total_matches: int
    reasoning: str = ""


@dataclass(frozen=True)
class ImpactAssessment:
    score: int
    detected_outcomes: List[str] = field(default_factory=list)
    is_technical_only: bool = False
    reasoning: str = ""


@dataclass(frozen=True)
class SkillsAssessment:
    score: int
    detected_platforms: List[str] = field(default_factory=list)
    matched_skills: List[str] = field(default_factory=list)
    mismatched_skills: List[str] = field(default_factory=list)
    is_primary_mismatch: bool = False
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExternalScoreResult:
    ehr_potential: EhrEstimate
    job_clarity: ClarityAssessment
    business_impact: ImpactAssessment
    skills_match: SkillsAssessment


class ExternalScorer(Protocol):
    def score(
            self,
            *,
            title: str,
            description: str,
            budget: float,
            budget_type: str,
            hourly_min: Optional[float] = None,
            hourly_max: Optional[float] = None,
    ) -> ExternalScoreResult:
        """Raises ExternalScorerError when no valid result can be produced."""
        ...


# ------------------------------------------------------------------
# Response parsing
# ------------------------------------------------------------------

_RESPONSE_TAG_RE = re.compile(r"<response>([\s\S]*?)</response>", re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

_DIMENSION_MAX = 15


def _extract_json_text(text: str) -> str:
    raw = (text or "").strip()
    m = _RESPONSE_TAG_RE.search(raw)
    if m:
        raw = m.group(1).strip()
    m = _FENCE_RE.search(raw)
    if m:
        raw = m.group(1).strip()
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        raise ExternalScorerError("No JSON object in scorer response.")
    return raw[start: end + 1]


def _loads(candidate: str) -> Dict[str, Any]:
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        # Common model slip: trailing commas before } or ]
        try:
            data = json.loads(_TRAILING_COMMA_RE.sub(r"\1", candidate))
        except json.JSONDecodeError as exc:
            raise ExternalScorerError(f"Malformed JSON in scorer response: {exc.msg}") from None
    if not isinstance(data, dict):
        raise ExternalScorerError("Scorer response is not a JSON object.")
    return data


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = data.get(key)
    if not isinstance(section, dict):
        raise ExternalScorerError(f"Scorer response missing '{key}'.")
    return section


def _number(section: Mapping[str, Any], key: str, *, where: str) -> float:
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(str(value).replace("$", "").replace(",", ""))
        except (TypeError, ValueError):
            raise ExternalScorerError(f"Scorer response field '{where}.{key}' is not a number.") from None
    return float(value)


def _dim_score(section: Mapping[str, Any], *, where: str) -> int:
    return int(clamp(round_half_up(_number(section, "score", where=where)), 0, _DIMENSION_MAX))


def _str_list(section: Mapping[str, Any], key: str) -> List[str]:
    value = section.get(key) or []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


def parse_scoring_response(text: str) -> ExternalScoreResult:
    """
    Accepts plain JSON, JSON inside <response> tags or ``` fences, or JSON
    surrounded by prose. Scores are clamped to 0..15; estimated hours must be
    positive. Raises ExternalScorerError otherwise.
    """
    data = _loads(_extract_json_text(text))

    ehr = _section(data, "ehrPotential")
    price = _number(ehr, "estimatedPrice", where="ehrPotential")
    hours = _number(ehr, "estimatedHours", where="ehrPotential")
    if price < 0 or hours <= 0:
        raise ExternalScorerError("Scorer returned a non-positive price/hours estimate.")
    ehr_value = ehr.get("estimatedEHR")
    estimated_ehr = (
        _number(ehr, "estimatedEHR", where="ehrPotential") if ehr_value is not None else price / hours
    )

    clarity = _section(data, "jobClarity")
    technical = int(_number(clarity, "technicalMatches", where="jobClarity")) if "technicalMatches" in clarity else 0
    scope = int(_number(clarity, "clarityMatches", where="jobClarity")) if "clarityMatches" in clarity else 0
    total = int(_number(clarity, "totalMatches", where="jobClarity")) if "totalMatches" in clarity else technical + scope

    impact = _section(data, "businessImpact")
    skills = data.get("skillsMatch") if isinstance(data.get("skillsMatch"), dict) else {"score": 0}

    return ExternalScoreResult(
        ehr_potential=EhrEstimate(
            score=_dim_score(ehr, where="ehrPotential"),
            estimated_price=price,
            estimated_hours=hours,
            estimated_ehr=float(estimated_ehr),
            reasoning=str(ehr.get("reasoning") or ""),
        ),
        job_clarity=ClarityAssessment(
            score=_dim_score(clarity, where="jobClarity"),
            technical_matches=technical,
            clarity_matches=scope,
            total_matches=total,
            reasoning=str(clarity.get("reasoning") or ""),
        ),
        business_impact=ImpactAssessment(
            score=_dim_score(impact, where="businessImpact"),
            detected_outcomes=_str_list(impact, "detectedOutcomes"),
            is_technical_only=bool(impact.get("isTechnicalOnly", False)),
            reasoning=str(impact.get("reasoning") or ""),
        ),
        skills_match=SkillsAssessment(
            score=_dim_score(skills, where="skillsMatch"),
            detected_platforms=_str_list(skills, "detectedPlatforms"),
            matched_skills=_str_list(skills, "matchedSkills"),
            mismatched_skills=_str_list(skills, "mismatchedSkills"),
            is_primary_mismatch=bool(skills.get("isPrimaryMismatch", False)),
            reasoning=str(skills.get("reasoning") or ""),
        ),
    )


# ------------------------------------------------------------------
# LLM scorer
# ------------------------------------------------------------------

class LLMJobScorer:
    """
    Calls an LLM (Anthropic or OpenAI) to score one job.

    Instantiate once per run; the freelancer skills are reused for every job.
    """

    _MAX_TOKENS = 2048
    _TEMPERATURE = 0.3

    def __init__(
            self,
            *,
            api_key: str,
            model: Optional[str] = None,
            provider: str = "anthropic",
            core_skills: Sequence[str] = (),
            flagged_platforms: Sequence[str] = (),
            timeout_seconds: Optional[float] = None,
    ) -> None:
        if not api_key:
            raise ExternalScorerError("LLM API key must not be empty.")
        self._api_key = api_key
        self._model = (model or _config.GIGSCOUT_LLM_MODEL).strip()
        self._provider = provider.strip().lower()
        self._core_skills = list(core_skills)
        self._flagged_platforms = list(flagged_platforms)
        self._timeout = timeout_seconds or _config.GIGSCOUT_LLM_TIMEOUT_SECONDS

        if self._provider not in ("anthropic", "openai"):
            raise ExternalScorerError(
                f"Unsupported provider '{self._provider}'. Use 'anthropic' or 'openai'."
            )

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def score(
            self,
            *,
            title: str,
            description: str,
            budget: float,
            budget_type: str,
            hourly_min: Optional[float] = None,
            hourly_max: Optional[float] = None,
    ) -> ExternalScoreResult:
        """
        Return a validated ExternalScoreResult.
        Raises ExternalScorerError on any failure.
        The API key is never included in the exception message.
        """
        prompt = build_scoring_prompt(
            title=title,
            description=description,
            budget=budget,
            budget_type=budget_type,
            hourly_min=hourly_min,
            hourly_max=hourly_max,
            core_skills=self._core_skills,
            flagged_platforms=self._flagged_platforms,
        )
        try:
            if self._provider == "anthropic":
                raw = self._call_anthropic(prompt)
            else:
                raw = self._call_openai(prompt)
        except ExternalScorerError:
            raise
        except Exception as exc:
            # Sanitize: never let the key propagate through exception messages
            raise ExternalScorerError(f"LLM call failed: {type(exc).__name__}") from None

        return parse_scoring_response(raw)

    # ------------------------------------------------------------------
    # Provider implementations
    # ------------------------------------------------------------------

    def _call_anthropic(self, prompt: str) -> str:
        if anthropic is None:
            raise ExternalScorerError(
                "Package 'anthropic' is not installed. Run: pip install anthropic"
            )

        client = anthropic.Anthropic(api_key=self._api_key)
        try:
            message = client.messages.create(
                model=self._model,
                max_tokens=self._MAX_TOKENS,
                temperature=self._TEMPERATURE,
                timeout=self._timeout,
                system=_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError:
            raise ExternalScorerError(f"Anthropic API timed out after {self._timeout:g} seconds.") from None
        except anthropic.APIError as exc:
            raise ExternalScorerError(f"Anthropic API error: {type(exc).__name__}") from None

        for block in message.content:
            if block.type == "text":
                return block.text
        raise ExternalScorerError("Anthropic returned no text content.")

    def _call_openai(self, prompt: str) -> str:
        if openai is None:
            raise ExternalScorerError(
                "Package 'openai' is not installed. Run: pip install openai"
            )

        client = openai.OpenAI(api_key=self._api_key, timeout=self._timeout)
        try:
            response = client.chat.completions.create(
                model=self._model,
                max_tokens=self._MAX_TOKENS,
                temperature=self._TEMPERATURE,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.APITimeoutError:
            raise ExternalScorerError(f"OpenAI API timed out after {self._timeout:g} seconds.") from None
        except openai.APIError as exc:
            raise ExternalScorerError(f"OpenAI API error: {type(exc).__name__}") from None

        content = response.choices[0].message.content
        if not content:
            raise ExternalScorerError("OpenAI returned empty content.")
        return content


# ------------------------------------------------------------------
# Failover chain
# ------------------------------------------------------------------

def _is_transient_error(err: Exception) -> bool:
    msg = (str(err) or "").lower()
    return any(marker in msg for marker in _TRANSIENT_MARKERS)


def _sleep_backoff(attempt: int) -> None:
    # 1s, 2s, 4s ... capped at 8s, plus up to 0.5s jitter
    delay = min(8.0, 2.0 ** attempt)
    time.sleep(delay + random.uniform(0.0, 0.5))


@dataclass
class FailoverState:
    consecutive_failures: int = 0
    disabled: bool = False
    disabled_reason: Optional[str] = None
    # Stick to the first successful candidate within a run
    sticky_provider: Optional[str] = None
    sticky_model: Optional[str] = None


class FailoverJobScorer:
    """
    Wrapper over LLMJobScorer:
    - tries a provider/model chain
    - retries transient errors (rate limit/overloaded/timeout)
    - circuit breaker after N consecutive candidate failures per run
    - sticky success (don't flap once one works)

    Batch scoring calls score() from worker threads; the state is guarded.
    """

    def __init__(
            self,
            *,
            api_key_resolver: Callable[[str], Optional[str]],
            candidates: List[Tuple[str, str]],
            core_skills: Sequence[str] = (),
            flagged_platforms: Sequence[str] = (),
            max_retries: int = 2,
            breaker_consecutive_fails: int = 3,
    ) -> None:
        self._api_key_resolver = api_key_resolver
        self._candidates = list(candidates)
        self._core_skills = list(core_skills)
        self._flagged_platforms = list(flagged_platforms)
        self._max_retries = max(0, max_retries)
        self._breaker_fails = max(1, breaker_consecutive_fails)
        self._state = FailoverState()
        self._lock = threading.Lock()

    def is_disabled(self) -> bool:
        return self._state.disabled

    @property
    def disabled_reason(self) -> Optional[str]:
        return self._state.disabled_reason

    def _disable(self, reason: str) -> None:
        self._state.disabled = True
        self._state.disabled_reason = reason

    def score(
            self,
            *,
            title: str,
            description: str,
            budget: float,
            budget_type: str,
            hourly_min: Optional[float] = None,
            hourly_max: Optional[float] = None,
    ) -> ExternalScoreResult:
        if self._state.disabled:
            raise ExternalScorerError(f"External scoring disabled: {self._state.disabled_reason}")

        last_err: Optional[Exception] = None

        for provider, model in self._ordered_candidates():
            if self._state.disabled:
                break
            api_key = self._api_key_resolver(provider)
            if not api_key:
                last_err = ExternalScorerError(f"Missing API key for provider: {provider}")
                continue

            scorer = LLMJobScorer(
                api_key=api_key,
                provider=provider,
                model=model,
                core_skills=self._core_skills,
                flagged_platforms=self._flagged_platforms,
            )

            # Limited retries for transient failures
            for attempt in range(self._max_retries + 1):
                try:
                    out = scorer.score(
                        title=title,
                        description=description,
                        budget=budget,
                        budget_type=budget_type,
                        hourly_min=hourly_min,
                        hourly_max=hourly_max,
                    )
                    with self._lock:
                        self._state.consecutive_failures = 0
                        self._state.sticky_provider = provider
                        self._state.sticky_model = model
                    return out
                except ExternalScorerError as e:
                    last_err = e
                    if _is_transient_error(e) and attempt < self._max_retries:
                        _sleep_backoff(attempt)
                        continue
                    break

            # One candidate fully failed
            with self._lock:
                self._state.consecutive_failures += 1
                if self._state.consecutive_failures >= self._breaker_fails:
                    self._disable(
                        f"circuit-breaker tripped after {self._state.consecutive_failures} failures"
                    )
            if self._state.disabled:
                break

        if last_err is None:
            last_err = ExternalScorerError("External scoring failed: no candidates available")
        if not isinstance(last_err, ExternalScorerError):
            last_err = ExternalScorerError(str(last_err))
        raise last_err

    def _ordered_candidates(self) -> List[Tuple[str, str]]:
        if self._state.sticky_provider and self._state.sticky_model:
            sticky = (self._state.sticky_provider, self._state.sticky_model)
            rest = [c for c in self._candidates if c != sticky]
            return [sticky] + rest
        return list(self._candidates)


def build_default_scorer(
        *,
        core_skills: Sequence[str] = (),
        flagged_platforms: Sequence[str] = (),
) -> Optional[FailoverJobScorer]:
    """FailoverJobScorer from env config, or None when no key is configured."""
    if not _config.llm_configured():
        return None
    cfg = _config.load_llm_failover_config()
    if not cfg.chain:
        return None
    return FailoverJobScorer(
        api_key_resolver=_config.resolve_api_key,
        candidates=cfg.chain,
        core_skills=core_skills,
        flagged_platforms=flagged_platforms,
        max_retries=cfg.max_retries,
        breaker_consecutive_fails=cfg.breaker_consecutive_fails,
    )
