# gigscout/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet, List, Tuple

def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# --- Batch scoring (rate limit on the external scorer) ---

@dataclass(frozen=True)
class BatchConfig:
    max_concurrency: int
    batch_delay_seconds: float


def load_batch_config() -> BatchConfig:
    return BatchConfig(
        max_concurrency=max(1, _env_int("GIGSCOUT_SCORING_CONCURRENCY", 3)),
        batch_delay_seconds=max(0.0, _env_float("GIGSCOUT_BATCH_DELAY_SECONDS", 1.0)),
    )


# --- Feature flags (specialty bonuses + perfect-job multiplier) ---

KNOWN_FEATURES: FrozenSet[str] = frozenset(
    {
        "custom_bonus",
        "us_bonus",
        "dashboard_bonus",
        "webflow_bonus",
        "portal_bonus",
        "perfect_multiplier",
    }
)


@dataclass(frozen=True)
class FeatureFlags:
    custom_bonus: bool = True
    us_bonus: bool = True
    dashboard_bonus: bool = True
    webflow_bonus: bool = True
    portal_bonus: bool = True
    perfect_multiplier: bool = True


def load_feature_flags() -> FeatureFlags:
    """
    GIGSCOUT_DISABLED_FEATURES="dashboard_bonus,perfect_multiplier"
    Unknown names are ignored.
    """
    raw = os.getenv("GIGSCOUT_DISABLED_FEATURES", "")
    disabled = {p.strip().lower() for p in raw.split(",") if p.strip()}
    return FeatureFlags(**{name: False for name in disabled & KNOWN_FEATURES})


# --- External LLM scorer ---

def _parse_llm_chain(raw: str | None) -> List[Tuple[str, str]]:
    """
    Parses: "anthropic/claude-sonnet-4-6,openai/gpt-4o-mini"
    -> [("anthropic","claude-sonnet-4-6"), ("openai","gpt-4o-mini")]
    """
    if not raw:
        return []
    items: List[Tuple[str, str]] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if "/" not in part:
            # Bare model name -> assume anthropic
            items.append(("anthropic", part))
            continue
        provider, model = part.split("/", 1)
        provider = provider.strip().lower()
        model = model.strip()
        if provider and model:
            items.append((provider, model))
    return items


@dataclass(frozen=True)
class LLMFailoverConfig:
    chain: List[Tuple[str, str]]
    max_retries: int
    breaker_consecutive_fails: int


def load_llm_failover_config() -> LLMFailoverConfig:
    chain_raw = os.getenv(
        "GIGSCOUT_LLM_CHAIN",
        "anthropic/claude-sonnet-4-6,openai/gpt-4o-mini",
    )
    return LLMFailoverConfig(
        chain=_parse_llm_chain(chain_raw),
        max_retries=_env_int("GIGSCOUT_LLM_MAX_RETRIES", 2),
        breaker_consecutive_fails=_env_int("GIGSCOUT_LLM_CIRCUIT_BREAKER_FAILS", 3),
    )


# User-provided API key for the external scorer.
# Never logged, never written to disk, never included in structured output.
GIGSCOUT_LLM_KEY: str | None = os.environ.get("GIGSCOUT_LLM_KEY") or None

# Provider selection: "anthropic" | "openai"  (default: anthropic)
GIGSCOUT_LLM_PROVIDER: str = os.environ.get("GIGSCOUT_LLM_PROVIDER", "anthropic").strip().lower()

_DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-6",
    "openai": "gpt-4o-mini",
}
GIGSCOUT_LLM_MODEL: str = (
        os.environ.get("GIGSCOUT_LLM_MODEL", "").strip()
        or _DEFAULT_MODELS.get(GIGSCOUT_LLM_PROVIDER, "claude-sonnet-4-6")
)

# Hard timeout per scoring call; the rule-based scorers take over past it.
GIGSCOUT_LLM_TIMEOUT_SECONDS: float = _env_float("GIGSCOUT_LLM_TIMEOUT_SECONDS", 30.0)


def resolve_api_key(provider: str) -> str | None:
    """Provider-specific key first, then the shared GIGSCOUT_LLM_KEY."""
    provider = (provider or "").strip().lower()
    if provider == "anthropic":
        specific = os.getenv("GIGSCOUT_ANTHROPIC_KEY") or os.getenv("ANTHROPIC_API_KEY")
    elif provider == "openai":
        specific = os.getenv("GIGSCOUT_OPENAI_KEY") or os.getenv("OPENAI_API_KEY")
    else:
        specific = None
    return specific or os.getenv("GIGSCOUT_LLM_KEY") or None


def llm_configured() -> bool:
    return bool(
        os.getenv("GIGSCOUT_OPENAI_KEY")
        or os.getenv("GIGSCOUT_ANTHROPIC_KEY")
        or os.getenv("GIGSCOUT_LLM_KEY")
        or os.getenv("OPENAI_API_KEY")
        or os.getenv("ANTHROPIC_API_KEY")
    )
