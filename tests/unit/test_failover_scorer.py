import pytest

import gigscout.llm.scorer as sc


class _AlwaysFailScorer:
    """
    Stand-in for LLMJobScorer that always fails.
    FailoverJobScorer instantiates LLMJobScorer from the module, so tests
    monkeypatch sc.LLMJobScorer to this class.
    """

    def __init__(self, *args, **kwargs):
        pass

    def score(self, **kwargs):
        raise sc.ExternalScorerError("boom")


def _score_kwargs():
    return dict(title="t", description="d", budget=0, budget_type="negotiable")


def test_failover_circuit_breaker_trips_after_n_consecutive_failures(monkeypatch):
    monkeypatch.setattr(sc, "LLMJobScorer", _AlwaysFailScorer)
    monkeypatch.setattr(sc, "_sleep_backoff", lambda attempt: None)

    f = sc.FailoverJobScorer(
        api_key_resolver=lambda provider: "dummy",
        candidates=[
            ("anthropic", "claude-sonnet-4-6"),
            ("openai", "gpt-4o-mini"),
            ("openai", "gpt-4o"),
        ],
        max_retries=0,
        breaker_consecutive_fails=2,
    )

    with pytest.raises(sc.ExternalScorerError):
        f.score(**_score_kwargs())

    assert f.is_disabled() is True

    with pytest.raises(sc.ExternalScorerError) as e:
        f.score(**_score_kwargs())
    assert "disabled" in str(e.value).lower()
    assert "circuit" in (f.disabled_reason or "")


def test_failover_uses_next_candidate_and_sticks(monkeypatch):
    calls = []

    class _FirstFails:
        def __init__(self, *, api_key, provider, model, **kwargs):
            self.provider = provider
            self.model = model

        def score(self, **kwargs):
            calls.append((self.provider, self.model))
            if self.provider == "anthropic":
                raise sc.ExternalScorerError("Anthropic API error: AuthenticationError")
            return "ok"

    monkeypatch.setattr(sc, "LLMJobScorer", _FirstFails)
    monkeypatch.setattr(sc, "_sleep_backoff", lambda attempt: None)

    f = sc.FailoverJobScorer(
        api_key_resolver=lambda provider: "dummy",
        candidates=[("anthropic", "claude-sonnet-4-6"), ("openai", "gpt-4o-mini")],
        max_retries=0,
        breaker_consecutive_fails=5,
    )

    assert f.score(**_score_kwargs()) == "ok"
    assert f.score(**_score_kwargs()) == "ok"
    assert calls == [
        ("anthropic", "claude-sonnet-4-6"),
        ("openai", "gpt-4o-mini"),
        ("openai", "gpt-4o-mini"),
    ]


def test_transient_errors_are_retried(monkeypatch):
    attempts = {"n": 0}
    sleeps = []

    class _FlakyOnce:
        def __init__(self, *args, **kwargs):
            pass

        def score(self, **kwargs):
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise sc.ExternalScorerError("Anthropic API error: RateLimitError")
            return "ok"

    monkeypatch.setattr(sc, "LLMJobScorer", _FlakyOnce)
    monkeypatch.setattr(sc, "_sleep_backoff", lambda attempt: sleeps.append(attempt))

    f = sc.FailoverJobScorer(
        api_key_resolver=lambda provider: "dummy",
        candidates=[("anthropic", "claude-sonnet-4-6")],
        max_retries=2,
    )

    assert f.score(**_score_kwargs()) == "ok"
    assert attempts["n"] == 2
    assert sleeps == [0]


def test_missing_key_skips_candidate(monkeypatch):
    monkeypatch.setattr(sc, "LLMJobScorer", _AlwaysFailScorer)

    f = sc.FailoverJobScorer(
        api_key_resolver=lambda provider: None,
        candidates=[("anthropic", "claude-sonnet-4-6")],
    )
    with pytest.raises(sc.ExternalScorerError, match="Missing API key"):
        f.score(**_score_kwargs())
    assert f.is_disabled() is False


def test_build_default_scorer_none_without_key(monkeypatch):
    for name in (
            "GIGSCOUT_LLM_KEY",
            "GIGSCOUT_ANTHROPIC_KEY",
            "GIGSCOUT_OPENAI_KEY",
            "ANTHROPIC_API_KEY",
            "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    assert sc.build_default_scorer() is None


def test_build_default_scorer_from_env(monkeypatch):
    monkeypatch.setenv("GIGSCOUT_LLM_KEY", "dummy")
    monkeypatch.setenv("GIGSCOUT_LLM_CHAIN", "openai/gpt-4o-mini")
    scorer = sc.build_default_scorer(core_skills=["webflow"])
    assert isinstance(scorer, sc.FailoverJobScorer)
    assert scorer._ordered_candidates() == [("openai", "gpt-4o-mini")]
