from datetime import datetime, timedelta, timezone

import pytest

from gigscout.models import BudgetType, ClientProfile, JobPosting, KeywordGroups, Settings
from gigscout.scoring.dimensions import (
    analyze_language,
    clarity_score_for,
    ehr_score_for,
    has_open_budget,
    keyword_match_count,
    score_business_impact,
    score_client_quality,
    score_job_clarity,
    score_keywords_match,
    score_professional_signals,
    score_red_flags,
)
from gigscout.scoring.types import BonusResult

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_job(**overrides) -> JobPosting:
    base = dict(id="job-1", title="", description="")
    base.update(overrides)
    return JobPosting(**base)


def _settings(**groups) -> Settings:
    return Settings(keywords=KeywordGroups(**groups), min_score=80, min_ehr=60)


# ------------------------------------------------------------------
# Client Quality
# ------------------------------------------------------------------

def test_client_quality_full_marks():
    job = _make_job(
        client=ClientProfile(payment_verified=True, total_spent=20000, total_hires=15),
        posted_at=NOW - timedelta(hours=2),
        proposals_count=2,
    )
    cq, delta = score_client_quality(job, now=NOW)
    assert (cq.payment_verified, cq.spend_history, cq.recency_and_competition) == (15, 5, 5)
    assert cq.subtotal == 25
    assert delta == {}


@pytest.mark.parametrize(
    "spent,hires,expected",
    [(0, 0, 1), (500, 0, 2), (1500, 0, 3), (0, 6, 4), (10000, 10, 5)],
)
def test_spend_history_ladder(spent, hires, expected):
    job = _make_job(client=ClientProfile(total_spent=spent, total_hires=hires))
    cq, _ = score_client_quality(job, now=NOW)
    assert cq.spend_history == expected


def test_unknown_proposal_count_earns_no_recency():
    job = _make_job(posted_at=NOW - timedelta(hours=1), proposals_count=None)
    cq, _ = score_client_quality(job, now=NOW)
    assert cq.recency_and_competition == 0


def test_zero_proposals_is_real_zero():
    job = _make_job(posted_at=NOW - timedelta(hours=1), proposals_count=0)
    cq, _ = score_client_quality(job, now=NOW)
    assert cq.recency_and_competition == 5


def test_day_old_job_with_some_competition():
    job = _make_job(posted_at=NOW - timedelta(hours=30), proposals_count=7)
    cq, _ = score_client_quality(job, now=NOW)
    assert cq.recency_and_competition == 3


# ------------------------------------------------------------------
# Keywords Match
# ------------------------------------------------------------------

def test_keyword_match_exact_and_partial():
    assert keyword_match_count("we need a client portal", ["client portal", "portal design"]) == (
        1.0,
        ["client portal"],
    )
    assert keyword_match_count("portal for each member", ["member portal"]) == (0.5, ["member portal (partial)"])


def test_keywords_match_adds_bonuses_and_caps():
    job = _make_job(title="React app")
    settings = _settings(wide_net=["react"])

    score, delta = score_keywords_match(job, settings)
    assert score == 5
    assert delta["matched_keywords"] == ["react"]

    score, _ = score_keywords_match(job, settings, bonuses=[BonusResult(points=8, label="Webflow", tier=1)])
    assert score == 13

    score, _ = score_keywords_match(job, settings, bonuses=[BonusResult(points=12, label="Custom", tier=1)])
    assert score == 15


# ------------------------------------------------------------------
# Professional Signals
# ------------------------------------------------------------------

def test_has_open_budget_rules():
    assert has_open_budget(_make_job(budget_type=BudgetType.NEGOTIABLE, budget=900)) is True
    assert has_open_budget(_make_job(budget_type=BudgetType.FIXED, budget=0)) is True
    assert has_open_budget(_make_job(budget_type=BudgetType.FIXED, budget=1000)) is False
    assert has_open_budget(
        _make_job(budget_type=BudgetType.HOURLY, hourly_budget_min=40, hourly_budget_max=80)
    ) is False
    assert has_open_budget(_make_job(budget_type=BudgetType.HOURLY)) is True


def test_placeholder_budget_gets_partial_credit():
    job = _make_job(budget_type=BudgetType.FIXED, budget=100, description="x" * 250)
    ps, delta = score_professional_signals(job)
    assert ps.open_budget == 3
    assert delta["budget_is_placeholder"] is True


def test_team_language_with_company_keywords():
    la = analyze_language("we are a team. our clients love us. i think")
    assert la["team_mentions"] == 3
    assert la["me_mentions"] == 1
    assert la["has_company_keywords"] is True

    job = _make_job(description="We are a team. Our clients love us. I think")
    ps, delta = score_professional_signals(job)
    assert ps.we_language == 5
    assert delta["language_analysis"]["is_professional"] is True


def test_individual_language_scores_zero():
    ps, _ = score_professional_signals(_make_job(budget_type=BudgetType.FIXED, budget=800, title="I need my site fixed"))
    assert ps.we_language == 0
    assert ps.open_budget == 0


# ------------------------------------------------------------------
# Business Impact
# ------------------------------------------------------------------

def test_business_impact_caps_at_fifteen():
    job = _make_job(description="We need more leads and to automate reporting. Timeline 3 weeks.")
    score, delta = score_business_impact(job)
    assert score == 15
    assert delta["is_technical_only"] is False
    assert "business context" in delta["detected_outcomes"]


def test_business_impact_partial():
    score, delta = score_business_impact(_make_job(description="Help us increase signups"))
    assert score == 7
    assert delta["detected_outcomes"] == ["increase", "business context"]


def test_technical_only_ask_scores_zero():
    score, delta = score_business_impact(_make_job(description="Looking for a React developer. Must know Redux."))
    assert score == 0
    assert delta["is_technical_only"] is True


def test_technical_phrasing_with_outcome_is_not_technical_only():
    score, delta = score_business_impact(_make_job(description="Need a developer to increase sales"))
    assert delta["is_technical_only"] is False
    assert score == 10


# ------------------------------------------------------------------
# Job Clarity
# ------------------------------------------------------------------

def test_clear_job_scores_full():
    job = _make_job(
        title="Webflow website",
        description="5 pages, forms and a blog, timeline 2 weeks, responsive",
    )
    score, delta = score_job_clarity(job)
    assert score == 15
    assert delta["job_clarity"].technical_matches == 3
    assert delta["job_clarity"].clarity_matches == 5


def test_vague_job():
    score, _ = score_job_clarity(_make_job(title="Help needed"))
    assert score == 3


@pytest.mark.parametrize("total,expected", [(6, 15), (5, 14), (3, 13), (2, 10), (1, 7), (0, 3)])
def test_clarity_ladder(total, expected):
    assert clarity_score_for(total) == expected


# ------------------------------------------------------------------
# EHR Potential
# ------------------------------------------------------------------

@pytest.mark.parametrize(
    "ehr,expected",
    [(120, 15), (119.5, 13), (119, 13), (100, 13), (99.9, 10), (80, 10), (70, 7), (50, 3), (49.9, 0)],
)
def test_ehr_ladder(ehr, expected):
    assert ehr_score_for(ehr) == expected


# ------------------------------------------------------------------
# Red Flags
# ------------------------------------------------------------------

def test_red_flags_penalise_each_hit():
    job = _make_job(title="Cheap and urgent WordPress fix, quick turnaround")
    penalty, delta = score_red_flags(job)
    assert penalty == -8
    assert delta["detected_red_flags"] == ["cheap", "urgent", "quick", "wordpress"]


def test_red_flags_floor():
    job = _make_job(description="cheap low budget urgent asap wordpress ongoing long term")
    penalty, _ = score_red_flags(job)
    assert penalty == -10


def test_no_red_flags():
    penalty, delta = score_red_flags(_make_job(title="Client portal build"))
    assert penalty == 0
    assert delta["detected_red_flags"] == []
