import pytest

from gigscout.scoring.estimates import FallbackEstimate, complexity_score, estimate_price_and_hours


def test_portal_with_dashboard_lands_in_mid_tier():
    est = estimate_price_and_hours("client portal with a dashboard", 0)
    assert est.complexity == 7
    assert (est.price, est.hours) == (15000, 120)
    assert est.ehr == 125
    assert est.price_from_budget is False


def test_simple_landing_page_hits_floor():
    est = estimate_price_and_hours("simple landing page", 0)
    assert est.complexity == -2
    assert (est.price, est.hours) == (2000, 20)
    assert est.ehr == 100


def test_explicit_budget_used_as_price():
    est = estimate_price_and_hours("new website", 4000)
    assert est.price == 4000
    assert est.hours == 30
    assert est.price_from_budget is True
    assert est.ehr == pytest.approx(4000 / 30)


def test_small_budget_is_ignored():
    est = estimate_price_and_hours("new website", 500)
    assert est.price == 3000
    assert est.price_from_budget is False


def test_complexity_reports_matches_per_weight():
    score, matched = complexity_score("saas platform with crm and blog")
    assert score == 4 + 4 + 3 + 1
    assert matched[4] == ["saas", "platform"]
    assert matched[3] == ["crm"]
    assert matched[1] == ["blog"]


def test_empty_text_is_zero_complexity():
    assert complexity_score("") == (0, {})


def test_ehr_keeps_fractional_rate():
    est = FallbackEstimate(price=1190, hours=20, complexity=0, matched={}, price_from_budget=True)
    assert est.ehr == 59.5


def test_ehr_zero_hours_is_zero():
    est = FallbackEstimate(price=1000, hours=0, complexity=0, matched={}, price_from_budget=True)
    assert est.ehr == 0.0
