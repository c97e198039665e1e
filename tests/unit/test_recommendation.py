from gigscout.models import Classification, ClientProfile, JobPosting, default_settings
from gigscout.recommendation import (
    Pathway,
    evaluate_recommendation,
    find_excluded_platform,
    find_non_dev_pattern,
)
from gigscout.scoring.types import ClientQuality, Enrichment, ProfessionalSignals, ScoreBreakdown


def _make_job(title="Webflow site build", description="", **overrides) -> JobPosting:
    base = dict(
        id="job-1",
        title=title,
        description=description,
        client=ClientProfile(payment_verified=True, rating=4.8),
    )
    base.update(overrides)
    return JobPosting(**base)


def _breakdown(*, open_budget=0, we_language=0, job_clarity=10, ehr_potential=10) -> ScoreBreakdown:
    return ScoreBreakdown(
        client_quality=ClientQuality(payment_verified=15, spend_history=3, recency_and_competition=0),
        keywords_match=10,
        professional_signals=ProfessionalSignals(open_budget=open_budget, we_language=we_language),
        business_impact=10,
        job_clarity=job_clarity,
        ehr_potential=ehr_potential,
        red_flags=0,
    )


def _evaluate(job, *, score=85, breakdown=None, price=3000, ehr=70):
    return evaluate_recommendation(
        job,
        score=score,
        breakdown=breakdown or _breakdown(),
        enrichment=Enrichment(estimated_price=price, estimated_ehr=ehr),
        settings=default_settings(),
    )


# ------------------------------------------------------------------
# Hard exclusions
# ------------------------------------------------------------------

def test_non_dev_job_is_excluded_first():
    d = _evaluate(_make_job(title="Join our sales team", description="Build a Webflow site"))
    assert d.classification == Classification.NOT_RECOMMENDED
    assert d.pathway == Pathway.NON_DEV_EXCLUDED
    assert d.criteria["pattern"] == "sales team"


def test_excluded_platform_ghl():
    d = _evaluate(_make_job(title="Build funnels in GHL"))
    assert d.pathway == Pathway.PLATFORM_EXCLUDED
    assert d.criteria["platform"] == "go high level"


def test_platform_alias_needs_word_boundary():
    assert find_excluded_platform("add highlights to the hero section") is None
    assert find_excluded_platform("animated bubbles on the homepage") is None


def test_ghl_to_webflow_migration_is_allowed():
    assert find_excluded_platform("migrate our ghl site to webflow") is None
    d = _evaluate(_make_job(title="Migrate our GHL site to Webflow"))
    assert d.pathway != Pathway.PLATFORM_EXCLUDED


def test_migration_carve_out_does_not_cover_other_platforms():
    assert find_excluded_platform("move from ghl to webflow and connect shopify") == ("shopify", "shopify")


def test_find_non_dev_pattern_none_for_dev_work():
    assert find_non_dev_pattern("build a client portal") is None


# ------------------------------------------------------------------
# Star / exceptional / normal
# ------------------------------------------------------------------

def test_star_criteria_win_over_low_score_and_unverified_payment():
    job = _make_job(client=ClientProfile(payment_verified=False, rating=0))
    d = _evaluate(job, score=40, breakdown=_breakdown(open_budget=5, we_language=3), price=6000, ehr=20)
    assert d.pathway == Pathway.STAR
    assert d.is_recommended is True


def test_low_client_rating_blocks_star():
    job = _make_job(client=ClientProfile(payment_verified=False, rating=3.5))
    d = _evaluate(job, score=40, breakdown=_breakdown(open_budget=5, we_language=3), price=6000, ehr=20)
    assert d.pathway == Pathway.REJECTED


def test_exceptional_quality_bypasses_payment_verification():
    job = _make_job(client=ClientProfile(payment_verified=False))
    d = _evaluate(
        job,
        score=65,
        breakdown=_breakdown(we_language=5, job_clarity=15, ehr_potential=13),
        ehr=80,
    )
    assert d.pathway == Pathway.EXCEPTIONAL


def test_repost_blocks_exceptional_and_normal():
    job = _make_job(client=ClientProfile(payment_verified=False), is_repost=True)
    d = _evaluate(
        job,
        score=65,
        breakdown=_breakdown(we_language=5, job_clarity=15, ehr_potential=13),
        ehr=80,
    )
    assert d.pathway == Pathway.REJECTED


def test_normal_thresholds():
    d = _evaluate(_make_job(), score=85, ehr=70)
    assert d.pathway == Pathway.NORMAL
    assert d.classification == Classification.RECOMMENDED


def test_high_score_without_verified_payment_is_rejected():
    job = _make_job(client=ClientProfile(payment_verified=False))
    d = _evaluate(job, score=99, ehr=90)
    assert d.pathway == Pathway.REJECTED
    assert "payment_verified" in d.reason


def test_duplicate_is_rejected():
    d = _evaluate(_make_job(is_duplicate=True), score=90, ehr=90)
    assert d.pathway == Pathway.REJECTED
    assert "not_duplicate" in d.reason


def test_low_ehr_is_rejected():
    d = _evaluate(_make_job(), score=90, ehr=40)
    assert d.pathway == Pathway.REJECTED
    assert d.to_dict()["classification"] == "not_recommended"


def test_fractional_ehr_below_minimum_is_rejected():
    d = _evaluate(_make_job(), score=90, ehr=59.5)
    assert d.pathway == Pathway.REJECTED
    assert "ehr" in d.reason


def test_ehr_exactly_at_minimum_passes():
    d = _evaluate(_make_job(), score=90, ehr=60)
    assert d.pathway == Pathway.NORMAL
