import json
from datetime import datetime, timezone

import pytest

from gigscout.models import ClientProfile, JobPosting, TriageRun, default_settings
from gigscout.scoring.engine import score_job
from gigscout.tracking import JsonJobRepository

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_job(job_id: str, title: str = "Webflow client portal", **overrides) -> JobPosting:
    base = dict(
        id=job_id,
        title=title,
        description="We need a Webflow site with a members-only client portal and HubSpot forms.",
        client=ClientProfile(payment_verified=True, total_spent=5000, rating=4.8),
    )
    base.update(overrides)
    return JobPosting(**base)


def _score(*jobs):
    return [score_job(j, default_settings(), now=NOW) for j in jobs]


def test_upsert_counts_created_and_updated(tmp_path):
    repo = JsonJobRepository(tmp_path)

    assert repo.upsert_scored(_score(_make_job("a"), _make_job("b"))) == (2, 0)
    assert repo.upsert_scored(_score(_make_job("b"), _make_job("c"))) == (1, 1)

    records = repo.load_records()
    assert sorted(records) == ["a", "b", "c"]
    assert records["a"].pathway != ""


def test_jobs_file_is_json_keyed_by_id(tmp_path):
    repo = JsonJobRepository(tmp_path)
    repo.upsert_scored(_score(_make_job("a")))

    data = json.loads((tmp_path / "jobs.json").read_text(encoding="utf-8"))
    assert list(data) == ["a"]
    assert data["a"]["job"]["title"] == "Webflow client portal"
    assert data["a"]["classification"] in ("recommended", "not_recommended")


def test_known_postings_round_trip(tmp_path):
    repo = JsonJobRepository(tmp_path)
    repo.upsert_scored(_score(_make_job("a", budget=2500)))

    postings = repo.known_postings()
    assert len(postings) == 1
    assert postings[0].id == "a"
    assert postings[0].budget == 2500
    assert postings[0].client.payment_verified is True


def test_manual_override_survives_rescoring(tmp_path):
    repo = JsonJobRepository(tmp_path)
    repo.upsert_scored(_score(_make_job("a")))

    rec = repo.set_manual_override("a", True)
    assert rec.manual_override.force_recommended is True

    repo.upsert_scored(_score(_make_job("a", title="Webflow client portal v2")))

    rec = repo.load_records()["a"]
    assert rec.manual_override is not None
    assert rec.manual_override.force_recommended is True
    assert rec.final_classification.value == "recommended"
    assert rec.job["title"] == "Webflow client portal v2"
    assert repo.known_postings()[0].manual_override.force_recommended is True


def test_clearing_manual_override(tmp_path):
    repo = JsonJobRepository(tmp_path)
    repo.upsert_scored(_score(_make_job("a")))
    repo.set_manual_override("a", False)
    assert repo.load_records()["a"].final_classification.value == "not_recommended"

    rec = repo.set_manual_override("a", None)
    assert rec.manual_override is None
    assert repo.load_records()["a"].manual_override is None


def test_mark_applied_and_won(tmp_path):
    repo = JsonJobRepository(tmp_path)
    repo.upsert_scored(_score(_make_job("a")))

    applied = datetime(2025, 3, 2, tzinfo=timezone.utc)
    repo.mark_applied("a", at=applied)
    repo.mark_won("a")

    rec = repo.load_records()["a"]
    assert rec.applied_at == applied
    assert rec.won_at is not None

    repo.upsert_scored(_score(_make_job("a")))
    assert repo.load_records()["a"].applied_at == applied


def test_unknown_job_id_raises(tmp_path):
    repo = JsonJobRepository(tmp_path)
    with pytest.raises(KeyError):
        repo.mark_applied("missing")
    with pytest.raises(KeyError):
        repo.set_manual_override("missing", True)


def test_record_run_appends_json_lines(tmp_path):
    repo = JsonJobRepository(tmp_path)
    repo.record_run(TriageRun(), meta={"fetched_jobs": 3})
    repo.record_run(TriageRun())

    lines = (tmp_path / "runs.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["meta"] == {"fetched_jobs": 3}
    assert "ran_at" in first
    assert json.loads(lines[1])["meta"] == {}


def test_empty_repo_loads_nothing(tmp_path):
    repo = JsonJobRepository(tmp_path / "nested" / "dir")
    assert repo.load_records() == {}
    assert repo.known_postings() == []


def test_mark_seen_only_moves_last_seen(tmp_path):
    repo = JsonJobRepository(tmp_path)
    repo.upsert_scored(_score(_make_job("a"), _make_job("b")))
    before = repo.load_records()

    later = datetime(2025, 3, 2, 9, 30, tzinfo=timezone.utc)
    assert repo.mark_seen(["a", "missing", "a"], at=later) == 1

    after = repo.load_records()
    assert after["a"].last_seen_at == later
    assert after["a"].last_scored_at == before["a"].last_scored_at
    assert after["a"].score == before["a"].score
    assert after["a"].classification == before["a"].classification
    assert after["a"].pathway == before["a"].pathway
    assert after["a"].job == before["a"].job
    assert after["b"] == before["b"]
    assert "missing" not in after


def test_mark_seen_with_nothing_tracked_writes_nothing(tmp_path):
    repo = JsonJobRepository(tmp_path)
    assert repo.mark_seen(["a"]) == 0
    assert not (tmp_path / "jobs.json").exists()
