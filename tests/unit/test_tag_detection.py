from gigscout.detection.tags import (
    MAX_TAGS,
    all_tag_names,
    detect_job_tags,
    drop_generic_website_tag,
    get_tags_by_category,
    has_excluded_platform_tag,
    match_tags,
)


def test_tags_sorted_by_priority_and_generic_website_dropped():
    tags = detect_job_tags("Webflow website redesign", "")
    assert tags == ["Webflow", "Redesign"]


def test_generic_website_tag_kept_when_nothing_more_specific():
    assert detect_job_tags("Simple website", "") == ["Website"]


def test_space_wrapped_keyword_matches_at_text_start():
    assert detect_job_tags("wp site fix", "") == ["WordPress", "Website"]


def test_ghl_requires_whole_word():
    assert "Go High Level" not in detect_job_tags("Landing page with highlights", "")
    assert detect_job_tags("Need GHL automation expert", "")[0] == "Go High Level"


def test_excluded_platform_detected_from_tags():
    tags = detect_job_tags("Need GHL automation expert", "")
    assert has_excluded_platform_tag(tags) is True
    assert has_excluded_platform_tag(["Webflow"]) is False


def test_no_tags_for_empty_text():
    assert detect_job_tags("", "") == []


def test_at_most_max_tags_returned():
    tags = detect_job_tags(
        "React SaaS dashboard",
        "Custom platform with Stripe payment, real-time updates, Python API and Postgres database.",
    )
    assert len(tags) == MAX_TAGS


def test_match_tags_is_stable_for_equal_priority():
    matched = match_tags("wix site or squarespace site")
    names = [d.name for d in matched if d.priority == 70 and d.category == "Platform"]
    assert names == ["Wix", "Squarespace"]


def test_drop_generic_passes_through_without_specific_project_type():
    matched = match_tags("landing page")
    assert [d.name for d in drop_generic_website_tag(matched)] == ["Website"]


def test_get_tags_by_category_ignores_unknown_names():
    grouped = get_tags_by_category(["Webflow", "Redesign", "Nope"])
    assert grouped == {"Platform": ["Webflow"], "Project Type": ["Redesign"]}


def test_all_tag_names_unique():
    names = all_tag_names()
    assert len(names) == len(set(names))
    assert "Webflow" in names
