from gigscout.core.numbers import clamp, round_half_up, round_to_nearest
from gigscout.core.text_processing import (
    contains_word,
    count_word,
    matched_phrases,
    normalize_text,
    pad,
    scoring_text,
)


def test_normalize_text_handles_unicode_quirks():
    raw = "We’re building “fast” sites – today"
    assert normalize_text(raw) == "We're building \"fast\" sites - today"


def test_normalize_text_collapses_whitespace_and_handles_empty():
    assert normalize_text("  a \n\t b  ") == "a b"
    assert normalize_text("") == ""


def test_scoring_text_is_lowercased_title_plus_description():
    assert scoring_text("Webflow Site", "Need  SEO") == "webflow site need seo"
    assert scoring_text("", "") == ""


def test_pad_wraps_in_single_spaces():
    assert pad("ghl") == " ghl "


def test_contains_word_respects_word_boundaries():
    assert contains_word("overlap with est hours", "est") is True
    assert contains_word("best practices", "est") is False
    assert contains_word("anything", "") is False


def test_count_word_counts_whole_words_only():
    text = "we know we can, weekly updates for us and users"
    assert count_word(text, "we") == 2
    assert count_word(text, "us") == 1


def test_matched_phrases_keeps_declaration_order_and_dedupes():
    text = "client portal with a dashboard"
    assert matched_phrases(text, ["dashboard", "portal", "dashboard", "", "blog"]) == ["dashboard", "portal"]


def test_round_half_up_matches_half_away_from_floor():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4) == 2
    assert round_half_up(-2.5) == -2
    assert round_half_up(106.95) == 107


def test_round_to_nearest_step():
    assert round_to_nearest(1237, 5) == 1235
    assert round_to_nearest(1238, 5) == 1240
    assert round_to_nearest(7.5, 0) == 8


def test_clamp():
    assert clamp(120, 0, 100) == 100
    assert clamp(-3, 0, 100) == 0
    assert clamp(42, 0, 100) == 42
