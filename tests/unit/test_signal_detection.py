from gigscout.detection.signals import (
    Confidence,
    detect_custom_application,
    detect_dashboard,
    detect_portal,
    detect_us_based,
    detect_webflow,
)


# ------------------------------------------------------------------
# Custom application
# ------------------------------------------------------------------

def test_custom_application_high_confidence():
    res = detect_custom_application("We need a custom application built for our clinic")
    assert res.is_detected is True
    assert res.confidence == Confidence.HIGH
    assert res.metadata["tier"] == 1
    assert "custom application" in res.patterns


def test_custom_website_is_medium_confidence():
    res = detect_custom_application("Custom website for a bakery")
    assert res.is_detected is True
    assert res.confidence == Confidence.MEDIUM
    assert res.metadata["tier"] == 2


def test_customer_alone_is_not_custom_work():
    res = detect_custom_application("Improve customer experience on checkout")
    assert res.is_detected is False
    assert res.metadata["false_positive"] == "customer"


def test_customizing_existing_product_is_not_custom_work():
    res = detect_custom_application("Customization of our Shopify theme")
    assert res.is_detected is False
    assert res.metadata["false_positive"] == "customization"


def test_no_custom_signal():
    res = detect_custom_application("Fix the contact form")
    assert res.is_detected is False
    assert res.confidence == Confidence.NONE


# ------------------------------------------------------------------
# US-based
# ------------------------------------------------------------------

def test_us_based_phrase_is_high_confidence():
    res = detect_us_based("Looking for a US-based developer")
    assert res.is_detected is True
    assert res.confidence == Confidence.HIGH
    assert res.metadata["explicit_location"] is True


def test_time_zone_abbreviation_alone_is_medium():
    res = detect_us_based("Must overlap with EST hours")
    assert res.is_detected is True
    assert res.confidence == Confidence.MEDIUM
    assert res.metadata["time_zone_mentioned"] is True
    assert res.metadata["time_zones"] == ["est"]


def test_time_zone_abbreviation_needs_whole_word():
    assert detect_us_based("Follow best practices").is_detected is False


def test_lowercase_us_pronoun_is_not_a_location():
    assert detect_us_based("Contact us for details").is_detected is False


def test_two_independent_cues_are_high_confidence():
    res = detect_us_based("Client in the USA, Pacific time preferred")
    assert res.confidence == Confidence.HIGH
    assert res.metadata["explicit_location"] is False
    assert res.metadata["cue_kinds"] == 2
    assert "USA" in res.patterns


# ------------------------------------------------------------------
# Presence detectors
# ------------------------------------------------------------------

def test_dashboard_patterns_in_declaration_order():
    res = detect_dashboard("Admin panel and KPI dashboard")
    assert res.is_detected is True
    assert res.patterns == ["dashboard", "admin panel", "kpi dashboard"]


def test_webflow_and_portal_detection():
    assert detect_webflow("Web Flow site refresh").is_detected is True
    assert detect_portal("Member area with logins").is_detected is True
    assert detect_portal("").is_detected is False


def test_detection_result_to_dict_serialises_confidence():
    d = detect_webflow("webflow").to_dict()
    assert d["confidence"] == "high"
    assert d["patterns"] == ["webflow"]
