"""Test regex-based detection (stdlib only, no model calls)."""

import re

import pytest

from piiscrubber.detectors import RegexDetector
from piiscrubber.detectors.regex import luhn_valid


def detect_types(text, **kwargs):
    return [(e.type, e.text) for e in RegexDetector(**kwargs).detect(text).entities]


class TestEmail:
    """Test email detection."""

    def test_detects_email(self):
        assert detect_types("Write to john.smith@example.com today") == [
            ("EMAIL", "john.smith@example.com")
        ]

    def test_offsets_are_exact(self):
        text = "Mail: a.b+tag@mail.example.org."
        entity = RegexDetector().detect(text).entities[0]
        assert text[entity.start : entity.end] == "a.b+tag@mail.example.org"

    def test_regex_confidence_is_maximal(self):
        entity = RegexDetector().detect("x@example.com").entities[0]
        assert entity.confidence == 1.0
        assert entity.detector == "regex"


class TestPhone:
    """Test phone number detection."""

    def test_dashed_us_number(self):
        assert detect_types("Call 555-123-4567 now") == [("PHONE", "555-123-4567")]

    def test_parenthesized_area_code(self):
        assert ("PHONE", "(617) 555-1234") in detect_types("Call (617) 555-1234")

    def test_international_prefix(self):
        assert ("PHONE", "+1-617-555-1234") in detect_types("Call +1-617-555-1234")

    @pytest.mark.parametrize(
        "number", ["+14155552671", "+1 4155552671", "+44 20 7946 0958", "+33 (0)1 42 68 53 00"]
    )
    def test_e164_numbers(self, number):
        assert detect_types(f"Call me at {number} today") == [("PHONE", number)]

    def test_e164_number_at_sentence_end(self):
        assert detect_types("Reach me on +14155552671.") == [("PHONE", "+14155552671")]

    def test_short_plus_number_is_not_a_phone(self):
        assert detect_types("Scored +12345 points") == []

    def test_bare_digit_run_is_not_a_phone(self):
        assert detect_types("Order 6175551234 shipped") == []

    def test_not_inside_longer_number(self):
        assert detect_types("Ref 12555-123-45679") == []


class TestStructuredIds:
    """Test SSN, card and IP detection."""

    def test_ssn(self):
        assert detect_types("SSN 123-45-6789 on file") == [("SSN", "123-45-6789")]

    def test_invalid_ssn_area_rejected(self):
        assert detect_types("SSN 000-45-6789") == []
        assert detect_types("SSN 666-45-6789") == []

    def test_credit_card_with_luhn(self):
        assert detect_types("Card 4111 1111 1111 1111 expires") == [
            ("CREDIT_CARD", "4111 1111 1111 1111")
        ]

    def test_credit_card_failing_luhn_rejected(self):
        assert detect_types("Card 4111 1111 1111 1112 expires") == []

    def test_ip_address(self):
        assert detect_types("Host 192.168.1.20 responded") == [
            ("IP_ADDRESS", "192.168.1.20")
        ]

    def test_ip_octet_out_of_range(self):
        assert detect_types("Version 300.1.2.3") == []

    def test_luhn(self):
        assert luhn_valid("4111111111111111")
        assert not luhn_valid("4111111111111112")


class TestDetectorBehaviour:
    """Test general detector behaviour."""

    def test_empty_text(self):
        assert RegexDetector().detect("").entities == []

    def test_no_pii(self):
        assert detect_types("DISC assessment: D:80 I:60 S:40 C:50") == []

    def test_entities_sorted_and_non_overlapping(self):
        text = "a@example.com 555-123-4567 b@example.com 123-45-6789"
        entities = RegexDetector().detect(text).entities
        starts = [e.start for e in entities]
        assert starts == sorted(starts)
        for first, second in zip(entities, entities[1:]):
            assert first.end <= second.start

    def test_restricted_entity_list(self):
        text = "x@example.com 555-123-4567"
        assert detect_types(text, entities=["PHONE"]) == [("PHONE", "555-123-4567")]

    def test_custom_pattern(self):
        detector = RegexDetector(
            entities=["EMAIL"], custom_patterns={"EMPLOYEE_ID": re.compile(r"\bEMP-\d{5}\b")}
        )
        types = [e.type for e in detector.detect("Badge EMP-12345").entities]
        assert types == ["EMPLOYEE_ID"]
        assert "EMPLOYEE_ID" in detector.get_supported_entities()

    def test_placeholders_are_not_matched(self):
        assert detect_types("Contact [NAME] at [EMAIL] or [PHONE].") == []
