"""Test placeholder substitution."""

import re

import pytest

from piiscrubber import Entity, RedactionEngine
from piiscrubber.redaction import is_placeholder, placeholder_spans


def entity(type_, text, source):
    start = source.index(text)
    return Entity(type=type_, start=start, end=start + len(text), text=text, detector="regex")


class TestReplaceStrategy:
    """Test the default replace strategy."""

    def test_single_entity(self):
        text = "Mail jo@example.com now"
        redacted = RedactionEngine().apply(text, [entity("EMAIL", "jo@example.com", text)])
        assert redacted == "Mail [EMAIL] now"

    def test_offsets_survive_length_changes(self):
        text = "Dana Lee called 555-123-4567 about her anxiety."
        entities = [
            entity("NAME", "Dana Lee", text),
            entity("PHONE", "555-123-4567", text),
            entity("MEDICAL", "anxiety", text),
        ]
        assert RedactionEngine().apply(text, entities) == "[NAME] called [PHONE] about her [MEDICAL_INFO]."

    def test_placeholder_vocabulary(self):
        text = "10.0.0.1 and Acme and $90,000"
        entities = [
            entity("IP_ADDRESS", "10.0.0.1", text),
            entity("EMPLOYER", "Acme", text),
            entity("FINANCIAL", "$90,000", text),
        ]
        assert RedactionEngine().apply(text, entities) == "[IP] and [EMPLOYER] and [FINANCIAL_INFO]"

    def test_unknown_type_uses_default_placeholder(self):
        text = "Badge EMP-12345"
        redacted = RedactionEngine().apply(text, [entity("EMPLOYEE_ID", "EMP-12345", text)])
        assert redacted == "Badge [REDACTED]"

    def test_no_entities_returns_text(self):
        assert RedactionEngine().apply("nothing here", []) == "nothing here"

    def test_unusable_spans_are_skipped(self):
        text = "Dana Lee"
        spans = [
            Entity(type="NAME", start=0, end=99, text="x", detector="llm"),
            Entity(type="NAME", start=0, end=4, text="Dana", detector="llm"),
        ]
        assert RedactionEngine().apply(text, spans) == "[NAME] Lee"


class TestHashStrategy:
    """Test the keyed hash strategy."""

    def test_token_shape(self):
        text = "Mail jo@example.com"
        redacted = RedactionEngine("hash", hash_key="k").apply(
            text, [entity("EMAIL", "jo@example.com", text)]
        )
        assert re.fullmatch(r"Mail \[EMAIL_[0-9a-f]{8}\]", redacted)

    def test_equal_values_give_equal_tokens(self):
        text = "Dana met Dana"
        engine = RedactionEngine("hash", hash_key="k")
        first = Entity(type="NAME", start=0, end=4, text="Dana", detector="llm")
        second = Entity(type="NAME", start=9, end=13, text="Dana", detector="llm")

        tokens = engine.apply(text, [first, second]).split(" met ")
        assert tokens[0] == tokens[1]

    def test_key_changes_tokens(self):
        value = Entity(type="NAME", start=0, end=4, text="Dana", detector="llm")
        assert RedactionEngine("hash", hash_key="a").replacement_for(value) != RedactionEngine(
            "hash", hash_key="b"
        ).replacement_for(value)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            RedactionEngine("scramble")


class TestRemoveStrategy:
    """Test deleting entity spans."""

    def test_spans_are_deleted(self):
        text = "Call Dana on 555-123-4567."
        entities = [entity("NAME", "Dana", text), entity("PHONE", "555-123-4567", text)]
        assert RedactionEngine("remove").apply(text, entities) == "Call  on ."


class TestMaskStrategy:
    """Test partial masking."""

    @pytest.mark.parametrize(
        "type_, value, expected",
        [
            ("EMAIL", "john@example.com", "j***@e***.com"),
            ("EMAIL", "jo@mail.example.org", "j*@m***.org"),
            ("PHONE", "(617) 555-1234", "***-***-1234"),
            ("NAME", "Sarah Johnson", "S*** J***"),
            ("NAME", "Al", "A*"),
            ("SSN", "123-45-6789", "*******6789"),
            ("CREDIT_CARD", "4111111111111111", "************1111"),
            ("MEDICAL", "generalised anxiety", "********"),
            ("EMPLOYER", "Acme", "****"),
        ],
    )
    def test_mask(self, type_, value, expected):
        text = f"Value: {value}."
        redacted = RedactionEngine("mask").apply(text, [entity(type_, value, text)])
        assert redacted == f"Value: {expected}."

    def test_email_without_domain_falls_back_to_placeholder(self):
        value = Entity(type="EMAIL", start=0, end=4, text="jo@x", detector="llm")
        assert RedactionEngine.mask(value) == "[EMAIL]"


class TestPreserveLengthStrategy:
    """Test length-preserving redaction."""

    def test_offsets_stay_aligned(self):
        text = "Dana Lee called 555-123-4567 about her anxiety."
        entities = [entity("NAME", "Dana Lee", text), entity("PHONE", "555-123-4567", text)]
        redacted = RedactionEngine("preserve_length").apply(text, entities)

        assert redacted == "******** called ************ about her anxiety."
        assert len(redacted) == len(text)


class TestValidation:
    """Test post-redaction checks."""

    def test_complete_redaction(self):
        text = "Mail jo@example.com"
        entities = [entity("EMAIL", "jo@example.com", text)]
        assert RedactionEngine.validate(text, "Mail [EMAIL]", entities) == []

    def test_leftover_value_is_reported(self):
        text = "Mail jo@example.com"
        entities = [entity("EMAIL", "jo@example.com", text)]
        errors = RedactionEngine.validate(text, text, entities)
        assert errors == [{"type": "incomplete_redaction", "entityType": "EMAIL"}]

    def test_empty_output_is_reported(self):
        assert RedactionEngine.validate("something", "   ", []) == [{"type": "empty_output"}]


class TestPlaceholderTokens:
    """Test placeholder recognition."""

    def test_recognises_plain_and_hashed_tokens(self):
        assert is_placeholder("[NAME]")
        assert is_placeholder("[MEDICAL_INFO]")
        assert is_placeholder("[EMAIL_0a1b2c3d]")
        assert not is_placeholder("[Dana]")
        assert not is_placeholder("NAME")

    def test_spans(self):
        assert placeholder_spans("Hi [NAME], call [PHONE].") == [(3, 9), (16, 23)]
