"""Test the LLM entity detector against an in-process provider."""

import pytest

from piiscrubber import (
    DetectionResponseError,
    DetectionTimeout,
    DetectionTransportError,
    LLMEntityDetector,
    ScrubConfig,
)
from piiscrubber.detectors import compute_timeout_ms
from piiscrubber.detectors.llm import SYSTEM_PROMPT, parse_response
from piiscrubber.detectors.vocabulary import is_excluded
from piiscrubber.providers.base import ERROR_API, CompletionResult

from conftest import (
    FakeProvider,
    analyzed_text,
    entities_response,
    known_entities,
    timeout_response,
)

TEXT = "Sarah Johnson mentioned that her manager at Google was supportive."


def build(responder, **options):
    provider = FakeProvider(responder)
    return LLMEntityDetector(provider, ScrubConfig(**options)), provider


class TestTimeoutFormula:
    """Test the adaptive per-call timeout."""

    def test_empty_text_gets_base_timeout(self):
        assert compute_timeout_ms("", 30_000, 10_000, 600_000) == 30_000

    def test_partial_kilobyte_rounds_up(self):
        assert compute_timeout_ms("a", 30_000, 10_000, 600_000) == 40_000
        assert compute_timeout_ms("a" * 1024, 30_000, 10_000, 600_000) == 40_000
        assert compute_timeout_ms("a" * 1025, 30_000, 10_000, 600_000) == 50_000

    def test_measured_in_utf8_bytes(self):
        # 600 two-byte characters are 1200 bytes
        assert compute_timeout_ms("é" * 600, 30_000, 10_000, 600_000) == 50_000

    def test_capped_at_maximum(self):
        assert compute_timeout_ms("a" * 1_000_000, 30_000, 10_000, 600_000) == 600_000

    def test_detector_passes_timeout_in_seconds(self):
        detector, provider = build(known_entities({}))
        detector.detect(TEXT, "transcript")

        assert provider.calls[0]["timeout"] == 40.0
        assert detector.timeout_ms(TEXT) == 40_000


class TestCallParameters:
    """Test what the detector sends to the provider."""

    def test_deterministic_json_request(self):
        detector, provider = build(known_entities({}))
        detector.detect(TEXT, "transcript")

        call = provider.calls[0]
        assert call["temperature"] == 0.0
        assert call["json_mode"] is True
        assert call["system"] == SYSTEM_PROMPT

    def test_prompt_carries_text_and_data_type(self):
        detector, provider = build(known_entities({}))
        detector.detect(TEXT, "coach_assessment")

        prompt = provider.calls[0]["prompt"]
        assert analyzed_text(prompt) == TEXT
        assert "coach_assessment data" in prompt

    def test_short_text_skips_the_call(self):
        detector, provider = build(known_entities({}))
        outcome = detector.detect("Hi Dana", "transcript")

        assert provider.calls == []
        assert outcome.entities == []
        assert not outcome.degraded


class TestRetries:
    """Test retry and failure reporting."""

    def test_timeouts_exhaust_all_attempts(self):
        detector, provider = build(lambda prompt: timeout_response(), max_retries=2)
        outcome = detector.detect(TEXT, "transcript")

        assert len(provider.calls) == 3
        assert outcome.calls == 3
        assert isinstance(outcome.error, DetectionTimeout)
        assert outcome.error.attempts == 3
        assert outcome.entities == []

    def test_zero_retries_means_one_attempt(self):
        detector, provider = build(lambda prompt: timeout_response(), max_retries=0)
        detector.detect(TEXT, "transcript")
        assert len(provider.calls) == 1

    def test_recovers_after_timeout(self):
        answers = iter([timeout_response(), entities_response([{"text": "Google", "type": "EMPLOYER"}])])
        detector, provider = build(lambda prompt: next(answers))
        outcome = detector.detect(TEXT, "transcript")

        assert len(provider.calls) == 2
        assert outcome.error is None
        assert [e.text for e in outcome.entities] == ["Google"]

    def test_auth_failure_is_not_retried(self):
        unauthorized = CompletionResult(
            success=False, content="", error="Unauthorized", error_type=ERROR_API, status_code=401
        )
        detector, provider = build(lambda prompt: unauthorized)
        outcome = detector.detect(TEXT, "transcript")

        assert len(provider.calls) == 1
        assert isinstance(outcome.error, DetectionTransportError)

    def test_rate_limit_is_retried(self):
        limited = CompletionResult(
            success=False, content="", error="Too many requests", error_type=ERROR_API, status_code=429
        )
        detector, provider = build(lambda prompt: limited, max_retries=1)
        detector.detect(TEXT, "transcript")
        assert len(provider.calls) == 2

    def test_malformed_answers_are_retried(self):
        garbage = CompletionResult(success=True, content="I could not find any PII.")
        detector, provider = build(lambda prompt: garbage)
        outcome = detector.detect(TEXT, "transcript")

        assert len(provider.calls) == 3
        assert isinstance(outcome.error, DetectionResponseError)

    def test_token_usage_accumulates_over_attempts(self):
        answers = iter([timeout_response(), entities_response([])])
        detector, _ = build(lambda prompt: next(answers))
        outcome = detector.detect(TEXT, "transcript")

        assert outcome.calls == 2
        assert outcome.input_tokens == 100
        assert outcome.output_tokens == 20


class TestResponseParsing:
    """Test parsing of model answers."""

    def test_json_wrapped_in_prose(self):
        response = parse_response('Here you go: {"entities": [{"text": "Dana", "type": "name"}]} done')
        assert response.entities[0].type == "NAME"

    def test_type_aliases_are_normalised(self):
        response = parse_response('{"entities": [{"text": "Acme", "type": "ORGANIZATION"}]}')
        assert response.entities[0].type == "EMPLOYER"

    def test_confidence_is_clamped(self):
        response = parse_response('{"entities": [{"text": "Dana", "type": "NAME", "confidence": 7}]}')
        assert response.entities[0].confidence == 1.0

    def test_invalid_payload_raises(self):
        with pytest.raises(DetectionResponseError):
            parse_response('{"entities": "none"}')


class TestEntityResolution:
    """Test how model output becomes entities."""

    def test_offsets_are_taken_from_text(self):
        wrong_offsets = entities_response([{"text": "Google", "type": "EMPLOYER", "start": 0, "end": 6}])
        detector, _ = build(lambda prompt: wrong_offsets)
        entity = detector.detect(TEXT, "transcript").entities[0]

        assert TEXT[entity.start : entity.end] == "Google"
        assert entity.detector == "llm"

    def test_every_occurrence_is_found(self):
        text = "Sarah Johnson called. Later sarah johnson wrote again. Johnson agreed."
        detector, _ = build(known_entities({"Sarah Johnson": "NAME"}))
        entities = detector.detect(text, "transcript").entities

        full = [e for e in entities if e.text.lower() == "sarah johnson"]
        assert [e.start for e in full] == [0, 28]

        surname = [e for e in entities if e.start == text.rindex("Johnson")]
        assert len(surname) == 1
        assert surname[0].confidence <= 0.8

    def test_matching_claimed_offsets_are_kept(self):
        text = "Notes were signed off by JSmith2024 after the review meeting."
        start = text.index("Smith")
        claimed = entities_response([{"text": "Smith", "type": "NAME", "start": start, "end": start + 5}])
        detector, _ = build(lambda prompt: claimed)
        entities = detector.detect(text, "transcript").entities

        assert [(e.start, e.end) for e in entities] == [(start, start + 5)]

    def test_hallucinated_entity_is_dropped(self):
        detector, _ = build(lambda prompt: entities_response([{"text": "Michael Brown", "type": "NAME"}]))
        assert detector.detect(TEXT, "transcript").entities == []

    def test_types_outside_llm_scope_are_ignored(self):
        text = "Reach the team lead on 555-123-4567 after lunch today."
        detector, _ = build(known_entities({"555-123-4567": "PHONE"}))
        assert detector.detect(text, "transcript").entities == []

    def test_coaching_vocabulary_is_excluded(self):
        text = "The client reviewed the DISC profile: D:80 I:60 S:40 C:50."
        catalog = {"The client": "NAME", "DISC": "NAME", "D:80": "FINANCIAL", "I:60": "FINANCIAL"}
        detector, _ = build(known_entities(catalog))

        assert detector.detect(text, "assessment").entities == []

    @pytest.mark.parametrize(
        "score_line", ["D:80 I:60 S:40 C:50", "D: 80, I: 60, S: 40, C: 50", "D=80%/I=60%"]
    )
    def test_score_lines_are_vocabulary(self, score_line):
        assert is_excluded(score_line, "FINANCIAL", "assessment")
        assert is_excluded(score_line, "NAME", "coach_assessment")
        assert not is_excluded(score_line, "FINANCIAL", "transcript")

    def test_placeholders_are_never_entities(self):
        text = "[NAME] met Dana at the office for a long session."
        detector, _ = build(known_entities({"[NAME]": "NAME", "Dana": "NAME"}))
        entities = detector.detect(text, "transcript").entities

        assert [e.text for e in entities] == ["Dana"]

    def test_word_boundaries(self):
        text = "Ann said the annual planning session was annoying for everyone."
        detector, _ = build(known_entities({"Ann": "NAME"}))
        entities = detector.detect(text, "transcript").entities

        assert [(e.start, e.end) for e in entities] == [(0, 3)]
