"""Pytest configuration and fixtures."""

import json
import threading
from typing import Callable, Dict, List, Optional

import pytest

from piiscrubber import PIIScrubber, ScrubConfig
from piiscrubber.providers.base import (
    ERROR_TIMEOUT,
    BaseLLMProvider,
    CompletionResult,
    ModelInfo,
)

PROMPT_TEXT_MARKER = "TEXT TO ANALYZE:\n"


def analyzed_text(prompt: str) -> str:
    """The document text embedded in a detection prompt."""
    return prompt.split(PROMPT_TEXT_MARKER, 1)[1]


def entities_response(entities: List[Dict]) -> CompletionResult:
    return CompletionResult(
        success=True,
        content=json.dumps({"entities": entities}),
        input_tokens=100,
        output_tokens=20,
        model="fake-model",
    )


def timeout_response() -> CompletionResult:
    return CompletionResult(
        success=False,
        content="",
        model="fake-model",
        error="Request timed out.",
        error_type=ERROR_TIMEOUT,
    )


class FakeProvider(BaseLLMProvider):
    """In-process stand-in for a hosted completion service."""

    def __init__(self, responder: Optional[Callable[[str], CompletionResult]] = None):
        super().__init__(api_key="test-key", model="fake")
        self.responder = responder or (lambda prompt: entities_response([]))
        self.calls: List[Dict] = []
        self._lock = threading.Lock()

    def complete(
        self,
        prompt,
        system=None,
        max_tokens=2048,
        temperature=0.0,
        timeout=None,
        json_mode=False,
    ):
        with self._lock:
            self.calls.append(
                {
                    "prompt": prompt,
                    "system": system,
                    "temperature": temperature,
                    "timeout": timeout,
                    "json_mode": json_mode,
                }
            )
        return self.responder(prompt)

    def get_model_info(self):
        return ModelInfo(
            name="fake",
            provider="fake",
            model_id="fake-model",
            input_cost_per_million=0.15,
            output_cost_per_million=0.60,
            supports_json_mode=True,
        )

    @classmethod
    def get_provider_name(cls):
        return "fake"


def known_entities(catalog: Dict[str, str]) -> Callable[[str], CompletionResult]:
    """Responder that reports every catalog entry present in the analysed text.

    ``catalog`` maps entity text to entity type.
    """

    def respond(prompt: str) -> CompletionResult:
        text = analyzed_text(prompt)
        found = []
        for value, entity_type in catalog.items():
            index = text.find(value)
            if index >= 0:
                found.append(
                    {
                        "text": value,
                        "type": entity_type,
                        "start": index,
                        "end": index + len(value),
                        "confidence": 0.95,
                    }
                )
        return entities_response(found)

    return respond


@pytest.fixture
def fake_provider():
    """Provider that finds nothing."""
    return FakeProvider()


@pytest.fixture
def make_scrubber():
    """Build a scrubber around a FakeProvider with the given responder/options."""

    def build(responder=None, **options):
        provider = FakeProvider(responder)
        return PIIScrubber(provider=provider, **options), provider

    return build


@pytest.fixture
def contact_text() -> str:
    return "Contact John Smith at john.smith@example.com or 555-123-4567."


@pytest.fixture
def transcript_text() -> str:
    return """Coach: Welcome back, Sarah. How has the week been?

Sarah Johnson: Honestly stressful. My manager at Google keeps moving deadlines,
and I've been dealing with anxiety since the reorg. You can reach me at
sarah.j@example.com or (617) 555-0142 if we need to reschedule.

Coach: Thanks. Let's look at your DISC results again and use the GROW model
to plan the conversation with your direct report.
"""


@pytest.fixture
def default_config() -> ScrubConfig:
    return ScrubConfig()
