"""
LLM-based entity detector.

Finds the PII that patterns cannot: names, addresses, dates of birth,
medical and financial details, employers. Understands coaching vocabulary
so assessment and framework names are not flagged.
"""

import json
import logging
import math
import re
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..config import ScrubConfig
from ..exceptions import (
    DetectionError,
    DetectionResponseError,
    DetectionTimeout,
    DetectionTransportError,
)
from ..providers import BaseLLMProvider
from ..providers.base import ERROR_TIMEOUT
from ..redaction import is_placeholder, placeholder_spans
from ..types import DETECTOR_LLM, DetectionOutcome, Entity
from .base import BaseDetector
from .vocabulary import is_excluded

logger = logging.getLogger(__name__)

LLM_ENTITY_TYPES = ("NAME", "ADDRESS", "DOB", "MEDICAL", "FINANCIAL", "EMPLOYER")

# Labels models tend to use instead of ours
TYPE_ALIASES = {
    "PERSON": "NAME",
    "PERSON_NAME": "NAME",
    "LOCATION": "ADDRESS",
    "DATE_OF_BIRTH": "DOB",
    "HEALTH": "MEDICAL",
    "MEDICAL_INFO": "MEDICAL",
    "FINANCIAL_INFO": "FINANCIAL",
    "COMPANY": "EMPLOYER",
    "ORGANIZATION": "EMPLOYER",
}

SYSTEM_PROMPT = (
    "You are a PII detection assistant specialized in coaching and professional "
    "development content. You understand coaching terminology and frameworks."
)

PROMPT_TEMPLATE = """You are analyzing {data_type} data from a coaching context. Identify personally identifiable information (PII).

PII CATEGORIES TO DETECT:
- NAME: person names, including standalone first names that refer to a specific person ("Emily mentioned", "Dr. Smith"). Not generic references like "the client" or "a manager".
- ADDRESS: street addresses and specific locations ("123 Main St, Boston, MA"). Not company locations alone.
- DOB: dates of birth, or ages tied to a person ("born on March 15, 1985", "Sarah, 35 years old").
- MEDICAL: diagnoses, medications, health and mental health conditions ("diagnosed with anxiety", "takes medication for", "in therapy").
- FINANCIAL: salaries, account numbers, specific financial status ("makes $150,000", "account #12345").
- EMPLOYER: employer or company names mentioned with person context ("works at Google", "Sarah's team at Amazon").

DO NOT FLAG (coaching terminology):
- Assessment names and scores: DISC, Myers-Briggs, MBTI, Enneagram, StrengthsFinder, 16 Personalities, score lines like "D:80 I:60".
- Coaching frameworks: Adaptive Leadership, Growth Mindset, Fixed Mindset, Theory of Change, GROW model.
- Generic roles and titles without names: "the client", "the coachee", "a direct report", "CEO", "Director".
- Generic organisations: "a tech company", "the organization".
- Bracketed placeholders such as [NAME] or [EMAIL]; they are already redacted.

RESPONSE FORMAT:
Return ONLY valid JSON with this exact structure:
{{"entities": [{{"text": "exact text from input", "type": "NAME|ADDRESS|DOB|MEDICAL|FINANCIAL|EMPLOYER", "start": 0, "end": 0, "confidence": 0.9}}]}}

- Use exact text spans from the input, with 0-indexed start/end character positions.
- Confidence 0.9+ for clear PII, 0.7-0.9 for ambiguous.
- If no PII is found, return {{"entities": []}}

TEXT TO ANALYZE:
{text}"""


class LLMEntity(BaseModel):
    """One entity as reported by the model."""

    text: str
    type: str
    start: Optional[int] = None
    end: Optional[int] = None
    confidence: float = 0.9

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        label = v.strip().upper().replace(" ", "_")
        return TYPE_ALIASES.get(label, label)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v) -> float:
        if v is None:
            return 0.9
        return min(max(float(v), 0.0), 1.0)


class EntityResponse(BaseModel):
    """Structured output contract for the detection prompt."""

    entities: List[LLMEntity] = Field(default_factory=list)


def compute_timeout_ms(
    text: str, base_ms: int, per_kb_ms: int, max_ms: int
) -> int:
    """Adaptive timeout: ``min(max, base + per_kb * ceil(bytes / 1024))``."""
    size_kb = math.ceil(len(text.encode("utf-8", errors="replace")) / 1024)
    return min(max_ms, base_ms + per_kb_ms * size_kb)


def parse_response(content: str) -> EntityResponse:
    """Parse the model's JSON answer.

    Raises:
        DetectionResponseError: If no valid entity payload can be read
    """
    try:
        json_start = content.find("{")
        json_end = content.rfind("}") + 1
        if json_start >= 0 and json_end > json_start:
            data = json.loads(content[json_start:json_end])
        else:
            data = json.loads(content)
        return EntityResponse.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise DetectionResponseError(f"Malformed detection response: {e}") from e


class LLMEntityDetector(BaseDetector):
    """
    Context-aware detector backed by a hosted LLM.

    Features:
    - Adaptive per-attempt timeout based on text size
    - Retries on timeouts, transport errors and malformed answers
    - Failures returned as ``DetectionOutcome.error``, never raised
    - Offsets re-derived from the text; model positions are unreliable
    """

    contextual = True

    def __init__(self, provider: BaseLLMProvider, config: Optional[ScrubConfig] = None):
        """
        Initialize the detector.

        Args:
            provider: Shared, already-configured LLM provider
            config: Engine configuration (timeouts, retries, temperature)
        """
        self.provider = provider
        self.config = config or ScrubConfig()
        self.model_info = provider.get_model_info()

    @property
    def name(self) -> str:
        return DETECTOR_LLM

    def timeout_ms(self, text: str) -> int:
        return compute_timeout_ms(
            text,
            self.config.base_timeout_ms,
            self.config.per_kb_timeout_ms,
            self.config.max_timeout_ms,
        )

    def build_prompt(self, text: str, data_type: str) -> str:
        return PROMPT_TEMPLATE.format(data_type=data_type or "unknown", text=text)

    def detect(self, text: str, data_type: str = "unknown") -> DetectionOutcome:
        outcome = DetectionOutcome()
        if not text or len("".join(text.split())) < self.config.min_llm_chars:
            return outcome

        prompt = self.build_prompt(text, data_type)
        attempts = self.config.max_retries + 1
        error: Optional[DetectionError] = None

        for attempt in range(1, attempts + 1):
            timeout_ms = self.timeout_ms(text)
            result = self.provider.complete(
                prompt=prompt,
                system=SYSTEM_PROMPT,
                max_tokens=self.config.max_output_tokens,
                temperature=self.config.temperature,
                timeout=timeout_ms / 1000,
                json_mode=self.model_info.supports_json_mode,
            )
            outcome.calls += 1
            outcome.input_tokens += result.input_tokens
            outcome.output_tokens += result.output_tokens

            if result.success:
                try:
                    response = parse_response(result.content)
                except DetectionResponseError as e:
                    error = e
                    logger.warning(
                        "Malformed detection response",
                        extra={"attempt": attempt, "max_attempts": attempts},
                    )
                    continue
                outcome.entities = self._resolve(response, text, data_type)
                return outcome

            if result.error_type == ERROR_TIMEOUT:
                error = DetectionTimeout(
                    f"Detection timed out after {timeout_ms}ms", attempts=attempt
                )
            else:
                error = DetectionTransportError(
                    result.error or "Provider returned unsuccessful result",
                    attempts=attempt,
                )
            logger.warning(
                "Detection attempt failed",
                extra={
                    "attempt": attempt,
                    "max_attempts": attempts,
                    "timeout_ms": timeout_ms,
                    "error_type": result.error_type,
                    "status_code": result.status_code,
                },
            )
            if not result.retryable:
                break

        if error is not None:
            error.attempts = outcome.calls
        outcome.error = error
        return outcome

    def _resolve(
        self, response: EntityResponse, text: str, data_type: str
    ) -> List[Entity]:
        """Turn model output into entities with offsets taken from ``text``."""
        protected = placeholder_spans(text)
        seen = set()
        entities: List[Entity] = []

        for item in response.entities:
            value = item.text.strip()
            if item.type not in LLM_ENTITY_TYPES or not value:
                continue
            if is_placeholder(value) or is_excluded(value, item.type, data_type):
                continue

            spans = self._find_occurrences(text, value, case_sensitive=False)
            claimed = self._claimed_span(item, value, text)
            if claimed is not None and claimed not in spans:
                spans.insert(0, claimed)
            if not spans:
                logger.debug(
                    "Entity text not found in document", extra={"entity_type": item.type}
                )
                continue

            confidence = item.confidence
            candidates = [(span, confidence) for span in spans]
            if item.type == "NAME":
                for part in self._name_parts(value):
                    if is_excluded(part, item.type, data_type):
                        continue
                    for span in self._find_occurrences(text, part, case_sensitive=True):
                        candidates.append((span, min(confidence, 0.8)))

            for (start, end), conf in candidates:
                if any(start < p_end and p_start < end for p_start, p_end in protected):
                    continue
                key = (item.type, start, end)
                if key in seen:
                    continue
                seen.add(key)
                entities.append(
                    Entity(
                        type=item.type,
                        start=start,
                        end=end,
                        text=text[start:end],
                        detector=DETECTOR_LLM,
                        confidence=conf,
                    )
                )

        return sorted(entities, key=lambda e: (e.start, -e.length))

    @staticmethod
    def _claimed_span(item: LLMEntity, value: str, text: str) -> Optional[tuple]:
        """The model's own offsets, if they point at exactly ``value``."""
        if item.start is None or item.end is None:
            return None
        start = item.start + (len(item.text) - len(item.text.lstrip()))
        end = start + len(value)
        if 0 <= start and end <= len(text) and text[start:end] == value:
            return (start, end)
        return None

    @staticmethod
    def _find_occurrences(text: str, value: str, case_sensitive: bool) -> List[tuple]:
        """Word-bounded occurrences of ``value`` in ``text``."""
        flags = 0 if case_sensitive else re.IGNORECASE
        pattern = re.compile(r"(?<!\w)" + re.escape(value) + r"(?!\w)", flags)
        return [m.span() for m in pattern.finditer(text)]

    @staticmethod
    def _name_parts(name: str) -> List[str]:
        """First and last name of a multi-word name, when they look like names."""
        parts = [p.strip(".,") for p in name.split()]
        if len(parts) < 2:
            return []
        picked = []
        for part in (parts[0], parts[-1]):
            if len(part) >= 3 and part.isalpha() and part[0].isupper():
                picked.append(part)
        return picked
