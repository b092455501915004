"""Regex-based detector for structured PII.

Stdlib only, no external calls. Patterns are conservative: ambiguous digit
runs are left alone.
"""

from __future__ import annotations

import re
from typing import Callable

from ..types import DETECTOR_REGEX, DetectionOutcome, Entity
from .base import BaseDetector

PII_PATTERNS: dict[str, re.Pattern] = {
    # Email: standard format
    "EMAIL": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    # Phone: 555-1234, 617-555-1234, (617) 555-1234, +1-617-555-1234,
    # +14155552671, +44 20 7946 0958
    "PHONE": re.compile(
        r"(?<![\w+])(?:\+\d[\d ().-]{6,18}\d"
        r"|(?:(?:\+\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?)?\d{3}[-.\s]\d{4})(?![\w-])"
    ),
    # US SSN: XXX-XX-XXXX, excluding never-issued area/group/serial numbers
    "SSN": re.compile(r"\b(?!000|666|9\d\d)\d{3}-(?!00)\d{2}-(?!0000)\d{4}\b"),
    # Payment card: 13-19 digits with optional single space/dash separators
    "CREDIT_CARD": re.compile(r"(?<![\d-])(?:\d[ -]?){12,18}\d(?![\d-])"),
    # IPv4 address
    "IP_ADDRESS": re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"),
}

DEFAULT_ENTITIES = list(PII_PATTERNS.keys())


def luhn_valid(digits: str) -> bool:
    """Luhn checksum over a string of digits."""
    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _valid_phone(value: str) -> bool:
    # A bare run of digits is more likely an ID or amount than a phone number
    if not (re.search(r"[-.\s()]", value) or value.startswith("+")):
        return False
    digits = re.sub(r"\D", "", value)
    return 7 <= len(digits) <= 15


def _valid_card(value: str) -> bool:
    digits = re.sub(r"\D", "", value)
    if not 13 <= len(digits) <= 19:
        return False
    # Mixed separators ("1234-5678 9012") are not how cards are written
    if "-" in value and " " in value:
        return False
    return luhn_valid(digits)


def _valid_ip(value: str) -> bool:
    return all(0 <= int(octet) <= 255 for octet in value.split("."))


VALIDATORS: dict[str, Callable[[str], bool]] = {
    "PHONE": _valid_phone,
    "CREDIT_CARD": _valid_card,
    "IP_ADDRESS": _valid_ip,
}


class RegexDetector(BaseDetector):
    """Deterministic detector for emails, phones, SSNs, cards and IPs.

    Every entity it returns has confidence 1.0.

    Example:
        detector = RegexDetector()
        outcome = detector.detect("Contact john@example.com or 555-123-4567")
        [e.type for e in outcome.entities]  # ['EMAIL', 'PHONE']
    """

    def __init__(
        self,
        entities: list[str] | None = None,
        custom_patterns: dict[str, re.Pattern] | None = None,
    ):
        """Initialize the regex detector.

        Args:
            entities: Built-in entity types to detect. If None, uses all defaults.
            custom_patterns: Additional patterns keyed by entity type.
        """
        self.entities = entities or DEFAULT_ENTITIES

        self._patterns: dict[str, re.Pattern] = {
            entity: PII_PATTERNS[entity]
            for entity in self.entities
            if entity in PII_PATTERNS
        }
        if custom_patterns:
            self._patterns.update(custom_patterns)

    @property
    def name(self) -> str:
        return DETECTOR_REGEX

    def detect(self, text: str, data_type: str = "unknown") -> DetectionOutcome:
        if not text:
            return DetectionOutcome()

        matches: list[Entity] = []
        for entity_type, pattern in self._patterns.items():
            validator = VALIDATORS.get(entity_type)
            for match in pattern.finditer(text):
                value = match.group()
                if validator is not None and not validator(value):
                    continue
                matches.append(
                    Entity(
                        type=entity_type,
                        start=match.start(),
                        end=match.end(),
                        text=value,
                        detector=DETECTOR_REGEX,
                        confidence=1.0,
                    )
                )

        return DetectionOutcome(entities=self._drop_overlaps(matches))

    @staticmethod
    def _drop_overlaps(matches: list[Entity]) -> list[Entity]:
        """Keep the longest match wherever two patterns hit the same span."""
        kept: list[Entity] = []
        for entity in sorted(matches, key=lambda e: (-e.length, e.start)):
            if not any(entity.overlaps(existing) for existing in kept):
                kept.append(entity)
        return sorted(kept, key=lambda e: e.start)

    def get_supported_entities(self) -> list[str]:
        """Return the entity types this instance looks for."""
        return list(self._patterns.keys())
