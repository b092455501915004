"""Placeholder substitution over a merged entity list."""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
import re
from typing import Iterable, List, Optional, Tuple

from .types import Entity

logger = logging.getLogger(__name__)

PLACEHOLDERS: dict[str, str] = {
    "NAME": "[NAME]",
    "EMAIL": "[EMAIL]",
    "PHONE": "[PHONE]",
    "SSN": "[SSN]",
    "CREDIT_CARD": "[CREDIT_CARD]",
    "ADDRESS": "[ADDRESS]",
    "DOB": "[DOB]",
    "MEDICAL": "[MEDICAL_INFO]",
    "FINANCIAL": "[FINANCIAL_INFO]",
    "EMPLOYER": "[EMPLOYER]",
    "IP_ADDRESS": "[IP]",
}
DEFAULT_PLACEHOLDER = "[REDACTED]"

_LABELS = sorted(
    {p.strip("[]") for p in PLACEHOLDERS.values()}
    | set(PLACEHOLDERS)
    | {DEFAULT_PLACEHOLDER.strip("[]")},
    key=len,
    reverse=True,
)
# Matches both "[NAME]" and hashed "[NAME_1a2b3c4d]" tokens
PLACEHOLDER_PATTERN = re.compile(
    r"\[(?:" + "|".join(re.escape(label) for label in _LABELS) + r")(?:_[0-9a-f]{8})?\]"
)

STRATEGIES = ("replace", "hash", "remove", "mask", "preserve_length")
MASK_CHAR = "*"


def placeholder_spans(text: str) -> List[Tuple[int, int]]:
    """Spans of placeholder tokens already present in ``text``."""
    return [m.span() for m in PLACEHOLDER_PATTERN.finditer(text)]


def is_placeholder(text: str) -> bool:
    return PLACEHOLDER_PATTERN.fullmatch(text.strip()) is not None


class RedactionEngine:
    """Replaces entity spans with typed placeholder tokens.

    Strategies:
    - replace: ``[NAME]``, ``[EMAIL]``... (default)
    - hash: ``[NAME_1a2b3c4d]``, an HMAC of the value so equal values stay
      linkable without being readable
    - remove: the span is deleted
    - mask: partial masking, ``j***@e***.com``, ``***-***-1234``, ``S*** J***``
    - preserve_length: one ``*`` per character, offsets stay aligned

    Only ``replace`` and ``hash`` produce tokens the detectors recognise on a
    second pass, so only they are idempotent.

    Example:
        engine = RedactionEngine()
        engine.apply("Mail jo@example.com", entities)  # "Mail [EMAIL]"
    """

    def __init__(self, strategy: str = "replace", hash_key: Optional[str] = None):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown redaction strategy: {strategy}")
        self.strategy = strategy
        self._hash_key = (hash_key or os.getenv("PII_HASH_KEY") or "default-key").encode(
            "utf-8"
        )

    def replacement_for(self, entity: Entity) -> str:
        placeholder = PLACEHOLDERS.get(entity.type, DEFAULT_PLACEHOLDER)
        if self.strategy == "hash":
            digest = hmac.new(
                self._hash_key, entity.text.encode("utf-8"), hashlib.sha256
            ).hexdigest()[:8]
            return f"{placeholder[:-1]}_{digest}]"
        if self.strategy == "remove":
            return ""
        if self.strategy == "mask":
            return self.mask(entity)
        if self.strategy == "preserve_length":
            return MASK_CHAR * entity.length
        return placeholder

    @staticmethod
    def mask(entity: Entity) -> str:
        """Partially hide a value, keeping just enough to recognise its shape."""
        value = entity.text
        if entity.type == "EMAIL":
            local, _, domain = value.partition("@")
            if not local or "." not in domain:
                return PLACEHOLDERS["EMAIL"]
            name, _, tld = domain.rpartition(".")
            return f"{_mask_word(local)}@{_mask_word(name)}.{tld}"
        if entity.type == "PHONE":
            digits = re.sub(r"\D", "", value)
            return f"***-***-{digits[-4:]}"
        if entity.type == "NAME":
            return " ".join(_mask_word(word) for word in value.split())
        if entity.type in ("SSN", "CREDIT_CARD"):
            return MASK_CHAR * max(len(value) - 4, 0) + value[-4:]
        return MASK_CHAR * min(len(value), 8)

    def apply(self, text: str, entities: Iterable[Entity]) -> str:
        """Return ``text`` with every entity span replaced.

        Entities are applied from the end of the document backwards so
        earlier offsets stay valid. Spans that fall outside the text or
        overlap an already-applied span are skipped.
        """
        ordered = sorted(entities, key=lambda e: (e.start, e.end), reverse=True)
        if not ordered:
            return text

        parts: List[str] = []
        cursor = len(text)
        for entity in ordered:
            if entity.start < 0 or entity.end > cursor or entity.start >= entity.end:
                logger.debug(
                    "Skipping unusable span",
                    extra={"entity_type": entity.type, "start": entity.start},
                )
                continue
            parts.append(text[entity.end : cursor])
            parts.append(self.replacement_for(entity))
            cursor = entity.start
        parts.append(text[:cursor])

        return "".join(reversed(parts))

    @staticmethod
    def validate(original: str, redacted: str, entities: Iterable[Entity]) -> List[dict]:
        """Report entity values that survived redaction.

        Returns:
            List of error dicts; empty when the redaction looks complete
        """
        errors: List[dict] = []
        for entity in entities:
            value = entity.text.strip()
            if len(value) >= 3 and value in redacted:
                errors.append(
                    {"type": "incomplete_redaction", "entityType": entity.type}
                )
        if original.strip() and not redacted.strip():
            errors.append({"type": "empty_output"})
        return errors


def _mask_word(word: str) -> str:
    # First character plus at most three mask characters
    return word[:1] + MASK_CHAR * min(len(word) - 1, 3)
