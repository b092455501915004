"""Coaching-domain vocabulary that must never be flagged as PII."""

import re
from typing import FrozenSet

ASSESSMENT_NAMES: FrozenSet[str] = frozenset(
    {
        "disc",
        "myers-briggs",
        "myers briggs",
        "mbti",
        "enneagram",
        "strengthsfinder",
        "cliftonstrengths",
        "16 personalities",
        "16personalities",
        "hogan",
        "big five",
        "eq-i",
        "eqi",
    }
)

FRAMEWORK_TERMS: FrozenSet[str] = frozenset(
    {
        "adaptive leadership",
        "growth mindset",
        "fixed mindset",
        "theory of change",
        "grow model",
        "grow",
        "situational leadership",
        "radical candor",
        "immunity to change",
    }
)

GENERIC_ROLES: FrozenSet[str] = frozenset(
    {
        "the client",
        "client",
        "the coachee",
        "coachee",
        "the coach",
        "coach",
        "a manager",
        "manager",
        "the manager",
        "team member",
        "a team member",
        "leader",
        "the leader",
        "executive",
        "an executive",
        "a direct report",
        "direct report",
        "an employee",
        "employee",
        "the team",
        "a person",
        "ceo",
        "cfo",
        "cto",
        "coo",
        "vp",
        "director",
        "a tech company",
        "the organization",
        "the company",
    }
)

# Document types whose content is dominated by assessment terminology
ASSESSMENT_DATA_TYPES: FrozenSet[str] = frozenset(
    {"assessment", "coach_assessment", "questionnaire"}
)

# "D:80", "S = 40", "I: 60%" style scores, alone or as a whole score line
_SCORE = r"[A-Za-z]{1,3}\s*[:=]\s*\d{1,3}%?"
_SCORE_PATTERN = re.compile(rf"^{_SCORE}(?:[\s,;/]+{_SCORE})*[.,;]?$")
# Dimension letters and numbers on their own ("D", "80", "D I S C")
_SCORE_TOKENS = re.compile(r"^(?:[A-Z]{1,2}|\d{1,3}%?)(?:[\s,/]+(?:[A-Z]{1,2}|\d{1,3}%?))*$")

_EXCLUDED = ASSESSMENT_NAMES | FRAMEWORK_TERMS | GENERIC_ROLES


def normalize(text: str) -> str:
    """Lowercase and collapse whitespace for vocabulary comparisons."""
    return " ".join(text.lower().split()).strip(" .,;:!?\"'()")


def is_assessment_type(data_type: str) -> bool:
    return (data_type or "").strip().lower() in ASSESSMENT_DATA_TYPES


def is_excluded(text: str, entity_type: str, data_type: str = "unknown") -> bool:
    """True if ``text`` is domain vocabulary rather than PII."""
    normalized = normalize(text)
    if not normalized:
        return True
    if normalized in _EXCLUDED:
        return True
    # "DISC assessment", "the MBTI profile"
    words = set(normalized.replace("-", " ").split())
    if words & {"disc", "mbti", "enneagram", "strengthsfinder"} and entity_type in (
        "NAME",
        "EMPLOYER",
        "FINANCIAL",
    ):
        return True
    if is_assessment_type(data_type) and entity_type in ("NAME", "FINANCIAL"):
        stripped = text.strip()
        if _SCORE_PATTERN.match(stripped) or _SCORE_TOKENS.match(stripped):
            return True
    return False
