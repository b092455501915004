"""Exception hierarchy for piiscrubber.

Only ``ConfigurationError`` is ever raised to callers, and only while a
scrubber or provider is being constructed. Detection errors travel inside
``DetectionOutcome`` values; chunking errors send a call down the error
fallback path.
"""


class ScrubError(Exception):
    """Base exception for all piiscrubber errors."""

    pass


class ConfigurationError(ScrubError):
    """Raised when configuration or credentials are invalid."""

    pass


class ChunkingError(ScrubError):
    """Raised when a document cannot be split into consistent chunks."""

    pass


class DetectionError(ScrubError):
    """Base class for per-unit detection failures."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class DetectionTimeout(DetectionError):
    """The LLM call timed out on every attempt."""

    pass


class DetectionTransportError(DetectionError):
    """The LLM call failed at the transport or API level."""

    pass


class DetectionResponseError(DetectionError):
    """The LLM answered, but never with a usable entity payload."""

    pass
