"""Base abstraction for entity detectors."""

from abc import ABC, abstractmethod

from ..types import DetectionOutcome


class BaseDetector(ABC):
    """A detector turns a unit of text into entities.

    Offsets in the returned outcome are relative to ``text``. Implementations
    must not raise for ordinary failures; they return an outcome with
    ``error`` set instead.
    """

    #: True for detectors that call a hosted model
    contextual: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Detector name recorded on every entity it produces."""
        ...

    @abstractmethod
    def detect(self, text: str, data_type: str = "unknown") -> DetectionOutcome:
        """
        Detect entities in ``text``.

        Args:
            text: Chunk or whole-document text
            data_type: Document type tag, used for vocabulary exclusions

        Returns:
            DetectionOutcome with chunk-local entities
        """
        ...
