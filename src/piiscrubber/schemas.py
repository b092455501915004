"""Result model returned by every scrub call."""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from .audit import AuditRecord
from .types import Entity


class ScrubResult(BaseModel):
    """Redacted text plus its audit record.

    ``entities`` holds the merged spans (document offsets) for callers that
    need them in-process; it is excluded from serialisation so raw PII never
    ends up next to the stored audit.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    audit: AuditRecord
    entities: List[Entity] = Field(default_factory=list, exclude=True, repr=False)

    @property
    def degraded(self) -> bool:
        return bool(self.audit.degraded_chunks)

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "audit": self.audit.to_dict()}
