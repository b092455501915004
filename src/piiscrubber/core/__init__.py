"""Scrub orchestration."""

from .scrubber import PIIScrubber, scrub

__all__ = ["PIIScrubber", "scrub"]
