"""Pydantic models for the progress events streamed to the caller."""

from __future__ import annotations

import enum
from typing import Any

import pydantic

from cookie_harvester.models import cookies


class Phase(enum.IntEnum):
    """Session milestones; the value is the percentage reported to the client."""

    STARTED = 25
    NAVIGATED = 50
    SETTLED = 75
    COMPLETE = 100


class ProgressEvent(pydantic.BaseModel):
    """One event on a progress channel.

    Non-terminal events carry only a ``phase``.  The terminal event
    carries the ``result``: a ``CookieExtraction`` at ``COMPLETE``, or
    an ``ExtractionError`` with no phase.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    phase: Phase | None = None
    result: cookies.CookieExtraction | cookies.ExtractionError | None = None

    @classmethod
    def progress(cls, phase: Phase) -> ProgressEvent:
        if phase is Phase.COMPLETE:
            raise ValueError("COMPLETE must carry a result; use ProgressEvent.complete()")
        return cls(phase=phase)

    @classmethod
    def complete(cls, result: cookies.CookieExtraction) -> ProgressEvent:
        return cls(phase=Phase.COMPLETE, result=result)

    @classmethod
    def failed(cls, error: cookies.ExtractionError) -> ProgressEvent:
        return cls(result=error)

    @property
    def is_terminal(self) -> bool:
        return self.result is not None

    def to_payload(self) -> dict[str, Any]:
        """Render the event as the JSON object sent over the wire."""
        if isinstance(self.result, cookies.ExtractionError):
            return self.result.to_payload()
        payload: dict[str, Any] = {"progress": int(self.phase) if self.phase is not None else 0}
        if self.result is not None:
            payload.update(self.result.to_payload())
        return payload
