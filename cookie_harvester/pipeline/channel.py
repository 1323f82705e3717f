"""
Single-writer progress channel.

The producer pushes ``ProgressEvent`` objects with ``emit`` and
finishes with ``close``; the consumer pulls them in arrival order
with ``async for``.  The channel enforces the event contract:

- phases strictly increase (Started < Navigated < Settled < Complete)
- exactly one terminal event (cookies or error), and nothing after it
- ``close`` is only valid once the terminal event has been emitted
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from cookie_harvester.models import progress
from cookie_harvester.utils import errors

# Marks the end of the stream inside the queue.
_CLOSED = None


class ProgressChannel:
    """Append-only, ordered event channel for one request."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[progress.ProgressEvent | None] = asyncio.Queue()
        self._last_phase: progress.Phase | None = None
        self._terminal: progress.ProgressEvent | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminal(self) -> progress.ProgressEvent | None:
        """The terminal event, once emitted."""
        return self._terminal

    def emit(self, event: progress.ProgressEvent) -> None:
        """Append *event*, rejecting anything that breaks the ordering contract."""
        if self._closed:
            raise errors.ChannelError("Cannot emit on a closed channel")
        if self._terminal is not None:
            raise errors.ChannelError("A terminal event has already been emitted")
        if event.phase is not None:
            if self._last_phase is not None and event.phase <= self._last_phase:
                raise errors.ChannelError(
                    f"Phase {event.phase.name} cannot follow {self._last_phase.name}"
                )
            self._last_phase = event.phase

        if event.is_terminal:
            self._terminal = event
        self._queue.put_nowait(event)

    def close(self) -> None:
        """End the channel.  Requires the terminal event to have been emitted."""
        if self._closed:
            return
        if self._terminal is None:
            raise errors.ChannelError("Channel closed without a terminal event")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[progress.ProgressEvent]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event

    async def wait_for_result(self) -> progress.ProgressEvent:
        """Consume the channel and return its terminal event."""
        async for event in self:
            if event.is_terminal:
                return event
        raise errors.ChannelError("Channel ended without a terminal event")
