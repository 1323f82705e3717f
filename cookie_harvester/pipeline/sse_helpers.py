"""
Server-Sent Events encoding for progress channels.

Each event is one ``data: <json>`` line followed by a blank line.
Payloads are ``{"progress": n}``, ``{"progress": 100, "cookies": [...]}``
or ``{"error": kind, "details": detail}``; the first payload that
carries ``cookies`` or ``error`` is the last one on the stream.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from typing import Any

from cookie_harvester.models import progress
from cookie_harvester.pipeline import channel as channel_mod

DATA_PREFIX = "data: "


def format_sse_event(data: dict[str, Any]) -> str:
    """Format a Server-Sent Event string."""
    return f"{DATA_PREFIX}{json.dumps(data)}\n\n"


def format_progress_event(event: progress.ProgressEvent) -> str:
    """Format a progress channel event."""
    return format_sse_event(event.to_payload())


def parse_sse_events(body: str) -> list[dict[str, Any]]:
    """Decode a buffered event stream back into payload dicts.

    Lines without the data prefix are ignored.
    """
    return [
        json.loads(line[len(DATA_PREFIX):])
        for line in body.splitlines()
        if line.startswith(DATA_PREFIX)
    ]


async def stream_channel(ch: channel_mod.ProgressChannel) -> AsyncGenerator[str]:
    """Yield each channel event, encoded, until the channel closes."""
    async for event in ch:
        yield format_progress_event(event)
