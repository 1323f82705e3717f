"""
Cookie jar extraction.

Turns the raw cookie dicts a browsing context reports into
``CookieRecord`` instances, preserving jar order.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from cookie_harvester.browser import engine
from cookie_harvester.models import cookies

_SAME_SITE_VALUES: dict[str, cookies.SameSite] = {
    "strict": "Strict",
    "lax": "Lax",
    "none": "None",
}


def _normalize_same_site(raw: object) -> cookies.SameSite:
    """Map the browser's sameSite value onto the enum, defaulting to ``None``."""
    if not isinstance(raw, str):
        return "None"
    return _SAME_SITE_VALUES.get(raw.strip().lower(), "None")


def to_cookie_record(raw: Mapping[str, Any]) -> cookies.CookieRecord:
    """Copy one raw browser cookie into a ``CookieRecord``."""
    expires = raw.get("expires")
    return cookies.CookieRecord(
        name=str(raw.get("name", "")),
        value=str(raw.get("value", "")),
        domain=str(raw.get("domain", "")),
        path=str(raw.get("path", "")),
        expires=float(expires) if isinstance(expires, (int, float)) else cookies.NO_EXPIRY,
        http_only=bool(raw.get("httpOnly", False)),
        secure=bool(raw.get("secure", False)),
        same_site=_normalize_same_site(raw.get("sameSite")),
    )


async def extract(context: engine.ContextHandle) -> list[cookies.CookieRecord]:
    """Read every cookie in *context*'s jar, in jar order."""
    return [to_cookie_record(raw) for raw in await context.cookies()]
