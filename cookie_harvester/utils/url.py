"""
URL validation and domain helpers for incoming extraction requests.
"""

from __future__ import annotations

from urllib import parse

_ALLOWED_SCHEMES = frozenset(["http", "https"])


def extract_domain(url: str) -> str:
    """Extract the hostname from a URL string."""
    try:
        parsed = parse.urlparse(url)
        return parsed.hostname or "unknown"
    except Exception:
        return "unknown"


def normalize_target_url(url: object) -> str:
    """Validate a URL submitted for extraction and return it trimmed.

    Only absolute ``http``/``https`` URLs with a host are accepted;
    anything else is rejected before a browser is ever launched.

    Raises:
        ValueError: If *url* is missing, blank or not a well-formed
            absolute URL.
    """
    if not isinstance(url, str) or not url.strip():
        raise ValueError("URL is required")

    candidate = url.strip()
    try:
        parsed = parse.urlparse(candidate)
        hostname = parsed.hostname
    except ValueError as exc:
        raise ValueError(f"Malformed URL: {candidate}") from exc

    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        raise ValueError(f"URL must start with http:// or https://: {candidate}")
    if not hostname:
        raise ValueError(f"URL has no host: {candidate}")
    return candidate
