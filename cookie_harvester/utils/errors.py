"""
Error types and helpers for consistent error message extraction.
"""

from __future__ import annotations


class CookieHarvesterError(Exception):
    """Base class for errors raised inside the extraction pipeline."""


class NavigationTimeoutError(CookieHarvesterError):
    """Navigation did not reach network idle within the timeout budget."""

    def __init__(self, url: str, timeout_ms: int) -> None:
        super().__init__(f"Navigation to {url} timed out after {timeout_ms}ms")
        self.url = url
        self.timeout_ms = timeout_ms


class ChannelError(CookieHarvesterError):
    """A progress channel was written to in violation of its contract."""


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.

    Falls back to the exception class name when the message is empty.
    """
    if isinstance(error, Exception):
        return str(error) or type(error).__name__
    return "Unknown error"
