"""Shared fixtures for the test suite.

``FakeEngine`` implements the browser engine protocols in memory.
It records launches, navigations and waits, tracks how many
browsers and contexts are still open, and can be scripted to time
out or crash at any step.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from cookie_harvester import config
from cookie_harvester.browser import engine
from cookie_harvester.utils import errors

# ── Fake browser engine ─────────────────────────────────────────


class FakePage:
    def __init__(self, owner: FakeEngine) -> None:
        self._owner = owner

    async def goto(self, url: str, *, wait_until: engine.WaitUntil, timeout_ms: int) -> None:
        self._owner.navigations.append((url, wait_until, timeout_ms))
        if self._owner.gate is not None:
            await self._owner.gate.wait()
        if self._owner.navigation_timeout:
            raise errors.NavigationTimeoutError(url, timeout_ms)
        self._owner.maybe_fail("goto")

    async def wait_for(self, ms: int) -> None:
        self._owner.waits.append(ms)
        self._owner.maybe_fail("wait_for")


class FakeContext:
    def __init__(self, owner: FakeEngine) -> None:
        self._owner = owner
        self.closed = False

    async def new_page(self) -> FakePage:
        self._owner.maybe_fail("new_page")
        return FakePage(self._owner)

    async def cookies(self) -> list[dict[str, Any]]:
        self._owner.maybe_fail("cookies")
        return [dict(c) for c in self._owner.jar]

    async def close(self) -> None:
        if self._owner.context_close_delay:
            await asyncio.sleep(self._owner.context_close_delay)
        if not self.closed:
            self.closed = True
            self._owner.open_contexts -= 1
        self._owner.maybe_fail("context_close")


class FakeBrowser:
    def __init__(self, owner: FakeEngine) -> None:
        self._owner = owner
        self.contexts: list[FakeContext] = []
        self.closed = False

    async def new_context(self, options: engine.ContextOptions) -> FakeContext:
        self._owner.context_options.append(options)
        self._owner.maybe_fail("new_context")
        ctx = FakeContext(self._owner)
        self.contexts.append(ctx)
        self._owner.open_contexts += 1
        return ctx

    async def close(self) -> None:
        # Closing a browser also closes every context it owns.
        for ctx in self.contexts:
            if not ctx.closed:
                ctx.closed = True
                self._owner.open_contexts -= 1
        if not self.closed:
            self.closed = True
            self._owner.open_browsers -= 1
        self._owner.maybe_fail("browser_close")


class FakeEngine:
    """In-memory ``BrowserEngine`` with scriptable failures."""

    def __init__(
        self,
        jar: list[dict[str, Any]] | None = None,
        *,
        fail_at: str | None = None,
        fail_with: type[Exception] = RuntimeError,
        navigation_timeout: bool = False,
        gate: asyncio.Event | None = None,
        context_close_delay: float = 0.0,
    ) -> None:
        self.jar = jar or []
        self.fail_at = fail_at
        self.fail_with = fail_with
        self.navigation_timeout = navigation_timeout
        self.gate = gate
        self.context_close_delay = context_close_delay
        self.launches = 0
        self.open_browsers = 0
        self.open_contexts = 0
        self.launch_options: list[engine.LaunchOptions] = []
        self.context_options: list[engine.ContextOptions] = []
        self.navigations: list[tuple[str, str, int]] = []
        self.waits: list[int] = []

    def maybe_fail(self, step: str) -> None:
        if self.fail_at == step:
            raise self.fail_with(f"boom at {step}")

    async def launch(self, options: engine.LaunchOptions) -> FakeBrowser:
        self.launch_options.append(options)
        self.maybe_fail("launch")
        self.launches += 1
        self.open_browsers += 1
        return FakeBrowser(self)


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def raw_session_cookie() -> dict[str, Any]:
    """``session=abc123; Path=/; HttpOnly`` as the browser reports it."""
    return {
        "name": "session",
        "value": "abc123",
        "domain": "example.com",
        "path": "/",
        "expires": -1,
        "httpOnly": True,
        "secure": False,
    }


@pytest.fixture()
def raw_tracking_cookie() -> dict[str, Any]:
    """A persistent, JavaScript-set analytics cookie."""
    return {
        "name": "_ga",
        "value": "GA1.2.123456789.1234567890",
        "domain": ".example.com",
        "path": "/",
        "expires": 1893456000,
        "httpOnly": False,
        "secure": True,
        "sameSite": "Lax",
    }


@pytest.fixture()
def settings() -> config.Settings:
    """Default timings with a short outer session limit."""
    return config.Settings(
        navigation_timeout_ms=30000,
        settle_delay_ms=2000,
        cache_ttl_seconds=600,
        session_timeout_seconds=5,
    )


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
