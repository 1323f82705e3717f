"""
Browser engine contract and its Playwright implementation.

The session layer talks only to the protocols below, which cover
exactly the capabilities cookie extraction needs: launch a
browser, open an isolated context and a page, navigate, wait and
read the context's cookie jar.  ``PlaywrightEngine`` adapts
Playwright's async Chromium API to that contract.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal, Protocol

import pydantic
from playwright import async_api

from cookie_harvester.utils import errors, logger

log = logger.create_logger("Engine")

WaitUntil = Literal["commit", "domcontentloaded", "load", "networkidle"]

_DEFAULT_LAUNCH_ARGS = (
    "--no-sandbox",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-dev-shm-usage",
    "--disable-extensions",
)


# ============================================================================
# Options
# ============================================================================


class LaunchOptions(pydantic.BaseModel):
    """Options for starting a browser process."""

    headless: bool = True
    args: tuple[str, ...] = _DEFAULT_LAUNCH_ARGS


class ContextOptions(pydantic.BaseModel):
    """Options for an isolated browsing context."""

    user_agent: str | None = None
    ignore_https_errors: bool = True
    bypass_csp: bool = True


# ============================================================================
# Contract
# ============================================================================


class PageHandle(Protocol):
    async def goto(self, url: str, *, wait_until: WaitUntil, timeout_ms: int) -> None:
        """Navigate; raise ``NavigationTimeoutError`` when *timeout_ms* elapses first."""
        ...

    async def wait_for(self, ms: int) -> None:
        """Pause for *ms* milliseconds while the page keeps running."""
        ...


class ContextHandle(Protocol):
    async def new_page(self) -> PageHandle: ...

    async def cookies(self) -> list[dict[str, Any]]:
        """Return the raw cookie jar as a list of browser cookie dicts."""
        ...

    async def close(self) -> None: ...


class BrowserHandle(Protocol):
    async def new_context(self, options: ContextOptions) -> ContextHandle: ...

    async def close(self) -> None:
        """Close the browser and every context it owns."""
        ...


class BrowserEngine(Protocol):
    async def launch(self, options: LaunchOptions) -> BrowserHandle: ...


# ============================================================================
# Playwright implementation
# ============================================================================


class _PlaywrightPage:
    def __init__(self, page: async_api.Page) -> None:
        self._page = page

    async def goto(self, url: str, *, wait_until: WaitUntil, timeout_ms: int) -> None:
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except async_api.TimeoutError as exc:
            raise errors.NavigationTimeoutError(url, timeout_ms) from exc

    async def wait_for(self, ms: int) -> None:
        # Playwright's page.wait_for_timeout is meant for debugging only.
        await asyncio.sleep(ms / 1000)


class _PlaywrightContext:
    def __init__(self, context: async_api.BrowserContext) -> None:
        self._context = context

    async def new_page(self) -> PageHandle:
        return _PlaywrightPage(await self._context.new_page())

    async def cookies(self) -> list[dict[str, Any]]:
        return [dict(c) for c in await self._context.cookies()]

    async def close(self) -> None:
        await self._context.close()


class _PlaywrightBrowser:
    """Owns both the browser and the Playwright driver that launched it."""

    def __init__(self, playwright: async_api.Playwright, browser: async_api.Browser) -> None:
        self._playwright = playwright
        self._browser = browser

    async def new_context(self, options: ContextOptions) -> ContextHandle:
        context = await self._browser.new_context(
            user_agent=options.user_agent,
            ignore_https_errors=options.ignore_https_errors,
            bypass_csp=options.bypass_csp,
            java_script_enabled=True,
        )
        return _PlaywrightContext(context)

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


class PlaywrightEngine:
    """Launches one headless Chromium per call to ``launch``."""

    async def launch(self, options: LaunchOptions) -> BrowserHandle:
        pw = await async_api.async_playwright().start()
        try:
            browser = await pw.chromium.launch(headless=options.headless, args=list(options.args))
        except Exception:
            await pw.stop()
            raise
        log.debug("Chromium launched", {"headless": options.headless, "version": browser.version})
        return _PlaywrightBrowser(pw, browser)
