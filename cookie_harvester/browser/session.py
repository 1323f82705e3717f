"""
Per-request browser session.

Each ``BrowserSession`` owns one browser process and one isolated
context for the lifetime of a single extraction.  Nothing is
shared between sessions, so concurrent requests never interfere.

The session is an async context manager: whatever happens inside
the ``async with`` block (normal return, navigation timeout,
crash or cancellation), ``close()`` runs on exit and releases the
context and the browser.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import TracebackType

from cookie_harvester import config
from cookie_harvester.browser import cookies as cookie_extractor
from cookie_harvester.browser import engine
from cookie_harvester.models import cookies, progress
from cookie_harvester.utils import errors, logger
from cookie_harvester.utils import url as url_mod

log = logger.create_logger("BrowserSession")

ProgressCallback = Callable[[progress.Phase], None]


class BrowserSession:
    """Manages an isolated browser and context for one extraction."""

    def __init__(self, browser_engine: engine.BrowserEngine, settings: config.Settings) -> None:
        self._engine = browser_engine
        self._settings = settings
        self._browser: engine.BrowserHandle | None = None
        self._context: engine.ContextHandle | None = None
        self._page: engine.PageHandle | None = None
        self._closed = False

    async def __aenter__(self) -> BrowserSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ==========================================================================
    # Steps
    # ==========================================================================

    async def launch(self) -> None:
        """Start the browser, then open a context and a page within it."""
        if self._closed:
            raise RuntimeError("Browser session already closed")

        log.start_timer("browser-launch")
        self._browser = await self._engine.launch(
            engine.LaunchOptions(headless=self._settings.headless)
        )
        self._context = await self._browser.new_context(
            engine.ContextOptions(
                user_agent=self._settings.user_agent,
                ignore_https_errors=True,
                bypass_csp=True,
            )
        )
        self._page = await self._context.new_page()
        log.end_timer("browser-launch", "Browser launched")

    async def navigate(self, url: str) -> None:
        """Load *url* and wait for network idle within the navigation timeout."""
        if not self._page:
            raise RuntimeError("No browser session active")

        timeout_ms = self._settings.navigation_timeout_ms
        log.start_timer("navigation")
        log.info("Navigating", {"hostname": url_mod.extract_domain(url), "timeoutMs": timeout_ms})
        await self._page.goto(url, wait_until="networkidle", timeout_ms=timeout_ms)
        log.end_timer("navigation", "Network idle reached")

    async def settle(self) -> None:
        """Give deferred cookie-setting scripts time to run."""
        if not self._page:
            raise RuntimeError("No browser session active")
        await self._page.wait_for(self._settings.settle_delay_ms)

    async def read_cookies(self) -> list[cookies.CookieRecord]:
        """Read the context's cookie jar."""
        if not self._context:
            raise RuntimeError("No browser session active")
        records = await cookie_extractor.extract(self._context)
        log.debug("Captured cookies from browser", {"count": len(records)})
        return records

    # ==========================================================================
    # Cleanup
    # ==========================================================================

    async def close(self) -> None:
        """Close the context and the browser.  Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        log.debug("Closing browser session")
        self._page = None

        context, self._context = self._context, None
        try:
            if context:
                try:
                    await context.close()
                except Exception as exc:
                    log.debug("Context close error (non-fatal)", {"error": errors.get_error_message(exc)})
        finally:
            # Runs even when cancelled mid context close.
            await self._close_browser()

        log.debug("Browser session closed")

    async def _close_browser(self) -> None:
        browser, self._browser = self._browser, None
        if not browser:
            return
        try:
            await browser.close()
        except Exception as exc:
            log.warn("Browser close error", {"error": errors.get_error_message(exc)})


async def run_session(
    browser_engine: engine.BrowserEngine,
    url: str,
    settings: config.Settings,
    on_progress: ProgressCallback,
) -> list[cookies.CookieRecord]:
    """Drive one session from launch to cookie read.

    Reports ``STARTED``, ``NAVIGATED`` and ``SETTLED`` through
    *on_progress* as each step finishes.  ``COMPLETE`` is left to the
    caller, which owns the terminal event.
    """
    async with BrowserSession(browser_engine, settings) as session:
        await session.launch()
        on_progress(progress.Phase.STARTED)

        await session.navigate(url)
        on_progress(progress.Phase.NAVIGATED)

        await session.settle()
        on_progress(progress.Phase.SETTLED)

        return await session.read_cookies()


async def extract_cookies(
    browser_engine: engine.BrowserEngine,
    url: str,
    settings: config.Settings,
    on_progress: ProgressCallback,
) -> cookies.ExtractionResult:
    """Run a session and convert every failure into an ``ExtractionError``.

    Browser and navigation exceptions never propagate past this
    point.  Cancellation does propagate; the session is still closed.
    """
    limit = settings.session_timeout_seconds
    deadline = asyncio.timeout(limit)
    try:
        async with deadline:
            records = await run_session(browser_engine, url, settings, on_progress)
    except errors.NavigationTimeoutError as exc:
        log.warn("Navigation timed out", {"url": url, "timeoutMs": exc.timeout_ms})
        return cookies.ExtractionError.navigation_timeout()
    except TimeoutError as exc:
        if not deadline.expired():
            # Raised from inside the session, not by the outer limit.
            log.error("Cookie extraction failed", {"url": url, "error": errors.get_error_message(exc)})
            return cookies.ExtractionError.failure(errors.get_error_message(exc))
        log.error("Browser session exceeded its time limit", {"url": url, "limitSeconds": limit})
        return cookies.ExtractionError.failure(f"Extraction timed out after {limit:g} seconds")
    except Exception as exc:
        log.error("Cookie extraction failed", {"url": url, "error": errors.get_error_message(exc)})
        return cookies.ExtractionError.failure(errors.get_error_message(exc))

    return cookies.CookieExtraction.from_cookies(records)
