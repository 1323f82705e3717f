"""
Request orchestration for cookie extraction.

``CookieOrchestrator.handle`` is the single entry point:

1. Cache hit: return the cached cookies immediately.  No browser,
   no progress events.
2. An extraction for the same URL is already running: join it.
   The new subscriber gets the phases emitted so far replayed in
   order, then follows along live.
3. Otherwise start a new extraction as a background task and
   subscribe to it.

Extractions run as independent ``asyncio`` tasks.  A subscriber
going away (client disconnect) only detaches its channel; the
browser session still runs to completion and releases its
resources.  On success the cookies are written to the cache
*before* the terminal ``COMPLETE`` event is published.
"""

from __future__ import annotations

import asyncio
from typing import cast

from cookie_harvester import config
from cookie_harvester.browser import engine
from cookie_harvester.browser import session as browser_session
from cookie_harvester.models import cookies, progress
from cookie_harvester.pipeline import channel as channel_mod
from cookie_harvester.utils import cache as cache_mod
from cookie_harvester.utils import logger
from cookie_harvester.utils import url as url_mod

log = logger.create_logger("Orchestrator")

CookieCache = cache_mod.TTLCache[tuple[cookies.CookieRecord, ...]]


class _Flight:
    """One running extraction and the channels following it."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.task: asyncio.Task[None] | None = None
        self._history: list[progress.ProgressEvent] = []
        self._subscribers: list[channel_mod.ProgressChannel] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def attach(self) -> channel_mod.ProgressChannel:
        ch = channel_mod.ProgressChannel()
        for event in self._history:
            ch.emit(event)
        self._subscribers.append(ch)
        return ch

    def detach(self, ch: channel_mod.ProgressChannel) -> None:
        if ch in self._subscribers:
            self._subscribers.remove(ch)

    def publish(self, event: progress.ProgressEvent) -> None:
        self._history.append(event)
        for ch in self._subscribers:
            ch.emit(event)
        if event.is_terminal:
            for ch in self._subscribers:
                ch.close()
            self._subscribers.clear()


class CookieOrchestrator:
    """Checks the cache, coalesces in-flight work and runs browser sessions."""

    def __init__(
        self,
        browser_engine: engine.BrowserEngine,
        cache: CookieCache,
        settings: config.Settings,
    ) -> None:
        self._engine = browser_engine
        self._cache = cache
        self._settings = settings
        self._flights: dict[str, _Flight] = {}
        self._sessions_started = 0

    @property
    def sessions_started(self) -> int:
        """Number of browser sessions started since creation."""
        return self._sessions_started

    @property
    def in_flight(self) -> int:
        return len(self._flights)

    # ==========================================================================
    # Public API
    # ==========================================================================

    def handle(
        self, request: cookies.ExtractionRequest
    ) -> cookies.CookieExtraction | channel_mod.ProgressChannel:
        """Return the cached result, or a channel streaming a live extraction.

        Must be called from a running event loop.
        """
        url = request.url
        cached = self._cache.get(url)
        if cached is not None:
            log.info("Cache hit", {"url": url, "cookies": len(cached)})
            return cookies.CookieExtraction.from_cookies(cached)

        flight = self._flights.get(url)
        if flight is None:
            log.info("Cache miss, starting browser session", {"url": url})
            flight = self._start_flight(url)
        else:
            log.info(
                "Joining in-flight extraction",
                {"url": url, "subscribers": flight.subscriber_count + 1},
            )
        return flight.attach()

    def detach(self, url: str, ch: channel_mod.ProgressChannel) -> None:
        """Stop delivering events to *ch*.  The extraction keeps running."""
        flight = self._flights.get(url)
        if flight is not None:
            flight.detach(ch)
            log.debug("Subscriber detached", {"url": url, "remaining": flight.subscriber_count})

    async def extract(self, request: cookies.ExtractionRequest) -> cookies.ExtractionResult:
        """Handle *request* and wait for its terminal result."""
        outcome = self.handle(request)
        if isinstance(outcome, cookies.CookieExtraction):
            return outcome
        event = await outcome.wait_for_result()
        return cast(cookies.ExtractionResult, event.result)

    async def shutdown(self) -> None:
        """Cancel in-flight extractions and wait for their cleanup."""
        tasks = [f.task for f in self._flights.values() if f.task is not None]
        if not tasks:
            return
        log.info("Cancelling in-flight extractions", {"count": len(tasks)})
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        # A task cancelled before its first step never reaches _run's finally.
        for flight in list(self._flights.values()):
            self._finish(flight, cookies.ExtractionError.failure("Extraction was cancelled"))

    # ==========================================================================
    # Flight lifecycle
    # ==========================================================================

    def _start_flight(self, url: str) -> _Flight:
        flight = _Flight(url)
        self._flights[url] = flight
        self._sessions_started += 1
        flight.task = asyncio.create_task(self._run(flight), name=f"extract-cookies:{url}")
        return flight

    async def _run(self, flight: _Flight) -> None:
        url = flight.url
        logger.start_log_file(url_mod.extract_domain(url))
        log.section(f"Extracting cookies: {url}")
        log.start_timer("total-extraction")

        def on_progress(phase: progress.Phase) -> None:
            log.info("Progress", {"phase": phase.name, "progress": int(phase)})
            flight.publish(progress.ProgressEvent.progress(phase))

        result: cookies.ExtractionResult | None = None
        try:
            result = await browser_session.extract_cookies(
                self._engine, url, self._settings, on_progress
            )
        finally:
            if result is None:
                log.warn("Extraction cancelled before completion", {"url": url})
                result = cookies.ExtractionError.failure("Extraction was cancelled")
            self._finish(flight, result)
            log.end_timer("total-extraction", "Extraction finished")
            logger.end_log_file()

    def _finish(self, flight: _Flight, result: cookies.ExtractionResult) -> None:
        """Cache a success, publish the terminal event and retire the flight."""
        if isinstance(result, cookies.CookieExtraction):
            self._cache.set(flight.url, result.cookies)
            log.success("Cookies extracted", {"url": flight.url, "cookies": len(result.cookies)})
            event = progress.ProgressEvent.complete(result)
        else:
            log.error("Extraction failed", {"url": flight.url, "error": result.error, "detail": result.detail})
            event = progress.ProgressEvent.failed(result)

        self._flights.pop(flight.url, None)
        flight.publish(event)
