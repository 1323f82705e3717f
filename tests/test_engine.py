"""Tests for cookie_harvester.browser.engine — the Playwright adapter."""

from __future__ import annotations

from unittest import mock

import pytest
from playwright import async_api

from cookie_harvester.browser import engine
from cookie_harvester.utils import errors


def _fake_playwright(browser: mock.AsyncMock | None = None, launch_error: Exception | None = None) -> mock.AsyncMock:
    pw = mock.AsyncMock()
    pw.chromium.launch = mock.AsyncMock(return_value=browser or mock.AsyncMock(), side_effect=launch_error)
    return pw


def _patch_async_playwright(monkeypatch: pytest.MonkeyPatch, pw: mock.AsyncMock) -> None:
    starter = mock.MagicMock()
    starter.start = mock.AsyncMock(return_value=pw)
    monkeypatch.setattr(async_api, "async_playwright", mock.MagicMock(return_value=starter))


class TestPlaywrightPage:
    """Tests for the Playwright page wrapper."""

    @pytest.mark.asyncio
    async def test_goto_passes_wait_condition_and_timeout(self) -> None:
        page = mock.AsyncMock()
        await engine._PlaywrightPage(page).goto("https://example.com", wait_until="networkidle", timeout_ms=30000)
        page.goto.assert_awaited_once_with("https://example.com", wait_until="networkidle", timeout=30000)

    @pytest.mark.asyncio
    async def test_goto_timeout_becomes_navigation_timeout(self) -> None:
        page = mock.AsyncMock()
        page.goto.side_effect = async_api.TimeoutError("Timeout 30000ms exceeded.")
        with pytest.raises(errors.NavigationTimeoutError) as exc_info:
            await engine._PlaywrightPage(page).goto("https://slow.example", wait_until="networkidle", timeout_ms=30000)
        assert exc_info.value.url == "https://slow.example"
        assert exc_info.value.timeout_ms == 30000

    @pytest.mark.asyncio
    async def test_other_navigation_errors_propagate(self) -> None:
        page = mock.AsyncMock()
        page.goto.side_effect = async_api.Error("net::ERR_NAME_NOT_RESOLVED")
        with pytest.raises(async_api.Error, match="ERR_NAME_NOT_RESOLVED"):
            await engine._PlaywrightPage(page).goto("https://nope.invalid", wait_until="networkidle", timeout_ms=1)


class TestPlaywrightContext:
    """Tests for the Playwright context wrapper."""

    @pytest.mark.asyncio
    async def test_cookies_are_plain_dicts(self) -> None:
        context = mock.AsyncMock()
        context.cookies.return_value = [{"name": "a", "value": "1"}]
        assert await engine._PlaywrightContext(context).cookies() == [{"name": "a", "value": "1"}]


class TestPlaywrightBrowser:
    """Tests for the Playwright browser wrapper."""

    @pytest.mark.asyncio
    async def test_new_context_forwards_options(self) -> None:
        browser = mock.AsyncMock()
        wrapped = engine._PlaywrightBrowser(mock.AsyncMock(), browser)
        await wrapped.new_context(engine.ContextOptions(user_agent="UA/1.0"))
        browser.new_context.assert_awaited_once_with(
            user_agent="UA/1.0",
            ignore_https_errors=True,
            bypass_csp=True,
            java_script_enabled=True,
        )

    @pytest.mark.asyncio
    async def test_close_stops_driver_even_if_browser_close_fails(self) -> None:
        pw = mock.AsyncMock()
        browser = mock.AsyncMock()
        browser.close.side_effect = RuntimeError("already gone")
        with pytest.raises(RuntimeError):
            await engine._PlaywrightBrowser(pw, browser).close()
        pw.stop.assert_awaited_once()


class TestPlaywrightEngine:
    """Tests for PlaywrightEngine.launch()."""

    @pytest.mark.asyncio
    async def test_launch_uses_options(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pw = _fake_playwright()
        _patch_async_playwright(monkeypatch, pw)
        handle = await engine.PlaywrightEngine().launch(engine.LaunchOptions(headless=False))
        assert isinstance(handle, engine._PlaywrightBrowser)
        pw.chromium.launch.assert_awaited_once()
        kwargs = pw.chromium.launch.await_args.kwargs
        assert kwargs["headless"] is False
        assert "--no-sandbox" in kwargs["args"]

    @pytest.mark.asyncio
    async def test_failed_launch_stops_driver(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pw = _fake_playwright(launch_error=RuntimeError("no chromium"))
        _patch_async_playwright(monkeypatch, pw)
        with pytest.raises(RuntimeError, match="no chromium"):
            await engine.PlaywrightEngine().launch(engine.LaunchOptions())
        pw.stop.assert_awaited_once()
