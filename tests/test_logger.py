"""Tests for cookie_harvester.utils.logger — formatting, timers and file mirroring."""

from __future__ import annotations

import pathlib

import pytest

from cookie_harvester.utils import logger
from cookie_harvester.utils.logger import format_duration


class TestFormatDuration:
    """Tests for format_duration()."""

    @pytest.mark.parametrize(
        ("ms", "expected"),
        [
            (0, "0ms"),
            (999, "999ms"),
            (1000, "1.00s"),
            (2500, "2.50s"),
            (60000, "1m 0.0s"),
            (95000, "1m 35.0s"),
        ],
    )
    def test_format(self, ms: float, expected: str) -> None:
        assert format_duration(ms) == expected


class TestLogger:
    """Tests for Logger output and timers."""

    def test_lines_carry_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger.create_logger("Session").info("Navigating", {"url": "https://example.com", "attempt": 1})
        err = capsys.readouterr().err
        assert "[Session]" in err
        assert "Navigating" in err
        assert "https://example.com" in err

    def test_timer_round_trip(self, capsys: pytest.CaptureFixture[str]) -> None:
        log = logger.create_logger("Timer")
        log.start_timer("navigate")
        elapsed = log.end_timer("navigate", "Navigated")
        assert elapsed >= 0
        assert "Navigated" in capsys.readouterr().err

    def test_end_unknown_timer_warns(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert logger.create_logger("Timer").end_timer("never-started") == 0.0
        assert "was not started" in capsys.readouterr().err


class TestFileLogging:
    """Tests for start_log_file() and end_log_file()."""

    def test_disabled_by_default(self, monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
        monkeypatch.delenv("WRITE_TO_FILE", raising=False)
        monkeypatch.chdir(tmp_path)
        assert logger.start_log_file("example.com") is None
        assert not (tmp_path / ".logs").exists()

    def test_mirrors_lines_without_ansi(self, monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
        monkeypatch.setenv("WRITE_TO_FILE", "true")
        monkeypatch.chdir(tmp_path)

        path = logger.start_log_file("www.example.com")
        assert path is not None
        try:
            logger.create_logger("Orchestrator").success("Cookies extracted", {"cookies": 3})
        finally:
            logger.end_log_file()

        log_path = pathlib.Path(path)
        assert log_path.parent == tmp_path / ".logs"
        assert log_path.name.startswith("example.com_")
        content = log_path.read_text(encoding="utf-8")
        assert "Cookie Extraction Log - www.example.com" in content
        assert "Cookies extracted cookies=3" in content
        assert "\033[" not in content

    def test_end_without_start_is_noop(self) -> None:
        logger.end_log_file()
