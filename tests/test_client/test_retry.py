"""Tests for Retry-After parsing and the retry controller."""

from __future__ import annotations

import threading
from unittest.mock import patch

import httpx
import pytest

from jukebox.client.retry import (
    CONDITIONAL_GET_RETRY_STATUSES,
    DEFAULT_RETRY_AFTER,
    GENERAL_RETRY_STATUSES,
    RetryController,
    retry_after,
    should_retry,
)
from jukebox.exceptions import Cancelled


def _response(status: int = 429, retry: str | None = None) -> httpx.Response:
    headers = {"Retry-After": retry} if retry is not None else {}
    return httpx.Response(status, headers=headers)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestShouldRetry:
    def test_general_statuses(self) -> None:
        assert should_retry(202, GENERAL_RETRY_STATUSES)
        assert should_retry(429, GENERAL_RETRY_STATUSES)
        assert not should_retry(200, GENERAL_RETRY_STATUSES)
        assert not should_retry(503, GENERAL_RETRY_STATUSES)

    def test_conditional_get_statuses(self) -> None:
        assert should_retry(429, CONDITIONAL_GET_RETRY_STATUSES)
        assert not should_retry(202, CONDITIONAL_GET_RETRY_STATUSES)

    def test_controller_disabled_never_retries(self) -> None:
        controller = RetryController(enabled=False)
        assert controller.should_retry(_response(429), GENERAL_RETRY_STATUSES) is False

    def test_controller_enabled(self) -> None:
        controller = RetryController(enabled=True)
        assert controller.should_retry(_response(429), GENERAL_RETRY_STATUSES) is True
        assert controller.should_retry(_response(404), GENERAL_RETRY_STATUSES) is False


class TestRetryAfter:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("2", 2.0),
            (" 10 ", 10.0),
            ("0", 0.0),
            ("-3", 0.0),
            (None, DEFAULT_RETRY_AFTER),
            ("", DEFAULT_RETRY_AFTER),
            ("abc", DEFAULT_RETRY_AFTER),
            ("1.5", DEFAULT_RETRY_AFTER),
            ("Wed, 21 Oct 2015 07:28:00 GMT", DEFAULT_RETRY_AFTER),
        ],
    )
    def test_values(self, header: str | None, expected: float) -> None:
        assert retry_after(_response(retry=header)) == expected

    def test_custom_default(self) -> None:
        assert retry_after(_response(), default=1.0) == 1.0


class TestWait:
    @patch("jukebox.client.retry.time.sleep")
    def test_sleeps_for_retry_after(self, mock_sleep) -> None:
        controller = RetryController(enabled=True)
        assert controller.wait(_response(retry="2")) == 2.0
        mock_sleep.assert_called_once_with(2.0)

    @patch("jukebox.client.retry.time.sleep")
    def test_default_wait_when_header_missing(self, mock_sleep) -> None:
        controller = RetryController(enabled=True, default_wait=3.0)
        controller.wait(_response())
        mock_sleep.assert_called_once_with(3.0)

    def test_cancel_already_set(self) -> None:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(Cancelled):
            RetryController(enabled=True).wait(_response(retry="1"), cancel=cancel)

    def test_cancel_during_wait(self) -> None:
        cancel = threading.Event()
        timer = threading.Timer(0.05, cancel.set)
        timer.start()
        try:
            with pytest.raises(Cancelled):
                RetryController(enabled=True).wait(_response(retry="30"), cancel=cancel)
        finally:
            timer.cancel()

    def test_cancel_event_not_set_waits_full_delay(self) -> None:
        cancel = threading.Event()
        assert RetryController(enabled=True).wait(_response(retry="0"), cancel=cancel) == 0.0

    @patch("jukebox.client.retry.time.sleep")
    def test_deadline_would_be_exceeded(self, mock_sleep) -> None:
        clock = FakeClock()
        controller = RetryController(enabled=True, clock=clock)
        deadline = controller.deadline(1.0)
        with pytest.raises(Cancelled, match="deadline"):
            controller.wait(_response(retry="5"), deadline=deadline)
        mock_sleep.assert_not_called()

    @patch("jukebox.client.retry.time.sleep")
    def test_deadline_with_room(self, mock_sleep) -> None:
        clock = FakeClock()
        controller = RetryController(enabled=True, clock=clock)
        deadline = controller.deadline(10.0)
        controller.wait(_response(retry="5"), deadline=deadline)
        mock_sleep.assert_called_once_with(5.0)

    def test_deadline_and_remaining(self) -> None:
        clock = FakeClock(100.0)
        controller = RetryController(clock=clock)
        assert controller.deadline(None) is None
        assert controller.remaining(None) is None
        deadline = controller.deadline(4.0)
        assert deadline == 104.0
        clock.now = 103.0
        assert controller.remaining(deadline) == 1.0
        clock.now = 110.0
        assert controller.remaining(deadline) == 0.0

    @patch("jukebox.client.retry.time.sleep")
    def test_logs_wait_when_verbose(self, mock_sleep, verbose_output, capsys) -> None:
        RetryController(enabled=True).wait(_response(429, retry="2"))
        assert "HTTP 429, retrying in 2s" in capsys.readouterr().err
