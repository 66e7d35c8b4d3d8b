"""Tests for the stream assertion engine."""

from __future__ import annotations

import threading
import time

import pytest

from drainwatch.harness.assertions import (
    DrainMessageMissingError,
    UnexpectedDrainMessageError,
    assert_token_absent,
    await_token,
    expect_token,
    expect_token_absent,
)
from drainwatch.platform.log_stream import LogBuffer


def _write_later(buffer: LogBuffer, data: bytes, delay: float) -> threading.Timer:
    timer = threading.Timer(delay, buffer.write, args=(data,))
    timer.start()
    return timer


class TestAwaitToken:
    """Tests for await_token."""

    def test_already_present(self):
        buffer = LogBuffer()
        buffer.write(b"GET /log/RANDOM-MESSAGE-A-1\n")
        assert await_token(buffer, "RANDOM-MESSAGE-A-1", budget=1.0)

    def test_success_shortly_after_delay(self):
        """Token appearing after D < B succeeds at about D."""
        buffer = LogBuffer()
        _write_later(buffer, b"line with TOKEN-A\n", 0.2)

        start = time.monotonic()
        assert await_token(buffer, "TOKEN-A", budget=3.0, poll_interval=0.01)
        elapsed = time.monotonic() - start

        assert 0.15 <= elapsed < 1.0

    def test_timeout_shortly_after_budget(self):
        """Token appearing after D > B times out at about B."""
        buffer = LogBuffer()
        timer = _write_later(buffer, b"TOKEN-A\n", 2.0)

        start = time.monotonic()
        assert not await_token(buffer, "TOKEN-A", budget=0.3, poll_interval=0.01)
        elapsed = time.monotonic() - start
        timer.cancel()

        assert 0.3 <= elapsed < 0.8

    def test_token_split_across_writes(self):
        """Matching is on accumulated contents, not individual chunks."""
        buffer = LogBuffer()
        buffer.write(b"GET /log/TOK")
        _write_later(buffer, b"EN-A\n", 0.05)
        assert await_token(buffer, "TOKEN-A", budget=1.0, poll_interval=0.01)


class TestAssertTokenAbsent:
    """Tests for assert_token_absent."""

    def test_no_early_success(self):
        """A clean stream succeeds only after the full window."""
        buffer = LogBuffer()
        buffer.write(b"GET /log/TOKEN-A\n")

        start = time.monotonic()
        assert assert_token_absent(buffer, "TOKEN-B", window=0.3, poll_interval=0.01)
        assert time.monotonic() - start >= 0.3

    def test_violation_is_prompt(self):
        """A token showing up mid-window fails without waiting out the window."""
        buffer = LogBuffer()
        _write_later(buffer, b"GET /log/TOKEN-B\n", 0.1)

        start = time.monotonic()
        assert not assert_token_absent(buffer, "TOKEN-B", window=5.0, poll_interval=0.01)
        assert time.monotonic() - start < 1.0

    def test_violation_already_in_stream(self):
        buffer = LogBuffer()
        buffer.write(b"TOKEN-B")
        assert not assert_token_absent(buffer, "TOKEN-B", window=5.0)


class TestExpectations:
    """Tests for the raising wrappers and their messages."""

    def test_expect_token_raises_missing(self):
        buffer = LogBuffer()
        with pytest.raises(DrainMessageMissingError, match="never received") as exc_info:
            expect_token(buffer, "TOKEN-A", budget=0.05, poll_interval=0.01)
        assert exc_info.value.token == "TOKEN-A"

    def test_expect_token_absent_raises_unexpected(self):
        buffer = LogBuffer()
        buffer.write(b"TOKEN-B")
        with pytest.raises(UnexpectedDrainMessageError, match="should not have"):
            expect_token_absent(buffer, "TOKEN-B", window=1.0, poll_interval=0.01)

    def test_failures_are_assertion_errors(self):
        """Both outcomes are test failures, not crashes."""
        assert issubclass(DrainMessageMissingError, AssertionError)
        assert issubclass(UnexpectedDrainMessageError, AssertionError)

    def test_passing_expectations_return_none(self):
        buffer = LogBuffer()
        buffer.write(b"TOKEN-A")
        assert expect_token(buffer, "TOKEN-A", budget=1.0) is None
        assert expect_token_absent(buffer, "TOKEN-B", window=0.05, poll_interval=0.01) is None
