"""
Stream Assertion Engine - Bounded presence/absence checks on a live stream.

The stream is whatever the log follower keeps appending to; these
functions only read its buffered contents and never manage connections.

Two primitives:
- await_token: poll until a token shows up or the budget runs out
- assert_token_absent: watch for the full window, fail on first sight
"""

from __future__ import annotations

import time
from typing import Protocol

from drainwatch.core.logging import get_logger

logger = get_logger("harness.assertions")

DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_ABSENCE_WINDOW = 10.0


class SupportsContents(Protocol):
    def contents(self) -> bytes: ...


class DrainMessageMissingError(AssertionError):
    """The drain never received the expected message."""

    def __init__(self, token: str, budget: float):
        self.token = token
        self.budget = budget
        super().__init__(
            f"Drain never received expected message {token!r} within {budget:.0f}s"
        )


class UnexpectedDrainMessageError(AssertionError):
    """The drain received a message it should not have."""

    def __init__(self, token: str, elapsed: float):
        self.token = token
        self.elapsed = elapsed
        super().__init__(
            f"Drain received message {token!r} it should not have "
            f"(seen after {elapsed:.1f}s)"
        )


def _contains(stream: SupportsContents, needle: bytes) -> bool:
    return needle in stream.contents()


def await_token(
    stream: SupportsContents,
    token: str,
    budget: float,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> bool:
    """Return True as soon as `token` is in the stream, False after `budget`."""
    needle = token.encode()
    deadline = time.monotonic() + budget

    while True:
        if _contains(stream, needle):
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            # One last look at the deadline itself
            return _contains(stream, needle)
        time.sleep(min(poll_interval, remaining))


def assert_token_absent(
    stream: SupportsContents,
    token: str,
    window: float = DEFAULT_ABSENCE_WINDOW,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> bool:
    """Return False the moment `token` appears, True only after the whole `window`."""
    needle = token.encode()
    deadline = time.monotonic() + window

    while True:
        if _contains(stream, needle):
            return False
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return not _contains(stream, needle)
        time.sleep(min(poll_interval, remaining))


def expect_token(
    stream: SupportsContents,
    token: str,
    budget: float,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """Raise DrainMessageMissingError unless `token` arrives within `budget`."""
    start = time.monotonic()
    if not await_token(stream, token, budget, poll_interval):
        raise DrainMessageMissingError(token, budget)
    logger.info(f"Saw {token} after {time.monotonic() - start:.1f}s")


def expect_token_absent(
    stream: SupportsContents,
    token: str,
    window: float = DEFAULT_ABSENCE_WINDOW,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """Raise UnexpectedDrainMessageError if `token` shows up during `window`."""
    start = time.monotonic()
    if not assert_token_absent(stream, token, window, poll_interval):
        raise UnexpectedDrainMessageError(token, time.monotonic() - start)
    logger.info(f"{token} stayed absent for {window:.0f}s")
