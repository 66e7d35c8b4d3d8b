"""Unique names for apps, services and message tags."""

from __future__ import annotations

import itertools
import secrets
import threading
from typing import Protocol


class NameProvider(Protocol):
    def name(self, kind: str) -> str: ...


class RandomNameProvider:
    """`{prefix}-{kind}-{random hex}`; collisions are negligible."""

    def __init__(self, prefix: str = "CATS", nbytes: int = 8):
        self.prefix = prefix
        self.nbytes = nbytes

    def name(self, kind: str) -> str:
        return f"{self.prefix}-{kind}-{secrets.token_hex(self.nbytes)}"


class SequentialNameProvider:
    """Deterministic names for tests: `{prefix}-{kind}-{n}`."""

    def __init__(self, prefix: str = "TEST"):
        self.prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def name(self, kind: str) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{self.prefix}-{kind}-{n}"
