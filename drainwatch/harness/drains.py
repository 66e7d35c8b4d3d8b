"""Drain targets: where a user-provided syslog service points."""

from __future__ import annotations

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class DrainCredentials:
    """mTLS client credentials presented by the syslog agent."""

    cert: str
    key: str

    def to_json(self) -> str:
        return json.dumps({"cert": self.cert, "key": self.key})

    @classmethod
    def from_pair(cls, cert: str | None, key: str | None) -> "DrainCredentials | None":
        """Both or neither: a lone cert or key yields no credentials."""
        if not cert or not key:
            return None
        return cls(cert=cert, key=key)


@dataclass(frozen=True)
class DrainTarget:
    """A drain address plus transport scheme."""

    address: str
    tls: bool = False
    credentials: DrainCredentials | None = None

    @property
    def scheme(self) -> str:
        return "syslog-tls" if self.tls else "syslog"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.address}"
