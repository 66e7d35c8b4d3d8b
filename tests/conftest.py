"""Pytest configuration and fakes for the platform collaborators."""

from __future__ import annotations

import json
import threading

import pytest

from drainwatch.core.config import Settings
from drainwatch.core.exceptions import PlatformCommandError
from drainwatch.harness.addresses import AddressResolver
from drainwatch.harness.naming import SequentialNameProvider
from drainwatch.platform.base import AppSpec
from drainwatch.platform.log_stream import LogBuffer


def instance_env(
    internal_ip: str = "10.255.0.1",
    external_ip: str = "10.0.16.5",
    ports: list[dict] | None = None,
) -> str:
    """Render `cf ssh -c env` style output for one instance."""
    if ports is None:
        ports = [{"external": 61001, "internal": 8080, "external_tls_proxy": 61443}]
    return (
        "HOME=/home/vcap\n"
        f"CF_INSTANCE_INTERNAL_IP={internal_ip}\n"
        f"CF_INSTANCE_IP={external_ip}\n"
        f"CF_INSTANCE_PORTS={json.dumps(ports)}\n"
        "PORT=8080\n"
    )


class FakeMetadata:
    """Instance environments, optionally unavailable for the first N lookups."""

    def __init__(self, environments: dict[int, str], not_ready_for: int = 0):
        self.environments = environments
        self.not_ready_for = not_ready_for
        self.calls: list[tuple[str, int]] = []

    def get_environment_text(self, app_name: str, instance_index: int) -> str:
        self.calls.append((app_name, instance_index))
        if len(self.calls) <= self.not_ready_for:
            return "HOME=/home/vcap\n"
        return self.environments[instance_index]


class FakePlatform:
    """Records platform calls; `fail_on` names operations that raise."""

    def __init__(self, fail_on: set[str] | None = None, router_groups: str = ""):
        self.fail_on = fail_on or set()
        self.calls: list[tuple] = []
        self.pushed: list[AppSpec] = []
        self.services: dict[str, str] = {}
        self.bindings: dict[str, set[str]] = {}
        self._router_groups = router_groups or "name          type\ndefault-tcp   tcp\n"
        self._lock = threading.Lock()

    def _call(self, op: str, *args) -> None:
        with self._lock:
            self.calls.append((op, *args))
        if op in self.fail_on:
            raise PlatformCommandError(f"cf {op} exited with 1", command=[op, *map(str, args)], exit_code=1)

    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]

    def push(self, app: AppSpec) -> None:
        self._call("push", app.name)
        self.pushed.append(app)

    def bind_service(self, app_name: str, service_name: str) -> None:
        self._call("bind-service", app_name, service_name)
        with self._lock:
            self.bindings.setdefault(app_name, set()).add(service_name)

    def create_user_provided_service(self, name, syslog_drain_url, credentials=None):
        self._call("cups", name, syslog_drain_url, credentials)
        self.services[name] = syslog_drain_url

    def delete_app(self, app_name: str) -> None:
        self._call("delete", app_name)

    def delete_service(self, service_name: str) -> None:
        self._call("delete-service", service_name)

    def delete_orphaned_routes(self) -> None:
        self._call("delete-orphaned-routes")

    def create_shared_domain(self, domain: str, router_group: str) -> None:
        self._call("create-shared-domain", domain, router_group)

    def router_groups(self) -> str:
        self._call("router-groups")
        return self._router_groups

    def map_tcp_route(self, app_name: str, domain: str) -> int:
        self._call("map-route", app_name, domain)
        return 1024

    def app_report(self, app_name: str) -> None:
        self._call("app-report", app_name)

    def is_bound(self, app_name: str) -> bool:
        with self._lock:
            return bool(self.bindings.get(app_name))


class FakeStream:
    def __init__(self) -> None:
        self.buffer = LogBuffer()
        self.closed = False

    def contents(self) -> bytes:
        return self.buffer.contents()

    def close(self) -> None:
        self.closed = True


class FakeFollower:
    def __init__(self) -> None:
        self.stream = FakeStream()
        self.followed: list[str] = []

    def follow(self, app_name: str) -> FakeStream:
        self.followed.append(app_name)
        return self.stream


class DeliveringDriver:
    """
    Simulates drain forwarding: a triggered line lands in the listener
    stream only when the producer is bound to a drain.
    """

    def __init__(self, platform: FakePlatform, follower: FakeFollower):
        self.platform = platform
        self.follower = follower
        self.requests: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def trigger_log_line(self, producer: str, path: str, timeout: float) -> bool:
        with self._lock:
            self.requests.append((producer, path))
        if self.platform.is_bound(producer):
            self.follower.stream.buffer.write(
                f"<14>1 - {producer} [APP/PROC/WEB/0] GET {path}\n".encode()
            )
        return True


class RecordingDriver:
    """Counts requests per producer; optionally raises for one producer."""

    def __init__(self, explode_for: str | None = None):
        self.explode_for = explode_for
        self.requests: list[tuple[str, str, float]] = []
        self._lock = threading.Lock()

    def trigger_log_line(self, producer: str, path: str, timeout: float) -> bool:
        if producer == self.explode_for:
            raise RuntimeError(f"{producer} exploded")
        with self._lock:
            self.requests.append((producer, path, timeout))
        return True

    def count(self, producer: str) -> int:
        with self._lock:
            return sum(1 for p, _, _ in self.requests if p == producer)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with every wait shrunk to test scale."""
    return Settings(
        apps_domain="apps.test.local",
        emission_cadence=0.02,
        message_budget=2.0,
        absence_window=0.3,
        poll_interval=0.01,
        resolve_timeout=1.0,
        resolve_max_attempts=5,
        emission_join_timeout=2.0,
        listener_instances=2,
    )


@pytest.fixture
def metadata() -> FakeMetadata:
    return FakeMetadata({
        0: instance_env("10.255.0.1", "10.0.16.5"),
        1: instance_env("10.255.0.2", "10.0.16.6"),
    })


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def follower() -> FakeFollower:
    return FakeFollower()


@pytest.fixture
def names() -> SequentialNameProvider:
    return SequentialNameProvider()


@pytest.fixture
def fast_resolver(metadata: FakeMetadata) -> AddressResolver:
    return AddressResolver(
        metadata, timeout=1.0, max_attempts=5, initial_wait=0.01, max_wait=0.01,
        sleep=lambda _: None,
    )
