"""
Collaborator interfaces consumed by the harness.

The harness only depends on these protocols; `drainwatch.platform.cf`,
`drainwatch.platform.log_stream` and `drainwatch.platform.producer` are the
implementations used against a real foundation, tests supply fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class AppSpec:
    """What to push for one fixture app."""

    name: str
    buildpack: str
    memory: str
    path: str
    manifest: str | None = None
    instances: int | None = None
    health_check_type: str | None = None


class PlatformControl(Protocol):
    """Application, service and route lifecycle. Every call raises on failure."""

    def push(self, app: AppSpec) -> None: ...

    def bind_service(self, app_name: str, service_name: str) -> None: ...

    def create_user_provided_service(
        self, name: str, syslog_drain_url: str, credentials: str | None = None
    ) -> None: ...

    def delete_app(self, app_name: str) -> None: ...

    def delete_service(self, service_name: str) -> None: ...

    def delete_orphaned_routes(self) -> None: ...

    def create_shared_domain(self, domain: str, router_group: str) -> None: ...

    def router_groups(self) -> str: ...

    def map_tcp_route(self, app_name: str, domain: str) -> int: ...

    def app_report(self, app_name: str) -> None: ...


class InstanceMetadata(Protocol):
    """Environment of one running app instance, as KEY=value lines."""

    def get_environment_text(self, app_name: str, instance_index: int) -> str: ...


class ProducerDriver(Protocol):
    """Makes a producer emit one log line containing `path`."""

    def trigger_log_line(self, producer: str, path: str, timeout: float) -> bool: ...


class FollowedStream(Protocol):
    """A live log stream whose buffered contents can be read at any time."""

    def contents(self) -> bytes: ...

    def close(self) -> None: ...


class LogFollower(Protocol):
    def follow(self, app_name: str) -> FollowedStream: ...
