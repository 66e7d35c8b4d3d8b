"""
Verification Scenario - Prove a drain receives only its bound producer's logs.

Flow:
1. PROVISIONING: push listener + two log writers, resolve drain addresses,
   register a user-provided syslog drain per address, bind writer 1
2. EMITTING: follow the listener's logs, start one emission worker per writer
3. ASSERTING: writer 1's tag must arrive, writer 2's tag must stay absent
4. TEARING_DOWN: always runs; cancel workers, close the stream, delete
   apps, services and orphaned routes

The scenario yields exactly one verdict. Teardown failures are collected
but never replace the verdict.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable

from drainwatch.core.config import Settings
from drainwatch.core.exceptions import (
    AddressResolutionError,
    HarnessError,
    PlatformCommandError,
    PortMetadataError,
)
from drainwatch.core.logging import get_logger, scenario_id_var
from drainwatch.harness.addresses import AddressResolver
from drainwatch.harness.assertions import (
    DrainMessageMissingError,
    UnexpectedDrainMessageError,
    expect_token,
    expect_token_absent,
)
from drainwatch.harness.drains import DrainCredentials, DrainTarget
from drainwatch.harness.emission import EmissionController, WorkerFault
from drainwatch.harness.naming import NameProvider, RandomNameProvider
from drainwatch.platform.base import (
    AppSpec,
    FollowedStream,
    InstanceMetadata,
    LogFollower,
    PlatformControl,
    ProducerDriver,
)

logger = get_logger("harness.scenario")

_STREAM_EXCERPT_BYTES = 4000


class ScenarioState(Enum):
    IDLE = "idle"
    PROVISIONING = "provisioning"
    EMITTING = "emitting"
    ASSERTING = "asserting"
    TEARING_DOWN = "tearing_down"
    DONE = "done"


class FailureKind(Enum):
    PROVISIONING_FAILED = "provisioning_failed"
    ADDRESS_RESOLUTION_FAILED = "address_resolution_failed"
    PORT_METADATA_INVALID = "port_metadata_invalid"
    MESSAGE_NOT_RECEIVED = "message_not_received"
    UNEXPECTED_MESSAGE = "unexpected_message"
    WORKER_FAULT = "worker_fault"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class ScenarioFailure:
    kind: FailureKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScenarioResult:
    """The single verdict of one scenario run."""

    scenario_id: str
    name: str
    started_at: datetime
    finished_at: datetime | None = None
    states: list[ScenarioState] = field(default_factory=list)
    failure: ScenarioFailure | None = None
    expected_tags: list[str] = field(default_factory=list)
    forbidden_tags: list[str] = field(default_factory=list)
    drain_urls: list[str] = field(default_factory=list)
    faults: list[WorkerFault] = field(default_factory=list)
    teardown_errors: list[str] = field(default_factory=list)
    stream_excerpt: str = ""

    @property
    def passed(self) -> bool:
        return self.failure is None

    @property
    def state(self) -> ScenarioState:
        return self.states[-1] if self.states else ScenarioState.IDLE

    def verdict(self) -> str:
        if self.passed:
            return f"PASS {self.name}"
        return f"FAIL {self.name} [{self.failure.kind.value}]: {self.failure.message}"


class DrainScenario:
    """
    Selective syslog drain delivery check.

    Usage:
        scenario = DrainScenario(cf, cf, CfLogFollower(settings),
                                 HttpProducerDriver(settings), settings)
        result = scenario.run()
        assert result.passed, result.verdict()

    With `bind_all_producers=True` every drain is bound to both writers and
    both tags must arrive; this cross-checks that the absence assertion is
    specific to unbound producers.
    """

    def __init__(
        self,
        platform: PlatformControl,
        metadata: InstanceMetadata,
        follower: LogFollower,
        driver: ProducerDriver,
        config: Settings,
        names: NameProvider | None = None,
        resolver: AddressResolver | None = None,
        bind_all_producers: bool = False,
    ):
        self.platform = platform
        self.metadata = metadata
        self.follower = follower
        self.driver = driver
        self.config = config
        self.names = names or RandomNameProvider(config.name_prefix)
        self.resolver = resolver or AddressResolver(
            metadata,
            timeout=config.resolve_timeout,
            max_attempts=config.resolve_max_attempts,
        )
        self.bind_all_producers = bind_all_producers

        self.scenario_id = uuid.uuid4().hex
        self.listener = self.names.name("APP-SYSLOG-LISTENER")
        self.writers = [
            self.names.name("APP-FIRST-LOG-WRITER"),
            self.names.name("APP-SECOND-LOG-WRITER"),
        ]
        self.tags = [
            self.names.name("RANDOM-MESSAGE-A"),
            self.names.name("RANDOM-MESSAGE-B"),
        ]

        self.emission = EmissionController(
            driver,
            cadence=config.emission_cadence,
            request_timeout=config.default_timeout,
        )
        self.stream: FollowedStream | None = None
        self._pushed_apps: list[str] = []
        self._services: list[str] = []
        self.result = ScenarioResult(
            scenario_id=self.scenario_id,
            name=self.name,
            started_at=datetime.now(UTC),
        )

    @property
    def name(self) -> str:
        mode = "tcp-routing" if self.config.include_tcp_routing else "ip"
        binding = "all-producers" if self.bind_all_producers else "first-producer"
        return f"syslog-drain[{mode},{binding}]"

    @property
    def state(self) -> ScenarioState:
        return self.result.state

    def _transition(self, state: ScenarioState) -> None:
        previous = self.result.state
        self.result.states.append(state)
        logger.info(f"{previous.value} -> {state.value}")

    def _fail(self, kind: FailureKind, error: BaseException) -> None:
        details = error.to_dict() if isinstance(error, HarnessError) else {}
        self.result.failure = ScenarioFailure(kind=kind, message=str(error), details=details)
        logger.error(f"Scenario failed ({kind.value}): {error}")

    # -- Provisioning -------------------------------------------------------

    def _push(self, app: AppSpec) -> None:
        # Recorded first: a failed push can still leave an app behind
        self._pushed_apps.append(app.name)
        self.platform.push(app)

    def _push_listener(self, instances: int | None) -> None:
        self._push(AppSpec(
            name=self.listener,
            buildpack=self.config.go_buildpack,
            memory=self.config.memory_limit,
            path=self.config.listener_asset,
            manifest=f"{self.config.listener_asset}/manifest.yml",
            instances=instances,
            health_check_type="port",
        ))

    def _push_writers(self) -> None:
        for writer in self.writers:
            self._push(AppSpec(
                name=writer,
                buildpack=self.config.ruby_buildpack,
                memory=self.config.memory_limit,
                path=self.config.producer_asset,
            ))

    def _ip_drain_targets(self) -> list[tuple[str, DrainTarget]]:
        """One drain per resolved address, external and internal alternating."""
        credentials = DrainCredentials.from_pair(
            self.config.syslog_client_cert, self.config.syslog_client_key
        )
        addresses = self.resolver.resolve(self.listener, self.config.listener_instances)

        targets = []
        for i, address in enumerate(addresses):
            kind = "SVIN" if i % 2 == 0 else "SVIN-INT"
            targets.append((
                self.names.name(kind),
                DrainTarget(
                    address=str(address),
                    tls=self.config.require_proxied_app_traffic,
                    credentials=credentials,
                ),
            ))
        return targets

    def _tcp_drain_targets(self) -> list[tuple[str, DrainTarget]]:
        domain = f"tcp.{self.config.apps_domain}"
        port = self.platform.map_tcp_route(self.listener, domain)
        return [(self.names.name("SVIN"), DrainTarget(address=f"{domain}:{port}"))]

    def _ensure_tcp_domain(self) -> None:
        group = self.config.tcp_router_group
        output = self.platform.router_groups()
        if not re.search(rf"{re.escape(group)}\s+tcp", output):
            raise PlatformCommandError(f"Router group {group} of type tcp doesn't exist")

        domain = f"tcp.{self.config.apps_domain}"
        try:
            self.platform.create_shared_domain(domain, group)
        except PlatformCommandError as e:
            # The domain usually exists already from an earlier run
            logger.info(f"create-shared-domain {domain}: {e.message}")

    def _register_drains(self, targets: list[tuple[str, DrainTarget]]) -> None:
        bound = self.writers if self.bind_all_producers else self.writers[:1]
        for service, target in targets:
            self._services.append(service)
            self.platform.create_user_provided_service(
                service,
                target.url,
                target.credentials.to_json() if target.credentials else None,
            )
            self.result.drain_urls.append(target.url)
            # Syslog bindings don't change the app environment: no restage
            for writer in bound:
                self.platform.bind_service(writer, service)

    def _provision(self) -> None:
        if self.config.include_tcp_routing:
            self._ensure_tcp_domain()
            self._push_listener(instances=None)
            targets = self._tcp_drain_targets()
            self._push_writers()
        else:
            self._push_listener(instances=self.config.listener_instances)
            self._push_writers()
            targets = self._ip_drain_targets()

        self._register_drains(targets)

    # -- Emitting / asserting -----------------------------------------------

    def _start_emission(self) -> FollowedStream:
        self.stream = self.follower.follow(self.listener)
        for writer, tag in zip(self.writers, self.tags):
            self.emission.start(writer, tag)
        return self.stream

    def _assert_delivery(self, stream: FollowedStream) -> None:
        if self.bind_all_producers:
            expected, forbidden = list(self.tags), []
        else:
            expected, forbidden = self.tags[:1], self.tags[1:]
        self.result.expected_tags = expected
        self.result.forbidden_tags = forbidden

        for tag in expected:
            expect_token(
                stream, tag, self.config.message_budget, self.config.poll_interval
            )
        for tag in forbidden:
            expect_token_absent(
                stream, tag, self.config.absence_window, self.config.poll_interval
            )

    # -- Teardown -----------------------------------------------------------

    def _best_effort(self, label: str, func: Callable[..., Any], *args: Any) -> None:
        try:
            func(*args)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Teardown step '{label}' failed: {e}")
            self.result.teardown_errors.append(f"{label}: {e}")

    def _capture_excerpt(self, stream: FollowedStream) -> None:
        contents = stream.contents()
        self.result.stream_excerpt = contents[-_STREAM_EXCERPT_BYTES:].decode(
            "utf-8", errors="replace"
        )

    def _teardown(self) -> None:
        self.emission.cancel()
        if not self.emission.join(timeout=self.config.emission_join_timeout):
            self.result.teardown_errors.append("emission workers did not stop in time")

        if self.stream is not None:
            self._best_effort("capture stream excerpt", self._capture_excerpt, self.stream)
            self._best_effort("close log stream", self.stream.close)

        for app in self._pushed_apps:
            self._best_effort(f"app report {app}", self.platform.app_report, app)
        for app in self._pushed_apps:
            self._best_effort(f"delete app {app}", self.platform.delete_app, app)
        for service in self._services:
            self._best_effort(f"delete service {service}", self.platform.delete_service, service)
        self._best_effort("delete orphaned routes", self.platform.delete_orphaned_routes)

    # -- Run ----------------------------------------------------------------

    def run(self) -> ScenarioResult:
        """Run the scenario once and return its verdict."""
        token = scenario_id_var.set(self.scenario_id)
        try:
            logger.info(f"Starting {self.name}")
            self._transition(ScenarioState.PROVISIONING)
            try:
                self._provision()
                self._transition(ScenarioState.EMITTING)
                stream = self._start_emission()
                self._transition(ScenarioState.ASSERTING)
                self._assert_delivery(stream)
            except PortMetadataError as e:
                self._fail(FailureKind.PORT_METADATA_INVALID, e)
            except AddressResolutionError as e:
                self._fail(FailureKind.ADDRESS_RESOLUTION_FAILED, e)
            except PlatformCommandError as e:
                self._fail(FailureKind.PROVISIONING_FAILED, e)
            except DrainMessageMissingError as e:
                self._fail(FailureKind.MESSAGE_NOT_RECEIVED, e)
            except UnexpectedDrainMessageError as e:
                self._fail(FailureKind.UNEXPECTED_MESSAGE, e)
            except Exception as e:  # noqa: BLE001
                logger.exception(f"Unexpected error in state {self.state.value}")
                self._fail(FailureKind.UNEXPECTED_ERROR, e)
            finally:
                self._transition(ScenarioState.TEARING_DOWN)
                self._teardown()

            self.result.faults = self.emission.faults
            if self.result.faults and self.result.failure is None:
                self._fail(FailureKind.WORKER_FAULT, self.result.faults[0].to_error())

            self.result.finished_at = datetime.now(UTC)
            self._transition(ScenarioState.DONE)
            logger.info(self.result.verdict())
            return self.result
        finally:
            scenario_id_var.reset(token)
