"""
Address Resolver - Turn listener instance metadata into drain addresses.

Each listener instance is reachable two ways:
1. External: the cell's IP and the externally mapped port
2. Internal: the container IP and the fixed listener port

On a vanilla environment apps reach the external address through the
syslog service; on NSX-T only the internal address is reachable. Both
are returned so a drain can be registered for each.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential_jitter,
)

from drainwatch.core.exceptions import (
    AddressResolutionError,
    MetadataUnavailableError,
    PlatformCommandError,
)
from drainwatch.core.logging import get_logger
from drainwatch.harness.ports import parse_instance_ports
from drainwatch.platform.base import InstanceMetadata

logger = get_logger("harness.addresses")

INTERNAL_IP_KEY = "CF_INSTANCE_INTERNAL_IP"
EXTERNAL_IP_KEY = "CF_INSTANCE_IP"
PORTS_KEY = "CF_INSTANCE_PORTS"

TRANSIENT_ERRORS = (MetadataUnavailableError, PlatformCommandError)


@dataclass(frozen=True)
class ResolvedAddress:
    """A host:port pair a drain can point at."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def extract_environment_value(environment: str, key: str) -> str:
    """
    Find `KEY=value` in env output and return the value.

    Raises:
        MetadataUnavailableError: no line carries the key, or its value is empty
    """
    match = re.search(rf"^{re.escape(key)}=(.*)$", environment, re.MULTILINE)
    if not match or not match.group(1).strip():
        raise MetadataUnavailableError(
            f"{key} not present in instance environment", details={"key": key}
        )
    return match.group(1).strip()


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    logger.debug(f"Instance metadata not ready (attempt {state.attempt_number}): {error}")


class AddressResolver:
    """
    Resolve (external, internal) addresses per listener instance.

    Usage:
        resolver = AddressResolver(cf, timeout=60)
        addresses = resolver.resolve("APP-SYSLOG-LISTENER-1", 2)
        # [external_0, internal_0, external_1, internal_1]
    """

    def __init__(
        self,
        metadata: InstanceMetadata,
        timeout: float = 60.0,
        max_attempts: int = 20,
        initial_wait: float = 1.0,
        max_wait: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.metadata = metadata
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.initial_wait = initial_wait
        self.max_wait = max_wait
        self._sleep = sleep

    def _lookup(self, app_name: str, index: int) -> tuple[ResolvedAddress, ResolvedAddress]:
        environment = self.metadata.get_environment_text(app_name, index)

        internal_ip = extract_environment_value(environment, INTERNAL_IP_KEY)
        external_ip = extract_environment_value(environment, EXTERNAL_IP_KEY)
        raw_ports = extract_environment_value(environment, PORTS_KEY)

        internal_port, external_port = parse_instance_ports(raw_ports)

        return (
            ResolvedAddress(external_ip, external_port),
            ResolvedAddress(internal_ip, internal_port),
        )

    def resolve_instance(
        self, app_name: str, index: int
    ) -> tuple[ResolvedAddress, ResolvedAddress]:
        """
        Resolve one instance, retrying while metadata is unavailable.

        PortMetadataError is never retried and propagates unchanged.
        """
        retrying = Retrying(
            stop=stop_after_delay(self.timeout) | stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.initial_wait,
                max=self.max_wait,
                jitter=self.initial_wait,
            ),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    external, internal = self._lookup(app_name, index)
        except TRANSIENT_ERRORS as e:
            raise AddressResolutionError(
                f"Could not resolve addresses of {app_name} instance {index}: {e.message}",
                details={"app": app_name, "instance": index},
            ) from e

        logger.info(f"{app_name}/{index}: external={external} internal={internal}")
        return external, internal

    def resolve(self, app_name: str, instance_count: int) -> list[ResolvedAddress]:
        """Return [external_0, internal_0, external_1, internal_1, ...]."""
        addresses: list[ResolvedAddress] = []
        for index in range(instance_count):
            external, internal = self.resolve_instance(app_name, index)
            addresses.append(external)
            addresses.append(internal)
        return addresses
