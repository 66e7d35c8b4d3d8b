"""
Drain verification harness.

- ports / addresses: where the listener can be reached
- emission: keep producers logging tagged lines
- assertions: bounded presence/absence checks on the listener stream
- scenario: provisioning, emission, assertion and teardown in one run
"""

from drainwatch.harness.addresses import AddressResolver, ResolvedAddress
from drainwatch.harness.assertions import (
    DrainMessageMissingError,
    UnexpectedDrainMessageError,
    assert_token_absent,
    await_token,
    expect_token,
    expect_token_absent,
)
from drainwatch.harness.drains import DrainCredentials, DrainTarget
from drainwatch.harness.emission import EmissionController, emit_until_cancelled
from drainwatch.harness.naming import RandomNameProvider, SequentialNameProvider
from drainwatch.harness.ports import INTERNAL_PORT, parse_instance_ports
from drainwatch.harness.scenario import (
    DrainScenario,
    FailureKind,
    ScenarioResult,
    ScenarioState,
)

__all__ = [
    "AddressResolver",
    "ResolvedAddress",
    "DrainMessageMissingError",
    "UnexpectedDrainMessageError",
    "assert_token_absent",
    "await_token",
    "expect_token",
    "expect_token_absent",
    "DrainCredentials",
    "DrainTarget",
    "EmissionController",
    "emit_until_cancelled",
    "RandomNameProvider",
    "SequentialNameProvider",
    "INTERNAL_PORT",
    "parse_instance_ports",
    "DrainScenario",
    "FailureKind",
    "ScenarioResult",
    "ScenarioState",
]
