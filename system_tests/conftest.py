"""
System Test Configuration - fixtures for live drain verification.

These tests push real apps to the foundation the cf CLI is currently
targeting. They are opt-in:

    DRAINWATCH_SYSTEM_TESTS=1 pytest system_tests

The unit tests in tests/ use fakes and never touch a foundation.
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

from drainwatch.core.config import Settings, load_settings
from drainwatch.core.exceptions import ConfigurationError, PlatformCommandError
from drainwatch.core.logging import setup_logging
from drainwatch.harness.report import ScenarioReport
from drainwatch.harness.scenario import ScenarioResult
from drainwatch.platform import CfCli, CfLogFollower, HttpProducerDriver


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless they were requested."""
    enabled = os.getenv("DRAINWATCH_SYSTEM_TESTS") == "1"
    skip = pytest.mark.skip(reason="set DRAINWATCH_SYSTEM_TESTS=1 to run against a foundation")
    for item in items:
        if "/system_tests/" not in str(item.fspath):
            continue
        if "/workflows/" in str(item.fspath):
            item.add_marker(pytest.mark.workflow)
        if not enabled:
            item.add_marker(skip)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "workflow: End-to-end drain scenario against a live foundation",
    )
    config.addinivalue_line(
        "markers",
        "tcp_routing: Requires a tcp router group on the foundation",
    )


# =============================================================================
# CONFIGURATION
# =============================================================================


@pytest.fixture(scope="session")
def system_config() -> Settings:
    """Load harness settings from the environment."""
    try:
        config = load_settings()
    except ConfigurationError as e:
        pytest.fail(f"Invalid DRAINWATCH_ settings: {e.details}")
    setup_logging(config)
    return config


# =============================================================================
# PLATFORM
# =============================================================================


@pytest.fixture(scope="session")
def cf(system_config: Settings) -> CfCli:
    """cf CLI adapter, verified to have a target."""
    cli = CfCli(system_config)
    try:
        cli.run("target")
    except PlatformCommandError as e:
        pytest.fail(
            f"cf CLI is not usable: {e.message}\n\n"
            f"Log in and target an org/space first:\n"
            f"  cf login -a <api> && cf target -o <org> -s <space>"
        )
    return cli


@pytest.fixture
def follower(system_config: Settings) -> CfLogFollower:
    return CfLogFollower(system_config)


@pytest.fixture
def driver(system_config: Settings) -> Generator[HttpProducerDriver, None, None]:
    producer_driver = HttpProducerDriver(system_config)
    yield producer_driver
    producer_driver.close()


# =============================================================================
# REPORTING
# =============================================================================


@pytest.fixture
def check_result(system_config: Settings):
    """
    Fail the test with the verdict, saving a report when configured.

    Usage:
        def test_drain(check_result, ...):
            check_result(scenario.run())
    """

    def _check(result: ScenarioResult) -> None:
        if result.passed:
            return
        report_path = None
        if system_config.report_dir:
            report_path = ScenarioReport(result).save(system_config.report_dir)
        pytest.fail(
            f"\n{'=' * 70}\n"
            f"{result.verdict()}\n"
            f"Report: {report_path or 'not saved (DRAINWATCH_REPORT_DIR unset)'}\n"
            f"{'=' * 70}"
        )

    return _check
