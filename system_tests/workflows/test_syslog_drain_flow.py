"""
Syslog Drain Flow - end-to-end drain isolation on a live foundation.

This test verifies:
1. A listener app receives the bound producer's log lines
2. The unbound producer's log lines never reach the listener
3. Everything pushed or created is removed afterwards
"""

from __future__ import annotations

import pytest

from drainwatch.core.config import Settings
from drainwatch.harness.scenario import DrainScenario, ScenarioState


def _scenario(cf, follower, driver, config: Settings, **kwargs) -> DrainScenario:
    return DrainScenario(cf, cf, follower, driver, config, **kwargs)


class TestSyslogDrainFlow:
    """Drain delivery through instance addresses and TCP routes."""

    def test_ip_drain_isolates_producers(self, cf, follower, driver, system_config, check_result):
        config = system_config.model_copy(update={"include_tcp_routing": False})
        scenario = _scenario(cf, follower, driver, config)

        result = scenario.run()

        assert result.state is ScenarioState.DONE
        check_result(result)

    def test_ip_drain_bound_to_all_producers(self, cf, follower, driver, system_config, check_result):
        config = system_config.model_copy(update={"include_tcp_routing": False})
        scenario = _scenario(cf, follower, driver, config, bind_all_producers=True)

        check_result(scenario.run())

    @pytest.mark.tcp_routing
    def test_tcp_route_drain(self, cf, follower, driver, system_config, check_result):
        if not system_config.include_tcp_routing:
            pytest.skip("DRAINWATCH_INCLUDE_TCP_ROUTING is not enabled")

        result = _scenario(cf, follower, driver, system_config).run()

        assert len(result.drain_urls) == 1
        assert result.drain_urls[0].startswith(f"syslog://tcp.{system_config.apps_domain}:")
        check_result(result)
