"""Run one drain verification scenario against the targeted foundation.

    python -m drainwatch [--tcp-routing] [--bind-all] [--report-dir DIR]

Exit codes: 0 pass, 1 fail, 2 bad configuration.
"""

from __future__ import annotations

import argparse
import sys

from drainwatch.core.config import load_settings
from drainwatch.core.exceptions import ConfigurationError
from drainwatch.core.logging import get_logger, setup_logging
from drainwatch.harness.report import ScenarioReport
from drainwatch.harness.scenario import DrainScenario
from drainwatch.platform import CfCli, CfLogFollower, HttpProducerDriver

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drainwatch",
        description="Verify syslog drains receive only their bound producer's logs.",
    )
    parser.add_argument(
        "--tcp-routing",
        action="store_true",
        default=None,
        help="register the drain through a TCP route instead of instance IPs",
    )
    parser.add_argument(
        "--bind-all",
        action="store_true",
        help="bind the drains to both producers and expect both tags",
    )
    parser.add_argument("--report-dir", help="write a JSON report on failure")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.tcp_routing is not None:
        overrides["include_tcp_routing"] = args.tcp_routing
    if args.report_dir:
        overrides["report_dir"] = args.report_dir

    try:
        config = load_settings(**overrides)
    except ConfigurationError as e:
        print(f"{e.message}: {e.details}", file=sys.stderr)
        return 2

    setup_logging(config)

    cf = CfCli(config)
    driver = HttpProducerDriver(config)
    try:
        result = DrainScenario(
            cf,
            cf,
            CfLogFollower(config),
            driver,
            config,
            bind_all_producers=args.bind_all,
        ).run()
    finally:
        driver.close()

    if not result.passed and config.report_dir:
        path = ScenarioReport(result).save(config.report_dir)
        logger.info(f"Report written to {path}")

    print(result.verdict())
    return 0 if result.passed else 1


if __name__ == "__main__":
    sys.exit(main())
