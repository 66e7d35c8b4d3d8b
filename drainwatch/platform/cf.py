"""
cf CLI adapter - platform control and instance metadata.

Every command runs through `subprocess.run` with a bounded timeout and
raises PlatformCommandError on a non-zero exit, so the scenario can treat
any non-success as provisioning failure.
"""

from __future__ import annotations

import re
import subprocess

from drainwatch.core.config import Settings
from drainwatch.core.exceptions import PlatformCommandError
from drainwatch.core.logging import REDACTED, get_logger, redact_secrets
from drainwatch.platform.base import AppSpec

logger = get_logger("platform.cf")


class CfCli:
    """
    Thin wrapper around the `cf` binary.

    Usage:
        cf = CfCli(settings)
        cf.push(AppSpec(name="listener", buildpack="go_buildpack", ...))
        env = cf.get_environment_text("listener", 0)
    """

    def __init__(self, config: Settings):
        self.config = config
        self.binary = config.cf_binary

    def run(
        self, *args: str, timeout: float | None = None, masked: tuple[str, ...] = ()
    ) -> str:
        """Run a cf command and return its stdout.

        Arguments listed in `masked` are replaced by a placeholder wherever
        the command is logged or attached to an error.
        """
        cmd = [self.binary, *args]
        shown = [REDACTED if arg in masked else arg for arg in cmd]
        timeout = timeout or self.config.default_timeout
        logger.debug(f"$ {' '.join(shown)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise PlatformCommandError(
                f"cf {args[0]} timed out after {timeout}s", command=shown
            ) from e
        except OSError as e:
            raise PlatformCommandError(
                f"Cannot execute {self.binary}: {e}", command=shown
            ) from e

        if result.returncode != 0:
            raise PlatformCommandError(
                f"cf {args[0]} exited with {result.returncode}",
                command=shown,
                exit_code=result.returncode,
                output=redact_secrets((result.stdout or "") + (result.stderr or "")),
            )

        return result.stdout

    # -- Platform control ---------------------------------------------------

    def push(self, app: AppSpec) -> None:
        args = ["push", app.name]
        if app.health_check_type:
            args += ["--health-check-type", app.health_check_type]
        args += ["-b", app.buildpack, "-m", app.memory, "-p", app.path]
        if app.manifest:
            args += ["-f", app.manifest]
        if app.instances is not None:
            args += ["-i", str(app.instances)]

        logger.info(f"Pushing {app.name}")
        self.run(*args, timeout=self.config.cf_push_timeout)

    def bind_service(self, app_name: str, service_name: str) -> None:
        logger.info(f"Binding {service_name} to {app_name}")
        self.run("bind-service", app_name, service_name)

    def create_user_provided_service(
        self, name: str, syslog_drain_url: str, credentials: str | None = None
    ) -> None:
        args = ["cups", name, "-l", syslog_drain_url]
        if credentials:
            args += ["-p", credentials]
        logger.info(f"Creating syslog drain service {name} -> {syslog_drain_url}")
        self.run(*args, masked=(credentials,) if credentials else ())

    def delete_app(self, app_name: str) -> None:
        self.run("delete", app_name, "-f", "-r")

    def delete_service(self, service_name: str) -> None:
        self.run("delete-service", service_name, "-f")

    def delete_orphaned_routes(self) -> None:
        self.run("delete-orphaned-routes", "-f", timeout=self.config.cf_push_timeout)

    def create_shared_domain(self, domain: str, router_group: str) -> None:
        self.run("create-shared-domain", domain, "--router-group", router_group)

    def router_groups(self) -> str:
        return self.run("router-groups")

    def map_tcp_route(self, app_name: str, domain: str) -> int:
        """Map a random-port TCP route and return the assigned port."""
        output = self.run("map-route", app_name, domain)
        match = re.search(re.escape(domain) + r":(\d+)", output)
        if not match:
            raise PlatformCommandError(
                f"No TCP port in map-route output for {app_name}",
                command=["map-route", app_name, domain],
                output=output,
            )
        return int(match.group(1))

    def app_report(self, app_name: str) -> None:
        """Log app state and recent logs for post-mortem debugging."""
        logger.info(f"App report for {app_name}:\n{self.run('app', app_name)}")
        recent = self.run("logs", app_name, "--recent")
        logger.debug(f"Recent logs for {app_name}:\n{recent}")

    # -- Instance metadata --------------------------------------------------

    def get_environment_text(self, app_name: str, instance_index: int) -> str:
        return self.run("ssh", app_name, "-c", "env", "-i", str(instance_index))
