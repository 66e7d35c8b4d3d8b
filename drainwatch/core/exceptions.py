"""Harness exceptions with structured error codes."""

from __future__ import annotations

from typing import Any


class HarnessError(Exception):
    """Base harness exception with a structured error payload."""

    error_code: str = "HARNESS_ERROR"
    message: str = "Drain verification failed"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class ConfigurationError(HarnessError):
    """Harness settings are unusable."""

    error_code = "CONFIGURATION_ERROR"
    message = "Invalid harness configuration"


class PortMetadataError(HarnessError):
    """
    Port mapping metadata is malformed or empty.

    The environment cannot be verified against, so callers must not retry.
    """

    error_code = "PORT_METADATA_INVALID"
    message = "Instance port metadata is malformed"


class MetadataUnavailableError(HarnessError):
    """Instance metadata is not (yet) available. Safe to retry."""

    error_code = "METADATA_UNAVAILABLE"
    message = "Instance metadata not available"


class AddressResolutionError(HarnessError):
    """Listener addresses could not be resolved within the retry budget."""

    error_code = "ADDRESS_RESOLUTION_FAILED"
    message = "Could not resolve listener addresses"


class PlatformCommandError(HarnessError):
    """A platform control call returned non-success or timed out."""

    error_code = "PROVISIONING_FAILED"
    message = "Platform command failed"

    def __init__(
        self,
        message: str | None = None,
        command: list[str] | None = None,
        exit_code: int | None = None,
        output: str | None = None,
    ):
        details: dict[str, Any] = {}
        if command is not None:
            details["command"] = command
        if exit_code is not None:
            details["exit_code"] = exit_code
        if output:
            details["output"] = output[-2000:]
        self.command = command
        self.exit_code = exit_code
        super().__init__(message, details=details)


class WorkerFaultError(HarnessError):
    """An emission worker raised instead of completing its loop."""

    error_code = "WORKER_FAULT"
    message = "Log emission worker faulted"
