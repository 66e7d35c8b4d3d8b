"""Core infrastructure: settings, logging, exceptions."""

from .config import Settings, get_settings
from .exceptions import (
    AddressResolutionError,
    ConfigurationError,
    HarnessError,
    MetadataUnavailableError,
    PlatformCommandError,
    PortMetadataError,
    WorkerFaultError,
)
from .logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "HarnessError",
    "ConfigurationError",
    "PortMetadataError",
    "MetadataUnavailableError",
    "AddressResolutionError",
    "PlatformCommandError",
    "WorkerFaultError",
    "get_logger",
    "setup_logging",
]
