"""
Port-Metadata Parser - Derive listener ports from CF_INSTANCE_PORTS.

The payload is a JSON array of port mappings; only the first mapping is
consulted. The internal port is fixed by the listener fixture.
"""

from __future__ import annotations

import json
from typing import Any

from drainwatch.core.exceptions import PortMetadataError
from drainwatch.core.logging import get_logger

logger = get_logger("harness.ports")

# Port the listener fixture binds inside its container
INTERNAL_PORT = 8080

_MAX_PORT = 65535


def _port_field(mapping: dict[str, Any], name: str) -> int:
    value = mapping.get(name, 0)
    if value is None:
        return 0
    # bool is an int subclass; a JSON true is not a port
    if isinstance(value, bool) or not isinstance(value, int):
        raise PortMetadataError(
            f"Port mapping field '{name}' is not an integer: {value!r}"
        )
    if not 0 <= value <= _MAX_PORT:
        raise PortMetadataError(
            f"Port mapping field '{name}' out of range: {value}"
        )
    return value


def parse_instance_ports(raw: bytes | str) -> tuple[int, int]:
    """
    Parse a port mapping payload into (internal_port, external_port).

    The external port is the first mapping's ``external`` field, falling
    back to ``external_tls_proxy`` when ``external`` is zero.

    Raises:
        PortMetadataError: payload is not a non-empty JSON array of objects
    """
    try:
        ports = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.critical(f"Cannot unmarshal CF_INSTANCE_PORTS: {e}")
        raise PortMetadataError(
            f"Cannot unmarshal CF_INSTANCE_PORTS: {e}",
            details={"raw": raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw},
        ) from e

    if not isinstance(ports, list) or not all(isinstance(p, dict) for p in ports):
        logger.critical("CF_INSTANCE_PORTS is not an array of port mappings")
        raise PortMetadataError(
            "CF_INSTANCE_PORTS is not an array of port mappings",
            details={"decoded": ports},
        )

    if not ports:
        logger.critical("CF_INSTANCE_PORTS is empty")
        raise PortMetadataError("CF_INSTANCE_PORTS is empty")

    first = ports[0]
    external_port = _port_field(first, "external")
    if external_port == 0:
        external_port = _port_field(first, "external_tls_proxy")

    return INTERNAL_PORT, external_port
