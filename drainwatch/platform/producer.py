"""Producer driver - curl a log writer app so it emits one log line."""

from __future__ import annotations

import httpx

from drainwatch.core.config import Settings
from drainwatch.core.logging import get_logger

logger = get_logger("platform.producer")


class HttpProducerDriver:
    """
    Hits `https://{app}.{apps_domain}{path}` on a log writer.

    The ruby fixture logs the request path, so a path of `/log/{tag}`
    produces a log line containing the tag.
    """

    def __init__(self, config: Settings, client: httpx.Client | None = None):
        self.config = config
        self._client = client or httpx.Client(verify=not config.skip_ssl_validation)

    def url_for(self, producer: str, path: str) -> str:
        return f"https://{producer}.{self.config.apps_domain}{path}"

    def trigger_log_line(self, producer: str, path: str, timeout: float) -> bool:
        url = self.url_for(producer, path)
        try:
            response = self._client.get(url, timeout=timeout)
        except httpx.RequestError as e:
            logger.warning(f"Request to {producer} failed: {e}")
            return False

        if response.status_code >= 400:
            logger.warning(f"{producer} answered HTTP {response.status_code} for {path}")
            return False
        return True

    def close(self) -> None:
        self._client.close()
