"""
Log Stream - Follow an app's logs into an append-only buffer.

`cf logs APP` runs for the whole scenario; a reader thread appends every
chunk it prints to a LogBuffer that assertions can read at any time.
"""

from __future__ import annotations

import io
import subprocess
import threading

from drainwatch.core.config import Settings
from drainwatch.core.exceptions import PlatformCommandError
from drainwatch.core.logging import get_logger

logger = get_logger("platform.log_stream")


class LogBuffer:
    """Thread-safe append-only byte buffer."""

    def __init__(self) -> None:
        self._chunks = bytearray()
        self._lock = threading.Lock()

    def write(self, data: bytes) -> int:
        with self._lock:
            self._chunks.extend(data)
        return len(data)

    def contents(self) -> bytes:
        with self._lock:
            return bytes(self._chunks)

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)


class CfLogStream:
    """A running `cf logs` process feeding a LogBuffer."""

    def __init__(self, cmd: list[str], read_size: int = 4096):
        self.cmd = cmd
        self.buffer = LogBuffer()
        self._read_size = read_size
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise PlatformCommandError(
                f"Cannot start log stream: {e}", command=cmd
            ) from e

        self._reader = threading.Thread(
            target=self._pump,
            args=(self._process.stdout,),
            name=f"log-follow:{cmd[-1]}",
            daemon=True,
        )
        self._reader.start()

    def _pump(self, stdout: io.BufferedReader) -> None:
        while True:
            chunk = stdout.read1(self._read_size)
            if not chunk:
                break
            self.buffer.write(chunk)
        logger.debug(f"Log stream ended: {' '.join(self.cmd)}")

    def contents(self) -> bytes:
        return self.buffer.contents()

    @property
    def running(self) -> bool:
        return self._process.poll() is None

    def close(self, timeout: float = 5.0) -> None:
        """Kill the follower and wait (bounded) for the reader to drain."""
        if self._process.poll() is None:
            self._process.kill()
        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Log stream did not exit within {timeout}s")
        self._reader.join(timeout=timeout)


class CfLogFollower:
    """Starts `cf logs` followers."""

    def __init__(self, config: Settings):
        self.config = config

    def follow(self, app_name: str) -> CfLogStream:
        logger.info(f"Following logs of {app_name}")
        return CfLogStream([self.config.cf_binary, "logs", app_name])
