"""
Log Emission Controller - Keep producers logging until told to stop.

One worker thread per producer repeatedly asks the producer to log a
line carrying its tag. Each worker owns a private cancel event; there is
no other shared state between workers.

Cancellation is cooperative: a worker finishes its in-flight request and
stops at the next loop check. The cadence sleep waits on the cancel event,
so a sleeping worker wakes up immediately.
"""

from __future__ import annotations

import threading
import time
import traceback
from dataclasses import dataclass, field

import httpx

from drainwatch.core.exceptions import WorkerFaultError
from drainwatch.core.logging import get_logger
from drainwatch.platform.base import ProducerDriver

logger = get_logger("harness.emission")

DEFAULT_CADENCE = 3.0


def emit_until_cancelled(
    cancel: threading.Event,
    tag: str,
    producer: str,
    driver: ProducerDriver,
    cadence: float = DEFAULT_CADENCE,
    request_timeout: float = 30.0,
) -> int:
    """Trigger tagged log lines on `producer` until `cancel` is set.

    Returns the number of requests issued.
    """
    issued = 0
    while not cancel.is_set():
        issued += 1
        try:
            if not driver.trigger_log_line(producer, f"/log/{tag}", request_timeout):
                logger.debug(f"Log request to {producer} did not succeed, continuing")
        except httpx.HTTPError as e:
            logger.warning(f"Log request to {producer} failed: {e}")
        cancel.wait(cadence)
    return issued


@dataclass
class EmissionJob:
    """A running producer worker and its private cancel signal."""

    producer: str
    tag: str
    cancel: threading.Event = field(default_factory=threading.Event)
    thread: threading.Thread | None = None
    requests_issued: int = 0

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()


@dataclass
class WorkerFault:
    """An exception caught at a worker boundary."""

    producer: str
    tag: str
    error: BaseException
    traceback: str

    def to_error(self) -> WorkerFaultError:
        return WorkerFaultError(
            f"Emission worker for {self.producer} faulted: {self.error!r}",
            details={"producer": self.producer, "traceback": self.traceback},
        )


class EmissionController:
    """
    Runs one emission worker per producer.

    Usage:
        with EmissionController(driver, cadence=3) as emission:
            emission.start("APP-FIRST-LOG-WRITER", tag_a)
            emission.start("APP-SECOND-LOG-WRITER", tag_b)
            ...  # assertions
        # workers cancelled and joined here
    """

    def __init__(
        self,
        driver: ProducerDriver,
        cadence: float = DEFAULT_CADENCE,
        request_timeout: float = 30.0,
    ):
        self.driver = driver
        self.cadence = cadence
        self.request_timeout = request_timeout
        self.jobs: list[EmissionJob] = []
        self._faults: list[WorkerFault] = []
        self._faults_lock = threading.Lock()

    def _run(self, job: EmissionJob) -> None:
        try:
            job.requests_issued = emit_until_cancelled(
                job.cancel,
                job.tag,
                job.producer,
                self.driver,
                cadence=self.cadence,
                request_timeout=self.request_timeout,
            )
        except Exception as e:  # noqa: BLE001
            logger.exception(f"Emission worker for {job.producer} faulted")
            with self._faults_lock:
                self._faults.append(
                    WorkerFault(
                        producer=job.producer,
                        tag=job.tag,
                        error=e,
                        traceback=traceback.format_exc(),
                    )
                )

    def start(self, producer: str, tag: str) -> EmissionJob:
        """Start a worker for `producer` logging `tag`."""
        job = EmissionJob(producer=producer, tag=tag)
        job.thread = threading.Thread(
            target=self._run, args=(job,), name=f"emit:{producer}", daemon=True
        )
        self.jobs.append(job)
        job.thread.start()
        logger.info(f"Emitting {tag} from {producer} every {self.cadence}s")
        return job

    def cancel(self) -> None:
        """Signal every worker to stop. Safe to call more than once."""
        for job in self.jobs:
            job.cancel.set()

    def join(self, timeout: float = 10.0) -> bool:
        """Wait up to `timeout` in total for workers; True if all stopped."""
        deadline = time.monotonic() + timeout
        for job in self.jobs:
            if job.thread is not None:
                job.thread.join(timeout=max(0.0, deadline - time.monotonic()))

        stragglers = [job.producer for job in self.jobs if job.running]
        if stragglers:
            logger.warning(f"Emission workers still running after {timeout}s: {stragglers}")
        return not stragglers

    @property
    def faults(self) -> list[WorkerFault]:
        with self._faults_lock:
            return list(self._faults)

    def __enter__(self) -> "EmissionController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()
        self.join()
