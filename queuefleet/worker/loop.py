import enum
import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

from queuefleet import settings
from queuefleet.local.signals import ShutdownFlag
from queuefleet.queues.base import Outcome, QueueHandle, TakeResult, take_one

log = logging.getLogger(__name__)


class WorkerState(enum.Enum):
    STARTING = "starting"
    DRAINING = "draining"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class WorkerRunSummary:
    """Counters reported when a worker stops."""

    processed: int = 0
    invalid: int = 0
    empty_polls: int = 0

    def __str__(self) -> str:
        return f"processed={self.processed} invalid={self.invalid} empty_polls={self.empty_polls}"


class WorkerLoop:
    """
    Drains one queue handle until asked to stop.

    A first stop request lets the current take finish and the loop fall
    through, then runs the handle's stop hook. A second request exits the
    process at once. Transport errors and unclassified failures end the loop
    with a nonzero exit code; invalid messages are logged and skipped.
    """

    def __init__(
        self,
        handle: QueueHandle,
        *,
        ordinal: int = 1,
        queue_name: Optional[str] = None,
        backoff_max_seconds: float = settings.EMPTY_BACKOFF_MAX_SECONDS,
        stop_check_interval: float = settings.STOP_CHECK_INTERVAL,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        force_exit: Callable[[int], None] = os._exit,
    ) -> None:
        self.handle = handle
        self.ordinal = ordinal
        self.queue_name = queue_name or handle.name
        self.backoff_max_seconds = backoff_max_seconds
        self.stop_check_interval = stop_check_interval
        self._random = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self._force_exit = force_exit
        self.flag = ShutdownFlag()
        self.state = WorkerState.STARTING
        self.summary = WorkerRunSummary()

    @property
    def label(self) -> str:
        return f"Worker #{self.ordinal} (PID {os.getpid()})"

    def request_stop(self, reason: str = "request") -> None:
        """
        Records a stop request. Safe to call from a signal handler.

        :param reason: The signal name or other cause, kept for logging.
        """
        if self.flag.request(reason):
            # Already stopping: abandon the in-flight item. Logging is not
            # reentrant, so write straight to the stderr descriptor.
            os.write(2, f"[{self.label}] Received {reason} again, exiting immediately.\n".encode())
            self._force_exit(settings.EXIT_ERR)

    def run(self) -> int:
        """
        Runs the worker state machine to completion.

        :return: The exit code for the worker process.
        :raises Exception: Whatever the start hook raises; startup failures are fatal.
        """
        log.info(f"{self.label} starting on queue '{self.queue_name}'.")
        self.state = WorkerState.STARTING
        self.handle.on_start()

        self.state = WorkerState.DRAINING
        while self.flag.running:
            exit_code = self._handle_result(take_one(self.handle))
            if exit_code is not None:
                self.state = WorkerState.STOPPED
                log.info(f"{self.label} aborted ({self.summary}).")
                return exit_code

        log.info(f"{self.label} received {self.flag.reason}, current item finished. Stopping.")
        self.state = WorkerState.STOPPING
        self._run_stop_hook()
        self.state = WorkerState.STOPPED
        log.info(f"{self.label} stopped gracefully ({self.summary}).")
        return settings.EXIT_OK

    def _handle_result(self, result: TakeResult) -> Optional[int]:
        """
        Reacts to one classified take.

        :return: An exit code if the worker must stop now, else None.
        """
        if result.outcome is Outcome.EMPTY:
            self.summary.empty_polls += 1
            self._backoff()
        elif result.outcome is Outcome.PROCESSED:
            self.summary.processed += 1
            log.debug(f"{self.label} processed a message.")
        elif result.outcome is Outcome.INVALID_MESSAGE:
            self.summary.invalid += 1
            log.warning(f"{self.label} skipped invalid message ({result.reason}): {result.message!r}")
        elif result.outcome.is_fatal:
            if result.outcome is Outcome.TRANSPORT_ERROR:
                log.critical(f"{self.label} lost the queue backend: {result.reason}. Exiting.")
            else:
                log.critical(
                    f"{self.label} hit an unclassified failure: {result.reason}. Exiting.\n{result.trace or ''}".rstrip()
                )
            return settings.EXIT_ERR
        return None

    def _backoff(self) -> None:
        """Sleeps a random interval up to the backoff maximum, waking early on a stop request."""
        deadline = self._clock() + self._random.uniform(0, self.backoff_max_seconds)
        while self.flag.running:
            remaining = deadline - self._clock()
            if remaining <= 0:
                return
            self._sleep(min(self.stop_check_interval, remaining))

    def _run_stop_hook(self) -> None:
        try:
            self.handle.on_stop()
        except Exception as e:
            log.error(f"{self.label} stop hook failed: {e}", exc_info=True)
