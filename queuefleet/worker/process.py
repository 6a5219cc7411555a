"""
Entry point of a worker process.

Its sole responsibility is to prepare the freshly spawned process (process
group, title, logging, signal handling), build the queue handle, and run the
worker loop. Keeping this separate from the loop itself keeps the loop free of
process-global side effects.
"""
import os
import sys
import signal
import logging
from typing import TYPE_CHECKING

import setproctitle

from queuefleet.local.signals import STOP_SIGNALS, block_stop_signals, stop_signal_handlers, unblock_stop_signals
from queuefleet.log.setup import setup_logging
from queuefleet.queues import get_queue_handle
from queuefleet.worker.loop import WorkerLoop

if TYPE_CHECKING:
    from queuefleet.local.config import MergedSettings

log = logging.getLogger(__name__)


def run_worker(queue_name: str, ordinal: int, settings: "MergedSettings") -> int:
    """
    Builds the queue handle and drains it until stopped.

    :param queue_name: The registered queue to consume.
    :param ordinal: This worker's position in the fleet, 1-based.
    :param settings: Effective settings inherited from the supervisor.
    :return: The worker's exit code.
    """
    try:
        handle = get_queue_handle(queue_name, settings)
        loop = WorkerLoop(
            handle,
            ordinal=ordinal,
            queue_name=queue_name,
            backoff_max_seconds=settings.EMPTY_BACKOFF_MAX_SECONDS,
            stop_check_interval=settings.STOP_CHECK_INTERVAL,
        )
        with stop_signal_handlers(loop.request_stop):
            unblock_stop_signals()
            try:
                return loop.run()
            finally:
                # Finished workers keep their exit code even if a stop arrives now.
                block_stop_signals()
    except Exception as e:
        log.critical(f"Worker #{ordinal} (PID {os.getpid()}) failed: {e}", exc_info=True)
        return settings.EXIT_ERR


def worker_main(queue_name: str, ordinal: int, settings: "MergedSettings") -> None:
    """Process target for a worker. Never returns; exits with the worker's exit code."""
    # Stop signals arrive blocked from the supervisor and stay pending until
    # run_worker has installed the loop's handlers. Drop the inherited
    # supervisor handlers so they are never restored here.
    for sig in STOP_SIGNALS:
        signal.signal(sig, signal.SIG_DFL)
    # Own process group: a terminal Ctrl-C reaches only the supervisor.
    os.setpgrp()

    setproctitle.setproctitle(f"{settings.PROCESS_TITLE_PREFIX} - {queue_name} worker #{ordinal}")
    setup_logging(logging.DEBUG if settings.VERBOSE_LOGGING else logging.INFO)

    exit_code = run_worker(queue_name, ordinal, settings)
    logging.shutdown()
    sys.exit(exit_code)
