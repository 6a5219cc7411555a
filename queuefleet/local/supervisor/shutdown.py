import psutil
import logging
import signal
from multiprocessing.connection import wait
from typing import List, Sequence

from queuefleet.local.supervisor.process_utils import WorkerRecord

log = logging.getLogger(__name__)


def live_workers(roster: Sequence[WorkerRecord]) -> List[WorkerRecord]:
    """Returns the workers that have not exited yet, reaping those that have."""
    alive = []
    for record in roster:
        if record.exited:
            continue
        code = record.poll()
        if code is None:
            alive.append(record)
        elif code == 0:
            log.info(f"Worker #{record.ordinal} (PID {record.pid}) exited cleanly.")
        else:
            log.warning(f"Worker #{record.ordinal} (PID {record.pid}) exited with status {code}.")
    return alive


def _send(records: Sequence[WorkerRecord], sig: signal.Signals) -> None:
    for record in records:
        try:
            log.debug(f"Sending {sig.name} to worker #{record.ordinal} (PID {record.pid})")
            psutil.Process(record.pid).send_signal(sig)
        except psutil.NoSuchProcess:
            log.warning(f"Worker {record.pid} no longer exists, skipping {sig.name}.")
            continue


def graceful_stop(roster: Sequence[WorkerRecord], sig: signal.Signals = signal.SIGTERM) -> None:
    """Asks every live worker to finish its current message and exit."""
    alive = live_workers(roster)
    log.info(f"Asking {len(alive)} worker(s) to stop after their current message...")
    _send(alive, sig)


def forceful_stop(roster: Sequence[WorkerRecord], sig: signal.Signals = signal.SIGKILL) -> None:
    """Terminates every live worker immediately, abandoning in-flight messages."""
    alive = live_workers(roster)
    if not alive:
        return
    log.warning(f"Forcing shutdown of {len(alive)} worker(s)...")
    _send(alive, sig)


def wait_for_exit(roster: Sequence[WorkerRecord], timeout: float) -> List[WorkerRecord]:
    """
    Blocks until a worker exits or `timeout` elapses.

    :param roster: The supervisor's workers.
    :param timeout: Maximum seconds to block.
    :return: The workers still alive afterwards.
    """
    alive = live_workers(roster)
    if alive:
        wait([record.process.sentinel for record in alive], timeout=timeout)
        alive = live_workers(alive)
    return alive
