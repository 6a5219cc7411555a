import psutil
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from queuefleet.errors import LaunchError
from queuefleet.local.signals import blocked_stop_signals
from queuefleet.worker.process import worker_main

if TYPE_CHECKING:
    from .supervisor import Supervisor

log = logging.getLogger(__name__)


#* --- Process Status ---
def pid_exists(pid: int) -> bool:
    """A wrapper for psutil.pid_exists (a zero-effect signal probe) for easy testing/mocking."""
    return psutil.pid_exists(pid)


@dataclass
class WorkerRecord:
    """One spawned worker, as the supervisor sees it."""

    pid: int
    ordinal: int
    process: Any = field(repr=False)
    exit_code: Optional[int] = None

    @property
    def exited(self) -> bool:
        return self.exit_code is not None

    def poll(self) -> Optional[int]:
        """Reaps the worker if it has exited and returns its exit code."""
        if self.exit_code is None and not self.process.is_alive():
            self.process.join(0)
            self.exit_code = self.process.exitcode
        return self.exit_code


#* --- Process Creation ---
def launch_worker(manager: "Supervisor", ordinal: int) -> WorkerRecord:
    """
    Spawns a single worker process and appends it to the supervisor's roster.

    :param manager: The Supervisor instance.
    :param ordinal: The worker's position, 1-based.
    :raises LaunchError: If the process cannot be spawned.
    """
    queue_name = manager.config.queue_name
    try:
        process = manager.process_factory(
            target=worker_main,
            args=(queue_name, ordinal, manager.settings),
            name=f"{queue_name}-worker-{ordinal}",
        )
        # The child starts with stop signals pending; the worker unblocks them
        # once its own handlers are installed.
        with blocked_stop_signals():
            process.start()
    except OSError as e:
        log.critical(f"Failed to start worker #{ordinal} for queue '{queue_name}': {e}", exc_info=True)
        raise LaunchError(f"Could not spawn worker #{ordinal}: {e}") from e

    record = WorkerRecord(pid=process.pid, ordinal=ordinal, process=process)
    manager.roster.append(record)
    log.info(f"Worker #{ordinal} started with PID: {process.pid}")
    return record


def launch_workers(manager: "Supervisor") -> None:
    """
    Spawns `worker_count` workers with ordinals 1..worker_count, in order.

    Stops early, without error, if a stop was requested while launching.

    :raises LaunchError: On the first failed spawn; earlier workers stay in the roster.
    """
    for ordinal in range(1, manager.config.worker_count + 1):
        if not manager.flag.running:
            log.warning(f"Stop requested during launch; {manager.config.worker_count - ordinal + 1} worker(s) not started.")
            return
        launch_worker(manager, ordinal)
    log.info(f"Running {len(manager.roster)} worker(s) on queue '{manager.config.queue_name}'.")
