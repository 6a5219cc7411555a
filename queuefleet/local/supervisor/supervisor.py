import logging
import multiprocessing
import time
from typing import TYPE_CHECKING, Any, Callable, List, Optional

import setproctitle

from queuefleet.errors import ConfigurationError, LaunchError
from queuefleet.local.signals import ShutdownFlag, stop_signal_handlers
from queuefleet.local.supervisor import persistence, process_utils, shutdown, startup
from queuefleet.queues import ensure_queue_exists

if TYPE_CHECKING:
    from queuefleet.local.config import MergedSettings, RunConfig
    from queuefleet.local.supervisor.process_utils import WorkerRecord

log = logging.getLogger(__name__)


class Supervisor:
    """
    Runs a fleet of worker processes for one queue and shuts them down on request.

    The supervisor owns the roster of spawned workers and its own shutdown
    flag. Signal handlers only record stop requests on the flag; the wait loop
    turns the first request into a graceful stop for every worker and a second
    one into a forceful stop, after which the supervisor exits without waiting.
    """

    def __init__(
        self,
        config: "RunConfig",
        settings: "MergedSettings",
        process_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        """
        :param config: The parsed run configuration.
        :param settings: Effective settings for this environment.
        :param process_factory: Callable building an unstarted process; defaults to the configured multiprocessing context.
        """
        self.config = config.resolved()
        self.settings = settings
        self.roster: List["WorkerRecord"] = []
        self.flag = ShutdownFlag()
        self._graceful_stop_sent = False
        self.process_factory = process_factory or multiprocessing.get_context(settings.WORKER_START_METHOD).Process
        self.start_time: Optional[float] = None

    def request_stop(self, reason: str = "request") -> None:
        """Records a stop request. Called from signal handlers, so it only flips the flag."""
        self.flag.request(reason)

    def run(self) -> int:
        """
        Prepares the process, launches the workers and supervises them until they exit.

        :return: The supervisor's exit code.
        :raises QueueFleetError: On configuration, pidfile, daemonization or launch failures.
        """
        ensure_queue_exists(self.config.queue_name)
        pidfile_path = self.config.pidfile_path
        startup.check_if_already_running(pidfile_path)

        if self.config.detach:
            startup.daemonize(self.config.log_path)

        setproctitle.setproctitle(f"{self.settings.PROCESS_TITLE_PREFIX} - {self.config.queue_name} supervisor")
        try:
            if pidfile_path is not None:
                try:
                    persistence.write_pid_file(pidfile_path)
                except OSError as e:
                    raise ConfigurationError(f"Cannot write pidfile '{pidfile_path}': {e}") from e

            with stop_signal_handlers(self.request_stop):
                return self._launch_and_supervise()
        finally:
            persistence.remove_pid_file(pidfile_path)

    def _launch_and_supervise(self) -> int:
        log.info("=" * 20 + f" Supervisor starting {self.config.worker_count} worker(s) " + "=" * 20)
        self.start_time = time.time()
        try:
            process_utils.launch_workers(self)
        except LaunchError:
            log.critical(f"Launch aborted; stopping {len(self.roster)} already started worker(s).")
            self.request_stop("launch failure")
            self.wait_for_workers()
            raise
        return self.wait_for_workers()

    def wait_for_workers(self) -> int:
        """
        Blocks until every worker has exited, escalating stop requests as they arrive.

        :return: EXIT_OK once all workers are gone, EXIT_ERR on a forceful stop.
        """
        poll_interval = self.settings.SUPERVISOR_POLL_INTERVAL
        while True:
            if self.flag.escalated:
                log.critical(f"Received {self.flag.requests} stop requests, terminating workers immediately.")
                shutdown.forceful_stop(self.roster, self.settings.FORCEFUL_STOP_SIGNAL)
                return self.settings.EXIT_ERR

            if not self.flag.running and not self._graceful_stop_sent:
                log.info(f"Received {self.flag.reason}, draining workers. Repeat to force shutdown.")
                shutdown.graceful_stop(self.roster, self.settings.GRACEFUL_STOP_SIGNAL)
                self._graceful_stop_sent = True

            if not shutdown.wait_for_exit(self.roster, timeout=poll_interval):
                break

        failed = [r for r in self.roster if r.exit_code not in (None, 0)]
        if failed:
            log.warning(f"{len(failed)} of {len(self.roster)} worker(s) exited with a non-zero status.")
        if self.start_time:
            runtime = time.strftime('%H:%M:%S', time.gmtime(time.time() - self.start_time))
            log.info(f"All workers stopped. Total runtime: {runtime}")
        return self.settings.EXIT_OK
