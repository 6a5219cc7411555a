import os
import sys
import logging
from pathlib import Path
from typing import Optional

from queuefleet.errors import AlreadyRunningError, ConfigurationError, DaemonizeError
from queuefleet.local.supervisor import persistence, process_utils

log = logging.getLogger(__name__)


def check_if_already_running(pidfile_path: Optional[Path]) -> None:
    """
    Refuses to start when the pidfile belongs to a live process.

    A pidfile whose PID is dead, unreadable, or our own is stale and is deleted.

    :param pidfile_path: The configured pidfile, or None if there is none.
    :raises AlreadyRunningError: If another live process owns the pidfile. The file is left untouched.
    """
    if pidfile_path is None or not pidfile_path.exists():
        return

    pid = persistence.read_pid_file(pidfile_path)
    if pid is not None and pid != os.getpid() and process_utils.pid_exists(pid):
        log.error(f"Supervisor appears to be running with PID {pid} (pidfile '{pidfile_path}').")
        raise AlreadyRunningError(pidfile_path, pid)

    log.warning(f"Removing stale pidfile '{pidfile_path}' (PID {pid if pid is not None else 'unreadable'}).")
    try:
        pidfile_path.unlink(missing_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot remove stale pidfile '{pidfile_path}': {e}") from e


def open_output_target(log_path: Optional[Path]) -> int:
    """
    Opens the file standard output and error are redirected to.

    :param log_path: The log file to append to, or None for the null device.
    :return: A writable file descriptor; the null device if the log file cannot be opened.
    """
    if log_path is not None:
        try:
            return os.open(str(log_path), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
        except OSError as e:
            log.error(f"Cannot open log file '{log_path}': {e}. Output will be discarded.")
    return os.open(os.devnull, os.O_WRONLY)


def redirect_standard_streams(log_path: Optional[Path]) -> None:
    """Points stdin at the null device and stdout/stderr at `log_path`."""
    sys.stdout.flush()
    sys.stderr.flush()

    null_fd = os.open(os.devnull, os.O_RDONLY)
    out_fd = open_output_target(log_path)
    try:
        os.dup2(null_fd, sys.stdin.fileno())
        os.dup2(out_fd, sys.stdout.fileno())
        os.dup2(out_fd, sys.stderr.fileno())
    finally:
        os.close(null_fd)
        os.close(out_fd)


def _fork_and_exit_parent(stage: str) -> None:
    try:
        pid = os.fork()
    except OSError as e:
        raise DaemonizeError(f"{stage} fork failed: {e}") from e
    if pid > 0:
        # The parent leaves without running cleanup; the child owns the run now.
        os._exit(0)


def daemonize(log_path: Optional[Path]) -> None:
    """
    Detaches the current process from its controlling terminal.

    Classic double fork: the first child becomes a session leader with
    `setsid`, the second child can never reacquire a controlling tty. Standard
    streams are redirected afterwards. Only the final grandchild returns.

    :param log_path: Where stdout/stderr go after detaching.
    :raises DaemonizeError: If forking or creating the session fails.
    """
    log.info(f"Detaching from terminal. Output goes to {log_path or os.devnull}.")
    sys.stdout.flush()
    sys.stderr.flush()

    _fork_and_exit_parent("first")
    try:
        os.setsid()
    except OSError as e:
        raise DaemonizeError(f"setsid failed: {e}") from e
    _fork_and_exit_parent("second")

    os.umask(0o022)
    redirect_standard_streams(log_path)
    log.info(f"Daemonized with PID {os.getpid()}.")
