import os
import logging
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)


def read_pid_file(pidfile_path: Path) -> Optional[int]:
    """
    Reads the supervisor PID from the pidfile.

    :param pidfile_path: Location of the pidfile.
    :return: The stored PID, or None if the file is missing or does not hold a positive integer.
    """
    try:
        content = pidfile_path.read_text().strip()
    except FileNotFoundError:
        return None
    except (IOError, OSError) as e:
        log.warning(f"Could not read pidfile '{pidfile_path}': {e}")
        return None

    try:
        pid = int(content)
    except ValueError:
        log.warning(f"Pidfile '{pidfile_path}' is malformed: {content!r}")
        return None
    return pid if pid > 0 else None


def write_pid_file(pidfile_path: Path, pid: Optional[int] = None) -> None:
    """
    Atomically writes the supervisor PID to the pidfile, replacing prior content.

    :param pidfile_path: Location of the pidfile.
    :param pid: The PID to record; defaults to the current process.
    """
    pid = os.getpid() if pid is None else pid
    pidfile_path.parent.mkdir(parents=True, exist_ok=True)
    temp_pid_path = pidfile_path.with_name(pidfile_path.name + ".tmp")
    try:
        temp_pid_path.write_text(str(pid))
        temp_pid_path.replace(pidfile_path)
        log.debug(f"Wrote PID {pid} to '{pidfile_path}'.")
    finally:
        temp_pid_path.unlink(missing_ok=True)


def remove_pid_file(pidfile_path: Optional[Path]) -> None:
    """Deletes the pidfile if one is configured. Never raises."""
    if pidfile_path is None:
        return
    try:
        pidfile_path.unlink(missing_ok=True)
        log.debug(f"Removed pidfile '{pidfile_path}'.")
    except OSError as e:
        log.error(f"Failed to remove pidfile '{pidfile_path}': {e}")
