"""
Exception hierarchy for QueueFleet.

Supervisor-side errors (configuration, pidfile, launch) are reported to the
operator and end the run with a nonzero exit. Worker-side errors are raised by
queue handles and classified by `queuefleet.queues.base.take_one`.
"""


class QueueFleetError(Exception):
    """Base class for all QueueFleet errors."""


class ConfigurationError(QueueFleetError):
    """Invalid or missing run configuration (queue, worker count, settings)."""


class AlreadyRunningError(QueueFleetError):
    """A live supervisor already owns the configured pidfile."""

    def __init__(self, pidfile_path, pid: int) -> None:
        super().__init__(f"Supervisor already running with PID {pid} (pidfile '{pidfile_path}').")
        self.pidfile_path = pidfile_path
        self.pid = pid


class DaemonizeError(QueueFleetError):
    """Detaching from the terminal failed."""


class LaunchError(QueueFleetError):
    """A worker process could not be spawned."""


class InvalidMessageError(QueueFleetError):
    """A message was malformed or unrecognized. The worker logs it and continues."""

    def __init__(self, reason: str, message=None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.message = message


class QueueTransportError(QueueFleetError):
    """The queue backend is unreachable or erroring. Fatal for the worker."""
