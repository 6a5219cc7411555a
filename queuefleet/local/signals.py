"""
Per-process shutdown state and the signal plumbing that drives it.

Each process (the supervisor and every worker) owns its own ShutdownFlag.
Signal handlers only record the request on the flag; what a request means is
decided by the code that owns the flag.
"""
import enum
import signal
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Tuple

STOP_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class ShutdownState(enum.Enum):
    RUNNING = "running"
    STOP_REQUESTED = "stop_requested"


class ShutdownFlag:
    """
    Two-valued shutdown flag with escalation.

    The first request moves RUNNING to STOP_REQUESTED. Any later request is an
    escalation; the state never moves back to RUNNING.
    """

    def __init__(self) -> None:
        self.state = ShutdownState.RUNNING
        self.requests = 0
        self.reason: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.state is ShutdownState.RUNNING

    @property
    def escalated(self) -> bool:
        return self.requests > 1

    def request(self, reason: str = "request") -> bool:
        """
        Records a stop request.

        :param reason: What asked for the stop, usually a signal name.
        :return: True if this request escalates an earlier one.
        """
        self.requests += 1
        if self.state is ShutdownState.RUNNING:
            self.state = ShutdownState.STOP_REQUESTED
            self.reason = reason
            return False
        return True


@contextmanager
def stop_signal_handlers(on_signal: Callable[[str], None], signals: Tuple[signal.Signals, ...] = STOP_SIGNALS) -> Iterator[None]:
    """
    Routes the stop signals to `on_signal(signal_name)` while the block runs.

    The original dispositions are restored on exit.
    """
    originals = {sig: signal.getsignal(sig) for sig in signals}

    def _handler(signum: int, _frame: object) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = f"signal {signum}"
        on_signal(name)

    try:
        for sig in signals:
            signal.signal(sig, _handler)
        yield
    finally:
        for sig, original in originals.items():
            signal.signal(sig, original)


@contextmanager
def blocked_stop_signals(signals: Tuple[signal.Signals, ...] = STOP_SIGNALS) -> Iterator[None]:
    """
    Holds the stop signals pending while the block runs.

    A process forked inside the block inherits the blocked mask, so a stop
    signal sent to it stays pending until it calls `unblock_stop_signals`.
    """
    previous = signal.pthread_sigmask(signal.SIG_BLOCK, signals)
    try:
        yield
    finally:
        signal.pthread_sigmask(signal.SIG_SETMASK, previous)


def unblock_stop_signals(signals: Tuple[signal.Signals, ...] = STOP_SIGNALS) -> None:
    """Delivers any pending stop signal to the handlers now installed."""
    signal.pthread_sigmask(signal.SIG_UNBLOCK, signals)


def block_stop_signals(signals: Tuple[signal.Signals, ...] = STOP_SIGNALS) -> None:
    signal.pthread_sigmask(signal.SIG_BLOCK, signals)
