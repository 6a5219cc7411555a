import enum
import traceback
from dataclasses import dataclass
from typing import Any, Optional

from queuefleet.errors import InvalidMessageError, QueueTransportError


class Outcome(enum.Enum):
    """Classification of one take-and-process call."""

    EMPTY = "empty"
    PROCESSED = "processed"
    INVALID_MESSAGE = "invalid_message"
    TRANSPORT_ERROR = "transport_error"
    UNCLASSIFIED = "unclassified"

    @property
    def is_fatal(self) -> bool:
        return self in (Outcome.TRANSPORT_ERROR, Outcome.UNCLASSIFIED)


@dataclass(frozen=True)
class TakeResult:
    """The outcome of a single take call, with whatever detail the handle provided."""

    outcome: Outcome
    reason: Optional[str] = None
    message: Any = None
    trace: Optional[str] = None

    @classmethod
    def empty(cls) -> "TakeResult":
        return cls(Outcome.EMPTY)

    @classmethod
    def processed(cls, message: Any = None) -> "TakeResult":
        return cls(Outcome.PROCESSED, message=message)

    @classmethod
    def invalid(cls, reason: str, message: Any = None) -> "TakeResult":
        return cls(Outcome.INVALID_MESSAGE, reason=reason, message=message)

    @classmethod
    def transport_error(cls, reason: str) -> "TakeResult":
        return cls(Outcome.TRANSPORT_ERROR, reason=reason)


class QueueHandle:
    """
    The capability a worker consumes a queue through.

    Subclasses implement `take_and_process_one`, which takes at most one
    message, processes it, and reports what happened. It may return a
    `TakeResult` or raise `InvalidMessageError` / `QueueTransportError`.
    The lifecycle hooks are optional.
    """

    name: str = "queue"

    def on_start(self) -> None:
        """Called once in the worker process before the first take."""

    def take_and_process_one(self) -> TakeResult:
        raise NotImplementedError

    def on_stop(self) -> None:
        """Called once in the worker process after a graceful drain."""


def take_one(handle: QueueHandle) -> TakeResult:
    """
    Calls the handle once and maps every possible result to a `TakeResult`.

    Exceptions outside the known taxonomy become `UNCLASSIFIED`, carrying the
    formatted traceback so the worker can log it before exiting.

    :param handle: The queue handle to drain one message from.
    :return: The classified result. Never raises for `Exception` subclasses.
    """
    try:
        result = handle.take_and_process_one()
    except InvalidMessageError as e:
        return TakeResult.invalid(e.reason, e.message)
    except QueueTransportError as e:
        return TakeResult.transport_error(str(e))
    except Exception as e:
        return TakeResult(Outcome.UNCLASSIFIED, reason=f"{type(e).__name__}: {e}", trace=traceback.format_exc())

    if isinstance(result, TakeResult):
        return result
    if result is None:
        return TakeResult.empty()
    return TakeResult(
        Outcome.UNCLASSIFIED,
        reason=f"{type(handle).__name__}.take_and_process_one returned {type(result).__name__}, expected TakeResult",
    )
