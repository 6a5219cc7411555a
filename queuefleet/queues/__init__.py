"""
The queue registry.

Maps a queue name to the factory that builds its QueueHandle. Queues register
themselves at import time with `register_queue`; the supervisor only looks
names up, it never resolves classes from strings or files.
"""
from typing import TYPE_CHECKING, Callable, Dict, List

from queuefleet.errors import ConfigurationError
from .base import Outcome, QueueHandle, TakeResult, take_one

if TYPE_CHECKING:
    from queuefleet.local.config import MergedSettings

HandleFactory = Callable[["MergedSettings"], QueueHandle]

QUEUE_REGISTRY: Dict[str, HandleFactory] = {}


def register_queue(name: str) -> Callable[[HandleFactory], HandleFactory]:
    """
    Decorator registering a handle factory (usually a QueueHandle subclass) under `name`.

    :param name: The name selected with `--queue`.
    :raises ValueError: If the name is already taken.
    """
    def decorator(factory: HandleFactory) -> HandleFactory:
        if name in QUEUE_REGISTRY:
            raise ValueError(f"Queue '{name}' is already registered.")
        QUEUE_REGISTRY[name] = factory
        return factory
    return decorator


def available_queues() -> List[str]:
    return sorted(QUEUE_REGISTRY)


def ensure_queue_exists(name: str) -> None:
    if name not in QUEUE_REGISTRY:
        known = ", ".join(available_queues()) or "none"
        raise ConfigurationError(f"Unknown queue '{name}'. Available queues: {known}.")


def get_queue_handle(name: str, settings: "MergedSettings") -> QueueHandle:
    """
    Builds a fresh handle for the named queue.

    :param name: A registered queue name.
    :param settings: The effective settings, passed through to the factory.
    :raises ConfigurationError: If no queue is registered under `name`.
    """
    ensure_queue_exists(name)
    return QUEUE_REGISTRY[name](settings)


# Built-in queues register on import.
from . import spool  # noqa: E402,F401

__all__ = [
    'Outcome', 'QueueHandle', 'TakeResult', 'take_one', 'QUEUE_REGISTRY',
    'register_queue', 'available_queues', 'ensure_queue_exists', 'get_queue_handle',
]
