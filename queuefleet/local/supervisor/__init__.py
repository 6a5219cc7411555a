"""
The Supervisor package.
Manages the lifecycle of a queue's worker processes.

This package contains the central Supervisor class and its helper modules,
which together handle pidfile bookkeeping, daemonization, launching workers,
and the escalating shutdown of the fleet.
"""
from .supervisor import Supervisor

__all__ = ['Supervisor']
