"""
Worker package for QueueFleet.

This package holds the worker loop that drains a queue handle and the entry
point each spawned worker process runs.
"""

from .loop import WorkerLoop, WorkerRunSummary, WorkerState
from .process import run_worker, worker_main

__all__ = ['WorkerLoop', 'WorkerRunSummary', 'WorkerState', 'run_worker', 'worker_main']
