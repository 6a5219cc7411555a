"""
Local package for QueueFleet.

This package holds everything that runs on the supervising host: the settings
merge and run configuration, per-process signal handling, and the supervisor.
"""

from .config import MergedSettings, RunConfig

__all__ = ["MergedSettings", "RunConfig"]
