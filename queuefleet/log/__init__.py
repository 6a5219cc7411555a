"""
Logging module for QueueFleet.
This module provides the console logging setup shared by the supervisor and its workers.
"""

from .setup import setup_logging

__all__ = ["setup_logging"]
