"""QueueFleet: runs and supervises a fleet of worker processes for one queue."""

__version__ = "0.1.0"
