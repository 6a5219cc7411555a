"""
This module contains the default configuration settings for QueueFleet.
It defines paths, supervisor and worker timings, exit codes, and the settings
that an environment profile is allowed to override.
"""

import os
import pathlib
import signal
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)

#* --- Core Paths ---
BASE_DIR = pathlib.Path.cwd()
ENV_DIR = pathlib.Path(os.getenv("QUEUEFLEET_ENV_DIR", str(BASE_DIR)))

#* --- Runtime Profile ---
DEFAULT_ENVIRONMENT = os.getenv("QUEUEFLEET_ENV", "development")
PROCESS_TITLE_PREFIX = "QueueFleet"

#* --- Supervisor Settings ---
SUPERVISOR_POLL_INTERVAL = 0.5  # seconds between checks for stop requests
GRACEFUL_STOP_SIGNAL = signal.SIGTERM
FORCEFUL_STOP_SIGNAL = signal.SIGKILL
# "fork" keeps the queue registry of the parent visible to every worker.
WORKER_START_METHOD = os.getenv("QUEUEFLEET_START_METHOD", "fork")

#* --- Worker Settings ---
EMPTY_BACKOFF_MAX_SECONDS = float(os.getenv("QUEUEFLEET_EMPTY_BACKOFF_MAX_SECONDS", "1.0"))
STOP_CHECK_INTERVAL = 0.1  # granularity of the interruptible backoff sleep

#* --- Built-in Spool Queue ---
SPOOL_DIR = pathlib.Path(os.getenv("QUEUEFLEET_SPOOL_DIR", str(BASE_DIR / "spool")))
SPOOL_REJECTED_SUBDIR = "rejected"
SPOOL_CLAIM_SUFFIX = ".claimed"

#* --- Logging ---
VERBOSE_LOGGING = False

#* --- Exit Codes ---
EXIT_OK = 0
EXIT_ERR = 1

#* --- MODIFIABLE SETTINGS (Changeable per environment profile) ---
MODIFIABLE_SETTINGS = {
    "SUPERVISOR_POLL_INTERVAL",
    "EMPTY_BACKOFF_MAX_SECONDS",
    "STOP_CHECK_INTERVAL",
    "SPOOL_DIR",
    "VERBOSE_LOGGING",
}
