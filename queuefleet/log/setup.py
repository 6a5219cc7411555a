import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)-8s - [%(processName)s:%(process)d] [%(name)s] - %(message)s'


class MainFormatter(logging.Formatter):
    """
    Formats supervisor and worker records alike, so interleaved output from
    several processes sharing one stdout stays attributable.
    """

    def __init__(self) -> None:
        super().__init__(LOG_FORMAT)

    def formatException(self, ei) -> str:
        # Indent tracebacks so they read as part of the record they belong to.
        return "\n".join("    " + line for line in super().formatException(ei).splitlines())


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the current process.
    Clears any previously configured handlers to prevent duplication, which
    matters in forked workers that inherit the supervisor's handlers.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    # When detached, stdout has been redirected to the log file.
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)
