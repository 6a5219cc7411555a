import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from queuefleet import __version__
from queuefleet import settings as default_settings
from queuefleet.errors import QueueFleetError
from queuefleet.local.config import MergedSettings, RunConfig
from queuefleet.local.supervisor import Supervisor
from queuefleet.log.setup import setup_logging
from queuefleet.queues import available_queues

log = logging.getLogger("console")


class FleetArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with the configuration-error exit code."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(default_settings.EXIT_ERR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = FleetArgumentParser(
        prog="queuefleet",
        description="QueueFleet - run N worker processes draining one queue",
    )
    parser.add_argument("--queue", metavar="NAME", help="Queue whose consumer to run (required)")
    parser.add_argument("--daemon", action="store_true", help="Detach and run in the background")
    parser.add_argument("--environment", metavar="NAME", default=None,
                        help=f"Runtime configuration profile (default: {default_settings.DEFAULT_ENVIRONMENT})")
    parser.add_argument("--log", metavar="PATH", type=Path, default=None,
                        help="Redirect standard output/error to this file when detached")
    parser.add_argument("--num_processes", metavar="N", type=int, default=1, help="Number of worker processes")
    parser.add_argument("--pidfile", metavar="PATH", type=Path, default=None,
                        help="Where to record the supervisor's PID")
    parser.add_argument("--available-queues", action="store_true", help="List the available queues and exit")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def cmd_available_queues() -> int:
    for name in available_queues():
        print(name)
    return default_settings.EXIT_OK


def cmd_run(args: argparse.Namespace) -> int:
    try:
        settings = MergedSettings(args.environment)
        if args.verbose:
            settings.VERBOSE_LOGGING = True
        setup_logging(logging.DEBUG if settings.VERBOSE_LOGGING else logging.INFO)

        config = RunConfig(
            queue_name=args.queue,
            worker_count=args.num_processes,
            detach=args.daemon,
            log_path=args.log,
            pidfile_path=args.pidfile,
            environment=settings.ENVIRONMENT,
        )
        return Supervisor(config, settings).run()
    except QueueFleetError as e:
        log.debug("Run aborted.", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return default_settings.EXIT_ERR


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Listing needs nothing else, not even a queue.
    if args.available_queues:
        return cmd_available_queues()

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    if not args.queue:
        parser.print_usage(sys.stderr)
        print("ERROR: --queue is required (use --available-queues to list them).", file=sys.stderr)
        return default_settings.EXIT_ERR

    return cmd_run(args)


if __name__ == "__main__":
    sys.exit(main())
