"""
A directory spool queue.

Every `*.json` file in the spool directory is one message. Workers claim a
file by renaming it, so concurrent workers never process the same message.
Processed messages are deleted; messages that cannot be decoded are moved to
the `rejected/` subdirectory for inspection.
"""
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import psutil

from queuefleet.errors import InvalidMessageError, QueueTransportError
from queuefleet.queues import register_queue
from queuefleet.queues.base import QueueHandle, TakeResult

if TYPE_CHECKING:
    from queuefleet.local.config import MergedSettings

log = logging.getLogger(__name__)

Processor = Callable[[Dict[str, Any]], None]


def log_payload(payload: Dict[str, Any]) -> None:
    """Default processor: records the message in the worker log."""
    log.info(f"Processed spool message: {json.dumps(payload, sort_keys=True)}")


@register_queue("spool")
class SpoolQueue(QueueHandle):
    name = "spool"

    def __init__(self, settings: "MergedSettings", processor: Optional[Processor] = None) -> None:
        self.spool_dir = Path(settings.SPOOL_DIR)
        self.rejected_dir = self.spool_dir / settings.SPOOL_REJECTED_SUBDIR
        self.claim_suffix = settings.SPOOL_CLAIM_SUFFIX
        self.processor = processor or log_payload

    def on_start(self) -> None:
        if not self.spool_dir.is_dir():
            raise QueueTransportError(f"Spool directory '{self.spool_dir}' does not exist.")
        self.rejected_dir.mkdir(exist_ok=True)
        self._recover_stale_claims()
        log.info(f"Consuming spool directory {self.spool_dir}")

    def _claimed_name(self, path: Path) -> Path:
        return path.with_name(f"{path.name}.{os.getpid()}{self.claim_suffix}")

    def _recover_stale_claims(self) -> None:
        """Returns files claimed by workers that no longer exist to the spool."""
        for claimed in self.spool_dir.glob(f"*{self.claim_suffix}"):
            original_name, _, owner = claimed.name[: -len(self.claim_suffix)].rpartition(".")
            if not owner.isdigit() or psutil.pid_exists(int(owner)):
                continue
            try:
                claimed.rename(claimed.with_name(original_name))
                log.warning(f"Recovered message '{original_name}' left behind by worker PID {owner}.")
            except FileNotFoundError:
                continue

    def _claim_next(self) -> Optional[Path]:
        """
        Atomically claims the oldest pending message file.

        :return: The path of the claimed file, or None if the spool is empty.
        :raises QueueTransportError: If the spool directory cannot be listed.
        """
        try:
            pending = sorted(p for p in self.spool_dir.iterdir() if p.suffix == ".json" and p.is_file())
        except OSError as e:
            raise QueueTransportError(f"Cannot read spool directory '{self.spool_dir}': {e}") from e

        for path in pending:
            claimed = self._claimed_name(path)
            try:
                path.rename(claimed)
                return claimed
            except FileNotFoundError:
                # Another worker claimed it first.
                continue
            except OSError as e:
                raise QueueTransportError(f"Cannot claim '{path.name}': {e}") from e
        return None

    def _reject(self, claimed: Path) -> None:
        original_name = claimed.name[: -len(self.claim_suffix)].rpartition(".")[0]
        try:
            claimed.rename(self.rejected_dir / original_name)
        except OSError as e:
            raise QueueTransportError(f"Cannot move '{original_name}' to rejected: {e}") from e

    def take_and_process_one(self) -> TakeResult:
        claimed = self._claim_next()
        if claimed is None:
            return TakeResult.empty()

        try:
            raw = claimed.read_bytes()
        except OSError as e:
            raise QueueTransportError(f"Cannot read claimed message '{claimed.name}': {e}") from e

        try:
            payload = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self._reject(claimed)
            raise InvalidMessageError(f"malformed JSON: {e}", raw.decode("utf-8", errors="replace")) from e
        if not isinstance(payload, dict):
            self._reject(claimed)
            raise InvalidMessageError(f"expected a JSON object, got {type(payload).__name__}", payload)

        self.processor(payload)
        claimed.unlink(missing_ok=True)
        return TakeResult.processed(payload)

    def on_stop(self) -> None:
        log.info(f"Stopped consuming spool directory {self.spool_dir}")
