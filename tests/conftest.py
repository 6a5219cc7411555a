import logging
from pathlib import Path
from typing import Callable, List, Union

import pytest

import queuefleet.settings as default_settings
from queuefleet.local.config import MergedSettings
from queuefleet.queues.base import QueueHandle, TakeResult

Step = Union[TakeResult, BaseException, Callable[[], TakeResult]]


class ScriptedHandle(QueueHandle):
    """Queue handle that replays a script of results, then calls `when_exhausted`."""

    name = "scripted"

    def __init__(self, script: List[Step], when_exhausted: Callable[[], None] = lambda: None) -> None:
        self.script = list(script)
        self.when_exhausted = when_exhausted
        self.calls = 0
        self.started = 0
        self.stopped = 0
        self.start_error = None
        self.stop_error = None

    def on_start(self) -> None:
        self.started += 1
        if self.start_error:
            raise self.start_error

    def take_and_process_one(self) -> TakeResult:
        self.calls += 1
        if not self.script:
            self.when_exhausted()
            return TakeResult.empty()
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step()
        return step

    def on_stop(self) -> None:
        self.stopped += 1
        if self.stop_error:
            raise self.stop_error


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def env_dir(tmp_path: Path, monkeypatch) -> Path:
    directory = tmp_path / "env"
    directory.mkdir()
    monkeypatch.setattr(default_settings, "ENV_DIR", directory)
    return directory


@pytest.fixture
def settings(env_dir: Path, tmp_path: Path) -> MergedSettings:
    merged = MergedSettings("test")
    merged.SPOOL_DIR = tmp_path / "spool"
    merged.SUPERVISOR_POLL_INTERVAL = 0.05
    merged.EMPTY_BACKOFF_MAX_SECONDS = 0.05
    return merged


@pytest.fixture
def spool_dir(settings: MergedSettings) -> Path:
    settings.SPOOL_DIR.mkdir()
    return settings.SPOOL_DIR


@pytest.fixture(autouse=True)
def restore_root_logging():
    """setup_logging replaces the root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
