from pathlib import Path

import pytest

import queuefleet.settings as default_settings
from queuefleet.errors import ConfigurationError
from queuefleet.local.config import MergedSettings, RunConfig


def test_defaults_come_from_settings_module(env_dir):
    merged = MergedSettings("nothing-here")

    assert merged.ENVIRONMENT == "nothing-here"
    assert merged.EMPTY_BACKOFF_MAX_SECONDS == default_settings.EMPTY_BACKOFF_MAX_SECONDS
    assert merged.EXIT_ERR == 1


def test_environment_defaults_to_configured_profile(env_dir):
    assert MergedSettings().ENVIRONMENT == default_settings.DEFAULT_ENVIRONMENT


def test_profile_overrides_only_modifiable_settings(env_dir, caplog):
    (env_dir / ".env.staging").write_text(
        "EMPTY_BACKOFF_MAX_SECONDS=0.25\n"
        "VERBOSE_LOGGING=yes\n"
        "SPOOL_DIR=/var/spool/fleet\n"
        "EXIT_OK=5\n"
        "NOT_A_SETTING=1\n"
    )

    merged = MergedSettings("staging")

    assert merged.EMPTY_BACKOFF_MAX_SECONDS == 0.25
    assert merged.VERBOSE_LOGGING is True
    assert merged.SPOOL_DIR == Path("/var/spool/fleet")
    assert merged.EXIT_OK == 0
    assert not hasattr(merged, "NOT_A_SETTING")
    assert "non-modifiable setting 'EXIT_OK'" in caplog.text


def test_profile_with_unconvertible_value_is_a_configuration_error(env_dir):
    (env_dir / ".env.broken").write_text("SUPERVISOR_POLL_INTERVAL=soon\n")

    with pytest.raises(ConfigurationError, match="SUPERVISOR_POLL_INTERVAL"):
        MergedSettings("broken")


def test_run_config_requires_a_queue():
    with pytest.raises(ConfigurationError):
        RunConfig(queue_name="")


@pytest.mark.parametrize("count", [0, -3])
def test_run_config_requires_at_least_one_worker(count):
    with pytest.raises(ConfigurationError, match="at least 1"):
        RunConfig(queue_name="spool", worker_count=count)


def test_resolved_config_uses_absolute_paths(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = RunConfig(queue_name="spool", worker_count=2, log_path=Path("fleet.log"), pidfile_path=Path("fleet.pid"))

    resolved = config.resolved()

    assert resolved.log_path == tmp_path.resolve() / "fleet.log"
    assert resolved.pidfile_path == tmp_path.resolve() / "fleet.pid"
    assert resolved.worker_count == 2
