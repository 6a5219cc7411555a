import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import dotenv_values

import queuefleet.settings as default_settings
from queuefleet.errors import ConfigurationError

log = logging.getLogger(__name__)


class MergedSettings:
    """
    Merges the default settings with an environment profile.

    Precedence:
    1. Base values from `settings.py` (which already honours `.env`).
    2. Overrides from `.env.<environment>` for settings in `MODIFIABLE_SETTINGS`.
    """

    def __init__(self, environment: Optional[str] = None) -> None:
        """
        Initializes the settings object by loading defaults and the profile.

        :param environment: Profile name; falls back to DEFAULT_ENVIRONMENT.
        """
        self._load_defaults()
        self.ENVIRONMENT: str = environment or self.DEFAULT_ENVIRONMENT
        self._load_profile()

    def _load_defaults(self) -> None:
        """Loads all uppercase attributes from the settings.py module as defaults."""
        for key in dir(default_settings):
            if key.isupper():
                setattr(self, key, getattr(default_settings, key))

    @property
    def profile_path(self) -> Path:
        return Path(self.ENV_DIR) / f".env.{self.ENVIRONMENT}"

    def _load_profile(self) -> None:
        """
        Applies the `.env.<environment>` profile, if one exists.

        Only keys listed in `MODIFIABLE_SETTINGS` are applied. Each value is
        coerced to the type of its default.
        """
        if not self.profile_path.exists():
            log.debug(f"No profile file for environment '{self.ENVIRONMENT}' at {self.profile_path}.")
            return

        log.info(f"Loading '{self.ENVIRONMENT}' profile from {self.profile_path}")
        for key, value in dotenv_values(self.profile_path).items():
            if value is None:
                continue
            if not hasattr(self, key):
                log.warning(f"Profile setting '{key}' not found in default settings. Ignoring.")
                continue
            if key not in self.MODIFIABLE_SETTINGS:
                log.warning(f"Attempted to override non-modifiable setting '{key}'. Ignoring.")
                continue
            self.apply(key, value)

    def apply(self, key: str, value: Any) -> None:
        """
        Sets a modifiable setting, coercing the value to the type of the old value.

        :param key: The uppercase setting name.
        :param value: The raw (usually string) value.
        :raises ConfigurationError: If the value cannot be converted.
        """
        original_value = getattr(self, key, None)
        try:
            if isinstance(original_value, bool):
                new_value = str(value).lower() in ('true', '1', 't', 'yes', 'y')
            elif isinstance(original_value, Path):
                new_value = Path(value)
            elif original_value is not None:
                new_value = type(original_value)(value)
            else:
                new_value = value
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Could not convert value '{value}' for setting '{key}': {e}") from e
        setattr(self, key, new_value)
        log.debug(f"Overridden setting: {key} = {new_value}")


@dataclass(frozen=True)
class RunConfig:
    """Immutable run configuration, parsed once from the command line."""

    queue_name: str
    worker_count: int = 1
    detach: bool = False
    log_path: Optional[Path] = None
    pidfile_path: Optional[Path] = None
    environment: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.queue_name:
            raise ConfigurationError("A queue name is required.")
        if self.worker_count < 1:
            raise ConfigurationError(f"Worker count must be at least 1, got {self.worker_count}.")

    def resolved(self) -> "RunConfig":
        """Returns a copy with absolute paths, safe to use after a working-directory change."""
        return RunConfig(
            queue_name=self.queue_name,
            worker_count=self.worker_count,
            detach=self.detach,
            log_path=self.log_path.resolve() if self.log_path else None,
            pidfile_path=self.pidfile_path.resolve() if self.pidfile_path else None,
            environment=self.environment,
        )
