"""Config dependency for FastAPI."""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from ..config import Config
from ..constants import CONFIG_PATH

__all__ = ["ConfigDependency", "config_dependency"]


class ConfigDependency:
    """Provides the configuration as a dependency.

    The configuration is loaded lazily from ``PORTHOR_CONFIG_PATH`` (or the
    default path) the first time it is requested. The test suite points the
    dependency at other files with `set_config_path`, which reloads the
    configuration immediately.
    """

    def __init__(self) -> None:
        self._path = Path(os.getenv("PORTHOR_CONFIG_PATH", CONFIG_PATH))
        self._config: Config | None = None

    async def __call__(self) -> Config:
        """Load the configuration if necessary and return it."""
        return self.config()

    def config(self) -> Config:
        """Load the configuration if necessary and return it.

        Usable from non-async code such as the command-line interface and
        the application factory.
        """
        if not self._config:
            self._config = self._load()
        return self._config

    def set_config_path(self, path: Path) -> None:
        """Change the configuration path and reload the config.

        Parameters
        ----------
        path
            The new configuration path.
        """
        self._path = path
        self._config = self._load()

    def _load(self) -> Config:
        """Read the configuration file and set up logging from it."""
        config = Config.from_file(self._path)
        config.configure_logging()
        logger = structlog.get_logger("porthor")
        logger.debug("Loaded configuration", config_path=str(self._path))
        return config


config_dependency = ConfigDependency()
"""The dependency that will return the current configuration."""
