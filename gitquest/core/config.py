"""Configuration management for gitquest.

Settings are read from INI files with ``configparser`` and can be
overridden through environment variables. Only the CLI reads configuration;
the engine receives its settings explicitly.
"""

import configparser
import os
from pathlib import Path
from typing import Dict, Optional

from .state import DEFAULT_AUTHOR, DEFAULT_BRANCH

DEFAULTS: Dict[str, Dict[str, str]] = {
    'engine': {
        'author': DEFAULT_AUTHOR,
        'default_branch': DEFAULT_BRANCH,
    },
    'log': {
        'level': 'WARNING',
    },
}


class Config:
    """
    Manages gitquest configuration files.

    Priority order (highest to lowest):
    1. Environment variables (GITQUEST_<SECTION>_<KEY>)
    2. Explicit config file passed to the constructor
    3. Global config (~/.gitquestconfig)
    4. Built-in defaults
    """

    GLOBAL_CONFIG_PATH = Path.home() / '.gitquestconfig'

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize Config manager.

        Args:
            config_path: Optional path to an extra config file
        """
        self.config_path = Path(config_path) if config_path else None
        self._global_config = None
        self._local_config = None

    @property
    def global_config(self) -> configparser.ConfigParser:
        """Load and return global configuration."""
        if self._global_config is None:
            self._global_config = configparser.ConfigParser()
            if self.GLOBAL_CONFIG_PATH.exists():
                self._global_config.read(self.GLOBAL_CONFIG_PATH)
        return self._global_config

    @property
    def local_config(self) -> Optional[configparser.ConfigParser]:
        """Load and return the explicit configuration file, if any."""
        if self._local_config is None and self.config_path:
            self._local_config = configparser.ConfigParser()
            if self.config_path.exists():
                self._local_config.read(self.config_path)
        return self._local_config

    def get(self, section: str, key: str, fallback: Optional[str] = None) -> Optional[str]:
        """
        Get a configuration value.

        Args:
            section: Config section (e.g., 'engine', 'log')
            key: Config key (e.g., 'author', 'level')
            fallback: Value used when nothing is configured; the built-in
                default applies when this is None

        Returns:
            Configuration value or fallback
        """
        env_value = os.environ.get(f"GITQUEST_{section.upper()}_{key.upper()}")
        if env_value is not None:
            return env_value

        if self.local_config and self.local_config.has_option(section, key):
            return self.local_config.get(section, key)

        if self.global_config.has_option(section, key):
            return self.global_config.get(section, key)

        if fallback is not None:
            return fallback
        return DEFAULTS.get(section, {}).get(key)

    def set(self, section: str, key: str, value: str) -> None:
        """
        Set a configuration value in the explicit config file.

        Raises:
            ValueError: If no config file path was given
        """
        if not self.config_path:
            raise ValueError("No config file path available")
        config = self.local_config
        if not config.has_section(section):
            config.add_section(section)
        config.set(section, key, value)
        with open(self.config_path, 'w') as f:
            config.write(f)

    @property
    def author(self) -> str:
        return self.get('engine', 'author')

    @property
    def default_branch(self) -> str:
        return self.get('engine', 'default_branch')

    @property
    def log_level(self) -> str:
        return self.get('log', 'level').upper()


def get_config(config_path: Optional[Path] = None) -> Config:
    """
    Get a Config instance.

    Args:
        config_path: Optional extra config file

    Returns:
        Config instance
    """
    return Config(config_path)
