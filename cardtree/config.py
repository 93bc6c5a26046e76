"""
Configuration management for cardtree.

This module handles loading and accessing configuration values from config.yaml.
It provides a centralized way to manage engine limits, numbering rules and
logging settings without changing code.
"""

import yaml
from pathlib import Path
from typing import Any, Dict
import logging


class ConfigManager:
    """
    Manages configuration loading and access for cardtree.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._config = yaml.safe_load(f) or {}

            logging.info(f"Configuration loaded from {self.config_path}")

        except (OSError, yaml.YAMLError) as e:
            logging.warning(f"Failed to load configuration, using defaults: {e}")
            self._config = self._get_default_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return {
            "journal": {
                "max_depth": 100
            },
            "history": {
                "max_versions": 100,
                "database": "cardtree_history.db"
            },
            "cards": {
                "id_digits": 3,
                "id_prefix": None
            },
            "workspace": {
                "expand_on_open": True,
                "display_mode": "detailed"
            },
            "paths": {
                "log_file": "cardtree.log"
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "journal.max_depth")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("journal.max_depth")  # Returns 100
            config.get("cards.id_digits")  # Returns 3
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties for commonly used values

    @property
    def undo_depth(self) -> int:
        """Get the maximum number of undo entries kept per tab."""
        return int(self.get("journal.max_depth", 100))

    @property
    def history_max_versions(self) -> int:
        """Get the maximum number of versions kept per card history."""
        return int(self.get("history.max_versions", 100))

    @property
    def history_database(self) -> str:
        """Get history database filename."""
        return self.get("history.database", "cardtree_history.db")

    @property
    def card_id_digits(self) -> int:
        """Get zero padding width for generated display codes."""
        return int(self.get("cards.id_digits", 3))

    @property
    def card_id_prefix(self):
        """Get the preferred display code prefix (None means most common prefix)."""
        return self.get("cards.id_prefix", None)

    @property
    def expand_on_open(self) -> bool:
        """Whether cards with children start expanded when a file is opened."""
        return bool(self.get("workspace.expand_on_open", True))

    @property
    def display_mode(self) -> str:
        """Get the default card display mode for new tabs."""
        return self.get("workspace.display_mode", "detailed")

    @property
    def log_filename(self) -> str:
        """Get log file name."""
        return self.get("paths.log_file", "cardtree.log")


# Global configuration instance
config = ConfigManager()


def get_config() -> ConfigManager:
    """
    Get the global configuration instance.

    Returns:
        The global ConfigManager instance
    """
    return config
