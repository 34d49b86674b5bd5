import json
import logging
import os

from appdirs import user_config_dir

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "host": "0.0.0.0",
    "port": 8765,
    "pair_timeout": 1.5,  # seconds a peer waits in a pool
    "ping_interval": 20,
    "ping_timeout": 20,
    "max_size": 1024 * 1024,  # largest inbound frame in bytes
    "log_level": "INFO",
}


def _valid_value(value, default):
    """Check a loaded value has the same kind as its default."""
    if isinstance(default, str):
        return isinstance(value, str)
    # bool is an int subclass, never accept it for numeric settings
    if isinstance(value, bool):
        return False
    if isinstance(default, int):
        return isinstance(value, int)
    return isinstance(value, (int, float))


class ConfigManager:
    def __init__(self, config_path=None):
        """
        Initializes the ConfigManager.
        Args:
            config_path: Explicit path to a JSON config file. Defaults to
                         server_config.json in the per-user config directory.
        """
        self.settings = dict(DEFAULT_CONFIG)
        if config_path:
            self._config_file_path = config_path
        else:
            self._config_file_path = os.path.join(self._get_config_directory(), "server_config.json")
        logger.debug(f"Config file path: {self._config_file_path}")

    def _get_config_directory(self):
        """Determine the appropriate config directory based on the OS."""
        config_dir = user_config_dir("XShare", "XShareAuthor")
        try:
            os.makedirs(config_dir, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create config directory {config_dir}: {e}")
        return config_dir

    @property
    def path(self):
        return self._config_file_path

    def load(self):
        """
        Load settings from disk, writing a default file if none exists.
        Invalid files or values fall back to the defaults.
        Returns:
            The settings dict.
        """
        if not os.path.exists(self._config_file_path):
            logger.info(f"No config file found. Writing defaults to {self._config_file_path}")
            self.save()
            return self.settings

        try:
            with open(self._config_file_path, "r", encoding="utf-8") as f:
                loaded_data = json.load(f)
            if not isinstance(loaded_data, dict):
                raise ValueError("Config file must contain a JSON object.")
        except (OSError, json.JSONDecodeError, ValueError) as e:
            logger.error(f"Error loading config file {self._config_file_path}: {e}. Using defaults.")
            return self.settings

        for key, default in DEFAULT_CONFIG.items():
            if key not in loaded_data:
                continue
            value = loaded_data[key]
            if not _valid_value(value, default):
                logger.warning(f"Config key '{key}' has invalid value {value!r}. Using default {default!r}.")
                continue
            self.settings[key] = value

        logger.info(f"Configuration loaded from {self._config_file_path}")
        return self.settings

    def save(self):
        try:
            with open(self._config_file_path, "w", encoding="utf-8") as f:
                json.dump(self.settings, f, indent=4)
            logger.info(f"Config saved to {self._config_file_path}")
        except OSError as e:
            logger.error(f"Failed to save config to {self._config_file_path}: {e}")

    def update(self, **overrides):
        """Apply command-line overrides; None values are skipped."""
        for key, value in overrides.items():
            if value is not None and key in DEFAULT_CONFIG:
                self.settings[key] = value

    # --- Getters ---
    def get_host(self):
        return self.settings["host"]

    def get_port(self):
        return self.settings["port"]

    def get_pair_timeout(self):
        return self.settings["pair_timeout"]

    def get_log_level(self):
        return self.settings["log_level"]

    def get_server_options(self):
        return {
            "ping_interval": self.settings["ping_interval"],
            "ping_timeout": self.settings["ping_timeout"],
            "max_size": self.settings["max_size"],
        }
