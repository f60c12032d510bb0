"""
PanelDeck - Configuration Manager
===================================
Loads dashboard configuration from two sources:

1. config.yaml  - Non-sensitive settings (panel URL, web binding, console)
2. .env         - Secrets (the panel client API key)

Usage:
    config = ConfigManager(project_dir="/opt/paneldeck")
    settings = config.load()                 # merged with DEFAULTS
    api_key = config.get_panel_api_key()     # from .env or environment
"""

import os
import yaml
from dotenv import dotenv_values


# Default configuration values used when config.yaml is missing or incomplete.
DEFAULTS = {
    "web": {
        "port": 8090,
        "host": "127.0.0.1",
    },
    "panel": {
        "url": "",
        "timeout": 10,
        "verify_tls": True,
    },
    "console": {
        "scrollback": 500,
        "strip_ansi": True,
        "log_dir": "data/logs",
    },
}

# Name of the .env variable holding the panel client API key
PANEL_API_KEY = "PANEL_API_KEY"


class ConfigManager:
    """
    Unified configuration manager for PanelDeck.

    Attributes:
        project_dir: Root directory of the PanelDeck project.
        config_path: Full path to config.yaml.
        env_path:    Full path to .env file.
    """

    def __init__(self, project_dir: str):
        """
        Args:
            project_dir: Absolute path to the project root directory.
        """
        self.project_dir = project_dir
        self.config_path = os.path.join(project_dir, "config.yaml")
        self.env_path = os.path.join(project_dir, ".env")

    def load(self) -> dict:
        """
        Load configuration from config.yaml merged over DEFAULTS.

        A corrupted file falls back to defaults; the parse error is kept
        under the '_config_error' key for the caller to report.

        Returns:
            A dictionary containing the full configuration.
        """
        config = _deep_copy(DEFAULTS)

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    raise yaml.YAMLError("config.yaml must contain a mapping")
                _deep_merge(config, user_config)
            except (yaml.YAMLError, OSError) as e:
                config["_config_error"] = str(e)

        return config

    def resolve_path(self, path: str) -> str:
        """Resolve a config path relative to the project directory."""
        if os.path.isabs(path):
            return path
        return os.path.join(self.project_dir, path)

    # -- Panel API Key ---------------------------------------------------------

    def get_panel_api_key(self) -> str:
        """
        Return the panel client API key.

        The .env file wins over the process environment.
        """
        env_values = dotenv_values(self.env_path) if os.path.exists(self.env_path) else {}
        return env_values.get(PANEL_API_KEY) or os.environ.get(PANEL_API_KEY, "")


# -- Helper Functions ---------------------------------------------------------

def _deep_copy(d: dict) -> dict:
    """Create a deep copy of a nested dictionary."""
    result = {}
    for key, value in d.items():
        if isinstance(value, dict):
            result[key] = _deep_copy(value)
        elif isinstance(value, list):
            result[key] = list(value)
        else:
            result[key] = value
    return result


def _deep_merge(base: dict, override: dict) -> None:
    """
    Recursively merge 'override' into 'base' (in-place).

    For nested dicts, values are merged recursively.
    For all other types, override replaces base.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value

