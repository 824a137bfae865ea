"""
Configuration — loads settings from .saverunner.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

from __future__ import annotations

import logging
import os

import yaml

from .editing.models import EolPolicy

logger = logging.getLogger(__name__)

_DEFAULTS = {
    "enabled": True,
    "shell": None,
    "eol_policy": EolPolicy.LF.value,
    "context_lines": 3,
    "filter_timeout": 30.0,
    "auto_clear_console": False,
    "commands": [],
}

# Config file search locations
_CONFIG_FILENAMES = [".saverunner.yaml", ".saverunner.yml"]

_COMMAND_KEYS = {
    "match": "match",
    "notMatch": "not_match",
    "not_match": "not_match",
    "before": "before",
    "after": "after",
}


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    # Search CWD first, then home directory
    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("[Config] Cannot read %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _parse_commands(raw) -> list[dict]:
    """Normalise the ``commands`` list; entries that are not mappings are dropped."""
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("[Config] 'commands' must be a list, ignoring it")
        return []

    commands: list[dict] = []
    for position, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            logger.warning("[Config] Command #%d is not a mapping, skipping", position)
            continue
        command = {
            _COMMAND_KEYS[key]: str(value)
            for key, value in entry.items()
            if key in _COMMAND_KEYS and value is not None
        }
        if "before" not in command and "after" not in command:
            logger.warning(
                "[Config] Command #%d has neither 'before' nor 'after', skipping",
                position,
            )
            continue
        commands.append(command)
    return commands


class Config:
    """Save-runner configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .saverunner.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() == "true"
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        self.ENABLED = _get_bool("SAVE_RUNNER_ENABLED", "enabled",
                                 _DEFAULTS["enabled"])
        self.SHELL: str | None = _get("SAVE_RUNNER_SHELL", "shell",
                                      _DEFAULTS["shell"])
        self.CONTEXT_LINES = _get("SAVE_RUNNER_CONTEXT_LINES", "context_lines",
                                  _DEFAULTS["context_lines"], cast=int)
        self.FILTER_TIMEOUT = _get("SAVE_RUNNER_FILTER_TIMEOUT", "filter_timeout",
                                   _DEFAULTS["filter_timeout"], cast=float)
        self.AUTO_CLEAR_CONSOLE = bool(yd.get("auto_clear_console",
                                              _DEFAULTS["auto_clear_console"]))

        policy = _get("SAVE_RUNNER_EOL_POLICY", "eol_policy",
                      _DEFAULTS["eol_policy"])
        try:
            self.EOL_POLICY = EolPolicy(str(policy).lower())
        except ValueError:
            logger.warning("[Config] Unknown eol_policy %r, using 'lf'", policy)
            self.EOL_POLICY = EolPolicy.LF

        self.COMMANDS: list[dict] = _parse_commands(
            yd.get("commands", _DEFAULTS["commands"])
        )

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        if path:
            logger.debug("[Config] Loaded %s", path)
        return cls(yaml_data)
