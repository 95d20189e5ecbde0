"""Configuration file loading and CLI overrides for runtime tunables.

Precedence is CLI flag > config file > Constants default. Values land on
``Constants`` so every module reads the same effective setting.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants
from common.errors import ConfigError

logger = logging.getLogger(__name__)

# config key -> (Constants attribute, type)
_TUNABLES = {
    "origin": ("DEFAULT_ORIGIN", str),
    "mix_name": ("DEFAULT_MIX_NAME", str),
    "cache_dir": ("DEFAULT_CACHE_DIR", str),
    "workers": ("FETCH_WORKERS", int),
    "request_timeout": ("REQUEST_TIMEOUT", int),
    "retries": ("HTTP_RETRY_MAX", int),
}


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML (or .json) configuration file.

    Args:
        config_path: Path to the config file, or None.

    Returns:
        The configuration mapping; empty when no path is given.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {config_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must hold a mapping")
    return data


def apply_config(config: Dict[str, Any]) -> None:
    """Apply config-file values onto Constants.

    Raises:
        ConfigError: If a tunable has a value of the wrong type.
    """
    for key, (attr, kind) in _TUNABLES.items():
        if key not in config or config[key] is None:
            continue
        try:
            value = kind(config[key])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for '{key}': {config[key]!r}") from exc
        if kind is int and value < 1:
            raise ConfigError(f"'{key}' must be a positive integer")
        setattr(Constants, attr, value)
    unknown = set(config) - set(_TUNABLES) - {"catalog"}
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))


def apply_cli_overrides(args) -> None:
    """Apply CLI flags onto Constants (highest precedence)."""
    if getattr(args, "ORIGIN", None):
        Constants.DEFAULT_ORIGIN = args.ORIGIN.rstrip("/")
    if getattr(args, "MIX_NAME", None):
        Constants.DEFAULT_MIX_NAME = args.MIX_NAME
    if getattr(args, "CACHE_DIR", None):
        Constants.DEFAULT_CACHE_DIR = args.CACHE_DIR
    workers = getattr(args, "WORKERS", None)
    if workers is not None:
        if workers < 1:
            raise ConfigError("--workers must be at least 1")
        Constants.FETCH_WORKERS = workers


def apply_config_overrides(args) -> Dict[str, Any]:
    """Load the config file named by ``args`` and apply it, then the CLI flags.

    Returns:
        The loaded configuration mapping.
    """
    config = load_config(getattr(args, "CONFIG", None))
    apply_config(config)
    apply_cli_overrides(args)
    if config:
        logger.info("Loaded config from: %s", args.CONFIG)
    return config
