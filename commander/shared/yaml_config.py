"""YAML configuration loader.

Layers a YAML file over :meth:`CommanderConfig.from_env`. Every key is
optional; missing sections keep the env/default value.

Example YAML:
    discovery:
      ports_dir: ~/.editor-commander-ports
      legacy_port_file: ~/.editor-commander-port

    listener:
      host: 127.0.0.1

    activity:
      idle_threshold_seconds: 8
      poll_interval_seconds: 1
      flash_interval_seconds: 0.5

    bridge:
      request_timeout_seconds: 300

    logging:
      level: DEBUG
      dir: ~/.editor-commander/logs
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from .config import CommanderConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".editor-commander" / "config.yaml"

# section -> {yaml key: (config attribute, converter)}
_SECTIONS: dict[str, dict[str, tuple[str, Any]]] = {
    "discovery": {
        "ports_dir": ("ports_dir", lambda v: Path(str(v)).expanduser()),
        "legacy_port_file": ("legacy_port_file", lambda v: Path(str(v)).expanduser()),
    },
    "listener": {
        "host": ("host", str),
    },
    "activity": {
        "idle_threshold_seconds": ("idle_threshold_seconds", float),
        "poll_interval_seconds": ("poll_interval_seconds", float),
        "flash_interval_seconds": ("flash_interval_seconds", float),
    },
    "bridge": {
        "request_timeout_seconds": ("request_timeout_seconds", float),
    },
    "logging": {
        "level": ("log_level", lambda v: str(v).upper()),
        "dir": ("log_dir", lambda v: Path(str(v)).expanduser()),
    },
}


def resolve_config_path(explicit: str | None = None) -> Path | None:
    """Pick the config file: explicit path, COMMANDER_CONFIG_FILE, then the default."""
    if explicit:
        return Path(explicit).expanduser()
    from_env = os.getenv("COMMANDER_CONFIG_FILE")
    if from_env:
        return Path(from_env).expanduser()
    if DEFAULT_CONFIG_FILE.exists():
        return DEFAULT_CONFIG_FILE
    return None


def apply_yaml(config: CommanderConfig, raw: dict[str, Any]) -> CommanderConfig:
    """Apply parsed YAML sections to ``config`` in place and return it."""
    for section, values in raw.items():
        fields = _SECTIONS.get(section)
        if fields is None:
            logger.warning("Ignoring unknown config section: %s", section)
            continue
        if not isinstance(values, dict):
            logger.warning("Config section %s must be a mapping", section)
            continue
        for key, value in values.items():
            entry = fields.get(key)
            if entry is None:
                logger.warning("Ignoring unknown config key: %s.%s", section, key)
                continue
            attr, convert = entry
            try:
                setattr(config, attr, convert(value))
            except (TypeError, ValueError) as exc:
                logger.warning(
                    "Invalid value for %s.%s (%r): %s", section, key, value, exc,
                )
    return config


def load_config(path: str | Path | None = None) -> CommanderConfig:
    """Build a :class:`CommanderConfig` from env vars plus an optional YAML file."""
    config = CommanderConfig.from_env()
    config_path = resolve_config_path(str(path) if path else None)
    if config_path is None:
        logger.debug("No config file found; using env vars / defaults")
        return config
    if not config_path.exists():
        logger.warning("Config file %s does not exist; using env vars / defaults", config_path)
        return config

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not load config %s: %s", config_path, exc)
        return config
    if not isinstance(raw, dict):
        logger.warning("Config %s must contain a mapping at top level", config_path)
        return config

    logger.info("Loaded config from %s", config_path)
    return apply_yaml(config, raw)
