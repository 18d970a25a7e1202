"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via COMMANDER_* env vars, or
with a YAML file (see :mod:`commander.shared.yaml_config`).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .discovery import DEFAULT_LEGACY_PORT_FILE, DEFAULT_PORTS_DIR, DiscoveryStore

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".editor-commander" / "logs"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r (using %s)", name, raw, default)
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    return Path(raw).expanduser() if raw else default


@dataclass
class CommanderConfig:
    """Settings shared by the listener, host applications and the bridge."""

    # Discovery
    ports_dir: Path = field(default_factory=lambda: DEFAULT_PORTS_DIR)
    legacy_port_file: Path = field(default_factory=lambda: DEFAULT_LEGACY_PORT_FILE)

    # Listener bind address. The port is always chosen by the OS.
    host: str = "127.0.0.1"

    # Activity monitor timing
    idle_threshold_seconds: float = 8.0
    poll_interval_seconds: float = 1.0
    flash_interval_seconds: float = 0.5

    # Bridge
    request_timeout_seconds: float = 300.0

    # Logging
    log_level: str = "INFO"
    log_dir: Path = field(default_factory=lambda: DEFAULT_LOG_DIR)

    def discovery_store(self) -> DiscoveryStore:
        return DiscoveryStore(self.ports_dir, self.legacy_port_file)

    @property
    def logging_level(self) -> int:
        """Numeric level for ``log_level``; unknown names fall back to INFO."""
        level = logging.getLevelName(self.log_level)
        if isinstance(level, int):
            return level
        logger.warning("Unknown log level %r, using INFO", self.log_level)
        return logging.INFO

    @classmethod
    def from_env(cls) -> CommanderConfig:
        """Load configuration from COMMANDER_* environment variables."""
        overrides = {
            k: v for k, v in os.environ.items() if k.startswith("COMMANDER_")
        }
        if overrides:
            logger.info(
                "CommanderConfig.from_env: overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(overrides.items())),
            )
        else:
            logger.debug("CommanderConfig.from_env: no COMMANDER_* env vars set")

        defaults = cls()
        return cls(
            ports_dir=_env_path("COMMANDER_PORTS_DIR", defaults.ports_dir),
            legacy_port_file=_env_path(
                "COMMANDER_LEGACY_PORT_FILE", defaults.legacy_port_file,
            ),
            host=os.getenv("COMMANDER_HOST", defaults.host),
            idle_threshold_seconds=_env_float(
                "COMMANDER_IDLE_THRESHOLD", defaults.idle_threshold_seconds,
            ),
            poll_interval_seconds=_env_float(
                "COMMANDER_POLL_INTERVAL", defaults.poll_interval_seconds,
            ),
            flash_interval_seconds=_env_float(
                "COMMANDER_FLASH_INTERVAL", defaults.flash_interval_seconds,
            ),
            request_timeout_seconds=_env_float(
                "COMMANDER_REQUEST_TIMEOUT", defaults.request_timeout_seconds,
            ),
            log_level=os.getenv("COMMANDER_LOG_LEVEL", defaults.log_level).upper(),
            log_dir=_env_path("COMMANDER_LOG_DIR", defaults.log_dir),
        )
