"""Filesystem-backed discovery of listener endpoints.

Layout:
    <ports_dir>/<identity>    one record per workspace identity
    <ports_dir>/_default      listener started with no workspace open
    <legacy_port_file>        single global record from before per-workspace
                              records existed

Each record holds nothing but the decimal port. A record is written once by
the listener that owns it and deleted when that listener stops, so no
locking is needed. A record may outlive a crashed listener; clients treat a
refused connection the same as a missing record.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from .errors import DiscoveryMiss
from .workspace import DEFAULT_IDENTITY

logger = logging.getLogger(__name__)

DEFAULT_PORTS_DIR = Path.home() / ".editor-commander-ports"
DEFAULT_LEGACY_PORT_FILE = Path.home() / ".editor-commander-port"
RECORD_MODE = 0o600


def _fsync_dir(dir_path: Path) -> None:
    """Best-effort directory fsync so a new or removed record survives a crash."""
    try:
        fd = os.open(str(dir_path), os.O_RDONLY | getattr(os, "O_DIRECTORY", 0))
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        pass


def _write_record(path: Path, port: int) -> None:
    """Replace ``path`` with ``port`` so a resolver never reads a torn record.

    The temp file is created owner-only and renamed over the record, which
    also replaces a stale record left by a crashed listener.
    """
    if not 0 < port < 65536:
        raise ValueError(f"Port out of range: {port}")
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        try:
            os.fchmod(fd, RECORD_MODE)
            os.write(fd, str(port).encode("ascii"))
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    _fsync_dir(path.parent)


class DiscoveryStore:
    """Maps workspace identities to listener ports."""

    def __init__(
        self,
        ports_dir: Path | str | None = None,
        legacy_port_file: Path | str | None = None,
    ) -> None:
        self.ports_dir = Path(ports_dir) if ports_dir else DEFAULT_PORTS_DIR
        self.legacy_port_file = (
            Path(legacy_port_file) if legacy_port_file else DEFAULT_LEGACY_PORT_FILE
        )

    def record_path(self, identity: str) -> Path:
        # an empty identity would name the directory itself
        return self.ports_dir / (identity or DEFAULT_IDENTITY)

    def candidates(self, identity: str) -> list[Path]:
        """Record paths consulted by :meth:`resolve`, in order."""
        paths = [self.record_path(identity)]
        if identity != DEFAULT_IDENTITY:
            paths.append(self.record_path(DEFAULT_IDENTITY))
        paths.append(self.legacy_port_file)
        return paths

    def publish(self, identity: str, port: int) -> Path:
        path = self.record_path(identity)
        _write_record(path, int(port))
        logger.info("Published port %d for %s at %s", port, identity, path)
        return path

    def resolve(self, identity: str) -> int:
        """Return the first readable port for ``identity``.

        Raises:
            DiscoveryMiss: no candidate record exists or parses.
        """
        candidates = self.candidates(identity)
        for path in candidates:
            try:
                raw = path.read_text(encoding="utf-8").strip()
            except OSError:
                continue
            try:
                port = int(raw, 10)
            except ValueError:
                logger.warning("Ignoring unparsable discovery record %s: %r", path, raw[:40])
                continue
            logger.debug("Resolved %s to port %d via %s", identity, port, path)
            return port
        raise DiscoveryMiss(identity, [str(p) for p in candidates])

    def retract(self, identity: str) -> None:
        path = self.record_path(identity)
        try:
            path.unlink()
            logger.info("Retracted discovery record %s", path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove discovery record %s: %s", path, exc)
