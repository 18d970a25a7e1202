"""Editor Commander command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from commander.shared.config import CommanderConfig
from commander.shared.errors import DiscoveryMiss
from commander.shared.workspace import cwd_identity
from commander.shared.yaml_config import load_config

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "listener.log"


def _configure_logging(config: CommanderConfig, *, verbose: bool, stderr: bool) -> Path:
    """Root logger: rotating file under ``config.log_dir`` plus optional stderr."""
    log_dir = config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    level = logging.DEBUG if verbose else config.logging_level
    root.setLevel(level)
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if stderr:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return log_file


async def run_listener(config: CommanderConfig, cwd: Path) -> None:
    """Serve the headless host until SIGINT or SIGTERM."""
    from commander.host.local import LocalHost
    from commander.listener.server import CommandListener

    host = LocalHost([cwd])
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop.set)

    try:
        async with CommandListener(host, config) as listener:
            print(
                f"editor-commander listening on http://{config.host}:{listener.port} "
                f"(workspace {listener.identity})",
                file=sys.stderr,
            )
            await stop.wait()
            logger.info("Shutdown requested")
    finally:
        await host.shutdown()


def resolve_port(config: CommanderConfig, cwd: Path) -> int:
    """Port published for ``cwd``.

    Raises:
        DiscoveryMiss: nothing is published for ``cwd``.
    """
    store = config.discovery_store()
    try:
        return store.resolve(cwd_identity(cwd))
    except DiscoveryMiss as exc:
        raise DiscoveryMiss(str(cwd), exc.candidates) from None


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="commander",
        description="Editor Commander: let an MCP agent drive a running editor",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--listen", action="store_true",
        help="Run the headless host with an embedded listener until interrupted",
    )
    mode.add_argument(
        "--tui", action="store_true",
        help="Run the terminal UI host with an embedded listener",
    )
    mode.add_argument(
        "--resolve", action="store_true",
        help="Print the listener port published for the workspace and exit",
    )
    parser.add_argument(
        "--cwd", metavar="PATH",
        help="Workspace directory (default: current directory)",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    cwd = Path(os.path.abspath(args.cwd or os.getcwd()))
    config = load_config(args.config)

    if args.resolve:
        try:
            print(resolve_port(config, cwd))
        except DiscoveryMiss as exc:
            print(str(exc), file=sys.stderr)
            sys.exit(1)
        return

    # the TUI owns the terminal, so it logs to the file only
    log_file = _configure_logging(config, verbose=args.verbose, stderr=not args.tui)
    logger.info(
        "Starting editor-commander mode=%s cwd=%s config=%s log=%s",
        "tui" if args.tui else "listen", cwd, args.config or "<none>", log_file,
    )

    if args.tui:
        from commander.tui.app import CommanderApp

        CommanderApp(config=config, workspace_folders=[cwd]).run()
        return

    try:
        asyncio.run(run_listener(config, cwd))
    except OSError as exc:
        logger.error("Listener failed to start: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
