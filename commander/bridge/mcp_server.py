"""MCP stdio bridge to the editor's command listener.

Launched by an agent CLI as an MCP subprocess. Speaks MCP on stdin/stdout
and relays every tool call to the listener published for its working
directory.

Usage:
    commander-bridge [--cwd PATH] [--config PATH] [--verbose]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from commander import __version__
from commander.shared.yaml_config import load_config

from .client import ListenerClient
from .relay import ToolRelay

logger = logging.getLogger(__name__)

SERVER_NAME = "editor-commander"


def build_server(relay: ToolRelay) -> Server:
    """MCP server whose tools are the relay's descriptors."""
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema,
            )
            for tool in relay.tools
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        outcome = await relay.call_tool(name, arguments)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=outcome.text)],
            isError=outcome.is_error,
        )

    return server


async def serve(relay: ToolRelay) -> None:
    server = build_server(relay)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options(),
            )
    finally:
        await relay.close()


def main() -> None:
    """Entry point when launched by an agent CLI as an MCP subprocess."""
    parser = argparse.ArgumentParser(
        prog="commander-bridge",
        description="MCP bridge that drives a running editor through its command listener",
    )
    parser.add_argument(
        "--cwd", default=None,
        help="Workspace directory to resolve the listener for (default: current directory)",
    )
    parser.add_argument(
        "--config", default=None,
        help="Path to a YAML config file",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    # Logging goes to stderr (stdout is the MCP transport)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    config = load_config(args.config)
    if not args.verbose:
        logging.getLogger().setLevel(config.logging_level)

    cwd = os.path.abspath(args.cwd or os.getcwd())
    client = ListenerClient(
        cwd,
        config.discovery_store(),
        host=config.host,
        timeout=config.request_timeout_seconds,
    )
    logger.info(
        "Starting %s bridge (cwd=%s identity=%s pid=%d)",
        SERVER_NAME, cwd, client.identity, os.getpid(),
    )
    asyncio.run(serve(ToolRelay(client)))


if __name__ == "__main__":
    main()
