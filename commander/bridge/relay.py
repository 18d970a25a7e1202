"""Tool-call relay between the MCP surface and a listener.

Tool call flow:
    agent -> MCP stdin/stdout -> ToolRelay -> HTTP -> CommandListener -> Host

Every outcome is rendered as text; nothing raised by the listener or the
channel escapes :meth:`ToolRelay.call_tool`.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import aiohttp

from commander.shared.errors import CommanderError
from commander.shared.protocol import classify_result

from .client import ListenerClient
from .tools import TOOLS, ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutcome:
    text: str
    is_error: bool = False


class ToolRelay:
    """Forwards tool calls and reports agent activity around them."""

    def __init__(
        self,
        client: ListenerClient,
        tools: Iterable[ToolDescriptor] = TOOLS,
    ) -> None:
        self._client = client
        self._tools = {tool.name: tool for tool in tools}
        self._in_flight = 0

    @property
    def tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> ToolOutcome:
        # thinking when the first concurrent call starts, idle when the last drains
        self._in_flight += 1
        if self._in_flight == 1:
            await self._client.ping_status("thinking")
        try:
            return await self._forward(name, arguments or {})
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                await self._client.ping_status("idle")

    async def _forward(self, name: str, arguments: dict[str, Any]) -> ToolOutcome:
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolOutcome(f"Unknown tool: {name}", is_error=True)

        try:
            result = await self._client.send_command(tool.command, tool.map_args(arguments))
        except CommanderError as exc:
            logger.info("Tool %s failed: %s", name, exc)
            return ToolOutcome(f"Error: {exc}", is_error=True)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Tool %s lost the control channel: %s", name, exc)
            return ToolOutcome(f"Error: {str(exc) or exc.__class__.__name__}", is_error=True)

        return ToolOutcome(classify_result(result).render())

    async def close(self) -> None:
        await self._client.close()
