"""MCP bridge: forwards agent tool calls to a workspace's listener."""
from commander.bridge.client import ListenerClient
from commander.bridge.relay import ToolOutcome, ToolRelay
from commander.bridge.tools import TOOLS, ToolDescriptor

__all__ = [
    "ListenerClient",
    "TOOLS",
    "ToolDescriptor",
    "ToolOutcome",
    "ToolRelay",
]
