"""Editor Commander: drive a running editor from an MCP agent."""

__version__ = "0.1.0"
