"""Declarative MCP tool table.

Each tool names the wire command it forwards to and a pure function that
maps MCP arguments onto command arguments.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

ArgMapper = Callable[[dict[str, Any]], dict[str, Any]]

_NO_INPUT: dict[str, Any] = {"type": "object", "properties": {}}

_TERMINAL_NAME = {"type": "string", "description": "Name of the terminal"}
_TERMINAL_INDEX = {
    "type": "number",
    "description": "Index of the terminal (from list_terminals)",
}


def no_args(arguments: dict[str, Any]) -> dict[str, Any]:
    return {}


def pass_through(arguments: dict[str, Any]) -> dict[str, Any]:
    return dict(arguments)


def pick(*keys: str) -> ArgMapper:
    """Forward only ``keys``, dropping ones that are absent or null."""
    def mapper(arguments: dict[str, Any]) -> dict[str, Any]:
        return {k: arguments[k] for k in keys if arguments.get(k) is not None}
    return mapper


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    command: str
    input_schema: dict[str, Any] = field(default_factory=lambda: dict(_NO_INPUT))
    map_args: ArgMapper = no_args


TOOLS: list[ToolDescriptor] = [
    ToolDescriptor(
        name="save_all_files",
        description="Save all open files in the editor",
        command="saveAll",
    ),
    ToolDescriptor(
        name="close_all_editors",
        description="Close all open editor tabs",
        command="closeAllEditors",
    ),
    ToolDescriptor(
        name="close_active_editor",
        description="Close the currently active editor tab",
        command="closeActiveEditor",
    ),
    ToolDescriptor(
        name="open_file",
        description="Open a file in the editor by absolute path",
        command="openFile",
        input_schema={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Absolute path to the file"},
            },
            "required": ["path"],
        },
        map_args=pick("path"),
    ),
    ToolDescriptor(
        name="get_open_files",
        description="List all files currently open in editor tabs",
        command="getOpenFiles",
    ),
    ToolDescriptor(
        name="show_message",
        description="Show an information message notification in the editor",
        command="showMessage",
        input_schema={
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to display"},
            },
            "required": ["message"],
        },
        map_args=pick("message"),
    ),
    ToolDescriptor(
        name="execute_command",
        description=(
            "Execute any editor command by ID "
            '(e.g. "editor.action.formatDocument", "editor.revert")'
        ),
        command="executeCommand",
        input_schema={
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "The editor command ID"},
                "args": {
                    "type": "array",
                    "description": "Optional arguments for the command",
                    "items": {},
                },
            },
            "required": ["command"],
        },
        map_args=pick("command", "args"),
    ),
    ToolDescriptor(
        name="list_terminals",
        description=(
            "List all open integrated terminals with their name, index, "
            "active status, and process ID"
        ),
        command="listTerminals",
    ),
    ToolDescriptor(
        name="create_terminal",
        description="Create a new integrated terminal",
        command="createTerminal",
        input_schema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Display name for the terminal"},
                "cwd": {"type": "string", "description": "Initial working directory"},
                "shellPath": {
                    "type": "string",
                    "description": "Path to the shell executable (e.g. /bin/zsh)",
                },
                "env": {
                    "type": "object",
                    "description": "Environment variables to set",
                    "additionalProperties": {"type": "string"},
                },
                "show": {
                    "type": "boolean",
                    "description": "Whether to show the terminal after creation (default true)",
                },
            },
        },
        map_args=pass_through,
    ),
    ToolDescriptor(
        name="send_terminal_text",
        description=(
            "Send text to an integrated terminal. Identify the target by name "
            "or index; omit both to use the active terminal."
        ),
        command="sendTerminalText",
        input_schema={
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "Text to send to the terminal"},
                "name": {"type": "string", "description": "Name of the target terminal"},
                "index": {
                    "type": "number",
                    "description": "Index of the target terminal (from list_terminals)",
                },
                "addNewLine": {
                    "type": "boolean",
                    "description": "Whether to append a newline (default true)",
                },
            },
            "required": ["text"],
        },
        map_args=pass_through,
    ),
    ToolDescriptor(
        name="show_terminal",
        description=(
            "Show/focus an integrated terminal. Identify by name or index; "
            "omit both to use the active terminal."
        ),
        command="showTerminal",
        input_schema={
            "type": "object",
            "properties": {
                "name": _TERMINAL_NAME,
                "index": _TERMINAL_INDEX,
                "preserveFocus": {
                    "type": "boolean",
                    "description": "If true, the terminal will not take focus (default true)",
                },
            },
        },
        map_args=pass_through,
    ),
    ToolDescriptor(
        name="close_terminal",
        description=(
            "Close/dispose an integrated terminal. Identify by name or index; "
            "omit both to close the active terminal."
        ),
        command="closeTerminal",
        input_schema={
            "type": "object",
            "properties": {
                "name": _TERMINAL_NAME,
                "index": _TERMINAL_INDEX,
            },
        },
        map_args=pass_through,
    ),
]

TOOLS_BY_NAME: dict[str, ToolDescriptor] = {tool.name: tool for tool in TOOLS}
