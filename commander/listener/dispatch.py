"""Command dispatch table: wire command name -> host capability."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from commander.host.base import Host, Terminal, TerminalOptions
from commander.host.terminals import find_terminal
from commander.shared.errors import (
    CommanderError,
    HandlerFailure,
    MalformedRequest,
    UnknownCommand,
)

from .activity import ActivityMonitor

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[Any]]


def _require(args: dict[str, Any], key: str, kind: type = str) -> Any:
    value = args.get(key)
    if value is None:
        raise MalformedRequest(f"Missing required argument: {key}")
    if not isinstance(value, kind):
        raise MalformedRequest(
            f"Argument {key} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _optional(args: dict[str, Any], key: str, kind: type) -> Any:
    value = args.get(key)
    if value is not None and not isinstance(value, kind):
        raise MalformedRequest(
            f"Argument {key} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


class CommandDispatcher:
    """Routes control-plane commands to a :class:`Host`."""

    def __init__(self, host: Host, activity: ActivityMonitor) -> None:
        self._host = host
        self._activity = activity
        self._table: dict[str, Handler] = {
            "saveAll": self._save_all,
            "closeAllEditors": self._close_all_editors,
            "closeActiveEditor": self._close_active_editor,
            "openFile": self._open_file,
            "getOpenFiles": self._get_open_files,
            "showMessage": self._show_message,
            "executeCommand": self._execute_command,
            "listTerminals": self._list_terminals,
            "createTerminal": self._create_terminal,
            "sendTerminalText": self._send_terminal_text,
            "showTerminal": self._show_terminal,
            "closeTerminal": self._close_terminal,
            "setAgentStatus": self._set_agent_status,
        }

    @property
    def commands(self) -> list[str]:
        return list(self._table)

    async def dispatch(self, command: str, args: dict[str, Any]) -> Any:
        """Run ``command`` and return its raw result.

        Raises:
            UnknownCommand: ``command`` is not in the table.
            CommanderError: any other control-plane failure; host exceptions
                arrive wrapped as :class:`HandlerFailure`.
        """
        handler = self._table.get(command)
        if handler is None:
            raise UnknownCommand(command)
        try:
            return await handler(args)
        except CommanderError:
            raise
        except Exception as exc:
            logger.warning("Command %s failed in host: %s", command, exc, exc_info=True)
            raise HandlerFailure(command, exc) from exc

    # ── Editors ──

    async def _save_all(self, args: dict[str, Any]) -> str:
        await self._host.save_all()
        return "All files saved"

    async def _close_all_editors(self, args: dict[str, Any]) -> str:
        await self._host.close_all_editors()
        return "All editors closed"

    async def _close_active_editor(self, args: dict[str, Any]) -> str:
        await self._host.close_active_editor()
        return "Active editor closed"

    async def _open_file(self, args: dict[str, Any]) -> str:
        path = _require(args, "path")
        await self._host.open_file(Path(path))
        return f"Opened {path}"

    async def _get_open_files(self, args: dict[str, Any]) -> list[str]:
        return [p for p in self._host.open_file_paths() if p]

    async def _show_message(self, args: dict[str, Any]) -> str:
        await self._host.show_information_message(_require(args, "message"))
        return "Message shown"

    async def _execute_command(self, args: dict[str, Any]) -> Any:
        command_id = _require(args, "command")
        positional = _optional(args, "args", list) or []
        result = await self._host.execute_command(command_id, *positional)
        if result is None:
            return f"Executed {command_id}"
        return result

    # ── Terminals ──

    def _find_terminal(self, args: dict[str, Any]) -> Terminal:
        return find_terminal(
            self._host.terminals,
            self._host.active_terminal,
            name=_optional(args, "name", str),
            index=args.get("index"),
        )

    async def _list_terminals(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        active = self._host.active_terminal
        listing = []
        for i, terminal in enumerate(self._host.terminals):
            listing.append({
                "index": i,
                "name": terminal.name,
                "isActive": terminal is active,
                "processId": await terminal.process_id(),
            })
        return listing

    async def _create_terminal(self, args: dict[str, Any]) -> dict[str, Any]:
        env = _optional(args, "env", dict) or {}
        options = TerminalOptions(
            name=_optional(args, "name", str) or None,
            cwd=_optional(args, "cwd", str) or None,
            shell_path=_optional(args, "shellPath", str) or None,
            env={str(k): str(v) for k, v in env.items()},
        )
        terminal = await self._host.create_terminal(options)
        if args.get("show") is not False:
            terminal.show(True)
        terminals = self._host.terminals
        return {
            "name": terminal.name,
            "index": terminals.index(terminal) if terminal in terminals else -1,
        }

    async def _send_terminal_text(self, args: dict[str, Any]) -> str:
        text = _require(args, "text")
        terminal = self._find_terminal(args)
        terminal.send_text(text, args.get("addNewLine") is not False)
        return f'Sent text to terminal "{terminal.name}"'

    async def _show_terminal(self, args: dict[str, Any]) -> str:
        terminal = self._find_terminal(args)
        preserve_focus = args.get("preserveFocus")
        terminal.show(True if preserve_focus is None else bool(preserve_focus))
        return f'Showing terminal "{terminal.name}"'

    async def _close_terminal(self, args: dict[str, Any]) -> str:
        terminal = self._find_terminal(args)
        name = terminal.name
        terminal.dispose()
        return f'Closed terminal "{name}"'

    # ── Presence ──

    async def _set_agent_status(self, args: dict[str, Any]) -> str:
        status = args.get("status")
        self._activity.set_status(status)
        return f"Agent status: {status}"
