"""Headless reference host.

Runs entirely in-process: editors are text buffers backed by files, terminals
are shell subprocesses whose output is captured, notifications are logged.
Used by ``commander --listen`` and as the model behind the Textual host.
"""
from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import os
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .base import CommandCallback, Host, StatusItem, Terminal, TerminalOptions

logger = logging.getLogger(__name__)

TERMINAL_SCROLLBACK_LINES = 500


@dataclass
class EditorBuffer:
    path: Path
    text: str
    dirty: bool = False


class LogStatusItem:
    """Status item that records presence changes in the log."""

    def __init__(self) -> None:
        self.text = ""
        self.tooltip: str | None = None
        self.color: str | None = None
        self.visible = False

    def show(self) -> None:
        if not self.visible:
            logger.info("Agent status shown: %s (%s)", self.text, self.tooltip or "")
        self.visible = True

    def hide(self) -> None:
        if self.visible:
            logger.info("Agent status hidden")
        self.visible = False


class LocalTerminal(Terminal):
    """A shell subprocess with captured output."""

    def __init__(self, host: LocalHost, name: str, options: TerminalOptions) -> None:
        self._host = host
        self._name = name
        self._options = options
        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task | None = None
        self.output: deque[str] = deque(maxlen=TERMINAL_SCROLLBACK_LINES)
        self.disposed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def shell_path(self) -> str:
        return (
            self._options.shell_path
            or self._host.default_shell
            or os.environ.get("SHELL")
            or "/bin/sh"
        )

    async def start(self) -> None:
        env = dict(os.environ)
        env.update(self._options.env)
        self._process = await asyncio.create_subprocess_exec(
            self.shell_path,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=self._options.cwd or None,
            env=env,
        )
        self._reader_task = asyncio.create_task(self._pump_output())
        logger.info(
            "Terminal %r started (shell=%s pid=%s)",
            self._name, self.shell_path, self._process.pid,
        )

    async def _pump_output(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        while True:
            line = await self._process.stdout.readline()
            if not line:
                break
            self.output.append(line.decode("utf-8", errors="replace").rstrip("\n"))

    async def process_id(self) -> int | None:
        return self._process.pid if self._process else None

    def send_text(self, text: str, add_new_line: bool = True) -> None:
        if self._process is None or self._process.stdin is None:
            raise RuntimeError(f'Terminal "{self._name}" has no running process')
        payload = text + ("\n" if add_new_line else "")
        self._process.stdin.write(payload.encode("utf-8"))

    def show(self, preserve_focus: bool = True) -> None:
        self._host._set_active_terminal(self)
        self._host.focused_terminal = None if preserve_focus else self

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        if self._reader_task is not None:
            self._reader_task.cancel()
        if self._process is not None and self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass
        self._host._forget_terminal(self)
        self._host._reap_later(self)
        logger.info("Terminal %r disposed", self._name)

    async def wait_closed(self) -> None:
        if self._process is not None:
            await self._process.wait()


class LocalHost(Host):
    """In-process host with file-backed editors and subprocess terminals."""

    def __init__(
        self,
        workspace_folders: list[Path | str] | None = None,
        *,
        default_shell: str | None = None,
    ) -> None:
        self._workspace_folders = [Path(p) for p in workspace_folders or []]
        self.default_shell = default_shell
        self.editors: list[EditorBuffer] = []
        self._active_editor: EditorBuffer | None = None
        self._terminals: list[LocalTerminal] = []
        self._active_terminal: LocalTerminal | None = None
        self.focused_terminal: LocalTerminal | None = None
        self._terminal_counter = itertools.count(1)
        self._closing: set[asyncio.Task] = set()
        self._commands: dict[str, CommandCallback] = {}
        self.messages: list[tuple[str, str]] = []
        self.status_message: str | None = None
        self.status_items: list[LogStatusItem] = []

        self.register_command("editor.setText", self._cmd_set_text)
        self.register_command("editor.revert", self._cmd_revert)

    @property
    def workspace_folders(self) -> list[Path]:
        return list(self._workspace_folders)

    # ── Editors ──

    def _resolve(self, path: Path | str) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute() and self._workspace_folders:
            candidate = self._workspace_folders[0] / candidate
        return candidate.resolve()

    def _find_editor(self, path: Path | str) -> EditorBuffer | None:
        resolved = self._resolve(path)
        for editor in self.editors:
            if editor.path == resolved:
                return editor
        return None

    @property
    def active_editor(self) -> EditorBuffer | None:
        return self._active_editor

    async def save_all(self) -> int:
        saved = 0
        for editor in self.editors:
            if not editor.dirty:
                continue
            editor.path.write_text(editor.text, encoding="utf-8")
            editor.dirty = False
            saved += 1
        logger.info("Saved %d dirty editor(s)", saved)
        return saved

    async def close_all_editors(self) -> None:
        dropped = [e.path for e in self.editors if e.dirty]
        if dropped:
            logger.warning("Closing editors with unsaved changes: %s", dropped)
        self.editors.clear()
        self._active_editor = None

    async def close_active_editor(self) -> None:
        if self._active_editor is None:
            return
        self.editors.remove(self._active_editor)
        self._active_editor = self.editors[-1] if self.editors else None

    async def open_file(self, path: Path) -> None:
        existing = self._find_editor(path)
        if existing is not None:
            self._active_editor = existing
            return
        resolved = self._resolve(path)
        text = resolved.read_text(encoding="utf-8")
        editor = EditorBuffer(path=resolved, text=text)
        self.editors.append(editor)
        self._active_editor = editor

    def open_file_paths(self) -> list[str]:
        return [str(e.path) for e in self.editors]

    # ── Notifications ──

    async def show_information_message(self, message: str) -> None:
        logger.info("[info] %s", message)
        self.messages.append(("info", message))

    async def show_warning_message(self, message: str) -> None:
        logger.warning("[warning] %s", message)
        self.messages.append(("warning", message))

    def set_status_bar_message(self, message: str, timeout_seconds: float) -> None:
        self.status_message = message
        logger.info("%s", message)

    # ── Commands ──

    def register_command(self, command_id: str, callback: CommandCallback) -> None:
        if command_id in self._commands:
            raise ValueError(f"command '{command_id}' already exists")
        self._commands[command_id] = callback

    def unregister_command(self, command_id: str) -> None:
        self._commands.pop(command_id, None)

    async def execute_command(self, command_id: str, *args: Any) -> Any:
        callback = self._commands.get(command_id)
        if callback is None:
            raise LookupError(f"command '{command_id}' not found")
        result = callback(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _cmd_set_text(self, path: str, text: str) -> str:
        editor = self._find_editor(path)
        if editor is None:
            raise LookupError(f"{path} is not open")
        editor.text = text
        editor.dirty = True
        return str(editor.path)

    def _cmd_revert(self, path: str | None = None) -> str | None:
        editor = self._find_editor(path) if path else self._active_editor
        if editor is None:
            return None
        editor.text = editor.path.read_text(encoding="utf-8")
        editor.dirty = False
        return str(editor.path)

    # ── Terminals ──

    @property
    def terminals(self) -> list[Terminal]:
        return list(self._terminals)

    @property
    def active_terminal(self) -> Terminal | None:
        return self._active_terminal

    async def create_terminal(self, options: TerminalOptions) -> Terminal:
        name = options.name or f"Terminal {next(self._terminal_counter)}"
        terminal = LocalTerminal(self, name, options)
        await terminal.start()
        self._terminals.append(terminal)
        return terminal

    def _set_active_terminal(self, terminal: LocalTerminal) -> None:
        self._active_terminal = terminal

    def _forget_terminal(self, terminal: LocalTerminal) -> None:
        if terminal in self._terminals:
            self._terminals.remove(terminal)
        if self._active_terminal is terminal:
            self._active_terminal = self._terminals[-1] if self._terminals else None
        if self.focused_terminal is terminal:
            self.focused_terminal = None

    def _reap_later(self, terminal: LocalTerminal) -> None:
        # disposed terminals leave the list but their process still needs a wait()
        task = asyncio.get_running_loop().create_task(terminal.wait_closed())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    # ── Status bar ──

    def create_status_item(self) -> StatusItem:
        item = LogStatusItem()
        self.status_items.append(item)
        return item

    async def shutdown(self) -> None:
        """Dispose every terminal and reap its process."""
        for terminal in list(self._terminals):
            terminal.dispose()
        if self._closing:
            await asyncio.gather(*self._closing)
