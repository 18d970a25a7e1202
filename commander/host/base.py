"""Abstract host surface.

The listener never talks to an editor directly. Whatever application embeds
it implements :class:`Host` (and :class:`Terminal` for its terminals) and
hands the listener an instance. The dispatcher only uses what is declared
here.
"""
from __future__ import annotations

import abc
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

# Plain or async callable; the host awaits the result when it is awaitable.
CommandCallback = Callable[..., Any]


@dataclass
class TerminalOptions:
    """Options accepted by :meth:`Host.create_terminal`."""
    name: str | None = None
    cwd: str | None = None
    shell_path: str | None = None
    env: dict[str, str] = field(default_factory=dict)


class StatusItem(Protocol):
    """A status-bar slot the activity monitor renders presence into."""

    text: str
    tooltip: str | None
    color: str | None

    def show(self) -> None: ...

    def hide(self) -> None: ...


class Terminal(abc.ABC):
    """A terminal owned by the host."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Display name."""

    @abc.abstractmethod
    async def process_id(self) -> int | None:
        """PID of the shell, once it is known."""

    @abc.abstractmethod
    def send_text(self, text: str, add_new_line: bool = True) -> None:
        """Write ``text`` to the terminal's input."""

    @abc.abstractmethod
    def show(self, preserve_focus: bool = True) -> None:
        """Reveal the terminal. ``preserve_focus`` keeps keyboard focus where it is."""

    @abc.abstractmethod
    def dispose(self) -> None:
        """Close the terminal and release its process."""


class Host(abc.ABC):
    """Capabilities the control plane can invoke in the host application."""

    @property
    @abc.abstractmethod
    def workspace_folders(self) -> list[Path]:
        """Open workspace roots, first one defines the workspace identity."""

    # ── Editors ──

    @abc.abstractmethod
    async def save_all(self) -> None: ...

    @abc.abstractmethod
    async def close_all_editors(self) -> None: ...

    @abc.abstractmethod
    async def close_active_editor(self) -> None: ...

    @abc.abstractmethod
    async def open_file(self, path: Path) -> None: ...

    @abc.abstractmethod
    def open_file_paths(self) -> list[str]:
        """Filesystem paths of every open editor tab, in tab order."""

    # ── Notifications ──

    @abc.abstractmethod
    async def show_information_message(self, message: str) -> None: ...

    @abc.abstractmethod
    async def show_warning_message(self, message: str) -> None: ...

    def set_status_bar_message(self, message: str, timeout_seconds: float) -> None:
        """Transient status text. Hosts without a status bar can ignore it."""

    # ── Commands ──

    @abc.abstractmethod
    async def execute_command(self, command_id: str, *args: Any) -> Any:
        """Run a host command by id and return whatever it yields."""

    @abc.abstractmethod
    def register_command(self, command_id: str, callback: CommandCallback) -> None: ...

    @abc.abstractmethod
    def unregister_command(self, command_id: str) -> None: ...

    # ── Terminals ──

    @property
    @abc.abstractmethod
    def terminals(self) -> list[Terminal]:
        """Open terminals in host enumeration order."""

    @property
    @abc.abstractmethod
    def active_terminal(self) -> Terminal | None: ...

    @abc.abstractmethod
    async def create_terminal(self, options: TerminalOptions) -> Terminal: ...

    # ── Status bar ──

    @abc.abstractmethod
    def create_status_item(self) -> StatusItem: ...
