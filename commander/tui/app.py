"""Editor Commander TUI: a Textual host application with the listener embedded."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import Footer, Header, RichLog, Static

from commander.host.base import StatusItem
from commander.host.local import LocalHost, LocalTerminal
from commander.listener.server import CommandListener
from commander.shared.config import CommanderConfig
from commander.tui.widgets.status_bar import AgentStatusItem, StatusBar

PANEL_REFRESH_SECONDS = 0.5


class TuiHost(LocalHost):
    """LocalHost whose notifications and status item live in the app."""

    def __init__(self, app: CommanderApp, workspace_folders: list[Path | str] | None = None) -> None:
        super().__init__(workspace_folders)
        self._app = app

    async def show_information_message(self, message: str) -> None:
        await super().show_information_message(message)
        self._app.notify(message)
        self._app.log_event(f"[cyan]info[/cyan] {message}")

    async def show_warning_message(self, message: str) -> None:
        await super().show_warning_message(message)
        self._app.notify(message, severity="warning")
        self._app.log_event(f"[yellow]warning[/yellow] {message}")

    def set_status_bar_message(self, message: str, timeout_seconds: float) -> None:
        super().set_status_bar_message(message, timeout_seconds)
        self._app.status_bar.flash_message(message, timeout_seconds)

    def create_status_item(self) -> StatusItem:
        return self._app.agent_status


class CommanderApp(App):
    """Shows open editors and terminals; the agent drives them over the listener."""

    TITLE = "Editor Commander"
    SUB_TITLE = "Agent control plane"

    CSS = """
    #workspace { height: 1fr; }
    #side { width: 40%; }
    #editors, #terminals { height: 1fr; border: round $primary; padding: 0 1; }
    #event-log { width: 1fr; border: round $secondary; }
    #status-row { height: 1; dock: bottom; }
    """

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("f2", "show_port", "Port"),
    ]

    def __init__(
        self,
        config: CommanderConfig | None = None,
        workspace_folders: list[Path | str] | None = None,
    ) -> None:
        super().__init__()
        self.commander_config = config or CommanderConfig()
        self.status_bar = StatusBar(id="status-bar")
        self.agent_status = AgentStatusItem(id="agent-status")
        self.editor_host = TuiHost(self, workspace_folders)
        self.listener = CommandListener(
            self.editor_host, self.commander_config, event_callback=self._on_listener_event,
        )

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="workspace"):
            with Vertical(id="side"):
                yield Static(id="editors")
                yield Static(id="terminals")
            yield RichLog(id="event-log", wrap=True, markup=True, max_lines=2000)
        with Horizontal(id="status-row"):
            yield self.status_bar
            yield self.agent_status
        yield Footer()

    async def on_mount(self) -> None:
        self.status_bar.workspace = self.listener.identity
        port = await self.listener.start()
        self.status_bar.port = port
        self.log_event(f"[green]Listening[/green] on port {port} as {self.listener.identity}")
        self.set_interval(PANEL_REFRESH_SECONDS, self.refresh_panels)
        self.refresh_panels()

    async def on_unmount(self) -> None:
        await self.listener.stop()
        await self.editor_host.shutdown()

    async def action_show_port(self) -> None:
        await self.editor_host.execute_command("commander.showPort")

    async def _on_listener_event(self, event: dict[str, Any]) -> None:
        if event.get("event") == "presence_changed":
            self.log_event(f"[dim]agent {event['previous']} → {event['state']}[/dim]")

    def log_event(self, markup: str) -> None:
        if not self.is_running:
            return
        try:
            self.query_one("#event-log", RichLog).write(markup)
        except NoMatches:
            pass

    def refresh_panels(self) -> None:
        editors = Text("Editors\n", style="bold")
        active = self.editor_host.active_editor
        for editor in self.editor_host.editors:
            marker = "▸ " if editor is active else "  "
            editors.append(f"{marker}{editor.path.name}")
            if editor.dirty:
                editors.append(" ●", style="yellow")
            editors.append("\n")

        terminals = Text("Terminals\n", style="bold")
        active_terminal = self.editor_host.active_terminal
        for i, terminal in enumerate(self.editor_host.terminals):
            marker = "▸ " if terminal is active_terminal else "  "
            terminals.append(f"{marker}[{i}] {terminal.name}\n")
            if isinstance(terminal, LocalTerminal) and terminal.output:
                terminals.append(f"      {terminal.output[-1]}\n", style="dim")

        self.query_one("#editors", Static).update(editors)
        self.query_one("#terminals", Static).update(terminals)
        self.status_bar.editors = len(self.editor_host.editors)
        self.status_bar.terminals = len(self.editor_host.terminals)
