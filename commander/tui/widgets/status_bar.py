"""Status bar: bottom row with listener info and the agent presence glyph."""

from __future__ import annotations

from typing import Optional

from rich.text import Text
from textual.reactive import reactive
from textual.timer import Timer
from textual.widget import Widget


class AgentStatusItem(Widget):
    """Presence glyph. Satisfies the host ``StatusItem`` protocol."""

    DEFAULT_CSS = """
    AgentStatusItem {
        width: 3;
        height: 1;
        content-align: center middle;
    }
    """

    text: reactive[str] = reactive("")
    color: reactive[Optional[str]] = reactive(None)

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.display = False

    @property
    def shown(self) -> bool:
        return bool(self.display)

    def show(self) -> None:
        self.display = True

    def hide(self) -> None:
        self.display = False

    def render(self) -> Text:
        return Text(self.text, style=self.color or "")


class StatusBar(Widget):
    """Single-line status bar with workspace, port and editor counts."""

    DEFAULT_CSS = """
    StatusBar {
        width: 1fr;
        height: 1;
    }
    """

    workspace: reactive[str] = reactive("_default")
    port: reactive[Optional[int]] = reactive(None)
    editors: reactive[int] = reactive(0)
    terminals: reactive[int] = reactive(0)
    message: reactive[str] = reactive("")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._message_timer: Timer | None = None

    def flash_message(self, message: str, timeout_seconds: float) -> None:
        """Show ``message`` until ``timeout_seconds`` pass or another replaces it."""
        if self._message_timer is not None:
            self._message_timer.stop()
        self.message = message
        self._message_timer = self.set_timer(timeout_seconds, self._clear_message)

    def _clear_message(self) -> None:
        self.message = ""
        self._message_timer = None

    def render(self) -> Text:
        bar = Text()
        bar.append(f" {self.workspace} ", style="bold")
        bar.append(" │ ", style="dim")
        if self.port is None:
            bar.append("● stopped", style="red")
        else:
            bar.append(f"● port {self.port}", style="green")
        bar.append(" │ ", style="dim")
        bar.append(f"{self.editors} editors", style="dim")
        bar.append(" │ ", style="dim")
        bar.append(f"{self.terminals} terminals", style="dim")
        if self.message:
            bar.append("  ")
            bar.append(self.message, style="italic cyan")
        return bar
