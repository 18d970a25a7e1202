from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from commander.host.base import Host, Terminal, TerminalOptions
from commander.listener.activity import ActivityMonitor, PresenceState
from commander.listener.dispatch import CommandDispatcher
from commander.shared.errors import (
    HandlerFailure,
    IndexOutOfRange,
    MalformedRequest,
    NoActiveTerminal,
    UnknownCommand,
)
from commander.shared.protocol import classify_result


class _FakeItem:
    def __init__(self) -> None:
        self.text = ""
        self.tooltip: str | None = None
        self.color: str | None = None
        self.visible = False

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False


class _FakeTerminal(Terminal):
    def __init__(self, host: _FakeHost, name: str, pid: int) -> None:
        self._host = host
        self._name = name
        self.pid = pid
        self.sent: list[tuple[str, bool]] = []
        self.shown: list[bool] = []

    @property
    def name(self) -> str:
        return self._name

    async def process_id(self) -> int | None:
        return self.pid

    def send_text(self, text: str, add_new_line: bool = True) -> None:
        self.sent.append((text, add_new_line))

    def show(self, preserve_focus: bool = True) -> None:
        self.shown.append(preserve_focus)
        self._host.active = self

    def dispose(self) -> None:
        self._host.open_terminals.remove(self)
        if self._host.active is self:
            self._host.active = None


class _FakeHost(Host):
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.files: list[str] = []
        self.open_terminals: list[_FakeTerminal] = []
        self.active: _FakeTerminal | None = None
        self.command_results: dict[str, Any] = {}

    @property
    def workspace_folders(self) -> list[Path]:
        return [Path("/Users/alice/proj")]

    async def save_all(self) -> None:
        self.calls.append(("save_all", None))

    async def close_all_editors(self) -> None:
        self.calls.append(("close_all_editors", None))
        self.files.clear()

    async def close_active_editor(self) -> None:
        self.calls.append(("close_active_editor", None))

    async def open_file(self, path: Path) -> None:
        if path.name == "missing.txt":
            raise FileNotFoundError(f"No such file: {path}")
        self.files.append(str(path))

    def open_file_paths(self) -> list[str]:
        return list(self.files) + [""]

    async def show_information_message(self, message: str) -> None:
        self.calls.append(("info", message))

    async def show_warning_message(self, message: str) -> None:
        self.calls.append(("warning", message))

    async def execute_command(self, command_id: str, *args: Any) -> Any:
        self.calls.append(("execute", (command_id, args)))
        return self.command_results.get(command_id)

    def register_command(self, command_id, callback) -> None:
        pass

    def unregister_command(self, command_id) -> None:
        pass

    @property
    def terminals(self) -> list[Terminal]:
        return list(self.open_terminals)

    @property
    def active_terminal(self) -> Terminal | None:
        return self.active

    async def create_terminal(self, options: TerminalOptions) -> Terminal:
        name = options.name or f"Terminal {len(self.open_terminals) + 1}"
        terminal = _FakeTerminal(self, name, 1000 + len(self.open_terminals))
        self.open_terminals.append(terminal)
        self.calls.append(("create_terminal", options))
        return terminal

    def create_status_item(self) -> _FakeItem:
        return _FakeItem()


def _dispatcher() -> tuple[CommandDispatcher, _FakeHost, ActivityMonitor]:
    host = _FakeHost()
    monitor = ActivityMonitor(host.create_status_item())
    return CommandDispatcher(host, monitor), host, monitor


def test_table_covers_every_command() -> None:
    dispatcher, _, _ = _dispatcher()
    assert sorted(dispatcher.commands) == sorted([
        "saveAll", "closeAllEditors", "closeActiveEditor", "openFile",
        "getOpenFiles", "showMessage", "executeCommand", "listTerminals",
        "createTerminal", "sendTerminalText", "showTerminal", "closeTerminal",
        "setAgentStatus",
    ])


@pytest.mark.asyncio
async def test_editor_commands_return_fixed_strings() -> None:
    dispatcher, host, _ = _dispatcher()

    assert await dispatcher.dispatch("saveAll", {}) == "All files saved"
    assert await dispatcher.dispatch("closeAllEditors", {}) == "All editors closed"
    assert await dispatcher.dispatch("closeActiveEditor", {}) == "Active editor closed"
    assert [c[0] for c in host.calls] == ["save_all", "close_all_editors", "close_active_editor"]


@pytest.mark.asyncio
async def test_open_file_and_list_open_files() -> None:
    dispatcher, _, _ = _dispatcher()

    assert await dispatcher.dispatch("openFile", {"path": "/tmp/a.py"}) == "Opened /tmp/a.py"
    # tabs without a filesystem path are left out
    assert await dispatcher.dispatch("getOpenFiles", {}) == ["/tmp/a.py"]


@pytest.mark.asyncio
async def test_open_file_requires_path() -> None:
    dispatcher, _, _ = _dispatcher()
    with pytest.raises(MalformedRequest, match="Missing required argument: path"):
        await dispatcher.dispatch("openFile", {})


@pytest.mark.asyncio
async def test_host_exception_becomes_handler_failure_with_host_message() -> None:
    dispatcher, _, _ = _dispatcher()
    with pytest.raises(HandlerFailure) as excinfo:
        await dispatcher.dispatch("openFile", {"path": "/tmp/missing.txt"})
    assert str(excinfo.value) == "No such file: /tmp/missing.txt"
    assert isinstance(excinfo.value.cause, FileNotFoundError)


@pytest.mark.asyncio
async def test_unknown_command() -> None:
    dispatcher, _, _ = _dispatcher()
    with pytest.raises(UnknownCommand, match="Unknown command: nope"):
        await dispatcher.dispatch("nope", {})


@pytest.mark.asyncio
async def test_show_message() -> None:
    dispatcher, host, _ = _dispatcher()
    assert await dispatcher.dispatch("showMessage", {"message": "hi"}) == "Message shown"
    assert host.calls == [("info", "hi")]


@pytest.mark.asyncio
async def test_execute_command_passes_args_and_reports_result() -> None:
    dispatcher, host, _ = _dispatcher()
    host.command_results["workbench.action.files.revert"] = {"reverted": 2}

    assert await dispatcher.dispatch(
        "executeCommand", {"command": "editor.action.formatDocument"},
    ) == "Executed editor.action.formatDocument"
    assert await dispatcher.dispatch(
        "executeCommand", {"command": "workbench.action.files.revert", "args": [1, "x"]},
    ) == {"reverted": 2}
    assert host.calls[-1] == ("execute", ("workbench.action.files.revert", (1, "x")))


@pytest.mark.asyncio
async def test_terminal_lifecycle() -> None:
    dispatcher, host, _ = _dispatcher()

    created = await dispatcher.dispatch("createTerminal", {"name": "build", "env": {"A": 1}})
    assert created == {"name": "build", "index": 0}
    assert host.calls[-1][1].env == {"A": "1"}
    assert host.active is host.open_terminals[0]

    hidden = await dispatcher.dispatch("createTerminal", {"show": False})
    assert hidden == {"name": "Terminal 2", "index": 1}
    assert host.open_terminals[1].shown == []

    listing = await dispatcher.dispatch("listTerminals", {})
    assert listing == [
        {"index": 0, "name": "build", "isActive": True, "processId": 1000},
        {"index": 1, "name": "Terminal 2", "isActive": False, "processId": 1001},
    ]
    assert json.loads(classify_result(listing).render()) == listing

    assert await dispatcher.dispatch(
        "sendTerminalText", {"index": 1, "text": "ls", "addNewLine": False},
    ) == 'Sent text to terminal "Terminal 2"'
    assert host.open_terminals[1].sent == [("ls", False)]

    assert await dispatcher.dispatch("sendTerminalText", {"text": "pwd"}) == (
        'Sent text to terminal "build"'
    )
    assert host.open_terminals[0].sent == [("pwd", True)]

    assert await dispatcher.dispatch(
        "showTerminal", {"name": "Terminal 2", "preserveFocus": False},
    ) == 'Showing terminal "Terminal 2"'
    assert host.open_terminals[1].shown == [False]

    assert await dispatcher.dispatch("closeTerminal", {"index": 0}) == 'Closed terminal "build"'
    assert [t.name for t in host.open_terminals] == ["Terminal 2"]


@pytest.mark.asyncio
async def test_send_terminal_text_index_out_of_range() -> None:
    dispatcher, _, _ = _dispatcher()
    await dispatcher.dispatch("createTerminal", {})
    await dispatcher.dispatch("createTerminal", {})

    with pytest.raises(IndexOutOfRange, match=r"Terminal index 5 out of range \(0-1\)"):
        await dispatcher.dispatch("sendTerminalText", {"index": 5, "text": "ls"})


@pytest.mark.asyncio
async def test_terminal_commands_without_active_terminal() -> None:
    dispatcher, _, _ = _dispatcher()
    for command, args in [
        ("sendTerminalText", {"text": "ls"}),
        ("showTerminal", {}),
        ("closeTerminal", {}),
    ]:
        with pytest.raises(NoActiveTerminal):
            await dispatcher.dispatch(command, args)


@pytest.mark.asyncio
async def test_set_agent_status_drives_presence() -> None:
    dispatcher, _, monitor = _dispatcher()

    assert await dispatcher.dispatch("setAgentStatus", {"status": "idle"}) == "Agent status: idle"
    assert monitor.state is PresenceState.IDLE

    assert await dispatcher.dispatch("setAgentStatus", {"status": "gone"}) == "Agent status: gone"
    assert monitor.state is PresenceState.HIDDEN

    await monitor.stop()
