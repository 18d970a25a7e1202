from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from commander.host.base import TerminalOptions
from commander.host.local import LocalHost, LocalTerminal


async def _wait_for_output(terminal: LocalTerminal, needle: str, timeout: float = 5.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not any(needle in line for line in terminal.output):
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"{needle!r} never appeared in {list(terminal.output)!r}")
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
async def test_editors_open_edit_save_close(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("one", encoding="utf-8")
    (tmp_path / "b.txt").write_text("two", encoding="utf-8")
    host = LocalHost([tmp_path])

    await host.open_file(Path("a.txt"))
    await host.open_file(tmp_path / "b.txt")
    await host.open_file(Path("a.txt"))

    assert host.open_file_paths() == [
        str((tmp_path / "a.txt").resolve()),
        str((tmp_path / "b.txt").resolve()),
    ]
    assert host.active_editor.path.name == "a.txt"

    await host.execute_command("editor.setText", "b.txt", "changed")
    assert await host.save_all() == 1
    assert (tmp_path / "b.txt").read_text(encoding="utf-8") == "changed"
    assert await host.save_all() == 0

    await host.close_active_editor()
    assert [Path(p).name for p in host.open_file_paths()] == ["b.txt"]
    await host.close_all_editors()
    assert host.open_file_paths() == []


@pytest.mark.asyncio
async def test_open_missing_file_raises(tmp_path: Path) -> None:
    host = LocalHost([tmp_path])
    with pytest.raises(FileNotFoundError):
        await host.open_file(Path("nope.txt"))


@pytest.mark.asyncio
async def test_revert_discards_unsaved_text(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("disk", encoding="utf-8")
    host = LocalHost([tmp_path])
    await host.open_file(Path("a.txt"))
    await host.execute_command("editor.setText", "a.txt", "memory")

    assert await host.execute_command("editor.revert") == str((tmp_path / "a.txt").resolve())
    assert host.active_editor.text == "disk"
    assert not host.active_editor.dirty


@pytest.mark.asyncio
async def test_command_registry() -> None:
    host = LocalHost()
    calls = []

    async def callback(*args):
        calls.append(args)
        return "done"

    host.register_command("custom.run", callback)
    with pytest.raises(ValueError):
        host.register_command("custom.run", callback)

    assert await host.execute_command("custom.run", 1, 2) == "done"
    assert calls == [(1, 2)]

    host.unregister_command("custom.run")
    with pytest.raises(LookupError, match="command 'custom.run' not found"):
        await host.execute_command("custom.run")


@pytest.mark.asyncio
async def test_terminal_runs_commands_and_disposes(tmp_path: Path) -> None:
    host = LocalHost([tmp_path], default_shell="/bin/sh")
    try:
        first = await host.create_terminal(TerminalOptions(cwd=str(tmp_path)))
        second = await host.create_terminal(
            TerminalOptions(name="env", env={"COMMANDER_TEST_VALUE": "xyzzy"}),
        )
        assert [t.name for t in host.terminals] == ["Terminal 1", "env"]
        assert host.active_terminal is None
        assert isinstance(await first.process_id(), int)

        second.show(preserve_focus=False)
        assert host.active_terminal is second
        assert host.focused_terminal is second

        second.send_text("echo $COMMANDER_TEST_VALUE")
        await _wait_for_output(second, "xyzzy")

        first.send_text("pwd")
        await _wait_for_output(first, tmp_path.name)

        second.dispose()
        assert host.terminals == [first]
        assert host.active_terminal is first
        assert host.focused_terminal is None
        await second.wait_closed()
    finally:
        await host.shutdown()

    assert host.terminals == []


@pytest.mark.asyncio
async def test_shutdown_reaps_terminals_closed_earlier() -> None:
    host = LocalHost(default_shell="/bin/sh")
    terminal = await host.create_terminal(TerminalOptions(name="closed"))
    process = terminal._process

    terminal.dispose()
    assert host.terminals == []

    await host.shutdown()
    assert process.returncode is not None


@pytest.mark.asyncio
async def test_status_items_and_messages() -> None:
    host = LocalHost()
    item = host.create_status_item()
    item.text = "●"
    item.show()
    assert host.status_items[0].visible
    item.hide()
    assert not host.status_items[0].visible

    await host.show_warning_message("careful")
    host.set_status_bar_message("Editor Commander: port 1", 5)
    assert host.messages == [("warning", "careful")]
    assert host.status_message == "Editor Commander: port 1"
