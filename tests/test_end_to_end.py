"""Listener and bridge talking over real loopback sockets."""
from __future__ import annotations

import socket
from pathlib import Path

import aiohttp
import pytest

from commander.bridge.client import ListenerClient
from commander.bridge.relay import ToolRelay
from commander.host.local import LocalHost
from commander.listener.activity import PresenceState
from commander.listener.server import CommandListener
from commander.shared.config import CommanderConfig
from commander.shared.errors import CommandRejected

WORKSPACE = "/Users/alice/proj"


class _RecordingHost(LocalHost):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.save_all_calls = 0

    async def save_all(self) -> int:
        self.save_all_calls += 1
        return await super().save_all()


def _config(tmp_path: Path) -> CommanderConfig:
    return CommanderConfig(
        ports_dir=tmp_path / "ports",
        legacy_port_file=tmp_path / "legacy-port",
    )


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_save_all_round_trip(tmp_path: Path) -> None:
    config = _config(tmp_path)
    host = _RecordingHost([WORKSPACE])

    async with CommandListener(host, config) as listener:
        assert listener.identity == "Users-alice-proj"
        assert (config.ports_dir / "Users-alice-proj").read_text() == str(listener.port)

        async with aiohttp.ClientSession() as session:
            async with session.post(
                f"http://127.0.0.1:{listener.port}",
                json={"command": "saveAll", "args": {}},
            ) as resp:
                assert resp.status == 200
                assert await resp.json() == {"success": True, "result": "All files saved"}
        assert host.save_all_calls == 1

        relay = ToolRelay(ListenerClient(WORKSPACE, config.discovery_store()))
        try:
            outcome = await relay.call_tool("save_all_files", {})
        finally:
            await relay.close()

        assert outcome.text == "All files saved"
        assert not outcome.is_error
        assert host.save_all_calls == 2
        # the bridge's closing ping leaves the indicator idle
        assert listener.activity.state is PresenceState.IDLE


@pytest.mark.asyncio
async def test_terminal_index_out_of_range_over_the_wire(tmp_path: Path) -> None:
    config = _config(tmp_path)
    host = LocalHost([WORKSPACE], default_shell="/bin/sh")
    client = ListenerClient(WORKSPACE, config.discovery_store())

    try:
        async with CommandListener(host, config):
            await client.send_command("createTerminal", {"name": "one", "cwd": str(tmp_path)})
            await client.send_command("createTerminal", {"name": "two", "cwd": str(tmp_path)})

            with pytest.raises(CommandRejected) as excinfo:
                await client.send_command("sendTerminalText", {"index": 5, "text": "ls"})
            assert str(excinfo.value) == "Terminal index 5 out of range (0-1)"

            listing = await client.send_command("listTerminals")
            assert [t["name"] for t in listing] == ["one", "two"]
            assert [t["isActive"] for t in listing] == [False, True]
    finally:
        await client.close()
        await host.shutdown()


@pytest.mark.asyncio
async def test_no_listener_anywhere_reports_not_running(tmp_path: Path) -> None:
    config = _config(tmp_path)
    relay = ToolRelay(ListenerClient(WORKSPACE, config.discovery_store()))
    try:
        outcome = await relay.call_tool("list_terminals", {})
    finally:
        await relay.close()

    assert outcome.is_error
    assert "not running" in outcome.text


@pytest.mark.asyncio
async def test_stale_record_reports_not_running(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.discovery_store().publish("Users-alice-proj", _unused_port())

    relay = ToolRelay(ListenerClient(WORKSPACE, config.discovery_store()))
    try:
        outcome = await relay.call_tool("save_all_files", {})
    finally:
        await relay.close()

    assert outcome.is_error
    assert "not running" in outcome.text


@pytest.mark.asyncio
async def test_bridge_reaches_sentinel_listener(tmp_path: Path) -> None:
    config = _config(tmp_path)
    async with CommandListener(LocalHost(), config):
        relay = ToolRelay(ListenerClient("/some/other/dir", config.discovery_store()))
        try:
            outcome = await relay.call_tool("get_open_files", {})
        finally:
            await relay.close()

    assert outcome.text == "[]"
