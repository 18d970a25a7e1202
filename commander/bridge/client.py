"""HTTP client for a workspace's command listener.

The endpoint is re-resolved on every call, so a listener that restarts on a
new port is picked up without restarting the bridge.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import aiohttp

from commander.shared.discovery import DiscoveryStore
from commander.shared.errors import ChannelError, CommandRejected, DiscoveryMiss
from commander.shared.protocol import CommandRequest
from commander.shared.workspace import cwd_identity

logger = logging.getLogger(__name__)


class ListenerClient:
    """Sends control-plane commands to the listener serving ``cwd``."""

    def __init__(
        self,
        cwd: Path | str,
        store: DiscoveryStore,
        *,
        host: str = "127.0.0.1",
        timeout: float = 300.0,
    ) -> None:
        self._cwd = str(cwd)
        self._identity = cwd_identity(cwd)
        self._store = store
        self._host = host
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def cwd(self) -> str:
        return self._cwd

    @property
    def identity(self) -> str:
        return self._identity

    def endpoint(self) -> str:
        """URL of the current listener.

        Raises:
            DiscoveryMiss: no record for this workspace, the sentinel or the
                legacy file.
        """
        try:
            port = self._store.resolve(self._identity)
        except DiscoveryMiss as exc:
            raise DiscoveryMiss(self._cwd, exc.candidates) from None
        return f"http://{self._host}:{port}"

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )
        return self._session

    async def send_command(self, command: str, args: dict[str, Any] | None = None) -> Any:
        """POST one command and return its ``result``.

        Raises:
            DiscoveryMiss: no record, or nothing listening on the recorded port.
            CommandRejected: the listener answered ``success: false``.
            ChannelError: the response was not a control-plane response.
        """
        url = self.endpoint()
        payload = CommandRequest(command=command, args=args or {}).to_dict()
        session = self._ensure_session()
        logger.debug("POST %s command=%s", url, command)
        try:
            async with session.post(url, json=payload) as resp:
                try:
                    data = await resp.json(content_type=None)
                except (json.JSONDecodeError, ValueError) as exc:
                    raise ChannelError(
                        f"Listener returned a non-JSON response (HTTP {resp.status})"
                    ) from exc
        except aiohttp.ClientConnectorError as exc:
            logger.info("Listener for %s refused connection: %s", self._cwd, exc)
            raise DiscoveryMiss(self._cwd) from exc
        except aiohttp.ClientError as exc:
            raise ChannelError(f"Control channel failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise ChannelError(
                f"Listener did not answer {command} within {self._timeout:g}s"
            ) from exc

        if not isinstance(data, dict) or "success" not in data:
            raise ChannelError(f"Unexpected listener response: {data!r}"[:200])
        if not data["success"]:
            raise CommandRejected(command, str(data.get("error") or "Unknown error"))
        return data.get("result")

    async def ping_status(self, status: str) -> None:
        """Best-effort ``setAgentStatus``; the listener may not be reachable."""
        try:
            await self.send_command("setAgentStatus", {"status": status})
        except Exception as exc:
            logger.debug("Status ping %s dropped: %s", status, exc)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
