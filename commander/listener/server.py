"""HTTP control-plane listener embedded in the host process.

Binds an OS-chosen loopback port, publishes it in the discovery store under
the host's workspace identity, and serves one command per POST:

    POST /   {"command": "saveAll", "args": {}}
    200      {"success": true, "result": "All files saved"}
    500      {"success": false, "error": "Unknown command: nope"}

Any other method gets 405 with an empty body. Command failures are always
JSON failure responses; the transport only fails when the channel does.

Usage:
    async with CommandListener(host, config) as listener:
        ...  # listener.port is published until the block exits
"""
from __future__ import annotations

import atexit
import functools
import json
import logging
import time
import uuid
from typing import Any

from aiohttp import web

from commander.host.base import Host
from commander.shared.config import CommanderConfig
from commander.shared.discovery import DiscoveryStore
from commander.shared.errors import CommanderError
from commander.shared.events import EventCallback, fire_event
from commander.shared.protocol import failure_payload, parse_request, success_payload
from commander.shared.workspace import workspace_identity

from .activity import ActivityMonitor
from .dispatch import CommandDispatcher

logger = logging.getLogger(__name__)

SHOW_PORT_COMMAND = "commander.showPort"
STARTUP_MESSAGE_SECONDS = 5.0

_dumps = functools.partial(json.dumps, default=str)


class CommandListener:
    """Owns the endpoint, its discovery record and the activity monitor."""

    def __init__(
        self,
        host: Host,
        config: CommanderConfig | None = None,
        *,
        store: DiscoveryStore | None = None,
        event_callback: EventCallback | None = None,
    ) -> None:
        self._host = host
        self._config = config or CommanderConfig()
        self._store = store or self._config.discovery_store()
        self._event_callback = event_callback
        self._identity = workspace_identity(host.workspace_folders)
        self.activity = ActivityMonitor(
            host.create_status_item(),
            idle_threshold=self._config.idle_threshold_seconds,
            poll_interval=self._config.poll_interval_seconds,
            flash_interval=self._config.flash_interval_seconds,
            on_transition=event_callback,
        )
        self.dispatcher = CommandDispatcher(host, self.activity)
        self._app = web.Application(middlewares=[self._request_logging_middleware])
        self._app.router.add_route("*", "/{tail:.*}", self._handle_request)
        self._runner: web.AppRunner | None = None
        self._port: int | None = None
        self._published = False
        self._show_port_registered = False

    @property
    def app(self) -> web.Application:
        return self._app

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def port(self) -> int | None:
        return self._port

    @property
    def running(self) -> bool:
        return self._runner is not None and self._port is not None

    # ── Lifecycle ──

    async def start(self) -> int:
        """Bind, publish the discovery record and start the activity monitor."""
        if self._runner is not None:
            raise RuntimeError("Listener already started")
        runner = web.AppRunner(self._app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, 0)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

        port = self._resolve_port(runner)
        if port is None:
            await runner.cleanup()
            self._runner = None
            raise RuntimeError("Listener started but no listening socket was reported.")
        self._port = port

        try:
            self._store.publish(self._identity, port)
        except BaseException:
            logger.error("Could not publish port %d for %s", port, self._identity)
            self._runner = None
            self._port = None
            await runner.cleanup()
            raise
        self._published = True
        atexit.register(self._retract_at_exit)

        self.activity.start()
        if not self._show_port_registered:
            # stays registered after stop so it can report the listener is down
            self._host.register_command(SHOW_PORT_COMMAND, self._show_port)
            self._show_port_registered = True
        self._host.set_status_bar_message(
            f"Editor Commander: port {port}", STARTUP_MESSAGE_SECONDS,
        )
        logger.info(
            "Listener on %s:%d identity=%s", self._config.host, port, self._identity,
        )
        await fire_event(self._event_callback, {
            "event": "listener_started", "port": port, "identity": self._identity,
        })
        return port

    async def stop(self) -> None:
        """Retract the record and release the port. Safe to call twice."""
        if self._published:
            self._store.retract(self._identity)
            self._published = False
            atexit.unregister(self._retract_at_exit)
        if self._runner is None:
            return
        await self.activity.stop()
        runner, self._runner = self._runner, None
        await runner.cleanup()
        logger.info("Listener stopped (port=%s)", self._port)
        self._port = None
        await fire_event(self._event_callback, {
            "event": "listener_stopped", "identity": self._identity,
        })

    async def __aenter__(self) -> CommandListener:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    def _retract_at_exit(self) -> None:
        if self._published:
            self._store.retract(self._identity)
            self._published = False

    @staticmethod
    def _resolve_port(runner: web.AppRunner) -> int | None:
        for address in runner.addresses:
            if isinstance(address, tuple) and len(address) >= 2:
                return int(address[1])
        return None

    async def _show_port(self) -> None:
        if self.running:
            await self._host.show_information_message(
                f"Editor Commander on port {self._port}"
            )
        else:
            await self._host.show_warning_message("Editor Commander server not running")

    # ── Middleware ──

    @web.middleware
    async def _request_logging_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        req_id = request.headers.get("x-commander-request-id", str(uuid.uuid4())[:8])
        request["req_id"] = req_id
        start = time.monotonic()
        try:
            response = await handler(request)
        except Exception:
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.exception(
                "HTTP %s %s req=%s failed duration_ms=%.1f",
                request.method, request.path, req_id, elapsed_ms,
            )
            raise
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info(
            "HTTP %s %s req=%s command=%s status=%s duration_ms=%.1f",
            request.method, request.path, req_id, request.get("command", "-"),
            response.status, elapsed_ms,
        )
        return response

    # ── Handler ──

    async def _handle_request(self, request: web.Request) -> web.StreamResponse:
        if request.method != "POST":
            return web.Response(status=405)

        body = await request.read()
        self.activity.record_activity()

        try:
            parsed = parse_request(body)
            request["command"] = parsed.command
            result = await self.dispatcher.dispatch(parsed.command, parsed.args)
        except CommanderError as exc:
            logger.info("Command %s rejected: %s", request.get("command", "?"), exc)
            return web.json_response(failure_payload(str(exc)), status=500, dumps=_dumps)
        except Exception as exc:
            logger.exception("Unexpected failure handling %s", request.get("command", "?"))
            return web.json_response(failure_payload(str(exc)), status=500, dumps=_dumps)

        return web.json_response(success_payload(result), dumps=_dumps)
