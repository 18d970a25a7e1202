"""Agent presence indicator driven by request timing.

States:

  hidden:   initial; nothing shown
  thinking: a request arrived recently; the glyph flashes
  idle:     no request for ``idle_threshold`` seconds; steady glyph

Every accepted request calls :meth:`ActivityMonitor.record_activity`, which
stamps the time and moves to ``thinking``. A poll loop compares the stamp
against the threshold every ``poll_interval`` seconds and moves ``thinking``
to ``idle``. ``setAgentStatus`` overrides go through the same
:meth:`ActivityMonitor.transition`, so a request that asks for the current
state changes nothing on screen.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum

from commander.host.base import StatusItem
from commander.shared.events import EventCallback, fire_event

logger = logging.getLogger(__name__)

THINKING_FRAMES = ("●", "○")
IDLE_GLYPH = "●"
IDLE_COLOR = "green"
THINKING_TOOLTIP = "Agent is working..."
IDLE_TOOLTIP = "Waiting for you"


class PresenceState(str, Enum):
    HIDDEN = "hidden"
    THINKING = "thinking"
    IDLE = "idle"

    @classmethod
    def from_status(cls, status: object) -> PresenceState:
        """Map a ``setAgentStatus`` argument; anything unrecognised hides."""
        if status == cls.THINKING.value:
            return cls.THINKING
        if status == cls.IDLE.value:
            return cls.IDLE
        return cls.HIDDEN


class ActivityMonitor:
    """Owns the presence state and renders it into a :class:`StatusItem`."""

    def __init__(
        self,
        item: StatusItem,
        *,
        idle_threshold: float = 8.0,
        poll_interval: float = 1.0,
        flash_interval: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        on_transition: EventCallback | None = None,
    ) -> None:
        self._item = item
        self.idle_threshold = idle_threshold
        self.poll_interval = poll_interval
        self.flash_interval = flash_interval
        self._clock = clock
        self._on_transition = on_transition
        self._state = PresenceState.HIDDEN
        self._last_activity: float | None = None
        self._frame = 0
        self._poll_task: asyncio.Task | None = None
        self._flash_task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def state(self) -> PresenceState:
        return self._state

    @property
    def flashing(self) -> bool:
        return self._flash_task is not None and not self._flash_task.done()

    # ── Lifecycle ──

    def start(self) -> None:
        if self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        self.transition(PresenceState.HIDDEN)
        for task in (self._poll_task, self._flash_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._poll_task = None
        self._flash_task = None
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    # ── Inputs ──

    def record_activity(self) -> None:
        self._last_activity = self._clock()
        self.transition(PresenceState.THINKING)

    def set_status(self, status: object) -> PresenceState:
        target = PresenceState.from_status(status)
        self.transition(target)
        return target

    def check_idle(self) -> bool:
        """Move ``thinking`` to ``idle`` once the threshold has passed."""
        if self._state is not PresenceState.THINKING or self._last_activity is None:
            return False
        if self._clock() - self._last_activity <= self.idle_threshold:
            return False
        return self.transition(PresenceState.IDLE)

    # ── Transition ──

    def transition(self, target: PresenceState) -> bool:
        """Enter ``target``. Returns False when already there."""
        if target is self._state:
            return False
        previous = self._state
        self._state = target
        self._render(target)
        logger.debug("Presence %s -> %s", previous.value, target.value)
        if self._on_transition is not None:
            task = asyncio.create_task(fire_event(self._on_transition, {
                "event": "presence_changed",
                "previous": previous.value,
                "state": target.value,
            }))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return True

    def _render(self, state: PresenceState) -> None:
        if state is PresenceState.THINKING:
            self._frame = 0
            self._item.text = THINKING_FRAMES[0]
            self._item.tooltip = THINKING_TOOLTIP
            self._item.color = None
            self._item.show()
            if not self.flashing:
                self._flash_task = asyncio.create_task(self._flash_loop())
            return

        self._stop_flashing()
        if state is PresenceState.IDLE:
            self._item.text = IDLE_GLYPH
            self._item.tooltip = IDLE_TOOLTIP
            self._item.color = IDLE_COLOR
            self._item.show()
        else:
            self._item.hide()

    def _stop_flashing(self) -> None:
        if self._flash_task is not None:
            self._flash_task.cancel()
            self._flash_task = None

    def flash_tick(self) -> None:
        """Advance the thinking glyph by one frame."""
        if self._state is not PresenceState.THINKING:
            return
        self._frame = (self._frame + 1) % len(THINKING_FRAMES)
        self._item.text = THINKING_FRAMES[self._frame]

    # ── Loops ──

    async def _flash_loop(self) -> None:
        while True:
            await asyncio.sleep(self.flash_interval)
            self.flash_tick()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                self.check_idle()
            except Exception:
                logger.exception("Idle check failed")
