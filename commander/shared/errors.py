"""Exception hierarchy for the control plane.

Every failure the listener can report maps to one of these. The listener
turns them into ``{"success": false, "error": str(exc)}`` responses; the
bridge turns them into tool-level error results.
"""
from __future__ import annotations


class CommanderError(Exception):
    """Base exception for all control-plane errors."""


class DiscoveryMiss(CommanderError):
    """No reachable listener endpoint for a workspace."""
    def __init__(self, location: str, candidates: list[str] | None = None):
        self.location = location
        self.candidates = list(candidates or [])
        super().__init__(
            f"Editor Commander listener is not running for workspace {location}. "
            "Install the listener and restart the host application."
        )


class UnknownCommand(CommanderError):
    """Command name not present in the dispatch table."""
    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Unknown command: {command}")


class NoActiveTerminal(CommanderError):
    """No terminal selector given and the host has no active terminal."""
    def __init__(self) -> None:
        super().__init__("No active terminal")


class NoSuchTerminal(CommanderError):
    """No open terminal carries the requested name."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'No terminal named "{name}"')


class IndexOutOfRange(CommanderError):
    """Terminal index outside ``0 <= index < count``."""
    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(
            f"Terminal index {index} out of range (0-{count - 1})"
        )


class MalformedRequest(CommanderError):
    """Request body or arguments do not match the request shape."""


class HandlerFailure(CommanderError):
    """The underlying host action raised.

    The message is the host's own message so callers see what the host
    reported, not a wrapper.
    """
    def __init__(self, command: str, cause: BaseException):
        self.command = command
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)


class CommandRejected(CommanderError):
    """The listener answered with ``success: false``."""
    def __init__(self, command: str, error: str):
        self.command = command
        self.error = error
        super().__init__(error)


class ChannelError(CommanderError):
    """The control channel itself broke (bad response, dropped connection)."""
