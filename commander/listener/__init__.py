"""In-host control-plane listener."""
from commander.listener.activity import ActivityMonitor, PresenceState
from commander.listener.dispatch import CommandDispatcher
from commander.listener.server import CommandListener

__all__ = [
    "ActivityMonitor",
    "CommandDispatcher",
    "CommandListener",
    "PresenceState",
]
