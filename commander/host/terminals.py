"""Terminal selection shared by every terminal command."""
from __future__ import annotations

from typing import Any, Sequence

from commander.shared.errors import (
    IndexOutOfRange,
    MalformedRequest,
    NoActiveTerminal,
    NoSuchTerminal,
)

from .base import Terminal


def _coerce_index(value: Any) -> int:
    # JSON numbers may arrive as floats; bools are ints in Python but not here.
    if isinstance(value, bool):
        raise MalformedRequest(f"Terminal index must be an integer, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, int):
        return value
    raise MalformedRequest(f"Terminal index must be an integer, got {value!r}")


def find_terminal(
    terminals: Sequence[Terminal],
    active: Terminal | None,
    *,
    name: str | None = None,
    index: Any = None,
) -> Terminal:
    """Pick a terminal by name, then index, then the active one.

    Raises:
        NoSuchTerminal: ``name`` given and no terminal has it.
        IndexOutOfRange: ``index`` given and outside the open terminals.
        NoActiveTerminal: neither given and nothing is active.
    """
    if name is not None:
        for terminal in terminals:
            if terminal.name == name:
                return terminal
        raise NoSuchTerminal(name)

    if index is not None:
        position = _coerce_index(index)
        if position < 0 or position >= len(terminals):
            raise IndexOutOfRange(position, len(terminals))
        return terminals[position]

    if active is None:
        raise NoActiveTerminal()
    return active
