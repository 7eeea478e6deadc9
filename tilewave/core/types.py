"""Foundational types for tilewave.

This module defines the grid primitives shared by learning and generation:
- Direction: the four axis-aligned neighbour offsets
- wrap: toroidal coordinate wrapping
- Position: Grid coordinates (x, y)
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class Direction(Enum):
    """
    Cardinal directions for adjacency rules.

    Coordinate system: x increases to the right, y increases downward
    (image row order), so UP is (0, -1).

    The opposite property is crucial for propagation:
    if tile A allows tile B above it, then tile B must allow A below it.
    """

    UP = (0, -1)
    RIGHT = (1, 0)
    DOWN = (0, 1)
    LEFT = (-1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    @property
    def index(self) -> int:
        """Dense index 0..3 (UP, RIGHT, DOWN, LEFT) for table lookups."""
        return _DIRECTION_INDEX[self]

    @property
    def opposite(self) -> Direction:
        """Get the opposite direction."""
        return _DIRECTION_OPPOSITES[self]


# Lookup tables for Direction properties
_DIRECTION_INDEX: dict[Direction, int] = {d: i for i, d in enumerate(Direction)}

_DIRECTION_OPPOSITES: dict[Direction, Direction] = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.RIGHT: Direction.LEFT,
    Direction.LEFT: Direction.RIGHT,
}


def wrap(value: int, size: int) -> int:
    """Wrap a coordinate onto [0, size), negative values included."""
    if size <= 0:
        raise ValueError(f"Cannot wrap onto an empty axis (size={size})")
    return value % size


class Position(NamedTuple):
    """A position on a grid, (0, 0) being the top-left corner."""

    x: int
    y: int

    def __add__(self, other: object) -> Position:
        """Add a direction offset or tuple to this position."""
        if isinstance(other, Direction):
            return Position(self.x + other.dx, self.y + other.dy)
        if isinstance(other, tuple) and len(other) == 2:
            return Position(self.x + other[0], self.y + other[1])
        return NotImplemented

    def wrapped(self, width: int, height: int) -> Position:
        """Map this position onto a width x height torus."""
        return Position(wrap(self.x, width), wrap(self.y, height))

    def neighbors(self) -> dict[Direction, Position]:
        """Get all adjacent positions keyed by direction (unwrapped)."""
        return {d: self + d for d in Direction}
