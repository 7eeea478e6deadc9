"""
Superposition field for Wave Function Collapse.

The field is the "wave function" - a toroidal 2D array of cells where each
cell is in superposition (a set of still-possible tile ids) until it
collapses to a single definite tile.

This is where we track the state of the generation process. Cells are
stored row-major as frozensets and are only ever replaced by subsets of
themselves, until reset() puts every cell back into full superposition.
"""

from __future__ import annotations

import heapq
from typing import Iterator

from tilewave.core.errors import InvalidInputError
from tilewave.core.types import Direction, Position, wrap


class EntropyQueue:
    """
    Min-heap of (entropy, cell_index) with lazy deletion.

    A cell may be pushed many times as it shrinks; older entries are left
    in place and the solver discards them when they surface for a cell
    that is no longer undetermined.
    """

    def __init__(self):
        self._heap: list[tuple[float, int]] = []

    def push(self, entropy: float, index: int) -> None:
        heapq.heappush(self._heap, (entropy, index))

    def pop(self) -> tuple[float, int] | None:
        """Pop the lowest-entropy entry, or None when empty."""
        if not self._heap:
            return None
        return heapq.heappop(self._heap)

    def clear(self) -> None:
        self._heap.clear()

    def __len__(self) -> int:
        return len(self._heap)


class SuperpositionField:
    """
    The 2D field of cells representing the wave function.

    Initially every cell can be any tile (maximum superposition).
    Cell states:
        0 candidates  -> contradiction
        1 candidate   -> collapsed
        2+ candidates -> undetermined

    Neighbour addressing wraps at the edges, so every cell has exactly
    four neighbours.
    """

    def __init__(self, width: int, height: int, tile_count: int):
        """
        Create a field with all cells in maximum superposition.

        Args:
            width: Number of cells horizontally
            height: Number of cells vertically
            tile_count: Number of tiles; cells start as {0 .. tile_count-1}
        """
        if width < 1 or height < 1:
            raise InvalidInputError(f"Output must be at least 1x1, got {width}x{height}")
        if tile_count < 1:
            raise InvalidInputError(f"Need at least one tile, got {tile_count}")

        self.width = width
        self.height = height
        self.tile_count = tile_count
        self._full: frozenset[int] = frozenset(range(tile_count))

        self.cells: list[frozenset[int]] = [self._full] * (width * height)
        self.queue = EntropyQueue()
        self._undetermined = len(self.cells) if tile_count > 1 else 0

        # Initial consistency pass has run on this field
        self.primed = False
        # Terminal until reset()
        self.contradicted = False
        # Collapses since the last reset, across engines
        self.steps = 0

    def __len__(self) -> int:
        return len(self.cells)

    def index_of(self, x: int, y: int) -> int:
        """Row-major index of (x, y), wrapping out-of-range coordinates."""
        return wrap(y, self.height) * self.width + wrap(x, self.width)

    def coords(self, index: int) -> Position:
        """Position of a cell index."""
        return Position(index % self.width, index // self.width)

    def neighbor(self, index: int, direction: Direction) -> int:
        """Index of the neighbouring cell in the given direction."""
        x, y = self.coords(index)
        return self.index_of(x + direction.dx, y + direction.dy)

    def neighbors(self, index: int) -> Iterator[tuple[int, Direction]]:
        """
        Yield all four neighbours of a cell with their directions.

        Direction is FROM the input cell TO the neighbour.
        """
        for direction in Direction:
            yield self.neighbor(index, direction), direction

    def is_collapsed(self, index: int) -> bool:
        """A cell is collapsed when it has exactly one candidate."""
        return len(self.cells[index]) == 1

    def tile_id(self, index: int) -> int | None:
        """The chosen tile id, or None if not yet collapsed."""
        cell = self.cells[index]
        if len(cell) == 1:
            return next(iter(cell))
        return None

    def collapse(self, index: int, tile_id: int) -> None:
        """
        Force a cell to a single tile.

        Must be followed by propagation to restore consistency with the
        neighbours.
        """
        cell = self.cells[index]
        if tile_id not in cell:
            raise ValueError(
                f"Tile {tile_id} is not a candidate of cell {self.coords(index)}"
            )
        if len(cell) > 1:
            self._undetermined -= 1
        self.cells[index] = frozenset((tile_id,))

    def constrain(self, index: int, allowed: frozenset[int]) -> bool:
        """
        Constrain a cell to only the given candidates.

        Returns True if the cell changed (lost candidates).
        """
        cell = self.cells[index]
        narrowed = cell & allowed
        if len(narrowed) == len(cell):
            return False
        if len(cell) > 1 and len(narrowed) <= 1:
            self._undetermined -= 1
        self.cells[index] = narrowed
        return True

    def undetermined(self) -> list[int]:
        """Indices of every cell with more than one candidate."""
        return [i for i, cell in enumerate(self.cells) if len(cell) > 1]

    def collapsed_count(self) -> int:
        """Number of cells with exactly one candidate."""
        return sum(1 for cell in self.cells if len(cell) == 1)

    def undetermined_count(self) -> int:
        """Number of cells with more than one candidate (O(1))."""
        return self._undetermined

    def done(self) -> bool:
        """True once no undetermined cell remains."""
        return self._undetermined == 0

    def is_fully_collapsed(self) -> bool:
        """Check if every cell has collapsed (terminal success)."""
        return all(len(cell) == 1 for cell in self.cells)

    def tile_ids(self) -> list[int | None]:
        """Row-major collapsed tile ids, None for cells not collapsed."""
        return [self.tile_id(i) for i in range(len(self.cells))]

    def snapshot(self) -> tuple[frozenset[int], ...]:
        """Immutable copy of every cell's candidates."""
        return tuple(self.cells)

    def reset(self) -> None:
        """Reset all cells to maximum superposition and forget the queue."""
        self.cells = [self._full] * (self.width * self.height)
        self._undetermined = len(self.cells) if self.tile_count > 1 else 0
        self.queue.clear()
        self.primed = False
        self.contradicted = False
        self.steps = 0


def new_field(width: int, height: int, tile_count: int) -> SuperpositionField:
    """Create a fresh, all-undetermined field."""
    return SuperpositionField(width, height, tile_count)
