"""
Wave Function Collapse solver.

This is the heart of WFC - the algorithm that observes (collapses) cells
and propagates constraints until the entire field is determined.

The algorithm:
1. Find the cell with lowest entropy (most constrained)
2. Collapse it to one tile (frequency-weighted random choice)
3. Propagate: narrow neighbours to tiles the rules still allow
4. Repeat until complete or contradiction

A contradiction is not recoverable in place: the caller resets the field
and starts over. There is no backtracking.
"""

from __future__ import annotations

import logging
import math
import random
from enum import Enum, auto
from typing import Iterable, Sequence

from tilewave.core.errors import InvalidInputError
from tilewave.logging_config import log_step
from .field import SuperpositionField
from .rules import RuleTable

logger = logging.getLogger(__name__)


class SolverState(Enum):
    """The result of one solver step."""
    RUNNING = auto()        # Step succeeded, undetermined cells remain
    COMPLETE = auto()       # Every cell collapsed successfully
    CONTRADICTION = auto()  # Some cell ran out of candidates; reset required


class EntropyModel:
    """
    Frequency-weighted Shannon entropy of a candidate set, in bits.

    H = -sum(p * log2(p)) with p = f[t] / sum(f) over the tiles in the set.
    Uses the identity H = log2(W) - sum(f * log2(f)) / W so that only the
    per-tile f * log2(f) terms need precomputing.
    """

    def __init__(self, frequencies: Sequence[int]):
        self._weights = list(frequencies)
        self._weight_log_weight = [w * math.log2(w) for w in self._weights]

    def entropy(self, tiles: Iterable[int]) -> float:
        total = 0
        weighted = 0.0
        count = 0
        for tile_id in tiles:
            total += self._weights[tile_id]
            weighted += self._weight_log_weight[tile_id]
            count += 1
        if count <= 1:
            return 0.0
        return math.log2(total) - weighted / total


class CollapseEngine:
    """
    The WFC algorithm implementation.

    Usage:
        engine = CollapseEngine(rules, frequencies, rng)
        field = SuperpositionField(64, 64, rules.tile_count)
        while True:
            state = engine.step(field)
            if state != SolverState.RUNNING:
                break

    Or for bulk solving:
        engine.solve(field)  # Returns True on success, False on contradiction

    Stepping once per frame and solving in a tight loop behave identically;
    all generation state lives in the field, so an engine can be recreated
    between steps without changing the outcome.
    """

    def __init__(
        self,
        rules: RuleTable,
        frequencies: Sequence[int],
        rng: random.Random,
    ):
        """
        Initialize the engine.

        Args:
            rules: Adjacency rules for every tile
            frequencies: Occurrence count per tile id (all >= 1)
            rng: Random generator used for every random decision
        """
        if len(frequencies) != rules.tile_count:
            raise InvalidInputError(
                f"Got {len(frequencies)} frequencies for {rules.tile_count} tiles"
            )
        if any(f < 1 for f in frequencies):
            raise InvalidInputError("Every tile frequency must be at least 1")

        self.rules = rules
        self.frequencies = [int(f) for f in frequencies]
        self.rng = rng
        self.entropy = EntropyModel(self.frequencies)
        self.step_count = 0

        # Track the last collapsed cell (for visualization/debugging)
        self.last_collapsed: int | None = None

        # Track cells narrowed in last propagation (for visualization/debugging)
        self.last_propagated: set[int] = set()

        # Cell that ran out of candidates, if the last step contradicted
        self.last_contradiction: int | None = None

    def step(self, field: SuperpositionField) -> SolverState:
        """
        Perform one step of WFC: collapse one cell and propagate.

        The first step on a fresh field also runs an initial propagation
        over every cell, so the field is arc-consistent before anything
        is collapsed.

        Returns the field's state after this step.
        """
        if field.tile_count != self.rules.tile_count:
            raise InvalidInputError(
                f"Field expects {field.tile_count} tiles, rules cover {self.rules.tile_count}"
            )

        self.last_propagated.clear()
        self.last_collapsed = None

        if field.contradicted:
            return SolverState.CONTRADICTION

        if not field.primed:
            field.primed = True
            if not self.propagate(field, range(len(field))):
                return self._contradiction(field)

        # 1. Find the cell to collapse
        index = self._next_cell(field)
        if index is None:
            return SolverState.COMPLETE

        # 2. Collapse it
        tile_id = self.choose_tile(field.cells[index])
        field.collapse(index, tile_id)
        self.last_collapsed = index
        self.step_count += 1
        field.steps += 1

        # 3. Propagate constraints
        if not self.propagate(field, (index,)):
            return self._contradiction(field)

        x, y = field.coords(index)
        log_step(
            logger,
            field.steps,
            "COLLAPSE",
            f"cell=({x}, {y}) | tile={tile_id} | narrowed={len(self.last_propagated)}",
        )

        if field.done():
            return SolverState.COMPLETE
        return SolverState.RUNNING

    def _contradiction(self, field: SuperpositionField) -> SolverState:
        """Mark the field as unusable and report the contradiction."""
        field.contradicted = True
        where = "?"
        if self.last_contradiction is not None:
            x, y = field.coords(self.last_contradiction)
            where = f"({x}, {y})"
        log_step(logger, field.steps, "CONTRADICTION", f"cell={where}")
        return SolverState.CONTRADICTION

    def _next_cell(self, field: SuperpositionField) -> int | None:
        """
        Pop the lowest-entropy undetermined cell.

        Stale entries (cells collapsed since they were queued) are discarded.
        When the queue runs dry while cells are still undetermined - at the
        start, or for regions propagation never narrowed - every such cell
        is queued again and one of them is picked at random as the seed.

        Returns None if all cells are collapsed.
        """
        while True:
            entry = field.queue.pop()
            if entry is None:
                break
            _, index = entry
            if len(field.cells[index]) > 1:
                return index

        undetermined = field.undetermined()
        if not undetermined:
            return None

        for index in undetermined:
            field.queue.push(self.entropy.entropy(field.cells[index]), index)
        return self.rng.choice(undetermined)

    def choose_tile(self, candidates: Iterable[int]) -> int:
        """
        Pick one candidate with probability proportional to its frequency.

        Draws r in [0, total weight) and returns the first tile whose
        cumulative weight exceeds r. Candidates are walked in id order.
        """
        ordered = sorted(candidates)
        if not ordered:
            raise ValueError("Cannot choose from an empty candidate set")

        weights = [self.frequencies[tile_id] for tile_id in ordered]
        r = self.rng.randrange(sum(weights))

        cumulative = 0
        for tile_id, weight in zip(ordered, weights):
            cumulative += weight
            if cumulative > r:
                return tile_id
        return ordered[-1]

    def propagate(self, field: SuperpositionField, start: Iterable[int]) -> bool:
        """
        Narrow neighbours until no cell changes (arc consistency).

        Every cell whose candidates shrink is pushed back on the stack so
        its own neighbours are re-checked. Cells left undetermined are
        (re)queued with their new entropy.

        Returns True on success, False on contradiction. After a
        contradiction the field is partially updated and must be reset.
        """
        stack = list(start)

        while stack:
            index = stack.pop()
            cell = field.cells[index]

            for neighbor, direction in field.neighbors(index):
                allowed = self.rules.allowed_union(cell, direction)
                if not field.constrain(neighbor, allowed):
                    continue

                self.last_propagated.add(neighbor)
                remaining = field.cells[neighbor]

                if not remaining:
                    self.last_contradiction = neighbor
                    return False

                stack.append(neighbor)
                if len(remaining) > 1:
                    field.queue.push(self.entropy.entropy(remaining), neighbor)

        return True

    def solve(self, field: SuperpositionField) -> bool:
        """
        Run the engine to completion on one field.

        Returns True if solved successfully, False if contradiction occurred.
        """
        while True:
            state = self.step(field)
            if state == SolverState.COMPLETE:
                return True
            if state == SolverState.CONTRADICTION:
                return False

    def reset(self, field: SuperpositionField) -> None:
        """Reset the engine and field for a new generation."""
        field.reset()
        self.step_count = 0
        self.last_collapsed = None
        self.last_propagated.clear()
        self.last_contradiction = None


def step(
    field: SuperpositionField,
    rules: RuleTable,
    frequencies: Sequence[int],
    rng: random.Random,
) -> SolverState:
    """
    Advance a field by one collapse + propagate tick.

    A throwaway engine is built per call; step numbering comes from
    field.steps, so logs stay in sequence across calls.
    """
    return CollapseEngine(rules, frequencies, rng).step(field)


def done(field: SuperpositionField) -> bool:
    """True once the field has no undetermined cells."""
    return field.done()
