"""
Image synthesis using Wave Function Collapse.

This module provides the batch entry point: step a field to completion,
restarting from scratch whenever a contradiction shows up, then render
the result. The same CollapseEngine.step is used whether the caller
drives it here or one step per frame.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable

from tilewave.core.errors import GenerationFailedError
from tilewave.core.pixels import PixelGrid
from tilewave.logging_config import log_restart
from .compositor import composite
from .learning import TileLibrary
from .wfc import CollapseEngine, RuleTable, SolverState, SuperpositionField

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynthesisResult:
    """Outcome of a successful synthesis run."""

    width: int
    height: int
    tile_ids: tuple[int, ...]  # Row-major
    pixels: PixelGrid
    restarts: int
    steps: int  # Across all attempts


def synthesize(
    library: TileLibrary,
    rules: RuleTable,
    width: int,
    height: int,
    rng: random.Random,
    max_restarts: int | None = 100,
    progress_callback: Callable[[int, int], None] | None = None,
    frame_callback: Callable[[int, SuperpositionField], None] | None = None,
) -> SynthesisResult:
    """
    Generate a width x height output from learned tiles and rules.

    Args:
        library: Tiles and frequencies from learn()
        rules: Adjacency rules from learn()
        width: Output width in cells
        height: Output height in cells
        rng: Random generator; the same seed gives the same output
        max_restarts: Max full restarts after contradictions (None = no limit)
        progress_callback: Optional callback(collapsed, total_cells) after every step
        frame_callback: Optional callback(step, field) after every step, for
                        incremental visualization

    Returns:
        SynthesisResult with tile ids, pixels and restart count

    Raises:
        InvalidInputError: If the output dimensions are below 1x1
        GenerationFailedError: If contradictions exceed max_restarts
    """
    field = SuperpositionField(width, height, library.tile_count)
    engine = CollapseEngine(rules, library.frequency, rng)
    total_cells = width * height

    restarts = 0
    steps = 0
    while True:
        state = engine.step(field)
        steps += 1

        if progress_callback is not None:
            progress_callback(total_cells - field.undetermined_count(), total_cells)
        if frame_callback is not None:
            frame_callback(steps, field)

        if state == SolverState.COMPLETE:
            break
        if state == SolverState.RUNNING:
            continue

        # Contradiction - full restart, no backtracking
        if max_restarts is not None and restarts >= max_restarts:
            raise GenerationFailedError(
                f"Generation failed after {restarts} restarts. "
                "Try a different tile size or output dimensions.",
                restarts=restarts,
            )
        restarts += 1
        log_restart(logger, restarts, max_restarts, details=f"after {engine.step_count} collapses")
        engine.reset(field)

    logger.info(f"Synthesized {width}x{height} in {steps} steps with {restarts} restarts")

    return SynthesisResult(
        width=width,
        height=height,
        tile_ids=tuple(field.tile_ids()),
        pixels=composite(field, library),
        restarts=restarts,
        steps=steps,
    )
