"""Image generation for tilewave: learning, collapse engine and rendering."""

from .learning import TileLibrary, learn
from .compositor import composite
from .synthesis import SynthesisResult, synthesize
from .wfc import (
    CollapseEngine,
    RuleTable,
    SolverState,
    SuperpositionField,
    Tile,
    done,
    new_field,
    step,
)

__all__ = [
    "TileLibrary",
    "learn",
    "composite",
    "SynthesisResult",
    "synthesize",
    "CollapseEngine",
    "RuleTable",
    "SolverState",
    "SuperpositionField",
    "Tile",
    "done",
    "new_field",
    "step",
]
