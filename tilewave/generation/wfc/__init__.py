"""Wave Function Collapse engine: tiles, rules, field and solver."""

from .tile import Tile, overlap_agrees
from .rules import RuleTable
from .field import SuperpositionField, EntropyQueue, new_field
from .solver import CollapseEngine, EntropyModel, SolverState, step, done

__all__ = [
    "Tile",
    "overlap_agrees",
    "RuleTable",
    "SuperpositionField",
    "EntropyQueue",
    "new_field",
    "CollapseEngine",
    "EntropyModel",
    "SolverState",
    "step",
    "done",
]
