"""Core types for tilewave.

Pure data with no I/O: directions, coordinates, pixel grids and errors.

Usage:
    from tilewave.core import Direction, PixelGrid, InvalidInputError
"""

from .types import Direction, Position, wrap
from .pixels import PixelGrid, TRANSPARENT, pack_color, unpack_color
from .errors import TileWaveError, InvalidInputError, GenerationFailedError

__all__ = [
    "Direction",
    "Position",
    "wrap",
    "PixelGrid",
    "TRANSPARENT",
    "pack_color",
    "unpack_color",
    "TileWaveError",
    "InvalidInputError",
    "GenerationFailedError",
]
