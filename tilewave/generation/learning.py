"""
Learning phase: turn a sample image into tiles, frequencies and rules.

Every source pixel contributes one NxN tile sampled around it (with
wrap-around at the edges). Identical samples share an id, and the number
of times a sample was seen becomes its frequency - the weight it gets when
a cell is collapsed. Rules come from comparing every pair of tiles where
they would overlap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tilewave.core.errors import InvalidInputError
from tilewave.core.pixels import PixelGrid
from tilewave.logging_config import log_learn
from .wfc import RuleTable, Tile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileLibrary:
    """
    All distinct tiles of a source image.

    Attributes:
        tile_size: Edge length N of every tile
        tiles: Distinct tiles; the index is the tile id, in raster discovery order
        frequency: How often each tile occurs in the source (parallel to tiles)
        source_ids: Row-major tile id sampled at each source pixel
    """
    tile_size: int
    tiles: tuple[Tile, ...]
    frequency: tuple[int, ...]
    source_ids: tuple[int, ...] = ()

    def __post_init__(self):
        if len(self.tiles) != len(self.frequency):
            raise InvalidInputError(
                f"{len(self.tiles)} tiles but {len(self.frequency)} frequencies"
            )
        if any(f < 1 for f in self.frequency):
            raise InvalidInputError("Every tile must occur at least once")

    def __len__(self) -> int:
        return len(self.tiles)

    @property
    def tile_count(self) -> int:
        return len(self.tiles)

    def colors(self) -> list[int]:
        """Representative color of every tile, by id."""
        return [tile.color for tile in self.tiles]

    @classmethod
    def from_grid(cls, grid: PixelGrid, tile_size: int) -> TileLibrary:
        """
        Sample every tile_size x tile_size region of the grid.

        Scans y outer, x inner, so ids are reproducible for a given image.
        """
        if tile_size < 1:
            raise InvalidInputError(f"Tile size must be at least 1, got {tile_size}")

        tile_ids: dict[Tile, int] = {}
        tiles: list[Tile] = []
        frequency: list[int] = []
        source_ids: list[int] = []

        for y in range(grid.height):
            for x in range(grid.width):
                tile = Tile.sample(grid, tile_size, x, y)
                tile_id = tile_ids.get(tile)
                if tile_id is None:
                    tile_id = len(tiles)
                    tile_ids[tile] = tile_id
                    tiles.append(tile)
                    frequency.append(1)
                else:
                    frequency[tile_id] += 1
                source_ids.append(tile_id)

        return cls(
            tile_size=tile_size,
            tiles=tuple(tiles),
            frequency=tuple(frequency),
            source_ids=tuple(source_ids),
        )


def learn(grid: PixelGrid, tile_size: int) -> tuple[TileLibrary, RuleTable]:
    """
    Learn tiles and adjacency rules from a source image.

    Args:
        grid: Decoded source image
        tile_size: Edge length N of the tiles (>= 1)

    Returns:
        (library, rules)

    Raises:
        InvalidInputError: If tile_size is below 1
    """
    library = TileLibrary.from_grid(grid, tile_size)
    rules = RuleTable.from_tiles(library.tiles)

    log_learn(
        logger,
        tile_size,
        library.tile_count,
        rules.rule_count(),
        details=f"source={grid.width}x{grid.height}",
    )
    return library, rules
