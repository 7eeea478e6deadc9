"""
Tile definition for Wave Function Collapse.

A Tile is one NxN sample of the source image. Tiles are compared by value,
so two bit-identical samples are the same tile. Whether two tiles can sit
next to each other is decided purely by whether their pixels agree where
they overlap - this is the "overlapping model" of WFC.
"""

from __future__ import annotations

from dataclasses import dataclass

from tilewave.core.pixels import PixelGrid


@dataclass(frozen=True)
class Tile:
    """
    An immutable NxN block of packed colors, stored row-major.

    Attributes:
        size: Edge length N of the tile
        pixels: N*N packed colors, row-major
    """
    size: int
    pixels: tuple[int, ...]

    @classmethod
    def sample(cls, grid: PixelGrid, size: int, x: int, y: int) -> Tile:
        """
        Sample the tile anchored at source coordinate (x, y).

        The top-left corner is (x - size // 2, y - size // 2) for every size:
        odd tiles are centred on (x, y), even tiles carry their extra
        row and column on the top-left side. Reads wrap around the edges.
        """
        left = x - size // 2
        top = y - size // 2
        return cls(
            size=size,
            pixels=tuple(
                grid.get_wrapped(left + i, top + j)
                for j in range(size)
                for i in range(size)
            ),
        )

    def pixel(self, i: int, j: int) -> int:
        """Color at local column i, row j."""
        return self.pixels[j * self.size + i]

    @property
    def color(self) -> int:
        """
        Representative color used when rendering a cell.

        The anchor pixel (the source pixel this tile was sampled at) rather
        than an average of the whole tile.
        """
        half = self.size // 2
        return self.pixel(half, half)


def overlap_agrees(a: Tile, b: Tile, dx: int, dy: int) -> bool:
    """
    Check whether tile b may be placed at offset (dx, dy) from tile a.

    Both tiles must agree on every pixel they share once b is shifted by
    the offset. Pixels outside the shared region are ignored, so a shift
    as large as the tile itself is always allowed.
    """
    n = a.size
    for j in range(max(0, dy), min(n, n + dy)):
        for i in range(max(0, dx), min(n, n + dx)):
            if a.pixel(i, j) != b.pixel(i - dx, j - dy):
                return False
    return True
