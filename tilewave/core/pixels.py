"""Pixel grids and packed colors.

Colors are packed into a single 32-bit integer as ``r | g << 8 | b << 16 | a << 24``,
the layout the PNG adapter produces. A PixelGrid is immutable; generation
produces new grids rather than editing one in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .errors import InvalidInputError
from .types import wrap


TRANSPARENT = 0  # Sentinel for cells with no candidate left


def pack_color(r: int, g: int, b: int, a: int = 0xFF) -> int:
    """Pack 0-255 channels into a 32-bit color."""
    return (r & 0xFF) | (g & 0xFF) << 8 | (b & 0xFF) << 16 | (a & 0xFF) << 24


def unpack_color(pixel: int) -> tuple[int, int, int, int]:
    """Split a packed color into (r, g, b, a)."""
    return (
        pixel & 0xFF,
        (pixel >> 8) & 0xFF,
        (pixel >> 16) & 0xFF,
        (pixel >> 24) & 0xFF,
    )


@dataclass(frozen=True)
class PixelGrid:
    """
    A width x height image stored as a flat row-major tuple of packed colors.

    Two access modes:
        get(x, y)          - bounded, returns 0 outside the image
        get_wrapped(x, y)  - toroidal, any integer coordinate is valid
    """

    width: int
    height: int
    pixels: tuple[int, ...]

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise InvalidInputError(
                f"Pixel grid must be at least 1x1, got {self.width}x{self.height}"
            )
        if len(self.pixels) != self.width * self.height:
            raise InvalidInputError(
                f"Expected {self.width * self.height} pixels for a "
                f"{self.width}x{self.height} grid, got {len(self.pixels)}"
            )

    @classmethod
    def from_pixels(cls, pixels: Sequence[int], width: int, height: int) -> PixelGrid:
        """Build a grid from any sequence of packed colors."""
        return cls(width=width, height=height, pixels=tuple(pixels))

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]]) -> PixelGrid:
        """Build a grid from a list of equally long rows."""
        if not rows or not rows[0]:
            raise InvalidInputError("Pixel grid rows must not be empty")
        width = len(rows[0])
        if any(len(row) != width for row in rows):
            raise InvalidInputError("All pixel grid rows must have the same length")
        return cls(
            width=width,
            height=len(rows),
            pixels=tuple(p for row in rows for p in row),
        )

    @classmethod
    def blank(cls, width: int, height: int, color: int = TRANSPARENT) -> PixelGrid:
        """A grid filled with a single color."""
        return cls(width=width, height=height, pixels=(color,) * (width * height))

    def get(self, x: int, y: int) -> int:
        """Get a pixel, or 0 if (x, y) is out of bounds."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            return 0
        return self.pixels[y * self.width + x]

    def get_wrapped(self, x: int, y: int) -> int:
        """Same as get() but wraps around the edges."""
        return self.pixels[wrap(y, self.height) * self.width + wrap(x, self.width)]

    def rows(self) -> list[tuple[int, ...]]:
        """The grid as a list of rows (top to bottom)."""
        return [
            self.pixels[y * self.width:(y + 1) * self.width]
            for y in range(self.height)
        ]
