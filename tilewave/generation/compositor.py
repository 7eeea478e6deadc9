"""
Render a superposition field into pixels.

Collapsed cells show their tile's representative color. Undetermined cells
show the average color of every tile they could still become, which gives
the characteristic blurry "fog" while generation is in progress. Cells with
no candidate left are transparent.
"""

from __future__ import annotations

from tilewave.core.pixels import PixelGrid, TRANSPARENT, pack_color, unpack_color
from .learning import TileLibrary
from .wfc import SuperpositionField


def composite(field: SuperpositionField, library: TileLibrary) -> PixelGrid:
    """
    Render a field (fully or partially collapsed) to a pixel grid.

    Args:
        field: The field to render
        library: Tiles whose ids the field's cells refer to

    Returns:
        A PixelGrid with the same width and height as the field
    """
    colors = library.colors()
    channels = [unpack_color(color) for color in colors]
    averages: dict[frozenset[int], int] = {}

    pixels: list[int] = []
    for cell in field.cells:
        if not cell:
            pixels.append(TRANSPARENT)
        elif len(cell) == 1:
            pixels.append(colors[next(iter(cell))])
        else:
            color = averages.get(cell)
            if color is None:
                color = _average(channels, cell)
                averages[cell] = color
            pixels.append(color)

    return PixelGrid(width=field.width, height=field.height, pixels=tuple(pixels))


def _average(channels: list[tuple[int, int, int, int]], cell: frozenset[int]) -> int:
    """Per-channel mean of the candidates' colors, fully opaque."""
    r = g = b = 0
    for tile_id in cell:
        cr, cg, cb, _ = channels[tile_id]
        r += cr
        g += cg
        b += cb
    n = len(cell)
    return pack_color(r // n, g // n, b // n, 0xFF)
