"""PNG adapter: decode sample images and encode generated ones with Pillow.

The generation core only ever sees PixelGrid values; this module is the
one place that touches image files.
"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from tilewave.core.pixels import PixelGrid, pack_color, unpack_color

logger = logging.getLogger(__name__)


def load_png(path: Path | str) -> PixelGrid:
    """Load an image file as a grid of packed RGBA colors.

    Any mode Pillow can open is converted to RGBA first. Decode errors
    propagate unchanged.
    """
    with Image.open(path) as image:
        rgba = image.convert("RGBA")
        width, height = rgba.size
        data = rgba.tobytes()

    pixels = [
        pack_color(data[i], data[i + 1], data[i + 2], data[i + 3])
        for i in range(0, len(data), 4)
    ]
    logger.debug(f"Loaded {path} ({width}x{height})")
    return PixelGrid.from_pixels(pixels, width, height)


def to_image(grid: PixelGrid, scale: int = 1) -> Image.Image:
    """Convert a grid to a Pillow RGBA image, upscaled without smoothing."""
    data = bytearray()
    for pixel in grid.pixels:
        data.extend(unpack_color(pixel))
    image = Image.frombytes("RGBA", (grid.width, grid.height), bytes(data))
    if scale > 1:
        image = image.resize(
            (grid.width * scale, grid.height * scale),
            Image.Resampling.NEAREST,
        )
    return image


def save_png(grid: PixelGrid, path: Path | str, scale: int = 1) -> Path:
    """Write a grid to a PNG file, creating parent directories.

    Args:
        grid: Pixels to write
        path: Destination file
        scale: Output pixels per grid cell

    Returns:
        The path written
    """
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    to_image(grid, scale).save(out_path, format="PNG")
    logger.debug(f"Saved {out_path} ({grid.width}x{grid.height}, scale={scale})")
    return out_path
