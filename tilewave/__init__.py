"""tilewave - overlapping-model Wave Function Collapse for pixel images."""

__version__ = "0.1.0"
