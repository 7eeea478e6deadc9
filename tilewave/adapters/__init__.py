"""Adapters between tilewave and the outside world (image files)."""

from .images import load_png, save_png, to_image

__all__ = ["load_png", "save_png", "to_image"]
