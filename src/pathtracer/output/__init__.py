"""Image writers for rendered 8-bit RGB images."""

from .export import load_image, save_png, save_ppm, write_ppm

__all__ = ["load_image", "save_png", "save_ppm", "write_ppm"]
