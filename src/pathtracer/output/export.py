"""Image export utilities for rendered images.

The renderer produces 8-bit RGB pixels that are already gamma corrected, so
export is a pure encoding step.

Supported formats:
    - PPM (plain-text P3 pixmap, streamable row by row)
    - PNG (8-bit RGB via Pillow)

Example:
    >>> from pathtracer.output.export import save_png
    >>> image = renderer.render()
    >>> save_png(image, "output.png")
"""

from collections.abc import Iterable
from os import PathLike
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

PPM_MAX_VALUE = 255


def _check_image(image: npt.NDArray[np.uint8]) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (height, width, 3), got {image.shape}")


def write_ppm_header(stream: TextIO, width: int, height: int) -> None:
    """Write the header of a plain-text (P3) pixmap."""
    stream.write(f"P3\n{width} {height}\n{PPM_MAX_VALUE}\n")


def write_ppm_row(stream: TextIO, row: npt.NDArray[np.uint8]) -> None:
    """Write one row of pixels, one ``r g b`` triple per line."""
    for r, g, b in row.tolist():
        stream.write(f"{r} {g} {b}\n")


def write_ppm(
    stream: TextIO,
    width: int,
    height: int,
    rows: Iterable[npt.NDArray[np.uint8]],
) -> None:
    """Stream a plain-text (P3) pixmap.

    Args:
        stream: Text stream to write to.
        width: Image width in pixels.
        height: Image height in pixels.
        rows: Rows of shape (width, 3), top row first. Consumed lazily, so a
            row generator from the renderer is written as it is produced.

    Raises:
        ValueError: If a row has the wrong width or the row count does not
            match ``height``.
    """
    write_ppm_header(stream, width, height)
    count = 0
    for row in rows:
        if len(row) != width:
            raise ValueError(f"Row {count} has {len(row)} pixels, expected {width}")
        write_ppm_row(stream, row)
        count += 1
    if count != height:
        raise ValueError(f"Wrote {count} rows, expected {height}")


def save_ppm(filepath: str | PathLike, image: npt.NDArray[np.uint8]) -> None:
    """Save an image array of shape (height, width, 3) as a P3 pixmap."""
    _check_image(image)
    height, width = image.shape[:2]
    with open(filepath, "w", encoding="ascii") as f:
        write_ppm(f, width, height, image)


def save_png(filepath: str | PathLike, image: npt.NDArray[np.uint8]) -> None:
    """Save an image array of shape (height, width, 3) as an 8-bit PNG."""
    _check_image(image)
    pil_image = PILImage.fromarray(np.ascontiguousarray(image, dtype=np.uint8))
    pil_image.save(filepath, format="PNG")


def load_image(filepath: str | PathLike) -> npt.NDArray[np.uint8]:
    """Load an image file (PNG or binary/plain PPM) as a (height, width, 3) array."""
    with PILImage.open(filepath) as img:
        return np.asarray(img.convert("RGB"), dtype=np.uint8)
