"""Row-by-row parallel render driver.

The driver renders the image one scanline at a time, top row first. Each row
is a single Taichi kernel launch whose outermost loop runs over the columns;
Taichi spreads those iterations across its CPU worker pool. Every column task
seeds its own random stream from ``(seed, row, column)`` before sampling, so
the pixels do not depend on how the columns were scheduled and a fixed seed
reproduces the image bit for bit.

Each pixel averages ``samples_per_pixel`` jittered camera rays, applies gamma
2 (square root), clamps to [0, 0.999] and quantizes to ``int(256 * c)``.

Example:
    >>> from pathtracer.core.renderer import Renderer, RenderSettings
    >>> renderer = Renderer(RenderSettings(width=400, height=266, samples_per_pixel=50))
    >>> image = renderer.render()  # (266, 400, 3) uint8, top row first
"""

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.camera.thin_lens import get_ray
from pathtracer.core.integrator import ray_color
from pathtracer.core.ray import real, vec3
from pathtracer.core.sampler import MAX_STREAMS, random_real, seed_stream

logger = logging.getLogger(__name__)

# Callback receives (rows_remaining, total_rows) before each row is rendered
ProgressCallback = Callable[[int, int], None]

# One random stream per column, so the row buffer and the width share a limit
MAX_IMAGE_WIDTH = MAX_STREAMS

# Largest channel value before quantization
MAX_INTENSITY = 0.999

_row_pixels = ti.Vector.field(3, dtype=ti.i32, shape=MAX_IMAGE_WIDTH)


@dataclass
class RenderSettings:
    """Image and sampling parameters for a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Number of jittered samples averaged per pixel.
        max_depth: Maximum number of bounces per sample.
        seed: Seed for the random streams. None draws a fresh seed.
    """

    width: int
    height: int
    samples_per_pixel: int = 10
    max_depth: int = 10
    seed: int | None = None

    def validate(self) -> None:
        """Raise ValueError if the settings cannot be rendered."""
        if not 1 <= self.width <= MAX_IMAGE_WIDTH:
            raise ValueError(f"width must be in [1, {MAX_IMAGE_WIDTH}], got {self.width}")
        if self.height < 1:
            raise ValueError(f"height must be positive, got {self.height}")
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel must be positive, got {self.samples_per_pixel}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")


@ti.func
def quantize(color_sum: vec3, samples_per_pixel: ti.i32) -> ti.types.vector(3, ti.i32):
    """Average, gamma-correct (gamma 2) and quantize a summed pixel color."""
    scaled = tm.sqrt(tm.max(color_sum / ti.cast(samples_per_pixel, real), 0.0))
    clamped = tm.clamp(scaled, 0.0, MAX_INTENSITY)
    return ti.cast(256.0 * clamped, ti.i32)


@ti.kernel
def _render_row(
    j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
):
    u_scale = ti.cast(ti.max(width - 1, 1), real)
    v_scale = ti.cast(ti.max(height - 1, 1), real)

    # Outermost loop is parallelized; column i owns stream slot i
    for i in range(width):
        seed_stream(i, seed, j, i)
        color_sum = vec3(0.0, 0.0, 0.0)
        for _ in range(samples_per_pixel):
            u = (ti.cast(i, real) + random_real(i)) / u_scale
            v = (ti.cast(j, real) + random_real(i)) / v_scale
            ray = get_ray(u, v, i)
            color_sum += ray_color(ray.origin, ray.direction, max_depth, i)
        _row_pixels[i] = quantize(color_sum, samples_per_pixel)


class Renderer:
    """Render driver for the scene and camera currently loaded in Taichi fields.

    The scene (see ``SceneManager``) and the camera (see ``setup_camera``)
    must be set up before rendering.

    Attributes:
        settings: The render settings.
        seed: The seed actually used, resolved at construction time.
    """

    def __init__(self, settings: RenderSettings) -> None:
        """Initialize the renderer.

        Args:
            settings: Image and sampling parameters.

        Raises:
            ValueError: If the settings are invalid.
        """
        settings.validate()
        self.settings = settings
        if settings.seed is None:
            self.seed = int(np.random.default_rng().integers(0, 2**32))
        else:
            self.seed = settings.seed % (1 << 32)

    @property
    def width(self) -> int:
        return self.settings.width

    @property
    def height(self) -> int:
        return self.settings.height

    def render_row(self, j: int) -> npt.NDArray[np.uint8]:
        """Render one scanline.

        Args:
            j: Row index, 0 at the bottom of the image.

        Returns:
            A (width, 3) uint8 array, left to right.
        """
        if not 0 <= j < self.height:
            raise ValueError(f"row {j} outside [0, {self.height})")
        s = self.settings
        _render_row(j, s.width, s.height, s.samples_per_pixel, s.max_depth, self.seed)
        return _row_pixels.to_numpy()[: s.width].astype(np.uint8)

    def render_rows(
        self, callback: ProgressCallback | None = None
    ) -> Iterator[tuple[int, npt.NDArray[np.uint8]]]:
        """Render the image row by row, top row first.

        Args:
            callback: Optional callback invoked before each row with
                (rows_remaining, total_rows).

        Yields:
            Tuples of (row_index, pixels) where row_index counts from the
            bottom and pixels is a (width, 3) uint8 array.
        """
        s = self.settings
        logger.info(
            "Rendering %dx%d, %d spp, depth %d, seed %d",
            s.width,
            s.height,
            s.samples_per_pixel,
            s.max_depth,
            self.seed,
        )
        start = time.perf_counter()

        for j in range(self.height - 1, -1, -1):
            if callback is not None:
                callback(j + 1, self.height)
            yield j, self.render_row(j)

        logger.info("Render finished in %.2fs", time.perf_counter() - start)

    def render(self, callback: ProgressCallback | None = None) -> npt.NDArray[np.uint8]:
        """Render the full image.

        Args:
            callback: Optional progress callback (see render_rows).

        Returns:
            A (height, width, 3) uint8 array with the top row first.
        """
        image = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        for j, row in self.render_rows(callback):
            image[self.height - 1 - j] = row
        return image
