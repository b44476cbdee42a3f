"""Taichi backend initialization.

All kernels in this package assume 64-bit default floating point: literals
such as ``0.0`` inside ``ti.func`` bodies take the default precision, and the
scene and camera fields are declared as ``f64``. ``init_taichi`` is the single
place that configures this, and it must run before any ``pathtracer`` module
that declares fields is imported.

Example:
    >>> from pathtracer.core.backend import init_taichi
    >>> init_taichi(threads=4)
    >>> from pathtracer.core.renderer import Renderer  # safe to import now
"""

import logging

import taichi as ti

logger = logging.getLogger(__name__)


def init_taichi(threads: int | None = None, debug: bool = False) -> None:
    """Initialize Taichi on the CPU backend with f64 default precision.

    Args:
        threads: Size of the CPU worker pool. ``None`` lets Taichi use the
            available hardware parallelism.
        debug: Enable Taichi's bounds-checking debug mode.

    Raises:
        ValueError: If ``threads`` is not a positive integer.
    """
    kwargs = {}
    if threads is not None:
        if threads < 1:
            raise ValueError(f"threads must be >= 1, got {threads}")
        kwargs["cpu_max_num_threads"] = threads

    ti.init(arch=ti.cpu, default_fp=ti.f64, debug=debug, **kwargs)
    logger.debug("Taichi initialized (cpu, f64, threads=%s)", threads or "auto")
