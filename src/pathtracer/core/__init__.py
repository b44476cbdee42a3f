"""Core rendering module.

Components:
    backend: Taichi initialization (CPU, f64 precision, thread count)
    ray: Ray data structure and vector utilities
    sampler: Per-task seedable random streams and sampling helpers
    integrator: The path tracing radiance estimator
    renderer: Row-by-row parallel render driver

All compute-intensive operations run in Taichi kernels.
"""

from .backend import init_taichi
from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    ray_at,
    real,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)

# Note: sampler, integrator and renderer declare Taichi fields and are NOT
# imported here, so that init_taichi can be imported before ti.init runs.
# Import them directly, e.g.:
#   from pathtracer.core.renderer import Renderer

__all__ = [
    "init_taichi",
    "Ray",
    "ray_at",
    "make_ray",
    "real",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
]
