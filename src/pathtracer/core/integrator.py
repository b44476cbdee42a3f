"""Path tracing integrator for Monte Carlo light transport.

``ray_color`` estimates the radiance carried back along a single ray. At each
intersection the hit material scatters the ray (or absorbs it); the path's
throughput is multiplied by the material attenuation and the scattered ray is
traced next. A ray that escapes the scene picks up the sky gradient.

The estimator is the bounded recursion

    ray_color(ray, 0) = black
    ray_color(ray, d) = attenuation * ray_color(scattered, d - 1)   on a scatter
                      = black                                        on absorption
                      = sky(ray)                                     on a miss

written as a loop with a throughput accumulator, so it needs no call stack.

Example:
    >>> from pathtracer.core.integrator import trace_ray
    >>> trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), depth=10)  # empty scene
    (0.6, 0.75, 0.6)
"""

import math

import taichi as ti

from pathtracer.core.ray import normalize, real, vec3
from pathtracer.core.sampler import seed_stream
from pathtracer.materials.dielectric import (
    get_dielectric_refractive_index,
    scatter_dielectric,
)
from pathtracer.materials.lambertian import (
    get_lambertian_albedo,
    scatter_lambertian,
)
from pathtracer.materials.metal import (
    get_metal_albedo,
    get_metal_fuzz,
    scatter_metal,
)
from pathtracer.scene.intersection import intersect_world
from pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# =============================================================================
# Rendering Constants
# =============================================================================

# Bounce rays ignore hits closer than this (avoids self-intersection acne)
T_MIN = 0.001
T_MAX = math.inf

# Color at the top of the sky gradient
DEFAULT_SKY_COLOR = (0.6, 0.75, 0.6)

_sky_color = ti.Vector.field(3, dtype=real, shape=())


def set_sky_color(color: tuple[float, float, float]) -> None:
    """Set the color the background gradient blends toward at the zenith."""
    _sky_color[None] = [color[0], color[1], color[2]]


def get_sky_color() -> tuple[float, float, float]:
    color = _sky_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


set_sky_color(DEFAULT_SKY_COLOR)


@ti.func
def background_color(direction: vec3) -> vec3:
    """Vertical gradient from white at the horizon to the sky color overhead."""
    t = 0.5 * (normalize(direction).y + 1.0)
    return (1.0 - t) * vec3(1.0, 1.0, 1.0) + t * _sky_color[None]


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    stream: ti.i32,
):
    """Dispatch to the scatter function of the material's type.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter). An unknown
        material id absorbs the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        scattered_direction, attenuation, did_scatter = scatter_lambertian(
            albedo, normal, stream
        )

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_index)
        fuzz = get_metal_fuzz(type_index)
        scattered_direction, attenuation, did_scatter = scatter_metal(
            albedo, fuzz, incident_direction, normal, stream
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_refractive_index(type_index)
        scattered_direction, attenuation, did_scatter = scatter_dielectric(
            ior, incident_direction, normal, front_face, stream
        )

    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def ray_color(origin: vec3, direction: vec3, max_depth: ti.i32, stream: ti.i32) -> vec3:
    """Estimate the radiance arriving along a ray.

    Args:
        origin: The ray origin.
        direction: The ray direction (need not be normalized).
        max_depth: Maximum number of hit-and-scatter events. 0 yields black.
        stream: The random stream slot owned by the calling task.

    Returns:
        The estimated radiance (RGB).
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction

    # Finished paths go inactive for the remaining iterations
    active = 1

    for _ in range(max_depth):
        if active == 1:
            record = intersect_world(ray_origin, ray_direction, T_MIN, T_MAX)

            if record.hit == 0:
                color = throughput * background_color(ray_direction)
                active = 0
            else:
                scattered_direction, attenuation, did_scatter = _scatter_material(
                    record.material_id,
                    ray_direction,
                    record.normal,
                    record.front_face,
                    stream,
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    ray_origin = record.point
                    ray_direction = scattered_direction

    # A path still active here ran out of depth and contributes black
    return color


# =============================================================================
# Host-side Tracing
# =============================================================================

_trace_result = ti.Vector.field(3, dtype=real, shape=())


@ti.kernel
def _trace_kernel(origin: vec3, direction: vec3, max_depth: ti.i32, seed: ti.u32):
    for _ in range(1):
        seed_stream(0, seed, 0, 0)
        _trace_result[None] = ray_color(origin, direction, max_depth, 0)


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Trace a single ray through the current scene from Python.

    Uses random stream slot 0, so it must not run concurrently with a render.

    Args:
        origin: The ray origin.
        direction: The ray direction.
        depth: Maximum number of bounces.
        seed: Seed for the ray's random stream.

    Returns:
        Tuple of (R, G, B) radiance.
    """
    if depth < 0:
        raise ValueError(f"depth must be non-negative, got {depth}")
    _trace_kernel(vec3(*origin), vec3(*direction), depth, seed % (1 << 32))
    color = _trace_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))

