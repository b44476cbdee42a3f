"""Bounded plane segment primitive.

A plane segment is described by a normal and two diagonal corner points. The
ray is intersected with the infinite plane through ``point1``, and the hit
point is then clipped, axis by axis, to the box spanned by the two corners.

The plane equation is written with a component-sum projection
``scalar(v) = v.x + v.y + v.z`` applied to component-wise products with the
normal:

    t = -scalar(n * origin - n * point1) / scalar(n * direction)

The segment bounds are only meaningful for axis-aligned normals; this is the
shape of every face the renderer builds.

Plane hits always report the configured normal and ``front_face = 0``. The
material code therefore treats every plane hit as a back-face hit (dielectric
planes refract with ratio = ior from either side).

Example:
    >>> from pathtracer.geometry.plane import Plane, hit_plane
    >>> # Floor segment at y=0 spanning x, z in [0, 1]:
    >>> # Plane(normal=vec3(0, 1, 0), point1=vec3(0, 0, 0), point2=vec3(1, 0, 1))
"""

import taichi as ti

from pathtracer.core.ray import real, vec3

from .sphere import HitRecord, make_miss_hit_record

# Slack applied to the per-axis bounds test so boundary hits are not lost to rounding
BOUNDS_EPSILON = 0.01


@ti.dataclass
class Plane:
    """A plane segment defined by a normal and two diagonal corners.

    Attributes:
        normal: The plane normal (axis-aligned in practice).
        point1: One corner of the segment.
        point2: The diagonally opposite corner.
    """

    normal: vec3
    point1: vec3
    point2: vec3


def scalar_projection(v: tuple[float, float, float]) -> float:
    """Host-side component sum, used to validate plane corners."""
    return v[0] + v[1] + v[2]


def corners_are_coplanar(
    normal: tuple[float, float, float],
    point1: tuple[float, float, float],
    point2: tuple[float, float, float],
) -> bool:
    """Check that both corners satisfy the same plane equation.

    Args:
        normal: The plane normal.
        point1: The first corner.
        point2: The second corner.

    Returns:
        True if ``scalar(normal * point1) == scalar(normal * point2)``.
    """
    p1 = tuple(n * p for n, p in zip(normal, point1))
    p2 = tuple(n * p for n, p in zip(normal, point2))
    return scalar_projection(p1) == scalar_projection(p2)


@ti.func
def _scalar(v: vec3) -> real:
    return v.x + v.y + v.z


@ti.func
def _between(x1: real, x2: real, p: real) -> ti.i32:
    """Return 1 if p lies between x1 and x2, with BOUNDS_EPSILON slack."""
    lo = ti.min(x1, x2)
    hi = ti.max(x1, x2)
    return lo <= p + BOUNDS_EPSILON and p - BOUNDS_EPSILON <= hi


@ti.func
def hit_plane(
    ray_origin: vec3,
    ray_direction: vec3,
    plane: Plane,
    t_min: real,
    t_max: real,
) -> HitRecord:
    """Test for ray-plane-segment intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        plane: The plane segment to test.
        t_min: Smallest accepted ray parameter (inclusive).
        t_max: Largest accepted ray parameter (inclusive).

    Returns:
        A HitRecord; check its hit field.
    """
    record = make_miss_hit_record()

    denominator = _scalar(plane.normal * ray_direction)

    # Ray parallel to the plane
    if denominator != 0.0:
        numerator = -_scalar(plane.normal * ray_origin - plane.normal * plane.point1)
        t = numerator / denominator

        if t >= t_min and t <= t_max:
            point = ray_origin + t * ray_direction
            inside = (
                _between(plane.point1.x, plane.point2.x, point.x)
                and _between(plane.point1.y, plane.point2.y, point.y)
                and _between(plane.point1.z, plane.point2.z, point.z)
            )
            if inside:
                record = HitRecord(
                    hit=1,
                    t=t,
                    point=point,
                    normal=plane.normal,
                    front_face=0,
                )

    return record
