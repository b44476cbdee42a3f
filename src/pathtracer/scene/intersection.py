"""World storage and closest-hit intersection.

The world is an ordered table of primitives. Each entry records the primitive
kind (sphere or plane) and an index into that kind's Structure-of-Arrays
storage. ``intersect_world`` walks the table in insertion order and shrinks
t_max to the closest hit found so far, so the record it returns is the
globally closest one. Bounds are inclusive, so when two primitives are hit at
exactly the same t the one inserted later wins.

All storage is read-only while a render kernel runs and can be shared by every
render task without locking.

Example:
    >>> from pathtracer.scene.intersection import add_sphere, clear_scene, query_hit
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, 0.0), 1.0, material_id=0)
    >>> query_hit((0.0, -5.0, 0.0), (0.0, 1.0, 0.0)).t
    4.0
"""

import math
from dataclasses import dataclass
from enum import IntEnum

import taichi as ti

from pathtracer.core.ray import real, vec3
from pathtracer.geometry.plane import Plane, corners_are_coplanar, hit_plane
from pathtracer.geometry.sphere import HitRecord, Sphere, hit_sphere, make_miss_hit_record


class PrimitiveType(IntEnum):
    """Enumeration of supported primitive kinds, used for hit dispatch."""

    SPHERE = 0
    PLANE = 1


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-world intersection with material information.

    Attributes:
        hit: 1 if any primitive was hit, 0 on a miss.
        t: The ray parameter at the closest intersection.
        point: The world-space intersection point.
        normal: The surface normal at the intersection.
        front_face: 1 if the ray hit the outward-facing side.
        material_id: Unified material ID of the hit primitive (-1 on a miss).
    """

    hit: ti.i32
    t: real
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


@dataclass(frozen=True)
class HitResult:
    """Host-side copy of a successful world intersection."""

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    front_face: bool
    material_id: int


MAX_SPHERES = 2048
MAX_PLANES = 1024
MAX_PRIMITIVES = MAX_SPHERES + MAX_PLANES

# Largest accepted deviation of a plane normal's length from 1
NORMAL_LENGTH_TOLERANCE = 1e-9

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=real, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=real, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage
plane_normals = ti.Vector.field(3, dtype=real, shape=MAX_PLANES)
plane_points1 = ti.Vector.field(3, dtype=real, shape=MAX_PLANES)
plane_points2 = ti.Vector.field(3, dtype=real, shape=MAX_PLANES)
plane_material_ids = ti.field(dtype=ti.i32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Insertion-ordered primitive table: kind + index into the kind's storage
primitive_kinds = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
primitive_indices = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove every primitive from the world."""
    num_spheres[None] = 0
    num_planes[None] = 0
    num_primitives[None] = 0


def _append_primitive(kind: PrimitiveType, index: int) -> None:
    slot = num_primitives[None]
    primitive_kinds[slot] = int(kind)
    primitive_indices[slot] = index
    num_primitives[None] = slot + 1


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    material_id: int = 0,
) -> int:
    """Add a sphere to the world.

    Args:
        center: The center point of the sphere.
        radius: The radius. Must be nonzero; negative values flip the normal.
        material_id: The unified material ID to associate with this sphere.

    Returns:
        The index of the added sphere within sphere storage.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
        ValueError: If the radius is zero or not finite.
    """
    if radius == 0.0 or not math.isfinite(radius):
        raise ValueError(f"Sphere radius must be finite and nonzero, got {radius}")

    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = [center[0], center[1], center[2]]
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    _append_primitive(PrimitiveType.SPHERE, idx)
    return idx


def add_plane(
    normal: tuple[float, float, float],
    point1: tuple[float, float, float],
    point2: tuple[float, float, float],
    material_id: int = 0,
) -> int:
    """Add a bounded plane segment to the world.

    Args:
        normal: The unit plane normal.
        point1: One corner of the segment.
        point2: The diagonally opposite corner.
        material_id: The unified material ID to associate with this plane.

    Returns:
        The index of the added plane within plane storage.

    Raises:
        RuntimeError: If the maximum number of planes is exceeded.
        ValueError: If the normal is not unit length or the two corners do not
            lie on the same plane.
    """
    if not abs(math.hypot(*normal) - 1.0) <= NORMAL_LENGTH_TOLERANCE:
        raise ValueError(f"Plane normal must be unit length, got {normal}")
    if not corners_are_coplanar(normal, point1, point2):
        raise ValueError(
            f"The two points provided need to fall on the same plane: "
            f"normal={normal}, point1={point1}, point2={point2}"
        )

    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_normals[idx] = [normal[0], normal[1], normal[2]]
    plane_points1[idx] = [point1[0], point1[1], point1[2]]
    plane_points2[idx] = [point2[0], point2[1], point2[2]]
    plane_material_ids[idx] = material_id
    num_planes[None] = idx + 1
    _append_primitive(PrimitiveType.PLANE, idx)
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the world."""
    return int(num_spheres[None])


def get_plane_count() -> int:
    """Get the number of planes in the world."""
    return int(num_planes[None])


def get_primitive_count() -> int:
    """Get the total number of primitives in the world."""
    return int(num_primitives[None])


@ti.func
def _to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def intersect_world(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: real,
    t_max: real,
) -> SceneHitRecord:
    """Find the closest intersection of a ray with every primitive.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        The closest SceneHitRecord, or a miss record (hit == 0).
    """
    closest_t = t_max
    result = _make_miss_record()

    for slot in range(num_primitives[None]):
        kind = primitive_kinds[slot]
        idx = primitive_indices[slot]
        rec = make_miss_hit_record()
        material_id = -1

        if kind == int(PrimitiveType.SPHERE):
            sphere = Sphere(center=sphere_centers[idx], radius=sphere_radii[idx])
            rec = hit_sphere(ray_origin, ray_direction, sphere, t_min, closest_t)
            material_id = sphere_material_ids[idx]
        elif kind == int(PrimitiveType.PLANE):
            plane = Plane(
                normal=plane_normals[idx],
                point1=plane_points1[idx],
                point2=plane_points2[idx],
            )
            rec = hit_plane(ray_origin, ray_direction, plane, t_min, closest_t)
            material_id = plane_material_ids[idx]

        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_hit_record(rec, material_id)

    return result


# =============================================================================
# Host-side Queries
# =============================================================================

_query_record = SceneHitRecord.field(shape=())


@ti.kernel
def _query_kernel(origin: vec3, direction: vec3, t_min: real, t_max: real):
    # Single-iteration outer loop keeps the primitive walk serial
    for _ in range(1):
        _query_record[None] = intersect_world(origin, direction, t_min, t_max)


def query_hit(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    t_min: float = 0.001,
    t_max: float = math.inf,
) -> HitResult | None:
    """Intersect a single ray with the world from Python.

    Args:
        origin: The ray origin.
        direction: The ray direction (any nonzero length).
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        A HitResult for the closest hit, or None if nothing was hit.
    """
    _query_kernel(vec3(*origin), vec3(*direction), t_min, t_max)
    if _query_record.hit[None] == 0:
        return None
    point = _query_record.point[None]
    normal = _query_record.normal[None]
    return HitResult(
        t=float(_query_record.t[None]),
        point=(float(point[0]), float(point[1]), float(point[2])),
        normal=(float(normal[0]), float(normal[1]), float(normal[2])),
        front_face=bool(_query_record.front_face[None]),
        material_id=int(_query_record.material_id[None]),
    )
