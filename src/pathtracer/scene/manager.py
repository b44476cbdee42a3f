"""Unified scene manager for coordinating primitives and materials.

This module provides a high-level scene-building API. It coordinates primitive
storage (spheres, planes) with material assignment. Materials of all kinds
share one material-id space. Each id maps to a (material_type,
type_local_index) pair, which is what the integrator dispatches on.

Several primitives may reference the same material id. For example, all six
faces of a block share one material. A material is stored once and never
copied.

Example:
    >>> from pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> glass = scene.add_dielectric_material(refractive_index=1.5)
    >>> scene.add_sphere((0, 1, 0), 1.0, glass)
    >>> scene.add_sphere((0, 1, 0), -0.95, glass)  # hollow shell
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti

from pathtracer.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from pathtracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from pathtracer.materials.metal import (
    add_metal_material,
    clear_metal_materials,
)
from pathtracer.scene.intersection import (
    add_plane,
    add_sphere,
    clear_scene,
    get_plane_count,
    get_primitive_count,
    get_sphere_count,
)

logger = logging.getLogger(__name__)

Vec3Tuple = tuple[float, float, float]


class MaterialType(IntEnum):
    """Enumeration of supported material types, used for scatter dispatch."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


MAX_MATERIALS = 3072

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the index into the type-specific registry
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a material ID (-1 if the ID is invalid)."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index into the type-specific registry (-1 if the ID is invalid)."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        type_index: The index within the type-specific registry.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    sphere_index: int
    center: Vec3Tuple
    radius: float
    material_id: int


@dataclass
class PlaneInfo:
    plane_index: int
    normal: Vec3Tuple
    point1: Vec3Tuple
    point2: Vec3Tuple
    material_id: int


@dataclass
class SceneConfig:
    """Flat, id-based description of a scene (for serialization).

    Attributes:
        materials: List of material configurations, in material-id order.
        spheres: List of sphere configurations.
        planes: List of plane configurations.
        order: Primitive kinds ("sphere" or "plane") in insertion order. When
            empty, spheres are loaded before planes.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    planes: list[dict[str, Any]] = field(default_factory=list)
    order: list[str] = field(default_factory=list)


def _as_vec3(values: Any, name: str) -> Vec3Tuple:
    try:
        x, y, z = values
        return (float(x), float(y), float(z))
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a sequence of three numbers, got {values!r}") from e


class SceneManager:
    """Unified scene manager coordinating primitives and materials.

    The SceneManager is the single writer of the world and material fields.
    It keeps a Python-side mirror of what it added, for queries and
    serialization.

    Only one scene is live at a time: the underlying storage is module-level
    Taichi fields, and constructing a SceneManager clears it.

    Attributes:
        materials: MaterialInfo for all registered materials.
        spheres: SphereInfo for all spheres in the scene.
        planes: PlaneInfo for all planes in the scene.
        primitive_order: Kind of each primitive ("sphere" or "plane") in
            insertion order, which decides equal-t ties.
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.planes: list[PlaneInfo] = []
        self.primitive_order: list[str] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()
        self.planes.clear()
        self.primitive_order.clear()

    def clear(self) -> None:
        """Clear the entire scene (primitives and materials)."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: Vec3Tuple) -> int:
        """Add a Lambertian (diffuse) material.

        Args:
            albedo: The diffuse reflectance color as (R, G, B), each in [0, 1].

        Returns:
            The unified material ID.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        albedo = _as_vec3(albedo, "albedo")
        type_index = add_lambertian_material(albedo)
        return self._register_material(MaterialType.LAMBERTIAN, type_index, {"albedo": albedo})

    def add_metal_material(self, albedo: Vec3Tuple, fuzz: float = 0.0) -> int:
        """Add a metal material.

        Args:
            albedo: The reflective color as (R, G, B), each in [0, 1].
            fuzz: The perturbation radius in [0, 1]. Default is 0 (mirror).

        Returns:
            The unified material ID.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If albedo or fuzz is out of range.
        """
        albedo = _as_vec3(albedo, "albedo")
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "fuzz": fuzz}
        )

    def add_dielectric_material(self, refractive_index: float = 1.5) -> int:
        """Add a dielectric (glass/water) material.

        Args:
            refractive_index: Index of refraction. Default is 1.5 (glass).

        Returns:
            The unified material ID.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If the refractive index is not positive.
        """
        type_index = add_dielectric_material(refractive_index)
        return self._register_material(
            MaterialType.DIELECTRIC, type_index, {"refractive_index": refractive_index}
        )

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if unknown."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def _check_material_id(self, material_id: int) -> None:
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(self, center: Vec3Tuple, radius: float, material_id: int) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius. Nonzero; negative values flip the normal.
            material_id: The unified material ID to assign to the sphere.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If material_id or radius is invalid.
        """
        self._check_material_id(material_id)
        center = _as_vec3(center, "center")
        sphere_index = add_sphere(center, float(radius), material_id)
        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=float(radius),
                material_id=material_id,
            )
        )
        self.primitive_order.append("sphere")
        return sphere_index

    def add_plane(
        self,
        normal: Vec3Tuple,
        point1: Vec3Tuple,
        point2: Vec3Tuple,
        material_id: int,
    ) -> int:
        """Add a bounded plane segment to the scene.

        Args:
            normal: The plane normal as (x, y, z).
            point1: One corner of the segment.
            point2: The diagonally opposite corner.
            material_id: The unified material ID to assign to the plane.

        Returns:
            The index of the added plane.

        Raises:
            RuntimeError: If the maximum number of planes is exceeded.
            ValueError: If material_id is invalid or the corners are not coplanar.
        """
        self._check_material_id(material_id)
        normal = _as_vec3(normal, "normal")
        point1 = _as_vec3(point1, "point1")
        point2 = _as_vec3(point2, "point2")
        plane_index = add_plane(normal, point1, point2, material_id)
        self.planes.append(
            PlaneInfo(
                plane_index=plane_index,
                normal=normal,
                point1=point1,
                point2=point2,
                material_id=material_id,
            )
        )
        self.primitive_order.append("plane")
        return plane_index

    def add_box(self, min_point: Vec3Tuple, max_point: Vec3Tuple, material_id: int) -> list[int]:
        """Add an axis-aligned rectangular block made of six plane segments.

        All six faces share ``material_id``.

        Args:
            min_point: The (xmin, ymin, zmin) corner.
            max_point: The (xmax, ymax, zmax) corner.
            material_id: The unified material ID for every face.

        Returns:
            The plane indices of the six faces.
        """
        x0, y0, z0 = _as_vec3(min_point, "min_point")
        x1, y1, z1 = _as_vec3(max_point, "max_point")
        faces = [
            ((0.0, 0.0, 1.0), (x0, y0, z0), (x1, y1, z0)),
            ((0.0, 0.0, 1.0), (x0, y0, z1), (x1, y1, z1)),
            ((0.0, 1.0, 0.0), (x0, y0, z0), (x1, y0, z1)),
            ((0.0, 1.0, 0.0), (x0, y1, z0), (x1, y1, z1)),
            ((1.0, 0.0, 0.0), (x0, y0, z0), (x0, y1, z1)),
            ((1.0, 0.0, 0.0), (x1, y0, z0), (x1, y1, z1)),
        ]
        return [self.add_plane(n, p1, p2, material_id) for n, p1, p2 in faces]

    # =========================================================================
    # Convenience Methods (add object with material in one call)
    # =========================================================================

    def add_lambertian_sphere(
        self, center: Vec3Tuple, radius: float, albedo: Vec3Tuple
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self, center: Vec3Tuple, radius: float, albedo: Vec3Tuple, fuzz: float = 0.0
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self, center: Vec3Tuple, radius: float, refractive_index: float = 1.5
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(refractive_index)
        return self.add_sphere(center, radius, material_id), material_id

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    def get_plane_count(self) -> int:
        return get_plane_count()

    def get_primitive_count(self) -> int:
        """Get the total number of primitives in the scene."""
        return get_primitive_count()

    def log_summary(self) -> None:
        logger.info(
            "Scene ready: %d materials, %d spheres, %d planes",
            self.get_material_count(),
            self.get_sphere_count(),
            self.get_plane_count(),
        )

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            config.materials.append({"type": mat.material_type.name.lower(), **mat.params})

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        for plane in self.planes:
            config.planes.append(
                {
                    "normal": list(plane.normal),
                    "point1": list(plane.point1),
                    "point2": list(plane.point2),
                    "material_id": plane.material_id,
                }
            )

        config.order = list(self.primitive_order)
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene first. Materials are loaded before primitives
        so that material ids in the configuration line up. Primitives are
        added in ``config.order`` so equal-t ties resolve as in the original
        scene.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for mat_config in config.materials:
            mat_type = mat_config.get("type", "").lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(mat_config.get("albedo", (0.5, 0.5, 0.5)))
            elif mat_type == "metal":
                self.add_metal_material(
                    mat_config.get("albedo", (0.8, 0.8, 0.8)),
                    mat_config.get("fuzz", 0.0),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat_config.get("refractive_index", 1.5))
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        order = config.order or ["sphere"] * len(config.spheres) + ["plane"] * len(config.planes)
        unknown = set(order) - {"sphere", "plane"}
        if unknown:
            raise ValueError(f"Unknown primitive kind: {sorted(unknown)[0]}")
        sphere_count = order.count("sphere")
        plane_count = order.count("plane")
        if sphere_count != len(config.spheres) or plane_count != len(config.planes):
            raise ValueError("Primitive order does not match the sphere and plane lists")

        spheres = iter(config.spheres)
        planes = iter(config.planes)
        for kind in order:
            if kind == "sphere":
                sphere_config = next(spheres)
                self.add_sphere(
                    sphere_config.get("center", (0.0, 0.0, 0.0)),
                    sphere_config.get("radius", 1.0),
                    sphere_config.get("material_id", 0),
                )
            else:
                plane_config = next(planes)
                self.add_plane(
                    plane_config.get("normal", (0.0, 0.0, 1.0)),
                    plane_config.get("point1", (0.0, 0.0, 0.0)),
                    plane_config.get("point2", (1.0, 1.0, 0.0)),
                    plane_config.get("material_id", 0),
                )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "planes": config.planes,
            "order": config.order,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary in the ``to_dict`` format."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
            planes=data.get("planes", []),
            order=data.get("order", []),
        )
        self.from_config(config)
