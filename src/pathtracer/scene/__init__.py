"""Scene module: world storage, scene management and scene sources.

Components:
    intersection: Ordered primitive table and closest-hit queries
    manager: Unified scene manager coordinating primitives and materials
    random_scene: Procedural default scene
    preset: JSON presets describing image, camera and scene

Scene data is organized for kernel access:
    - Structure-of-Arrays layout for geometric data
    - One material-id space shared by all material types
"""

from .intersection import (
    MAX_PLANES,
    MAX_SPHERES,
    HitResult,
    PrimitiveType,
    SceneHitRecord,
    add_plane,
    add_sphere,
    clear_scene,
    get_plane_count,
    get_primitive_count,
    get_sphere_count,
    intersect_world,
    query_hit,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    PlaneInfo,
    SceneConfig,
    SceneManager,
    SphereInfo,
)
from .preset import Preset, build_scene, load_preset
from .random_scene import create_random_scene

__all__ = [
    "MAX_MATERIALS",
    "MAX_PLANES",
    "MAX_SPHERES",
    "HitResult",
    "MaterialInfo",
    "MaterialType",
    "PlaneInfo",
    "PrimitiveType",
    "Preset",
    "SceneConfig",
    "SceneHitRecord",
    "SceneManager",
    "SphereInfo",
    "add_plane",
    "add_sphere",
    "build_scene",
    "clear_scene",
    "create_random_scene",
    "get_plane_count",
    "get_primitive_count",
    "get_sphere_count",
    "intersect_world",
    "load_preset",
    "query_hit",
]
