"""Render presets: JSON configuration for image, camera and scene.

A preset is a JSON document describing the image size, sampling parameters,
the camera and (optionally) the scene:

    {
        "image_width": 400,
        "samples_per_pixel": 50,
        "max_depth": 20,
        "camera": {
            "vfov": 20.0, "aspect_ratio": 1.5,
            "look_from": [13, 2, 3], "look_at": [0, 0, 0], "vup": [0, 1, 0],
            "aperture": 0.1, "focus_dist": 10.0
        },
        "scene": {
            "spheres": [{"center": [0, 0, -1], "radius": 0.5}],
            "planes": [{"point1": [0, 0, 0], "point2": [1, 1, 0], "normal": [0, 0, 1],
                        "material": {"Metal": {"albedo": [0.8, 0.8, 0.8], "fuzz": 0.0}}}]
        }
    }

Materials are externally tagged: a single-key object whose key is the
material kind (``Lambertian``, ``Metal`` or ``Dielectric``). A sphere without
a material is diffuse with ``DEFAULT_SPHERE_ALBEDO``. Without a ``scene`` the
procedural random scene is used.

Example:
    >>> preset = load_preset("examples/presets/three_spheres.json")
    >>> scene = build_scene(preset)
    >>> setup_camera(preset.camera.to_camera())
"""

import json
import logging
import math
from dataclasses import dataclass, field
from os import PathLike
from typing import Any

from pathtracer.camera.thin_lens import ThinLensCamera
from pathtracer.scene.manager import SceneManager
from pathtracer.scene.random_scene import create_random_scene

logger = logging.getLogger(__name__)

Vec3Tuple = tuple[float, float, float]

DEFAULT_SPHERE_ALBEDO = (0.4, 0.2, 0.1)

MATERIAL_KINDS = ("Lambertian", "Metal", "Dielectric")


# =============================================================================
# Field Parsing Helpers
# =============================================================================


def _require(data: dict[str, Any], key: str, context: str) -> Any:
    if key not in data:
        raise ValueError(f"{context}: missing required field '{key}'")
    return data[key]


def _as_mapping(value: Any, context: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{context}: expected an object, got {type(value).__name__}")
    return value


def _as_float(value: Any, context: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{context}: expected a number, got {value!r}")
    result = float(value)
    if not math.isfinite(result):
        raise ValueError(f"{context}: expected a finite number, got {value!r}")
    return result


def _as_int(value: Any, context: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{context}: expected an integer, got {value!r}")
    return value


def _as_vec3(value: Any, context: str) -> Vec3Tuple:
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise ValueError(f"{context}: expected a list of three numbers, got {value!r}")
    x, y, z = (_as_float(v, context) for v in value)
    return (x, y, z)


# =============================================================================
# Settings Dataclasses
# =============================================================================


@dataclass
class MaterialSettings:
    """A tagged material description.

    Attributes:
        kind: One of MATERIAL_KINDS.
        albedo: Color for Lambertian and Metal.
        fuzz: Reflection perturbation for Metal.
        refractive_index: Index of refraction for Dielectric.
    """

    kind: str
    albedo: Vec3Tuple = (0.0, 0.0, 0.0)
    fuzz: float = 0.0
    refractive_index: float = 1.5

    @classmethod
    def from_dict(cls, data: Any, context: str = "material") -> "MaterialSettings":
        data = _as_mapping(data, context)
        if len(data) != 1:
            raise ValueError(
                f"{context}: expected exactly one of {', '.join(MATERIAL_KINDS)}, "
                f"got {sorted(data)}"
            )
        kind, params = next(iter(data.items()))
        params = _as_mapping(params, f"{context}.{kind}")
        inner = f"{context}.{kind}"

        if kind == "Lambertian":
            return cls(kind=kind, albedo=_as_vec3(_require(params, "albedo", inner), inner))
        if kind == "Metal":
            return cls(
                kind=kind,
                albedo=_as_vec3(_require(params, "albedo", inner), inner),
                fuzz=_as_float(_require(params, "fuzz", inner), inner),
            )
        if kind == "Dielectric":
            return cls(
                kind=kind,
                refractive_index=_as_float(_require(params, "refractive_index", inner), inner),
            )
        raise ValueError(f"{context}: unknown material kind '{kind}'")

    def to_dict(self) -> dict[str, Any]:
        if self.kind == "Lambertian":
            return {"Lambertian": {"albedo": list(self.albedo)}}
        if self.kind == "Metal":
            return {"Metal": {"albedo": list(self.albedo), "fuzz": self.fuzz}}
        return {"Dielectric": {"refractive_index": self.refractive_index}}

    def add_to(self, scene: SceneManager) -> int:
        """Register this material with a scene and return its material id."""
        if self.kind == "Lambertian":
            return scene.add_lambertian_material(self.albedo)
        if self.kind == "Metal":
            return scene.add_metal_material(self.albedo, self.fuzz)
        return scene.add_dielectric_material(self.refractive_index)


@dataclass
class SphereSettings:
    center: Vec3Tuple
    radius: float
    material: MaterialSettings | None = None

    @classmethod
    def from_dict(cls, data: Any, context: str = "sphere") -> "SphereSettings":
        data = _as_mapping(data, context)
        material = None
        if data.get("material") is not None:
            material = MaterialSettings.from_dict(data["material"], f"{context}.material")
        return cls(
            center=_as_vec3(_require(data, "center", context), f"{context}.center"),
            radius=_as_float(_require(data, "radius", context), f"{context}.radius"),
            material=material,
        )


@dataclass
class PlaneSettings:
    point1: Vec3Tuple
    point2: Vec3Tuple
    normal: Vec3Tuple
    material: MaterialSettings

    @classmethod
    def from_dict(cls, data: Any, context: str = "plane") -> "PlaneSettings":
        data = _as_mapping(data, context)
        return cls(
            point1=_as_vec3(_require(data, "point1", context), f"{context}.point1"),
            point2=_as_vec3(_require(data, "point2", context), f"{context}.point2"),
            normal=_as_vec3(_require(data, "normal", context), f"{context}.normal"),
            material=MaterialSettings.from_dict(
                _require(data, "material", context), f"{context}.material"
            ),
        )


@dataclass
class SceneSettings:
    """Explicit scene content: spheres and planes in insertion order."""

    spheres: list[SphereSettings] = field(default_factory=list)
    planes: list[PlaneSettings] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "SceneSettings":
        data = _as_mapping(data, "scene")
        spheres = data.get("spheres") or []
        planes = data.get("planes") or []
        if not isinstance(spheres, list) or not isinstance(planes, list):
            raise ValueError("scene: 'spheres' and 'planes' must be lists")
        return cls(
            spheres=[
                SphereSettings.from_dict(s, f"scene.spheres[{i}]") for i, s in enumerate(spheres)
            ],
            planes=[
                PlaneSettings.from_dict(p, f"scene.planes[{i}]") for i, p in enumerate(planes)
            ],
        )


@dataclass
class CameraSettings:
    """Camera parameters as they appear in a preset."""

    vfov: float
    aspect_ratio: float
    look_from: Vec3Tuple
    look_at: Vec3Tuple
    vup: Vec3Tuple
    aperture: float
    focus_dist: float

    @classmethod
    def from_dict(cls, data: Any) -> "CameraSettings":
        data = _as_mapping(data, "camera")
        return cls(
            vfov=_as_float(_require(data, "vfov", "camera"), "camera.vfov"),
            aspect_ratio=_as_float(_require(data, "aspect_ratio", "camera"), "camera.aspect_ratio"),
            look_from=_as_vec3(_require(data, "look_from", "camera"), "camera.look_from"),
            look_at=_as_vec3(_require(data, "look_at", "camera"), "camera.look_at"),
            vup=_as_vec3(_require(data, "vup", "camera"), "camera.vup"),
            aperture=_as_float(_require(data, "aperture", "camera"), "camera.aperture"),
            focus_dist=_as_float(_require(data, "focus_dist", "camera"), "camera.focus_dist"),
        )

    def to_camera(self) -> ThinLensCamera:
        """Build (and validate) the camera this preset describes."""
        camera = ThinLensCamera(
            vfov=self.vfov,
            aspect_ratio=self.aspect_ratio,
            look_from=self.look_from,
            look_at=self.look_at,
            vup=self.vup,
            aperture=self.aperture,
            focus_dist=self.focus_dist,
        )
        camera.validate()
        return camera


@dataclass
class Preset:
    """A complete render configuration.

    Attributes:
        image_width: Output width in pixels.
        samples_per_pixel: Jittered samples averaged per pixel.
        max_depth: Maximum bounces per sample.
        camera: Camera parameters.
        scene: Explicit scene, or None for the procedural random scene.
        seed: Render seed, or None for a fresh one.
        sky_color: Override for the top color of the background gradient.
    """

    image_width: int
    samples_per_pixel: int
    max_depth: int
    camera: CameraSettings
    scene: SceneSettings | None = None
    seed: int | None = None
    sky_color: Vec3Tuple | None = None

    @property
    def image_height(self) -> int:
        """Image height derived from the width and the camera aspect ratio."""
        return int(self.image_width / self.camera.aspect_ratio)

    @classmethod
    def from_dict(cls, data: Any) -> "Preset":
        """Build a preset from parsed JSON.

        Raises:
            ValueError: If a field is missing, has the wrong type or is out of
                range.
        """
        data = _as_mapping(data, "preset")
        preset = cls(
            image_width=_as_int(_require(data, "image_width", "preset"), "image_width"),
            samples_per_pixel=_as_int(
                _require(data, "samples_per_pixel", "preset"), "samples_per_pixel"
            ),
            max_depth=_as_int(_require(data, "max_depth", "preset"), "max_depth"),
            camera=CameraSettings.from_dict(_require(data, "camera", "preset")),
        )
        if data.get("scene") is not None:
            preset.scene = SceneSettings.from_dict(data["scene"])
        if data.get("seed") is not None:
            seed = _as_int(data["seed"], "seed")
            if seed < 0:
                raise ValueError(f"seed must be non-negative, got {seed}")
            preset.seed = seed
        if data.get("sky_color") is not None:
            preset.sky_color = _as_vec3(data["sky_color"], "sky_color")

        if preset.image_width < 1:
            raise ValueError(f"image_width must be positive, got {preset.image_width}")
        if preset.samples_per_pixel < 1:
            raise ValueError(
                f"samples_per_pixel must be positive, got {preset.samples_per_pixel}"
            )
        if preset.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {preset.max_depth}")
        if preset.camera.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {preset.camera.aspect_ratio}")
        if preset.image_height < 1:
            raise ValueError(
                f"image_width {preset.image_width} and aspect_ratio "
                f"{preset.camera.aspect_ratio} give an empty image"
            )
        return preset


def load_preset(path: str | PathLike) -> Preset:
    """Load a preset from a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid JSON or not a valid preset.
    """
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path}: invalid JSON: {e}") from e
    preset = Preset.from_dict(data)
    logger.debug("Loaded preset %s (%dx%d)", path, preset.image_width, preset.image_height)
    return preset


def build_scene(preset: Preset, scene: SceneManager | None = None) -> SceneManager:
    """Populate a scene from a preset.

    Spheres are added before planes, each in file order. Without an explicit
    scene the procedural random scene is built, seeded with the preset seed.

    Args:
        preset: The loaded preset.
        scene: The SceneManager to fill (cleared first). Created if None.

    Returns:
        The populated SceneManager.

    Raises:
        ValueError: If a primitive or material is invalid.
    """
    if preset.scene is None:
        return create_random_scene(scene, seed=preset.seed)

    if scene is None:
        scene = SceneManager()
    else:
        scene.clear()

    for sphere in preset.scene.spheres:
        material = sphere.material or MaterialSettings("Lambertian", albedo=DEFAULT_SPHERE_ALBEDO)
        scene.add_sphere(sphere.center, sphere.radius, material.add_to(scene))

    for plane in preset.scene.planes:
        scene.add_plane(plane.normal, plane.point1, plane.point2, plane.material.add_to(scene))

    scene.log_summary()
    return scene
