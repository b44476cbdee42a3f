"""Thin-lens camera model with defocus blur.

The camera is configured once on the host. ``setup_camera`` derives an
orthonormal basis (u, v, w) and the viewport geometry with NumPy and uploads
them to Taichi fields; kernels then call ``get_ray`` to generate primary rays.

- w points from look_at back toward look_from (opposite the view direction)
- u points right in the image plane
- v points up in the image plane

The viewport sits at ``focus_dist`` in front of the camera, so geometry at
that distance is in sharp focus. Ray origins are jittered across a lens disk
of radius ``aperture / 2``; rays through the same screen point converge only
at the focal plane, which produces depth of field. An aperture of 0 gives a
pinhole camera.

Example:
    >>> camera = ThinLensCamera(
    ...     vfov=20.0,
    ...     aspect_ratio=1.5,
    ...     look_from=(13.0, 2.0, 3.0),
    ...     look_at=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     aperture=0.1,
    ...     focus_dist=10.0,
    ... )
    >>> setup_camera(camera)
    >>> @ti.kernel
    ... def render():
    ...     ray = get_ray(0.5, 0.5, 0)  # Ray through image center, stream 0
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from pathtracer.core.ray import Ray, make_ray, real
from pathtracer.core.sampler import random_in_unit_disk

logger = logging.getLogger(__name__)

# Below this length the view direction and up vector are treated as parallel
_DEGENERATE_EPSILON = 1e-12


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (depth of field) camera.

    Attributes:
        vfov: Vertical field of view in degrees.
        aspect_ratio: Width divided by height of the output image.
        look_from: Camera position in world space.
        look_at: Point the camera is looking at.
        vup: Up direction for camera orientation (typically (0, 1, 0)).
        aperture: Lens diameter. 0 disables defocus blur.
        focus_dist: Distance to the plane of perfect focus.
    """

    vfov: float
    aspect_ratio: float
    look_from: tuple[float, float, float]
    look_at: tuple[float, float, float]
    vup: tuple[float, float, float]
    aperture: float = 0.0
    focus_dist: float = 1.0

    def validate(self) -> None:
        """Check the configuration describes a usable camera.

        Raises:
            ValueError: If any parameter is out of range or the view basis is
                degenerate.
        """
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.aperture < 0.0:
            raise ValueError(f"aperture must be non-negative, got {self.aperture}")
        if self.focus_dist <= 0.0:
            raise ValueError(f"focus_dist must be positive, got {self.focus_dist}")

        view = np.subtract(self.look_from, self.look_at, dtype=np.float64)
        if np.linalg.norm(view) < _DEGENERATE_EPSILON:
            raise ValueError("look_from and look_at must be different points")
        vup = np.asarray(self.vup, dtype=np.float64)
        if np.linalg.norm(np.cross(vup, view)) < _DEGENERATE_EPSILON:
            raise ValueError("vup must not be parallel to the view direction")


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=real, shape=())

# Orthonormal basis
_camera_u = ti.Vector.field(3, dtype=real, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=real, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=real, shape=())  # Backward

# Viewport on the focal plane
_viewport_horizontal = ti.Vector.field(3, dtype=real, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=real, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=real, shape=())

_lens_radius = ti.field(dtype=real, shape=())


def setup_camera(camera: ThinLensCamera) -> None:
    """Compute the camera geometry and upload it to Taichi fields.

    Must be called before rendering, from Python (not from inside a kernel).

    Args:
        camera: Camera configuration.

    Raises:
        ValueError: If the configuration is invalid (see ThinLensCamera.validate).
    """
    camera.validate()

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    look_from = np.array(camera.look_from, dtype=np.float64)
    look_at = np.array(camera.look_at, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = look_from - look_at
    w = w / np.linalg.norm(w)
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    horizontal = camera.focus_dist * viewport_width * u
    vertical = camera.focus_dist * viewport_height * v
    lower_left = look_from - horizontal / 2.0 - vertical / 2.0 - camera.focus_dist * w

    _camera_origin[None] = look_from.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0

    logger.debug(
        "Camera at %s looking at %s (vfov=%.1f, aperture=%.3f, focus=%.3f)",
        camera.look_from,
        camera.look_at,
        camera.vfov,
        camera.aperture,
        camera.focus_dist,
    )


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: real, t: real, stream: ti.i32) -> Ray:
    """Generate a primary ray through normalized screen coordinates (s, t).

    s = 0 is the left edge, s = 1 the right edge; t = 0 is the bottom edge,
    t = 1 the top edge.

    Args:
        s: Horizontal coordinate.
        t: Vertical coordinate.
        stream: The random stream slot owned by the calling task (lens sample).

    Returns:
        A Ray starting on the lens disk. The direction is not normalized.
    """
    rd = _lens_radius[None] * random_in_unit_disk(stream)
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y
    origin = _camera_origin[None] + offset
    direction = (
        _lower_left_corner[None]
        + s * _viewport_horizontal[None]
        + t * _viewport_vertical[None]
        - _camera_origin[None]
        - offset
    )
    return make_ray(origin, direction)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left and
        lens_radius.
    """

    def _tuple(f) -> tuple[float, float, float]:
        vec = f[None]
        return (float(vec[0]), float(vec[1]), float(vec[2]))

    return {
        "origin": _tuple(_camera_origin),
        "u": _tuple(_camera_u),
        "v": _tuple(_camera_v),
        "w": _tuple(_camera_w),
        "horizontal": _tuple(_viewport_horizontal),
        "vertical": _tuple(_viewport_vertical),
        "lower_left": _tuple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
