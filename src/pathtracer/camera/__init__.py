"""Camera models for primary ray generation."""

from .thin_lens import ThinLensCamera, get_camera_info, get_ray, setup_camera

__all__ = [
    "ThinLensCamera",
    "get_camera_info",
    "get_ray",
    "setup_camera",
]
