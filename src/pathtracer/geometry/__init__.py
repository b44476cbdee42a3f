"""Geometric primitives and their ray intersection routines.

Components:
    sphere: Sphere primitive and the shared HitRecord
    plane: Bounded, axis-aligned plane segment
"""

from .plane import Plane, corners_are_coplanar, hit_plane
from .sphere import HitRecord, Sphere, face_normal, hit_sphere, make_miss_hit_record

__all__ = [
    "HitRecord",
    "Plane",
    "Sphere",
    "corners_are_coplanar",
    "face_normal",
    "hit_plane",
    "hit_sphere",
    "make_miss_hit_record",
]
