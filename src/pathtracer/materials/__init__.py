"""Material models.

Components:
    lambertian: Ideal diffuse reflection
    metal: Specular reflection with optional fuzz
    dielectric: Refraction and Fresnel reflection (glass, water)

Each module provides a scatter function for use inside Taichi kernels and a
registry of material parameters stored in Taichi fields. Scatter functions
return ``(scattered_direction, attenuation, did_scatter)``; the scattered ray
starts at the hit point.
"""

from .dielectric import (
    DielectricMaterial,
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_material_count,
    scatter_dielectric,
)
from .lambertian import (
    LambertianMaterial,
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_material_count,
    scatter_lambertian,
)
from .metal import (
    MetalMaterial,
    add_metal_material,
    clear_metal_materials,
    get_metal_material_count,
    scatter_metal,
)

__all__ = [
    "DielectricMaterial",
    "LambertianMaterial",
    "MetalMaterial",
    "add_dielectric_material",
    "add_lambertian_material",
    "add_metal_material",
    "clear_dielectric_materials",
    "clear_lambertian_materials",
    "clear_metal_materials",
    "get_dielectric_material_count",
    "get_lambertian_material_count",
    "get_metal_material_count",
    "scatter_dielectric",
    "scatter_lambertian",
    "scatter_metal",
]
