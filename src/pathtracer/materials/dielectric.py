"""Dielectric (glass/water) material implementation.

This module implements transparent materials that either reflect or refract
every incoming ray. Dielectrics never absorb and never tint: the attenuation
is always white.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Total internal reflection when ratio * sin(theta) > 1
    - Schlick's approximation for the reflect-vs-refract probability

Hollow glass shells are modelled with a second, negative-radius sphere inside
the first; the negative radius flips the normal so ``front_face`` picks the
correct refraction ratio on the inner surface.

Example:
    >>> from pathtracer.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_dielectric(
    >>> #     ior, incident_dir, normal, front_face, stream
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import (
    normalize,
    real,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from pathtracer.core.sampler import random_real


@ti.dataclass
class DielectricMaterial:
    """Dielectric material properties.

    Attributes:
        refractive_index: Index of refraction. Common values:
            - Air: 1.0
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4
    """

    refractive_index: real


@ti.func
def refraction_ratio(refractive_index: real, front_face: ti.i32) -> real:
    """Ratio n_incident / n_transmitted for the side the ray arrives from.

    Entering the material (front face) the ratio is 1 / ior; leaving it the
    ratio is ior.
    """
    ratio = refractive_index
    if front_face == 1:
        ratio = 1.0 / refractive_index
    return ratio


@ti.func
def will_totally_reflect(
    refractive_index: real,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """Return 1 if the incoming ray undergoes total internal reflection."""
    ratio = refraction_ratio(refractive_index, front_face)
    cos_theta = tm.clamp(tm.dot(-normalize(incident_direction), normal), -1.0, 1.0)
    sin_theta = tm.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))
    return 1 if ratio * sin_theta > 1.0 else 0


@ti.func
def scatter_dielectric(
    refractive_index: real,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    stream: ti.i32,
):
    """Compute the scattered ray direction for a dielectric surface.

    Reflects on total internal reflection, or with probability given by
    Schlick's approximation; refracts otherwise.

    Args:
        refractive_index: Index of refraction of the material.
        incident_direction: The incoming ray direction (need not be normalized).
        normal: The unit surface normal facing the incoming ray.
        front_face: 1 if the ray arrives from outside the surface.
        stream: The random stream slot owned by the calling task.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where
        attenuation is white and did_scatter is always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    ratio = refraction_ratio(refractive_index, front_face)

    unit_direction = normalize(incident_direction)
    cos_theta = tm.clamp(tm.dot(-unit_direction, normal), -1.0, 1.0)
    cannot_refract = will_totally_reflect(refractive_index, incident_direction, normal, front_face)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract or schlick_reflectance(cos_theta, ratio) > random_real(stream):
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, ratio)

    return scattered_direction, attenuation, 1


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 1024

dielectric_refractive_indices = ti.field(dtype=real, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(refractive_index: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        refractive_index: Index of refraction. Default is 1.5 (typical glass).
            Must be positive.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the refractive index is not positive.
    """
    if refractive_index <= 0.0:
        raise ValueError(f"Refractive index = {refractive_index} must be positive.")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_refractive_indices[idx] = refractive_index
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_refractive_index(material_idx: ti.i32) -> real:
    return dielectric_refractive_indices[material_idx]
