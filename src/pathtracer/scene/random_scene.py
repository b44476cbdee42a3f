"""Procedural default scene.

This module builds the scene used when a preset does not describe one:

- A huge metal sphere acting as the ground
- An 11x11 grid of small spheres with randomly chosen materials
  (80% diffuse, 15% metal, 5% glass)
- A metal block built from six axis-aligned plane segments

The random choices come from a NumPy ``Generator``, so the scene is
reproducible from a seed.

Example:
    >>> from pathtracer.scene.random_scene import create_random_scene
    >>> scene = create_random_scene(seed=7)
    >>> scene.get_sphere_count()
    122
"""

import logging

import numpy as np

from pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Random Scene Constants
# =============================================================================

GROUND_CENTER = (0.0, -1000.0, 0.0)
GROUND_RADIUS = 1000.0
GROUND_ALBEDO = (0.9, 0.6, 0.5)
GROUND_FUZZ = 0.1

# Grid cells a, b run over this inclusive range
GRID_MIN = -3
GRID_MAX = 7
SMALL_SPHERE_RADIUS = 0.2
# Sphere centers are jittered by up to this much inside each grid cell
CELL_JITTER = 0.9

# choose_mat below the first threshold is diffuse, below the second metal, else glass
DIFFUSE_THRESHOLD = 0.8
METAL_THRESHOLD = 0.95
GLASS_REFRACTIVE_INDEX = 1.5

BLOCK_MIN = (3.0, 0.0, -0.5)
BLOCK_MAX = (4.0, 1.0, 0.5)
BLOCK_ALBEDO = (0.3, 0.2, 0.1)
BLOCK_FUZZ = 0.0


def _random_color(rng: np.random.Generator, lo: float = 0.0, hi: float = 1.0):
    return tuple(float(c) for c in rng.uniform(lo, hi, size=3))


def create_random_scene(
    scene: SceneManager | None = None,
    seed: int | None = None,
) -> SceneManager:
    """Populate a scene with the procedural default content.

    Args:
        scene: The SceneManager to fill. It is cleared first. A new one is
            created if None.
        seed: Seed for the scene's random generator. None draws fresh entropy.

    Returns:
        The populated SceneManager.
    """
    if scene is None:
        scene = SceneManager()
    else:
        scene.clear()

    rng = np.random.default_rng(seed)

    # =========================================================================
    # Ground
    # =========================================================================

    ground_mat = scene.add_metal_material(albedo=GROUND_ALBEDO, fuzz=GROUND_FUZZ)
    scene.add_sphere(GROUND_CENTER, GROUND_RADIUS, ground_mat)

    # =========================================================================
    # Small spheres
    # =========================================================================

    for a in range(GRID_MIN, GRID_MAX + 1):
        for b in range(GRID_MIN, GRID_MAX + 1):
            choose_mat = rng.random()
            center = (
                a + rng.uniform(0.0, CELL_JITTER),
                SMALL_SPHERE_RADIUS,
                b + rng.uniform(0.0, CELL_JITTER),
            )

            if choose_mat < DIFFUSE_THRESHOLD:
                albedo = tuple(
                    x * y for x, y in zip(_random_color(rng), _random_color(rng))
                )
                scene.add_lambertian_sphere(center, SMALL_SPHERE_RADIUS, albedo)
            elif choose_mat < METAL_THRESHOLD:
                albedo = _random_color(rng, 0.4, 1.0)
                fuzz = float(rng.uniform(0.0, 0.5))
                scene.add_metal_sphere(center, SMALL_SPHERE_RADIUS, albedo, fuzz)
            else:
                scene.add_dielectric_sphere(center, SMALL_SPHERE_RADIUS, GLASS_REFRACTIVE_INDEX)

    # =========================================================================
    # Block (six faces sharing one material)
    # =========================================================================

    block_mat = scene.add_metal_material(albedo=BLOCK_ALBEDO, fuzz=BLOCK_FUZZ)
    scene.add_box(BLOCK_MIN, BLOCK_MAX, block_mat)

    logger.debug("Random scene built (seed=%s)", seed)
    scene.log_summary()
    return scene
