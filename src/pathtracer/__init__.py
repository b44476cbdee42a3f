"""Offline Monte Carlo path tracer built on Taichi.

This package renders scenes of spheres and bounded plane segments on the
Taichi CPU backend, with support for:
- Lambertian, metal and dielectric materials
- A thin-lens camera with defocus blur
- Row-by-row parallel rendering, reproducible from a seed
- JSON presets and PPM/PNG output

Call ``pathtracer.core.backend.init_taichi()`` before importing any module
that declares Taichi fields (everything outside ``core.ray`` and
``core.backend``).

Subpackages:
    core: Vector utilities, random streams, integrator and render driver
    geometry: Shape primitives and intersection algorithms
    materials: Scattering models and their registries
    scene: World storage, scene manager, default scene and presets
    camera: Thin-lens camera with ray generation
    output: Image writers
"""

__version__ = "0.1.0"
