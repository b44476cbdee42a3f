"""Tests for the path tracing integrator.

This module tests:
- The sky gradient seen by escaping rays
- Depth handling (zero depth, exhausted depth)
- Material dispatch through a mirror and an absorbing surface
- Per-stream evaluation inside a parallel kernel

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run, so module-level
imports of modules containing ti.field() declarations would fail.
"""

import pytest
import taichi as ti

TOLERANCE = 1e-9


def _assert_color(actual, expected):
    for a, e in zip(actual, expected):
        assert abs(a - e) < TOLERANCE, f"{actual} != {expected}"


class TestBackground:
    """Test the color of rays that escape the scene."""

    def test_zenith_is_sky_color(self):
        from pathtracer.core.integrator import DEFAULT_SKY_COLOR, trace_ray

        _assert_color(trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), depth=10), DEFAULT_SKY_COLOR)

    def test_nadir_is_white(self):
        from pathtracer.core.integrator import trace_ray

        _assert_color(trace_ray((0.0, 0.0, 0.0), (0.0, -3.0, 0.0), depth=10), (1.0, 1.0, 1.0))

    def test_horizon_blends_halfway(self):
        """Test a horizontal ray sees the midpoint of white and sky."""
        from pathtracer.core.integrator import trace_ray

        color = trace_ray((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), depth=10)
        _assert_color(color, (0.8, 0.875, 0.8))

    def test_direction_length_does_not_matter(self):
        from pathtracer.core.integrator import trace_ray

        short = trace_ray((0.0, 0.0, 0.0), (1.0, 1.0, 0.0), depth=5)
        long = trace_ray((0.0, 0.0, 0.0), (7.0, 7.0, 0.0), depth=5)
        _assert_color(short, long)

    def test_custom_sky_color(self):
        from pathtracer.core.integrator import get_sky_color, set_sky_color, trace_ray

        set_sky_color((0.1, 0.2, 0.3))
        assert get_sky_color() == pytest.approx((0.1, 0.2, 0.3))
        _assert_color(trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), depth=1), (0.1, 0.2, 0.3))


class TestDepth:
    """Test depth limits."""

    def test_zero_depth_is_black(self):
        from pathtracer.core.integrator import trace_ray

        assert trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), depth=0) == (0.0, 0.0, 0.0)

    def test_negative_depth_rejected(self):
        from pathtracer.core.integrator import trace_ray

        with pytest.raises(ValueError, match="depth"):
            trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), depth=-1)

    def test_enclosed_path_is_black(self):
        """Test a path that never escapes an enclosing sphere contributes nothing."""
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, 0.0), 10.0, (0.9, 0.9, 0.9))

        for seed in range(5):
            color = trace_ray((0.0, 0.0, 0.0), (0.3, 0.4, -1.0), depth=20, seed=seed)
            assert color == (0.0, 0.0, 0.0)


class TestMaterialDispatch:
    """Test the integrator routes hits to the right material."""

    def _mirror_scene(self):
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -5.0), 1.0, (0.5, 0.5, 0.5), 0.0)
        return scene

    def test_mirror_reflects_sky(self):
        """Test a perfect mirror bounces the ray straight back to the horizon."""
        from pathtracer.core.integrator import trace_ray

        self._mirror_scene()
        color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), depth=2)
        _assert_color(color, (0.4, 0.4375, 0.4))

    def test_mirror_without_remaining_depth_is_black(self):
        from pathtracer.core.integrator import trace_ray

        self._mirror_scene()
        assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), depth=1) == (0.0, 0.0, 0.0)

    def test_black_albedo_absorbs(self):
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -5.0), 1.0, (0.0, 0.0, 0.0))

        color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), depth=10, seed=3)
        _assert_color(color, (0.0, 0.0, 0.0))

    def test_same_seed_same_color(self):
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.5, 0.5, 0.5))
        scene.add_dielectric_sphere((0.0, 0.0, -1.0), 0.5, 1.5)

        first = trace_ray((0.0, 0.0, 0.0), (0.1, -0.1, -1.0), depth=10, seed=11)
        second = trace_ray((0.0, 0.0, 0.0), (0.1, -0.1, -1.0), depth=10, seed=11)
        assert first == second

    def test_colors_are_bounded(self):
        """Test attenuation never amplifies the sky radiance."""
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.8, 0.8, 0.0))
        scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), 0.3)
        scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.5, 1.5)

        for seed in range(10):
            color = trace_ray((0.0, 0.0, 0.0), (seed * 0.1 - 0.5, -0.2, -1.0), 10, seed)
            assert all(0.0 <= c <= 1.0 for c in color)


class TestParallelTracing:
    """Test ray_color called from a parallel kernel."""

    def test_streams_trace_independently(self):
        from pathtracer.core.integrator import ray_color
        from pathtracer.core.ray import vec3
        from pathtracer.core.sampler import seed_stream

        n = 16
        results = ti.Vector.field(3, dtype=ti.f64, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                seed_stream(k, 5, 0, k)
                results[k] = ray_color(vec3(0.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0), 4, k)

        test_kernel()
        out = results.to_numpy()
        for k in range(n):
            _assert_color(out[k], (0.6, 0.75, 0.6))
