"""Unit tests for per-task random streams and sampling helpers.

Tests cover:
- Uniform draws stay in [0, 1) and [lo, hi)
- Streams are reproducible from (seed, row, column) and independent
- Rejection samplers stay inside the unit sphere / unit disk
"""

import numpy as np
import taichi as ti


class TestStreams:
    """Tests for stream seeding and uniform draws."""

    def test_random_real_range(self):
        """Test every draw lies in [0, 1)."""
        from pathtracer.core.sampler import random_real, seed_stream

        n = 2000
        result = ti.field(dtype=ti.f64, shape=n)

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                seed_stream(0, ti.u32(123), 4, 5)
                for k in range(n):
                    result[k] = random_real(0)

        test_kernel()
        values = result.to_numpy()
        assert values.min() >= 0.0
        assert values.max() < 1.0
        # Crude uniformity check
        assert abs(values.mean() - 0.5) < 0.05

    def test_random_range(self):
        from pathtracer.core.sampler import random_range, seed_stream

        n = 500
        result = ti.field(dtype=ti.f64, shape=n)

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                seed_stream(0, ti.u32(9), 0, 0)
                for k in range(n):
                    result[k] = random_range(0, 0.4, 1.0)

        test_kernel()
        values = result.to_numpy()
        assert values.min() >= 0.4
        assert values.max() < 1.0

    def test_same_coordinates_reproduce_sequence(self):
        """Test two slots seeded identically produce identical draws."""
        from pathtracer.core.sampler import random_real, seed_stream

        result = ti.field(dtype=ti.f64, shape=(2, 8))

        @ti.kernel
        def test_kernel():
            for s in range(2):
                seed_stream(s, ti.u32(77), 10, 20)
                for k in range(8):
                    result[s, k] = random_real(s)

        test_kernel()
        values = result.to_numpy()
        assert (values[0] == values[1]).all()

    def test_different_coordinates_differ(self):
        """Test neighbouring pixels and different seeds get different sequences."""
        from pathtracer.core.sampler import random_real, seed_stream

        result = ti.field(dtype=ti.f64, shape=(3, 4))

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                seed_stream(0, ti.u32(1), 0, 0)
                seed_stream(1, ti.u32(1), 0, 1)
                seed_stream(2, ti.u32(2), 0, 0)
                for k in range(4):
                    result[0, k] = random_real(0)
                    result[1, k] = random_real(1)
                    result[2, k] = random_real(2)

        test_kernel()
        values = result.to_numpy()
        assert not (values[0] == values[1]).all()
        assert not (values[0] == values[2]).all()

    def test_pixel_grid_streams_are_distinct(self):
        """Test every (row, column) of a wide grid starts a different sequence."""
        from pathtracer.core.sampler import MAX_STREAMS, random_real, seed_stream

        rows = 4
        columns = MAX_STREAMS // rows
        result = ti.field(dtype=ti.f64, shape=(MAX_STREAMS, 2))

        @ti.kernel
        def test_kernel():
            for s in range(MAX_STREAMS):
                seed_stream(s, ti.u32(3), (s // columns) * 1000 + 1, (s % columns) * 4)
                result[s, 0] = random_real(s)
                result[s, 1] = random_real(s)

        test_kernel()
        starts = result.to_numpy()
        assert np.unique(starts, axis=0).shape[0] == MAX_STREAMS

    def test_reset_streams_is_deterministic(self):
        from pathtracer.core.sampler import random_real, reset_streams

        result = ti.field(dtype=ti.f64, shape=4)

        @ti.kernel
        def draw():
            for s in range(4):
                result[s] = random_real(s)

        reset_streams(5)
        draw()
        first = result.to_numpy().copy()
        reset_streams(5)
        draw()
        assert (result.to_numpy() == first).all()


class TestSamplingUtilities:
    """Tests for geometric sampling helpers."""

    def test_random_in_unit_sphere_bounds(self):
        from pathtracer.core.ray import length_squared
        from pathtracer.core.sampler import random_in_unit_sphere

        n = 256
        result = ti.field(dtype=ti.f64, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                result[k] = length_squared(random_in_unit_sphere(k))

        test_kernel()
        assert result.to_numpy().max() < 1.0

    def test_random_unit_vector_length(self):
        from pathtracer.core.ray import length
        from pathtracer.core.sampler import random_unit_vector

        n = 256
        result = ti.field(dtype=ti.f64, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                result[k] = length(random_unit_vector(k))

        test_kernel()
        values = result.to_numpy()
        assert abs(values - 1.0).max() < 1e-9

    def test_random_in_unit_disk_bounds(self):
        from pathtracer.core.ray import vec3
        from pathtracer.core.sampler import random_in_unit_disk

        n = 256
        result = ti.field(dtype=vec3, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                result[k] = random_in_unit_disk(k)

        test_kernel()
        points = result.to_numpy()
        assert (points[:, 2] == 0.0).all()
        assert (points[:, 0] ** 2 + points[:, 1] ** 2).max() < 1.0
