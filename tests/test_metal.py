"""Unit tests for the Metal material module.

Tests cover:
- Perfect specular reflection (fuzz=0)
- Fuzzy reflection bounded by the fuzz radius
- Ray absorption when scattered below the surface
- Attenuation equals albedo
- Material registry operations and validation
"""

import math

import pytest
import taichi as ti


def _scatter_once(incident, normal, fuzz=0.0):
    from pathtracer.core.ray import vec3
    from pathtracer.materials.metal import scatter_metal

    result_dir = ti.field(dtype=vec3, shape=())
    result_att = ti.field(dtype=vec3, shape=())
    result_scatter = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(incident: vec3, normal: vec3, fuzz: ti.f64):
        for _ in range(1):
            direction, attenuation, did_scatter = scatter_metal(
                vec3(0.9, 0.8, 0.7), fuzz, incident, normal, 0
            )
            result_dir[None] = direction
            result_att[None] = attenuation
            result_scatter[None] = did_scatter

    test_kernel(vec3(*incident), vec3(*normal), fuzz)
    d = result_dir[None]
    return (d[0], d[1], d[2]), result_att[None], result_scatter[None]


class TestPerfectReflection:
    """Tests for perfect specular reflection (fuzz=0)."""

    def test_normal_incidence(self):
        """Test a ray hitting the surface head-on reflects straight back."""
        d, _, did_scatter = _scatter_once((0.0, -1.0, 0.0), (0.0, 1.0, 0.0))
        assert abs(d[0]) < 1e-12
        assert abs(d[1] - 1.0) < 1e-12
        assert abs(d[2]) < 1e-12
        assert did_scatter == 1

    def test_45_degrees_exact(self):
        """Test the mirror direction is exact for an unnormalized incident ray."""
        d, _, did_scatter = _scatter_once((3.0, -3.0, 0.0), (0.0, 1.0, 0.0))
        s = 1.0 / math.sqrt(2.0)
        assert abs(d[0] - s) < 1e-12
        assert abs(d[1] - s) < 1e-12
        assert abs(d[2]) < 1e-12
        assert did_scatter == 1

    def test_attenuation_equals_albedo(self):
        _, a, _ = _scatter_once((1.0, -1.0, 0.0), (0.0, 1.0, 0.0))
        assert abs(a[0] - 0.9) < 1e-12
        assert abs(a[1] - 0.8) < 1e-12
        assert abs(a[2] - 0.7) < 1e-12


class TestFuzzyReflection:
    """Tests for fuzzy reflection (fuzz>0)."""

    def test_fuzz_bounded(self):
        """Test perturbation from the mirror direction never exceeds fuzz."""
        from pathtracer.core.ray import length, normalize, reflect, vec3
        from pathtracer.materials.metal import scatter_metal

        n = 256
        fuzz = 0.3
        deviation = ti.field(dtype=ti.f64, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                incident = vec3(1.0, -1.0, 0.0)
                normal = vec3(0.0, 1.0, 0.0)
                direction, attenuation, did_scatter = scatter_metal(
                    vec3(1.0, 1.0, 1.0), fuzz, incident, normal, k
                )
                mirror = reflect(normalize(incident), normal)
                deviation[k] = length(direction - mirror)

        test_kernel()
        values = deviation.to_numpy()
        assert values.max() < fuzz + 1e-12
        assert values.max() > 0.0

    def test_grazing_fuzzy_reflection_can_absorb(self):
        """Test fuzz can push grazing reflections into the surface (absorption)."""
        from pathtracer.core.ray import vec3
        from pathtracer.materials.metal import scatter_metal

        n = 256
        scattered = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                direction, attenuation, did_scatter = scatter_metal(
                    vec3(1.0, 1.0, 1.0),
                    1.0,
                    vec3(1.0, -0.01, 0.0),
                    vec3(0.0, 1.0, 0.0),
                    k,
                )
                scattered[k] = did_scatter

        test_kernel()
        values = scattered.to_numpy()
        assert (values == 0).any()
        assert (values == 1).any()


class TestMaterialRegistry:
    """Tests for metal material registry operations."""

    def test_add_and_get_material(self):
        from pathtracer.core.ray import vec3
        from pathtracer.materials.metal import add_metal_material, get_metal_albedo, get_metal_fuzz

        idx = add_metal_material((0.7, 0.6, 0.5), fuzz=0.25)
        albedo = ti.field(dtype=vec3, shape=())
        fuzz = ti.field(dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel(mat_idx: ti.i32):
            albedo[None] = get_metal_albedo(mat_idx)
            fuzz[None] = get_metal_fuzz(mat_idx)

        test_kernel(idx)
        assert abs(albedo[None][0] - 0.7) < 1e-12
        assert abs(fuzz[None] - 0.25) < 1e-12

    def test_material_count(self):
        from pathtracer.materials.metal import add_metal_material, get_metal_material_count

        add_metal_material((0.5, 0.5, 0.5))
        add_metal_material((0.5, 0.5, 0.5), 1.0)
        assert get_metal_material_count() == 2

    @pytest.mark.parametrize("fuzz", [-0.1, 1.5])
    def test_fuzz_validation(self, fuzz):
        from pathtracer.materials.metal import add_metal_material

        with pytest.raises(ValueError, match="Fuzz"):
            add_metal_material((0.5, 0.5, 0.5), fuzz)

    def test_albedo_validation(self):
        from pathtracer.materials.metal import add_metal_material

        with pytest.raises(ValueError, match="outside"):
            add_metal_material((0.5, 2.0, 0.5), 0.0)
