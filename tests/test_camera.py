"""Tests for the thin-lens camera.

Note: Imports are done inside test methods so Taichi is initialized first.
"""

import numpy as np
import pytest
import taichi as ti


def _camera(**overrides):
    from pathtracer.camera.thin_lens import ThinLensCamera

    params = dict(
        vfov=90.0,
        aspect_ratio=2.0,
        look_from=(0.0, 0.0, 0.0),
        look_at=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        aperture=0.0,
        focus_dist=1.0,
    )
    params.update(overrides)
    return ThinLensCamera(**params)


class TestCameraSetup:
    """Tests for the host-side camera geometry."""

    def test_basis_is_orthonormal(self):
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_camera(look_from=(13.0, 2.0, 3.0), look_at=(0.0, 0.0, 0.0)))
        info = get_camera_info()
        u, v, w = (np.array(info[k]) for k in ("u", "v", "w"))

        for axis in (u, v, w):
            assert np.linalg.norm(axis) == pytest.approx(1.0)
        assert np.dot(u, v) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(v, w) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(u, w) == pytest.approx(0.0, abs=1e-12)
        # w points back toward the camera
        assert np.dot(w, np.array([13.0, 2.0, 3.0])) > 0.0

    def test_viewport_geometry(self):
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_camera())
        info = get_camera_info()

        assert info["horizontal"] == pytest.approx((4.0, 0.0, 0.0))
        assert info["vertical"] == pytest.approx((0.0, 2.0, 0.0))
        assert info["lower_left"] == pytest.approx((-2.0, -1.0, -1.0))
        assert info["lens_radius"] == 0.0

    def test_viewport_scales_with_focus_distance(self):
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_camera(focus_dist=2.5, aperture=0.4))
        info = get_camera_info()

        assert info["horizontal"] == pytest.approx((10.0, 0.0, 0.0))
        assert info["vertical"] == pytest.approx((0.0, 5.0, 0.0))
        assert info["lower_left"] == pytest.approx((-5.0, -2.5, -2.5))
        assert info["lens_radius"] == pytest.approx(0.2)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"aspect_ratio": 0.0},
            {"aperture": -0.1},
            {"focus_dist": 0.0},
            {"look_at": (0.0, 0.0, 0.0)},
            {"vup": (0.0, 0.0, 2.0)},
        ],
    )
    def test_invalid_camera_rejected(self, overrides):
        from pathtracer.camera.thin_lens import setup_camera

        with pytest.raises(ValueError):
            setup_camera(_camera(**overrides))


class TestRayGeneration:
    """Tests for get_ray inside kernels."""

    def test_pinhole_rays_start_at_camera(self):
        from pathtracer.camera.thin_lens import get_ray, setup_camera

        setup_camera(_camera(look_from=(1.0, 2.0, 3.0), look_at=(1.0, 2.0, 2.0)))

        n = 3
        origins = ti.Vector.field(3, dtype=ti.f64, shape=n)
        directions = ti.Vector.field(3, dtype=ti.f64, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                s = 0.5 * k
                ray = get_ray(s, s, k)
                origins[k] = ray.origin
                directions[k] = ray.direction

        test_kernel()
        o = origins.to_numpy()
        d = directions.to_numpy()

        for k in range(n):
            assert tuple(o[k]) == pytest.approx((1.0, 2.0, 3.0))
        assert tuple(d[0]) == pytest.approx((-2.0, -1.0, -1.0))
        assert tuple(d[1]) == pytest.approx((0.0, 0.0, -1.0))
        assert tuple(d[2]) == pytest.approx((2.0, 1.0, -1.0))

    def test_lens_rays_converge_on_focal_plane(self):
        """Test rays for one screen point leave the lens disk but meet at focus."""
        from pathtracer.camera.thin_lens import get_ray, setup_camera

        setup_camera(_camera(aperture=2.0, focus_dist=3.0))

        n = 64
        origins = ti.Vector.field(3, dtype=ti.f64, shape=n)
        targets = ti.Vector.field(3, dtype=ti.f64, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                ray = get_ray(0.25, 0.75, k)
                origins[k] = ray.origin
                targets[k] = ray.origin + ray.direction

        test_kernel()
        o = origins.to_numpy()
        t = targets.to_numpy()

        assert np.all(o[:, 2] == 0.0)
        assert np.all(np.hypot(o[:, 0], o[:, 1]) < 1.0)
        assert np.ptp(o[:, 0]) > 0.0
        for k in range(n):
            assert tuple(t[k]) == pytest.approx(tuple(t[0]))
        assert tuple(t[0]) == pytest.approx((-3.0, 1.5, -3.0))
