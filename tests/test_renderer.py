"""Tests for the row-by-row render driver.

Note: Imports are done inside test methods so Taichi is initialized first.
"""

import numpy as np
import pytest


def _setup_camera(aperture=0.0):
    from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera

    setup_camera(
        ThinLensCamera(
            vfov=90.0,
            aspect_ratio=1.0,
            look_from=(0.0, 0.0, 0.0),
            look_at=(0.0, 0.0, -1.0),
            vup=(0.0, 1.0, 0.0),
            aperture=aperture,
            focus_dist=1.0,
        )
    )


def _small_scene():
    from pathtracer.scene.manager import SceneManager

    scene = SceneManager()
    scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.5, 0.5, 0.5))
    scene.add_metal_sphere((0.6, 0.0, -1.0), 0.4, (0.8, 0.6, 0.2), 0.3)
    scene.add_dielectric_sphere((-0.6, 0.0, -1.0), 0.4, 1.5)
    return scene


class TestRenderSettings:
    """Tests for settings validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"width": 0, "height": 4},
            {"width": 5000, "height": 4},
            {"width": 4, "height": 0},
            {"width": 4, "height": 4, "samples_per_pixel": 0},
            {"width": 4, "height": 4, "max_depth": -1},
        ],
    )
    def test_invalid_settings(self, kwargs):
        from pathtracer.core.renderer import Renderer, RenderSettings

        with pytest.raises(ValueError):
            Renderer(RenderSettings(**kwargs))

    def test_seed_resolution(self):
        from pathtracer.core.renderer import Renderer, RenderSettings

        assert Renderer(RenderSettings(width=2, height=2, seed=9)).seed == 9
        assert Renderer(RenderSettings(width=2, height=2, seed=2**32 + 3)).seed == 3
        drawn = Renderer(RenderSettings(width=2, height=2)).seed
        assert 0 <= drawn < 2**32


class TestRendering:
    """Tests for rendered output."""

    def test_image_shape_and_type(self):
        from pathtracer.core.renderer import Renderer, RenderSettings

        _setup_camera()
        image = Renderer(RenderSettings(width=6, height=4, samples_per_pixel=1, seed=1)).render()

        assert image.shape == (4, 6, 3)
        assert image.dtype == np.uint8

    def test_white_sky_saturates(self):
        """Test a uniform white background quantizes to 255 everywhere."""
        from pathtracer.core.integrator import set_sky_color
        from pathtracer.core.renderer import Renderer, RenderSettings

        _setup_camera()
        set_sky_color((1.0, 1.0, 1.0))
        image = Renderer(RenderSettings(width=5, height=5, samples_per_pixel=2, seed=1)).render()

        assert np.all(image == 255)

    def test_zero_depth_is_black(self):
        from pathtracer.core.renderer import Renderer, RenderSettings

        _setup_camera()
        _small_scene()
        settings = RenderSettings(width=4, height=4, samples_per_pixel=3, max_depth=0, seed=1)

        assert np.all(Renderer(settings).render() == 0)

    def test_sky_gradient(self):
        """Test the empty-scene image follows the vertical sky gradient."""
        from pathtracer.core.renderer import Renderer, RenderSettings

        _setup_camera()
        image = Renderer(
            RenderSettings(width=8, height=8, samples_per_pixel=4, seed=2)
        ).render().astype(int)

        # Sky is (0.6, 0.75, 0.6) over white: red equals blue, green above both
        assert np.array_equal(image[:, :, 0], image[:, :, 2])
        assert np.all(image[:, :, 1] >= image[:, :, 0])
        assert np.all(image[:, :, 0] >= int(256 * np.sqrt(0.6)))
        # Top rows look further up, so they are less red
        assert image[0, :, 0].mean() < image[-1, :, 0].mean()

    def test_fixed_seed_is_reproducible(self):
        from pathtracer.core.renderer import Renderer, RenderSettings

        _setup_camera(aperture=0.1)
        _small_scene()
        settings = RenderSettings(width=8, height=6, samples_per_pixel=2, max_depth=5, seed=123)

        first = Renderer(settings).render()
        second = Renderer(settings).render()
        assert np.array_equal(first, second)

    def test_rows_match_full_image(self):
        from pathtracer.core.renderer import Renderer, RenderSettings

        _setup_camera()
        _small_scene()
        renderer = Renderer(
            RenderSettings(width=5, height=4, samples_per_pixel=2, max_depth=4, seed=8)
        )
        image = renderer.render()

        rows = list(renderer.render_rows())
        assert [j for j, _ in rows] == [3, 2, 1, 0]
        for j, row in rows:
            assert np.array_equal(row, image[renderer.height - 1 - j])
        assert np.array_equal(renderer.render_row(0), image[-1])

    def test_progress_callback(self):
        from pathtracer.core.renderer import Renderer, RenderSettings

        _setup_camera()
        calls = []
        Renderer(RenderSettings(width=2, height=4, samples_per_pixel=1, seed=1)).render(
            callback=lambda remaining, total: calls.append((remaining, total))
        )

        assert calls == [(4, 4), (3, 4), (2, 4), (1, 4)]

    def test_render_row_out_of_range(self):
        from pathtracer.core.renderer import Renderer, RenderSettings

        renderer = Renderer(RenderSettings(width=2, height=2, seed=1))
        with pytest.raises(ValueError):
            renderer.render_row(2)
        with pytest.raises(ValueError):
            renderer.render_row(-1)
