"""Unit tests for the look-at camera.

Tests cover:
- Camera basis and viewport construction
- Ray generation through the image center and corners
- Jittered rays stay inside their pixel footprint
- Thin lens origins stay on the lens disk and converge on the focus plane
- Parameter validation
"""

import math

import numpy as np
import pytest
import taichi as ti


def _camera(**overrides):
    from raytrace.camera import ThinLensCamera

    params = dict(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=2.0,
    )
    params.update(overrides)
    return ThinLensCamera(**params)


def _rays(coords, seed=0):
    """Generate rays for a list of (s, t) pairs."""
    from raytrace.camera import get_ray
    from raytrace.core.rng import init_rng

    n = len(coords)
    s_in = ti.field(dtype=ti.f32, shape=n)
    t_in = ti.field(dtype=ti.f32, shape=n)
    origins = ti.field(dtype=ti.math.vec3, shape=n)
    directions = ti.field(dtype=ti.math.vec3, shape=n)
    s_in.from_numpy(np.array([c[0] for c in coords], dtype=np.float32))
    t_in.from_numpy(np.array([c[1] for c in coords], dtype=np.float32))

    @ti.kernel
    def test_kernel():
        for i in range(n):
            rng = init_rng(i, 0, seed)
            ray, rng = get_ray(s_in[i], t_in[i], rng)
            origins[i] = ray.origin
            directions[i] = ray.direction

    test_kernel()
    return origins.to_numpy(), directions.to_numpy()


class TestCameraSetup:
    """Tests for setup_camera and get_camera_info."""

    def test_basis_and_viewport(self):
        from raytrace.camera import get_camera_info, setup_camera

        setup_camera(_camera())
        info = get_camera_info()
        assert info["w"] == pytest.approx((0.0, 0.0, 1.0), abs=1e-6)
        assert info["u"] == pytest.approx((1.0, 0.0, 0.0), abs=1e-6)
        assert info["v"] == pytest.approx((0.0, 1.0, 0.0), abs=1e-6)
        # vfov 90 at focus distance 1: viewport height 2, width 4
        assert info["horizontal"] == pytest.approx((4.0, 0.0, 0.0), abs=1e-6)
        assert info["vertical"] == pytest.approx((0.0, 2.0, 0.0), abs=1e-6)
        assert info["lower_left"] == pytest.approx((-2.0, -1.0, -1.0), abs=1e-6)
        assert info["lens_radius"] == (0.0,)

    @pytest.mark.parametrize(
        "overrides,match",
        [
            ({"vfov": 0.0}, "vfov"),
            ({"vfov": 180.0}, "vfov"),
            ({"aspect_ratio": 0.0}, "aspect_ratio"),
            ({"aperture": -1.0}, "aperture"),
            ({"focus_distance": 0.0}, "focus_distance"),
            ({"lookat": (0.0, 0.0, 0.0)}, "differ"),
            ({"vup": (0.0, 0.0, 1.0)}, "parallel"),
        ],
    )
    def test_invalid_parameters(self, overrides, match):
        from raytrace.camera import setup_camera

        with pytest.raises(ValueError, match=match):
            setup_camera(_camera(**overrides))


class TestRayGeneration:
    """Tests for get_ray and get_ray_jittered."""

    def test_center_and_corner_rays(self):
        from raytrace.camera import setup_camera

        setup_camera(_camera())
        origins, directions = _rays([(0.5, 0.5), (0.0, 0.0), (1.0, 1.0)])
        assert np.allclose(origins, 0.0)
        assert np.allclose(directions[0], (0.0, 0.0, -1.0), atol=1e-6)
        assert np.allclose(directions[1], np.array([-2.0, -1.0, -1.0]) / math.sqrt(6.0), atol=1e-6)
        assert np.allclose(directions[2], np.array([2.0, 1.0, -1.0]) / math.sqrt(6.0), atol=1e-6)

    def test_thin_lens_converges_on_focus_plane(self):
        from raytrace.camera import setup_camera

        setup_camera(_camera(aperture=0.5, focus_distance=4.0))
        origins, directions = _rays([(0.3, 0.6)] * 256, seed=9)

        offsets = np.linalg.norm(origins[:, :2], axis=1)
        assert offsets.max() <= 0.25 + 1e-6
        assert offsets.max() > 0.0
        assert np.allclose(origins[:, 2], 0.0)

        # Every ray reaches the same point on the z = -4 plane
        t = -4.0 / directions[:, 2]
        focus_points = origins + t[:, None] * directions
        assert np.allclose(focus_points, focus_points[0], atol=1e-3)

    def test_jittered_rays_stay_in_pixel(self):
        from raytrace.camera import get_ray_jittered, setup_camera
        from raytrace.core.rng import init_rng

        setup_camera(_camera(vfov=60.0, aspect_ratio=1.0))
        width, height = 8, 8
        n = 200
        directions = ti.field(dtype=ti.math.vec3, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                rng = init_rng(k, 0, 0)
                ray, rng = get_ray_jittered(2, 5, width, height, rng)
                directions[k] = ray.direction

        test_kernel()
        d = directions.to_numpy()
        # Project back onto the z = -1 image plane, in [0, 1] image coordinates
        h = math.tan(math.radians(30.0))
        s = (d[:, 0] / -d[:, 2] / h + 1.0) / 2.0
        t = (d[:, 1] / -d[:, 2] / h + 1.0) / 2.0
        assert s.min() >= 2 / width - 1e-5 and s.max() <= 3 / width + 1e-5
        assert t.min() >= 5 / height - 1e-5 and t.max() <= 6 / height + 1e-5
