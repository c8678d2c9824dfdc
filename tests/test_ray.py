"""Unit tests for ray helpers and direction sampling.

Tests cover:
- Ray construction and evaluation
- Reflection and refraction (including total internal reflection)
- Schlick reflectance
- Orthonormal basis construction
- Hemisphere, cone, sphere and disk sampling
"""

import math

import pytest
import taichi as ti


class TestRayBasics:
    """Tests for Ray and ray_at."""

    def test_ray_at(self):
        from raytrace.core.ray import make_ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 2.0, 3.0), vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 2.5)

        test_kernel()
        p = result[None]
        assert p[0] == pytest.approx(1.0)
        assert p[1] == pytest.approx(2.0)
        assert p[2] == pytest.approx(0.5)


class TestReflectRefract:
    """Tests for reflect, refract and Schlick reflectance."""

    def test_reflect_45_degrees(self):
        from raytrace.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(vec3(1.0, -1.0, 0.0))
            result[None] = reflect(incident, vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        s = 1.0 / math.sqrt(2.0)
        assert r[0] == pytest.approx(s, abs=1e-6)
        assert r[1] == pytest.approx(s, abs=1e-6)
        assert r[2] == pytest.approx(0.0, abs=1e-6)

    def test_refract_normal_incidence_passes_straight(self):
        from raytrace.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = refract(vec3(0.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0), 1.0 / 1.5)

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(0.0, abs=1e-6)
        assert r[1] == pytest.approx(-1.0, abs=1e-6)
        assert r[2] == pytest.approx(0.0, abs=1e-6)

    def test_refract_obeys_snell(self):
        from raytrace.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        eta = 1.0 / 1.5
        theta_i = math.radians(30.0)

        @ti.kernel
        def test_kernel():
            incident = vec3(ti.sin(theta_i), -ti.cos(theta_i), 0.0)
            result[None] = refract(incident, vec3(0.0, 1.0, 0.0), eta)

        test_kernel()
        r = result[None]
        assert math.sqrt(r[0] ** 2 + r[1] ** 2 + r[2] ** 2) == pytest.approx(1.0, abs=1e-5)
        # sin(theta_t) = eta * sin(theta_i)
        assert r[0] == pytest.approx(eta * math.sin(theta_i), abs=1e-5)

    def test_refract_total_internal_reflection_returns_zero(self):
        from raytrace.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(vec3(1.0, -0.2, 0.0))
            result[None] = refract(incident, vec3(0.0, 1.0, 0.0), 1.5)

        test_kernel()
        r = result[None]
        assert r[0] == 0.0 and r[1] == 0.0 and r[2] == 0.0

    def test_schlick_at_normal_incidence_is_r0(self):
        from raytrace.core.ray import schlick_fresnel, schlick_r0

        fresnel = ti.field(dtype=ti.f32, shape=())
        r0 = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            fresnel[None] = schlick_fresnel(1.0, 1.0 / 1.5)
            r0[None] = schlick_r0(1.0 / 1.5)

        test_kernel()
        assert fresnel[None] == r0[None]
        assert r0[None] == pytest.approx(0.04, abs=1e-6)

    def test_schlick_grazing_is_one(self):
        from raytrace.core.ray import schlick_fresnel

        fresnel = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            fresnel[None] = schlick_fresnel(0.0, 1.5)

        test_kernel()
        assert fresnel[None] == pytest.approx(1.0, abs=1e-6)


class TestOrthonormalBasis:
    """Tests for build_onb."""

    @pytest.mark.parametrize(
        "axis",
        [(0.0, 0.0, 1.0), (1.0, 0.0, 0.0), (0.0, -1.0, 0.0), (0.577, 0.577, 0.577)],
    )
    def test_basis_is_orthonormal(self, axis):
        from raytrace.core.ray import build_onb, vec3

        dots = ti.field(dtype=ti.f32, shape=6)
        norm = math.sqrt(sum(a * a for a in axis))
        ax, ay, az = (a / norm for a in axis)

        @ti.kernel
        def test_kernel():
            t, b, n = build_onb(vec3(ax, ay, az))
            dots[0] = ti.math.dot(t, t)
            dots[1] = ti.math.dot(b, b)
            dots[2] = ti.math.dot(n, n)
            dots[3] = ti.math.dot(t, b)
            dots[4] = ti.math.dot(t, n)
            dots[5] = ti.math.dot(b, n)

        test_kernel()
        for i in range(3):
            assert dots[i] == pytest.approx(1.0, abs=1e-5)
        for i in range(3, 6):
            assert dots[i] == pytest.approx(0.0, abs=1e-5)


class TestDirectionSampling:
    """Tests for the random direction generators."""

    def test_cosine_hemisphere_above_normal(self):
        from raytrace.core.ray import sample_cosine_hemisphere, vec3
        from raytrace.core.rng import init_rng

        n = 2000
        cosines = ti.field(dtype=ti.f32, shape=n)
        lengths = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            normal = ti.math.normalize(vec3(0.3, 1.0, -0.2))
            for i in range(n):
                rng = init_rng(i, 0, 0)
                d, rng = sample_cosine_hemisphere(normal, rng)
                cosines[i] = ti.math.dot(d, normal)
                lengths[i] = ti.math.length(d)

        test_kernel()
        c = cosines.to_numpy()
        assert c.min() >= -1e-5
        # E[cos] under the cosine lobe is 2/3
        assert abs(c.mean() - 2.0 / 3.0) < 0.03
        assert abs(lengths.to_numpy() - 1.0).max() < 1e-4

    def test_cone_direction_within_cone(self):
        from raytrace.core.ray import random_cone_direction
        from raytrace.core.rng import init_rng

        n = 1000
        zs = ti.field(dtype=ti.f32, shape=n)
        cos_max = 0.8

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = init_rng(i, 0, 3)
                d, rng = random_cone_direction(cos_max, rng)
                zs[i] = d.z

        test_kernel()
        z = zs.to_numpy()
        assert z.min() >= cos_max - 1e-5
        assert z.max() <= 1.0 + 1e-5

    def test_unit_sphere_and_disk_samples(self):
        from raytrace.core.ray import random_in_unit_disk, random_in_unit_sphere
        from raytrace.core.rng import init_rng

        n = 500
        sphere_len2 = ti.field(dtype=ti.f32, shape=n)
        disk_len2 = ti.field(dtype=ti.f32, shape=n)
        disk_z = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = init_rng(i, 0, 11)
                p, rng = random_in_unit_sphere(rng)
                q, rng = random_in_unit_disk(rng)
                sphere_len2[i] = ti.math.dot(p, p)
                disk_len2[i] = ti.math.dot(q, q)
                disk_z[i] = q.z

        test_kernel()
        assert sphere_len2.to_numpy().max() <= 1.0 + 1e-6
        assert disk_len2.to_numpy().max() < 1.0
        assert abs(disk_z.to_numpy()).max() == 0.0
