"""Unit tests for the dielectric material.

Tests cover:
- Relative index convention (entering vs exiting)
- Normal incidence: no total internal reflection, reflectance equals r0
- Total internal reflection when exiting at grazing angles
- Reflect/refract split follows Schlick reflectance
- Registry validation
"""

import numpy as np
import pytest
import taichi as ti


class TestDielectricOptics:
    """Tests for relative_ior, will_reflect and fresnel_reflectance."""

    def test_relative_ior(self):
        from raytrace.materials.dielectric import relative_ior

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = relative_ior(1.5, 0)
            result[1] = relative_ior(1.5, 1)

        test_kernel()
        assert result[0] == pytest.approx(1.0 / 1.5)
        assert result[1] == pytest.approx(1.5)

    @pytest.mark.parametrize("inside", [0, 1])
    def test_normal_incidence(self, inside):
        from raytrace.core.ray import schlick_r0
        from raytrace.materials.dielectric import fresnel_reflectance, relative_ior, will_reflect, vec3

        tir = ti.field(dtype=ti.i32, shape=())
        reflectance = ti.field(dtype=ti.f32, shape=())
        r0 = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            incident = vec3(0.0, 0.0, -1.0)
            normal = vec3(0.0, 0.0, 1.0)
            tir[None] = will_reflect(1.5, incident, normal, inside)
            reflectance[None] = fresnel_reflectance(1.5, incident, normal, inside)
            r0[None] = schlick_r0(relative_ior(1.5, inside))

        test_kernel()
        assert tir[None] == 0
        assert reflectance[None] == r0[None]
        assert reflectance[None] == pytest.approx(0.04, abs=1e-6)

    def test_total_internal_reflection_when_exiting(self):
        from raytrace.materials.dielectric import will_reflect, vec3

        tir = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(vec3(1.0, -0.3, 0.0))
            normal = vec3(0.0, 1.0, 0.0)
            tir[0] = will_reflect(1.5, incident, normal, 1)
            tir[1] = will_reflect(1.5, incident, normal, 0)

        test_kernel()
        assert tir[0] == 1
        assert tir[1] == 0


class TestDielectricScatter:
    """Tests for scatter_dielectric."""

    def test_always_scatters_white(self):
        from raytrace.core.rng import init_rng
        from raytrace.materials.dielectric import scatter_dielectric, vec3

        n = 200
        did = ti.field(dtype=ti.i32, shape=n)
        attenuation = ti.field(dtype=ti.math.vec3, shape=n)
        pdfs = ti.field(dtype=ti.f32, shape=n)
        lengths = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = init_rng(i, 0, 0)
                incident = ti.math.normalize(vec3(0.3, -1.0, 0.1))
                s, d, att, pdf, rng = scatter_dielectric(1.5, incident, vec3(0.0, 1.0, 0.0), 0, rng)
                did[i] = s
                attenuation[i] = att
                pdfs[i] = pdf
                lengths[i] = ti.math.length(d)

        test_kernel()
        assert did.to_numpy().min() == 1
        assert np.allclose(attenuation.to_numpy(), 1.0)
        assert np.all(pdfs.to_numpy() == 0.0)
        assert np.allclose(lengths.to_numpy(), 1.0, atol=1e-5)

    def test_reflect_fraction_matches_schlick(self):
        from raytrace.core.rng import init_rng
        from raytrace.materials.dielectric import scatter_dielectric, vec3

        n = 20000
        reflected = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = init_rng(i, 0, 5)
                s, d, att, pdf, rng = scatter_dielectric(
                    1.5, vec3(0.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0), 0, rng
                )
                reflected[i] = ti.select(d.y > 0.0, 1, 0)

        test_kernel()
        fraction = reflected.to_numpy().mean()
        assert fraction == pytest.approx(0.04, abs=0.01)

    def test_total_internal_reflection_always_reflects(self):
        from raytrace.core.rng import init_rng
        from raytrace.materials.dielectric import scatter_dielectric, vec3

        n = 100
        up = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = init_rng(i, 0, 6)
                incident = ti.math.normalize(vec3(1.0, -0.3, 0.0))
                s, d, att, pdf, rng = scatter_dielectric(1.5, incident, vec3(0.0, 1.0, 0.0), 1, rng)
                up[i] = ti.select(d.y > 0.0, 1, 0)

        test_kernel()
        assert up.to_numpy().min() == 1


class TestDielectricRegistry:
    """Tests for the dielectric material registry."""

    def test_add(self):
        from raytrace.materials.dielectric import add_dielectric_material, get_dielectric_material_count

        assert add_dielectric_material(1.33) == 0
        assert add_dielectric_material() == 1
        assert get_dielectric_material_count() == 2

    def test_ior_below_one_rejected(self):
        from raytrace.materials.dielectric import add_dielectric_material

        with pytest.raises(ValueError, match="less than 1.0"):
            add_dielectric_material(0.9)
