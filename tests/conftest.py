"""Pytest configuration for raytracer tests.

Provides shared fixtures for all test modules, including Taichi
initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Reset every registry, the importance targets and the estimator settings.

    This keeps tests isolated from each other.
    """
    # Imported here so Taichi is initialized first
    from raytrace.core.importance import reset_importance_sampling
    from raytrace.core.integrator import clear_render_target, configure_renderer
    from raytrace.materials.dielectric import clear_dielectric_materials
    from raytrace.materials.lambertian import clear_lambertian_materials
    from raytrace.materials.light import clear_light_materials
    from raytrace.materials.metal import clear_metal_materials
    from raytrace.scene.intersection import clear_scene
    from raytrace.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_light_materials()
        _clear_material_tracking()
        reset_importance_sampling()
        configure_renderer()
        clear_render_target()

    _clear_all()
    yield
    _clear_all()
