"""Core rendering module.

Components:
    ray: Ray data structure, vector helpers and direction sampling
    rng: Explicit per-sample random streams
    importance: Light/sphere/hemisphere mixture sampling for diffuse bounces
    integrator: Bounce loop, material dispatch and render kernels
    progressive: Batched accumulation with callbacks and cancellation
    utils: Logging helpers

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    Ray,
    build_onb,
    length_squared,
    local_to_world,
    make_ray,
    near_zero,
    random_cone_direction,
    random_cosine_direction,
    random_in_unit_disk,
    random_in_unit_sphere,
    ray_at,
    reflect,
    refract,
    sample_cosine_hemisphere,
    schlick_fresnel,
    schlick_r0,
)
from .rng import init_rng, pcg_hash, rand_f32, rand_range

# integrator and progressive are not imported here: they depend on the scene
# package, which itself imports core.importance.
#   from raytrace.core.progressive import ProgressiveRenderer

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "length_squared",
    "reflect",
    "refract",
    "schlick_r0",
    "schlick_fresnel",
    "near_zero",
    "build_onb",
    "local_to_world",
    "random_in_unit_sphere",
    "random_in_unit_disk",
    "random_cosine_direction",
    "random_cone_direction",
    "sample_cosine_hemisphere",
    "pcg_hash",
    "init_rng",
    "rand_f32",
    "rand_range",
]
