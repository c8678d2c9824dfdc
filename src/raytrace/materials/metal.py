"""Metal (glossy specular) material.

The outgoing direction is the mirror reflection of the incident direction,
perturbed by ``roughness`` times a random point in the unit sphere and then
renormalized:

    out = normalize(reflect(d, n) + roughness * p),  |p| <= 1

A perturbed direction that ends up at or below the surface is absorbed.
The lobe is delta-like, so ``scatter_pdf_metal`` is 0 and the integrator
skips MIS reweighting for metals.

Example:
    >>> # Inside a Taichi kernel:
    >>> # did, direction, attenuation, pdf, rng = scatter_metal(
    >>> #     albedo, roughness, incident_dir, normal, rng
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from raytrace.core.ray import near_zero, random_in_unit_sphere, reflect

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_pdf_metal(normal: vec3, direction: vec3) -> ti.f32:
    return 0.0


@ti.func
def perturb_reflection(reflected: vec3, roughness: ti.f32, fuzz: vec3, normal: vec3):
    """Offset a mirror direction by roughness * fuzz and renormalize.

    Returns (did_scatter, direction). A degenerate offset that cancels the
    reflection, or one that lands at or below the surface, is absorbed.
    """
    perturbed = reflected + roughness * fuzz
    did_scatter = 0
    direction = reflected
    if not near_zero(perturbed):
        direction = tm.normalize(perturbed)
        if tm.dot(direction, normal) > 0.0:
            did_scatter = 1

    return did_scatter, direction


@ti.func
def scatter_metal(
    albedo: vec3,
    roughness: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    rng: ti.u32,
):
    """Reflect the incident direction with roughness perturbation.

    Args:
        albedo: The reflective tint (RGB in [0, 1]).
        roughness: Perturbation scale in [0, 1]. 0 is a perfect mirror.
        incident_direction: The incoming ray direction (unit length).
        normal: The ray-facing surface normal (unit length).
        rng: RNG state.

    Returns:
        A tuple of (did_scatter, direction, attenuation, sampling_pdf, rng).
        did_scatter is 0 when the perturbed direction vanishes or points
        into the surface.
    """
    reflected = reflect(incident_direction, normal)
    fuzz, rng = random_in_unit_sphere(rng)
    did_scatter, direction = perturb_reflection(reflected, roughness, fuzz, normal)
    return did_scatter, direction, albedo, 0.0, rng


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 256

metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_roughness = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Reset the metal registry to empty."""
    num_metal_materials[None] = 0


def add_metal_material(albedo: tuple[float, float, float], roughness: float = 0.0) -> int:
    """Add a metal material to the registry.

    Args:
        albedo: The reflective tint as (R, G, B), each in [0, 1].
        roughness: Perturbation scale in [0, 1]. Default is 0 (mirror).

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If any albedo component or the roughness is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    if roughness < 0.0 or roughness > 1.0:
        raise ValueError(f"Roughness = {roughness} is outside [0, 1].")

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_roughness[idx] = roughness
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    return metal_albedos[material_idx]


@ti.func
def get_metal_roughness(material_idx: ti.i32) -> ti.f32:
    return metal_roughness[material_idx]
