"""Dielectric (glass/water) material.

The material reflects or refracts according to Snell's law and Schlick's
approximation of Fresnel reflectance:

    cos_theta = min(dot(-d, n), 1)
    eta       = ior       if the ray is inside the medium
                1 / ior   if the ray enters from vacuum
    r0        = ((1 - eta) / (1 + eta))^2
    R         = r0 + (1 - r0) * (1 - cos_theta)^5

Total internal reflection (eta * sin_theta > 1) always reflects. Otherwise a
uniform draw below R reflects and anything else refracts. Clear glass does
not tint, so the attenuation is white. The lobe is delta-like and
``scatter_pdf_dielectric`` is 0.

Example:
    >>> # Inside a Taichi kernel:
    >>> # did, direction, attenuation, pdf, rng = scatter_dielectric(
    >>> #     ior, incident_dir, normal, inside, rng
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from raytrace.core.ray import reflect, refract, schlick_fresnel
from raytrace.core.rng import rand_f32

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def relative_ior(ior: ti.f32, inside: ti.i32) -> ti.f32:
    """Relative index n_incident / n_transmitted for a vacuum-bounded medium."""
    return ti.select(inside == 1, ior, 1.0 / ior)


@ti.func
def will_reflect(ior: ti.f32, incident_direction: vec3, normal: vec3, inside: ti.i32) -> ti.i32:
    """Return 1 when total internal reflection forces a reflection."""
    eta = relative_ior(ior, inside)
    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    return ti.select(eta * sin_theta > 1.0, 1, 0)


@ti.func
def fresnel_reflectance(ior: ti.f32, incident_direction: vec3, normal: vec3, inside: ti.i32) -> ti.f32:
    """Schlick reflectance for the given incidence."""
    eta = relative_ior(ior, inside)
    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    return schlick_fresnel(cos_theta, eta)


@ti.func
def scatter_pdf_dielectric(normal: vec3, direction: vec3) -> ti.f32:
    return 0.0


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    inside: ti.i32,
    rng: ti.u32,
):
    """Reflect or refract through a dielectric interface.

    Args:
        ior: Index of refraction of the medium (>= 1).
        incident_direction: The incoming ray direction (unit length).
        normal: The ray-facing surface normal (unit length).
        inside: 1 when the ray travels inside the medium toward vacuum.
        rng: RNG state.

    Returns:
        A tuple of (did_scatter, direction, attenuation, sampling_pdf, rng).
        Dielectrics always scatter.
    """
    eta = relative_ior(ior, inside)
    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    reflectance = schlick_fresnel(cos_theta, eta)

    u, rng = rand_f32(rng)

    direction = vec3(0.0, 0.0, 0.0)
    if eta * sin_theta > 1.0 or u < reflectance:
        direction = reflect(incident_direction, normal)
    else:
        direction = refract(incident_direction, normal, eta)

    return 1, tm.normalize(direction), vec3(1.0, 1.0, 1.0), 0.0, rng


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Reset the dielectric registry to empty."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).
            Common values: Water=1.33, Glass=1.5, Diamond=2.4.

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If IOR is less than 1.0.
    """
    if ior < 1.0:
        raise ValueError(
            f"Index of refraction = {ior} is less than 1.0. "
            "IOR must be >= 1.0 for physically meaningful materials."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    return dielectric_iors[material_idx]
