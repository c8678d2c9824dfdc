"""Lambertian (ideal diffuse) material.

Directions are drawn from the cosine-weighted hemisphere around the normal,
built through a local orthonormal frame. The material's true density is

    scatter_pdf(n, w) = max(LAMBERTIAN_PDF_FLOOR, cos(theta) / pi)

The floor keeps the density strictly positive so the integrator's
``scatter_pdf / sampling_pdf`` ratio never divides by zero. The same
function is strictly increasing in cos(theta) above the floor.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raytrace.materials.lambertian import scatter_lambertian
    >>> # Inside a Taichi kernel:
    >>> # did, direction, attenuation, pdf, rng = scatter_lambertian(albedo, normal, rng)
"""

import taichi as ti
import taichi.math as tm

from raytrace.core.ray import near_zero, sample_cosine_hemisphere

# Type alias for 3D vectors
vec3 = tm.vec3

# Lower bound on the Lambertian density
LAMBERTIAN_PDF_FLOOR = 1e-3


@ti.func
def scatter_pdf_lambertian(normal: vec3, direction: vec3) -> ti.f32:
    """True density of the Lambertian lobe at ``direction``.

    Args:
        normal: The ray-facing surface normal (unit length).
        direction: The outgoing direction.

    Returns:
        max(LAMBERTIAN_PDF_FLOOR, cos(theta) / pi).
    """
    cos_theta = tm.dot(tm.normalize(normal), tm.normalize(direction))
    return tm.max(LAMBERTIAN_PDF_FLOOR, cos_theta / tm.pi)


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3, rng: ti.u32):
    """Sample an outgoing direction from the cosine-weighted hemisphere.

    A numerically zero sample falls back to the normal itself.

    Args:
        albedo: The diffuse reflectance (RGB in [0, 1]).
        normal: The ray-facing surface normal (unit length).
        rng: RNG state.

    Returns:
        A tuple of (did_scatter, direction, attenuation, sampling_pdf, rng).
        Lambertian surfaces always scatter; attenuation is the albedo and
        sampling_pdf is the lobe density of the drawn direction.
    """
    direction, rng = sample_cosine_hemisphere(normal, rng)
    if near_zero(direction):
        direction = normal
    sampling_pdf = scatter_pdf_lambertian(normal, direction)
    return 1, direction, albedo, sampling_pdf, rng


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 512

lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Reset the Lambertian registry to empty."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the registry.

    Args:
        albedo: The diffuse reflectance as (R, G, B), each in [0, 1].

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If any albedo component is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    return lambertian_albedos[material_idx]
