"""Ray data structure, vector helpers and Monte Carlo sampling routines.

All sampling routines draw from an explicit RNG state (see
``raytrace.core.rng``) and hand the advanced state back to the caller as the
last element of their return tuple.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

from raytrace.core.rng import rand_f32

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Rays are never updated in place; each bounce builds a new one.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3), unit or near-unit.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point ray.origin + t * ray.direction."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror an incident direction about a unit normal.

    Args:
        incident: The incoming direction (pointing toward the surface).
        normal: The surface normal (unit length).

    Returns:
        The reflected direction.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract a unit direction through a surface using Snell's law.

    Args:
        incident: The incoming direction (unit length).
        normal: The surface normal facing the incident ray (unit length).
        eta: Ratio of refractive indices, n_incident / n_transmitted.

    Returns:
        The refracted direction, or a zero vector on total internal
        reflection.
    """
    cos_i = -tm.dot(incident, normal)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * incident + (eta * cos_i - cos_t) * normal
    return result


@ti.func
def schlick_r0(eta: ti.f32) -> ti.f32:
    """Reflectance at normal incidence for relative index ``eta``."""
    r0 = (1.0 - eta) / (1.0 + eta)
    return r0 * r0


@ti.func
def schlick_fresnel(cosine: ti.f32, eta: ti.f32) -> ti.f32:
    """Schlick's approximation of Fresnel reflectance.

    Args:
        cosine: Cosine between the reversed incident direction and the normal.
        eta: Relative index of refraction.

    Returns:
        r0 + (1 - r0) * (1 - cosine)^5. Equals r0 exactly when cosine == 1.
    """
    r0 = schlick_r0(eta)
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Return 1 when every component of v is below 1e-8 in magnitude."""
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Orthonormal Bases
# =============================================================================


@ti.func
def build_onb(axis: vec3):
    """Build an orthonormal basis whose z-axis is ``axis``.

    The helper vector is +x unless the axis is nearly parallel to it, in which
    case +y is used.

    Args:
        axis: The direction to use as local z (unit length).

    Returns:
        A tuple (tangent, bitangent, axis).
    """
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(axis.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = tm.normalize(tm.cross(a, axis))
    bitangent = tm.cross(axis, tangent)
    return tangent, bitangent, axis


@ti.func
def local_to_world(local_dir: vec3, tangent: vec3, bitangent: vec3, axis: vec3) -> vec3:
    return local_dir.x * tangent + local_dir.y * bitangent + local_dir.z * axis


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_in_unit_sphere(rng: ti.u32):
    """Generate a random point inside the unit sphere by rejection.

    The loop is capped; the origin is returned if every proposal is rejected,
    which has negligible probability.

    Returns:
        A tuple of (point, rng).
    """
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    for _ in range(64):
        if found == 0:
            x, rng = rand_f32(rng)
            y, rng = rand_f32(rng)
            z, rng = rand_f32(rng)
            candidate = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 2.0 * z - 1.0)
            if length_squared(candidate) <= 1.0:
                p = candidate
                found = 1
    return p, rng


@ti.func
def random_in_unit_disk(rng: ti.u32):
    """Generate a random point (x, y, 0) inside the unit disk.

    Used for thin-lens depth of field.

    Returns:
        A tuple of (point, rng).
    """
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    for _ in range(64):
        if found == 0:
            x, rng = rand_f32(rng)
            y, rng = rand_f32(rng)
            candidate = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 0.0)
            if candidate.x * candidate.x + candidate.y * candidate.y < 1.0:
                p = candidate
                found = 1
    return p, rng


@ti.func
def random_cosine_direction(rng: ti.u32):
    """Cosine-weighted direction about local +z (pdf = cos(theta) / pi).

    Returns:
        A tuple of (direction, rng).
    """
    r1, rng = rand_f32(rng)
    r2, rng = rand_f32(rng)
    phi = 2.0 * tm.pi * r1
    sqrt_r2 = ti.sqrt(r2)
    direction = vec3(ti.cos(phi) * sqrt_r2, ti.sin(phi) * sqrt_r2, ti.sqrt(1.0 - r2))
    return direction, rng


@ti.func
def random_cone_direction(cos_theta_max: ti.f32, rng: ti.u32):
    """Uniformly sample a direction inside a cone about local +z.

    Args:
        cos_theta_max: Cosine of the cone half-angle.

    Returns:
        A tuple of (direction, rng). The density over solid angle is
        1 / (2 * pi * (1 - cos_theta_max)).
    """
    r1, rng = rand_f32(rng)
    r2, rng = rand_f32(rng)
    z = 1.0 + r2 * (cos_theta_max - 1.0)
    phi = 2.0 * tm.pi * r1
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - z * z))
    direction = vec3(ti.cos(phi) * sin_theta, ti.sin(phi) * sin_theta, z)
    return direction, rng


@ti.func
def sample_cosine_hemisphere(normal: vec3, rng: ti.u32):
    """Cosine-weighted hemisphere sample around a world-space normal.

    Args:
        normal: The surface normal defining the hemisphere (unit length).
        rng: RNG state.

    Returns:
        A tuple of (direction, rng) with direction in world space.
    """
    local_dir, rng = random_cosine_direction(rng)
    tangent, bitangent, n = build_onb(normal)
    return tm.normalize(local_to_world(local_dir, tangent, bitangent, n)), rng
