"""Mixture importance sampling for diffuse surfaces.

Diffuse bounces draw their outgoing direction from a mixture of three
strategies:

    light target   (weight w_L)  a uniform point on a rectangular light
    sphere target  (weight w_S)  a uniform direction inside the cone
                                 subtended by a specular sphere
    hemisphere     (weight w_H)  the Lambertian cosine lobe

with w_H = 1 - w_L - w_S. Whatever strategy produced the direction, its
sampling density is the full mixture density

    p(w) = w_L * p_light(w) + w_S * p_sphere(w) + w_H * p_lambert(w)

where
    p_light(w)  = dist^2 / (|cos_light| * area), 0 when w misses the light
    p_sphere(w) = 1 / (2 * pi * (1 - cos_theta_max)), 0 when w misses the
                  sphere
    p_lambert   = max(1e-3, cos / pi)

A convex combination of densities is itself a density, so the integrator can
reweight by ``scatter_pdf / p`` no matter which strategy was picked.
Targets that are not configured (or a sphere that contains the shading
point) get weight 0, and their share moves to the hemisphere term.

Firefly suppression: a candidate whose mixture density is below the
configured threshold is discarded and redrawn, up to ``max_retries`` times.
After that, a plain hemisphere sample is returned with a sampling density
equal to its Lambertian density, giving an MIS weight of exactly 1.

Example:
    >>> from raytrace.core.importance import setup_light_target
    >>> setup_light_target(axis=1, k=4.995, bounds=(-2.5, 2.5, -16.25, -13.75), facing=0)
"""

import math

import taichi as ti
import taichi.math as tm

from raytrace.core.ray import (
    build_onb,
    local_to_world,
    near_zero,
    random_cone_direction,
    sample_cosine_hemisphere,
)
from raytrace.core.rng import rand_f32
from raytrace.core.utils import get_logger
from raytrace.geometry.rect import Rect, hit_rect, rect_area, rect_normal, rect_point
from raytrace.geometry.sphere import Sphere, hit_sphere
from raytrace.materials.lambertian import scatter_pdf_lambertian

logger = get_logger()

vec3 = tm.vec3

# Light cosines below this are treated as grazing (zero light density)
LIGHT_COS_EPSILON = 1e-6

# t range used when testing whether a sampled direction reaches a target
TARGET_T_MIN = 1e-5
TARGET_T_MAX = 1e10

DEFAULT_LIGHT_WEIGHT = 0.5
DEFAULT_SPHERE_WEIGHT = 0.0
DEFAULT_FIREFLY_PDF_THRESHOLD = 0.15
DEFAULT_MAX_FIREFLY_RETRIES = 16

# =============================================================================
# Target Configuration
# =============================================================================

_light_enabled = ti.field(dtype=ti.i32, shape=())
_light_axis = ti.field(dtype=ti.i32, shape=())
_light_k = ti.field(dtype=ti.f32, shape=())
_light_bounds = ti.Vector.field(4, dtype=ti.f32, shape=())
_light_facing = ti.field(dtype=ti.i32, shape=())
_light_rotation = ti.field(dtype=ti.f32, shape=())
_light_offset = ti.Vector.field(3, dtype=ti.f32, shape=())

_sphere_enabled = ti.field(dtype=ti.i32, shape=())
_sphere_center = ti.Vector.field(3, dtype=ti.f32, shape=())
_sphere_radius = ti.field(dtype=ti.f32, shape=())

_light_weight = ti.field(dtype=ti.f32, shape=())
_sphere_weight = ti.field(dtype=ti.f32, shape=())
_firefly_threshold = ti.field(dtype=ti.f32, shape=())
_max_firefly_retries = ti.field(dtype=ti.i32, shape=())


def setup_light_target(
    axis: int,
    k: float,
    bounds: tuple[float, float, float, float],
    facing: int,
    rotation: float = 0.0,
    offset: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> None:
    """Register the rectangular light sampled by diffuse bounces.

    Args:
        axis: Constant axis of the light rectangle (0 = x, 1 = y, 2 = z).
        k: Constant coordinate.
        bounds: (a0, a1, b0, b1) in-plane bounds.
        facing: 1 for an outward normal along +axis, 0 for -axis.
        rotation: Rotation about +y in radians.
        offset: World-space offset.
    """
    _light_enabled[None] = 1
    _light_axis[None] = axis
    _light_k[None] = k
    _light_bounds[None] = [bounds[0], bounds[1], bounds[2], bounds[3]]
    _light_facing[None] = facing
    _light_rotation[None] = rotation
    _light_offset[None] = [offset[0], offset[1], offset[2]]
    logger.debug("Light target: axis=%d k=%.4f bounds=%s", axis, k, tuple(bounds))


def setup_sphere_target(center: tuple[float, float, float], radius: float) -> None:
    """Register the specular sphere sampled by diffuse bounces.

    Raises:
        ValueError: If the radius is not positive.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere target radius must be positive, got {radius}")
    _sphere_enabled[None] = 1
    _sphere_center[None] = [center[0], center[1], center[2]]
    _sphere_radius[None] = radius
    logger.debug("Sphere target: center=%s radius=%.4f", tuple(center), radius)


def disable_importance_targets() -> None:
    """Turn off both targets; diffuse bounces fall back to the plain lobe."""
    _light_enabled[None] = 0
    _sphere_enabled[None] = 0


def is_light_target_enabled() -> bool:
    return bool(_light_enabled[None])


def is_sphere_target_enabled() -> bool:
    return bool(_sphere_enabled[None])


def set_mixture_weights(light_weight: float, sphere_weight: float) -> None:
    """Set the mixture weights of the light and sphere strategies.

    Raises:
        ValueError: If a weight is negative or their sum exceeds 1.
    """
    if light_weight < 0.0 or sphere_weight < 0.0:
        raise ValueError("Mixture weights must be non-negative")
    if light_weight + sphere_weight > 1.0 + 1e-9:
        raise ValueError(
            f"Mixture weights sum to {light_weight + sphere_weight}, which exceeds 1"
        )
    _light_weight[None] = light_weight
    _sphere_weight[None] = sphere_weight


def set_firefly_suppression(threshold: float, max_retries: int) -> None:
    """Configure the firefly redraw threshold and retry cap.

    Raises:
        ValueError: If the threshold or the retry count is negative.
    """
    if threshold < 0.0 or math.isnan(threshold):
        raise ValueError(f"Firefly threshold must be >= 0, got {threshold}")
    if max_retries < 0:
        raise ValueError(f"Firefly retry cap must be >= 0, got {max_retries}")
    _firefly_threshold[None] = threshold
    _max_firefly_retries[None] = max_retries


def reset_importance_sampling() -> None:
    """Disable targets and restore the default weights and firefly settings."""
    disable_importance_targets()
    set_mixture_weights(DEFAULT_LIGHT_WEIGHT, DEFAULT_SPHERE_WEIGHT)
    set_firefly_suppression(DEFAULT_FIREFLY_PDF_THRESHOLD, DEFAULT_MAX_FIREFLY_RETRIES)


# =============================================================================
# Target Densities
# =============================================================================


@ti.func
def importance_enabled() -> ti.i32:
    return ti.select(_light_enabled[None] == 1 or _sphere_enabled[None] == 1, 1, 0)


@ti.func
def get_light_rect() -> Rect:
    bounds = _light_bounds[None]
    return Rect(
        axis=_light_axis[None],
        k=_light_k[None],
        a0=bounds[0],
        a1=bounds[1],
        b0=bounds[2],
        b1=bounds[3],
        facing=_light_facing[None],
        rotation=_light_rotation[None],
        offset=_light_offset[None],
    )


@ti.func
def light_pdf(origin: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of sampling ``direction`` from the light target.

    Returns:
        dist^2 / (|cos_light| * area), or 0 when the light is disabled, the
        direction misses it, or it is seen at a grazing angle.
    """
    pdf = 0.0
    if _light_enabled[None] == 1:
        rect = get_light_rect()
        unit_dir = tm.normalize(direction)
        rec = hit_rect(origin, unit_dir, rect, TARGET_T_MIN, TARGET_T_MAX)
        if rec.hit == 1:
            cosine = ti.abs(tm.dot(unit_dir, rect_normal(rect)))
            area = rect_area(rect)
            if cosine > LIGHT_COS_EPSILON and area > 0.0:
                pdf = rec.t * rec.t / (cosine * area)
    return pdf


@ti.func
def _sphere_cos_theta_max(origin: vec3) -> ti.f32:
    """Cosine of the cone half-angle subtended by the target sphere.

    Returns -1 when the origin is inside or on the sphere.
    """
    offset = _sphere_center[None] - origin
    dist2 = tm.dot(offset, offset)
    r2 = _sphere_radius[None] * _sphere_radius[None]
    result = -1.0
    if dist2 > r2:
        result = ti.sqrt(1.0 - r2 / dist2)
    return result


@ti.func
def sphere_pdf(origin: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of sampling ``direction`` from the sphere target.

    Returns:
        1 / (2 * pi * (1 - cos_theta_max)) when the direction hits the
        sphere from outside, 0 otherwise.
    """
    pdf = 0.0
    if _sphere_enabled[None] == 1:
        cos_max = _sphere_cos_theta_max(origin)
        if cos_max > -1.0 and cos_max < 1.0:
            sphere = Sphere(center=_sphere_center[None], radius=_sphere_radius[None])
            rec = hit_sphere(origin, tm.normalize(direction), sphere, TARGET_T_MIN, TARGET_T_MAX)
            if rec.hit == 1:
                pdf = 1.0 / (2.0 * tm.pi * (1.0 - cos_max))
    return pdf


@ti.func
def effective_weights(origin: vec3):
    """Per-point mixture weights (w_L, w_S, w_H)."""
    w_light = 0.0
    w_sphere = 0.0
    if _light_enabled[None] == 1:
        w_light = _light_weight[None]
    if _sphere_enabled[None] == 1 and _sphere_cos_theta_max(origin) > -1.0:
        w_sphere = _sphere_weight[None]
    return w_light, w_sphere, 1.0 - w_light - w_sphere


@ti.func
def mixture_pdf(origin: vec3, normal: vec3, direction: vec3) -> ti.f32:
    """Density of the full mixture at ``direction`` from a diffuse point."""
    w_light, w_sphere, w_hemi = effective_weights(origin)
    pdf = w_hemi * scatter_pdf_lambertian(normal, direction)
    if w_light > 0.0:
        pdf += w_light * light_pdf(origin, direction)
    if w_sphere > 0.0:
        pdf += w_sphere * sphere_pdf(origin, direction)
    return pdf


# =============================================================================
# Target Sampling
# =============================================================================


@ti.func
def sample_light_direction(origin: vec3, rng: ti.u32):
    """Direction toward a uniformly chosen point on the light target."""
    u, rng = rand_f32(rng)
    v, rng = rand_f32(rng)
    target = rect_point(get_light_rect(), u, v)
    return tm.normalize(target - origin), rng


@ti.func
def sample_sphere_direction(origin: vec3, rng: ti.u32):
    """Uniform direction inside the cone subtended by the sphere target."""
    axis = tm.normalize(_sphere_center[None] - origin)
    cos_max = _sphere_cos_theta_max(origin)
    local_dir, rng = random_cone_direction(cos_max, rng)
    tangent, bitangent, w = build_onb(axis)
    return tm.normalize(local_to_world(local_dir, tangent, bitangent, w)), rng


@ti.func
def _sample_hemisphere(normal: vec3, rng: ti.u32):
    direction, rng = sample_cosine_hemisphere(normal, rng)
    if near_zero(direction):
        direction = normal
    return direction, rng


@ti.func
def sample_mixture_direction(origin: vec3, normal: vec3, rng: ti.u32):
    """Draw a diffuse bounce direction from the strategy mixture.

    Args:
        origin: The shading point.
        normal: The ray-facing surface normal.
        rng: RNG state.

    Returns:
        A tuple of (direction, sampling_pdf, rng).
    """
    w_light, w_sphere, _w_hemisphere = effective_weights(origin)
    threshold = _firefly_threshold[None]

    direction = normal
    sampling_pdf = 0.0
    accepted = 0
    for _attempt in range(_max_firefly_retries[None] + 1):
        if accepted == 0:
            u, rng = rand_f32(rng)
            candidate = normal
            if u < w_light:
                candidate, rng = sample_light_direction(origin, rng)
            elif u < w_light + w_sphere:
                candidate, rng = sample_sphere_direction(origin, rng)
            else:
                candidate, rng = _sample_hemisphere(normal, rng)

            candidate_pdf = mixture_pdf(origin, normal, candidate)
            if candidate_pdf > 0.0 and candidate_pdf >= threshold:
                direction = candidate
                sampling_pdf = candidate_pdf
                accepted = 1

    if accepted == 0:
        direction, rng = _sample_hemisphere(normal, rng)
        sampling_pdf = scatter_pdf_lambertian(normal, direction)

    return direction, sampling_pdf, rng
