"""Path tracing integrator for Monte Carlo light transport.

This module implements the rendering kernel: an iterative path tracer with
material dispatch, mixture importance sampling on diffuse bounces and
progressive sample accumulation.

Each path follows the estimator

    L = sum over bounces of  throughput * emitted
    throughput *= attenuation * scatter_pdf / sampling_pdf

where ``scatter_pdf`` is the material's true density of the chosen direction
and ``sampling_pdf`` the density of the strategy that produced it. For
specular materials both are zero and the weight is 1.

Key features:
    - Material dispatch (Lambertian, Metal, Dielectric, Light)
    - Light and sphere mixture sampling with firefly suppression
    - A fixed bounce budget (no Russian roulette)
    - Deterministic per-sample random streams
    - Progressive sample accumulation with NaN/Inf rejection

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from raytrace.camera import setup_camera
    >>> from raytrace.core.integrator import render_image, setup_render_target
    >>> from raytrace.scene.scenes import create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(256, 256)
    >>> render_image(num_samples=64)
"""

import taichi as ti
import taichi.math as tm

from raytrace.camera.thin_lens import get_ray_jittered
from raytrace.config import RenderSettings
from raytrace.core.importance import (
    importance_enabled,
    sample_mixture_direction,
    set_firefly_suppression,
    set_mixture_weights,
)
from raytrace.core.rng import init_rng
from raytrace.core.utils import get_logger
from raytrace.materials.dielectric import (
    get_dielectric_ior,
    scatter_dielectric,
    scatter_pdf_dielectric,
)
from raytrace.materials.lambertian import (
    get_lambertian_albedo,
    scatter_lambertian,
    scatter_pdf_lambertian,
)
from raytrace.materials.light import (
    emit_light,
    get_light_emission,
    scatter_light,
    scatter_pdf_light,
)
from raytrace.materials.metal import (
    get_metal_albedo,
    get_metal_roughness,
    scatter_metal,
    scatter_pdf_metal,
)
from raytrace.scene.intersection import get_background_color, nearest_hit
from raytrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = get_logger()

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Ray offset epsilon to avoid self-intersection
RAY_EPSILON = 1e-4

# t_min and t_max for ray intersection
T_MIN = 1e-4
T_MAX = 1e10

# =============================================================================
# Estimator Settings
# =============================================================================

_max_depth = ti.field(dtype=ti.i32, shape=())
_seed = ti.field(dtype=ti.i32, shape=())

_configured = False
_settings = RenderSettings()


def configure_renderer(settings: RenderSettings | None = None) -> RenderSettings:
    """Apply estimator settings to the rendering kernels.

    Args:
        settings: Settings to apply. None restores the defaults.

    Returns:
        The applied settings.

    Raises:
        ValueError: If the settings are invalid.
    """
    global _configured, _settings

    if settings is None:
        settings = RenderSettings()
    settings.validate()

    _max_depth[None] = settings.max_depth
    _seed[None] = settings.seed
    set_mixture_weights(settings.light_sampling_weight, settings.sphere_sampling_weight)
    set_firefly_suppression(settings.firefly_pdf_threshold, settings.max_firefly_retries)

    _settings = settings
    _configured = True
    logger.debug("Renderer configured: %s", settings.to_dict())
    return settings


def get_render_settings() -> RenderSettings:
    """Settings currently applied to the kernels."""
    return _settings


def _ensure_configured() -> None:
    if not _configured:
        configure_renderer()


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Running mean of the samples for each pixel
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers. The buffers are
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT so that resizing
    never recompiles the kernels.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_image() -> "ti.MatrixField":
    """Get the full preallocated color buffer.

    Use get_image_dimensions() to find the active region.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _color_buffer


def get_sample_count() -> "ti.ScalarField":
    """Get the full preallocated sample count buffer.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _sample_count


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    inside: ti.i32,
    rng: ti.u32,
):
    """Dispatch to the scatter function of the hit material.

    Args:
        material_id: The unified material ID.
        incident_direction: The incoming ray direction (normalized).
        normal: The surface normal, flipped to face the incoming ray.
        inside: 1 when the ray hit the surface from its back side.
        rng: RNG state.

    Returns:
        A tuple of (did_scatter, direction, attenuation, sampling_pdf, rng).
        Unknown material ids absorb.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    did_scatter = 0
    direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    sampling_pdf = 0.0

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        did_scatter, direction, attenuation, sampling_pdf, rng = scatter_lambertian(
            albedo, normal, rng
        )

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_index)
        roughness = get_metal_roughness(type_index)
        did_scatter, direction, attenuation, sampling_pdf, rng = scatter_metal(
            albedo, roughness, incident_direction, normal, rng
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_ior(type_index)
        did_scatter, direction, attenuation, sampling_pdf, rng = scatter_dielectric(
            ior, incident_direction, normal, inside, rng
        )

    elif mat_type == int(MaterialType.LIGHT):
        did_scatter, direction, attenuation, sampling_pdf = scatter_light()

    return did_scatter, direction, attenuation, sampling_pdf, rng


@ti.func
def _scatter_pdf_material(material_id: ti.i32, normal: vec3, direction: vec3) -> ti.f32:
    """True density of the hit material at ``direction``."""
    mat_type = get_material_type(material_id)
    pdf = 0.0
    if mat_type == int(MaterialType.LAMBERTIAN):
        pdf = scatter_pdf_lambertian(normal, direction)
    elif mat_type == int(MaterialType.METAL):
        pdf = scatter_pdf_metal(normal, direction)
    elif mat_type == int(MaterialType.DIELECTRIC):
        pdf = scatter_pdf_dielectric(normal, direction)
    elif mat_type == int(MaterialType.LIGHT):
        pdf = scatter_pdf_light(normal, direction)
    return pdf


@ti.func
def _emit_material(material_id: ti.i32, front_face: ti.i32) -> vec3:
    """Emitted radiance at a hit; only lights emit."""
    emission = vec3(0.0, 0.0, 0.0)
    if get_material_type(material_id) == int(MaterialType.LIGHT):
        emission = emit_light(get_light_emission(get_material_type_index(material_id)), front_face)
    return emission


@ti.func
def mis_weight(scatter_pdf: ti.f32, sampling_pdf: ti.f32) -> ti.f32:
    """Reweighting factor scatter_pdf / sampling_pdf.

    Returns 1 when either density is non-positive (specular lobes and
    degenerate samples).
    """
    weight = 1.0
    if scatter_pdf > 0.0 and sampling_pdf > 0.0:
        weight = scatter_pdf / sampling_pdf
    return weight


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def _offset_ray_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Push the point off the surface on the side the new ray travels."""
    offset_dir = normal
    if tm.dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + RAY_EPSILON * offset_dir


@ti.func
def cast_ray(origin: vec3, direction: vec3, bounce_budget: ti.i32, rng: ti.u32):
    """Estimate the radiance arriving at ``origin`` from ``direction``.

    A path may scatter at most ``bounce_budget`` times; emission is still
    collected at the vertex where the budget runs out. A negative budget
    returns black.

    Args:
        origin: Ray origin.
        direction: Ray direction (need not be normalized).
        bounce_budget: Maximum number of scattering events.
        rng: RNG state.

    Returns:
        A tuple of (radiance, rng).
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = tm.normalize(direction)

    # Taichi funcs cannot break out of loops
    active = 1

    for depth in range(bounce_budget + 1):
        if active == 1:
            rec = nearest_hit(ray_origin, ray_direction, T_MIN, T_MAX)

            if rec.hit == 0:
                radiance += throughput * get_background_color()
                active = 0
            else:
                radiance += throughput * _emit_material(rec.material_id, rec.front_face)

                if depth == bounce_budget:
                    active = 0
                else:
                    inside = 0
                    normal = rec.normal
                    if tm.dot(ray_direction, rec.normal) > 0.0:
                        inside = 1
                        normal = -rec.normal

                    did_scatter, new_direction, attenuation, sampling_pdf, rng = _scatter_material(
                        rec.material_id, ray_direction, normal, inside, rng
                    )

                    if did_scatter == 0:
                        active = 0
                    else:
                        is_diffuse = get_material_type(rec.material_id) == int(MaterialType.LAMBERTIAN)
                        if is_diffuse and importance_enabled() == 1:
                            new_direction, sampling_pdf, rng = sample_mixture_direction(
                                rec.point, normal, rng
                            )

                        scatter_pdf = _scatter_pdf_material(rec.material_id, normal, new_direction)
                        throughput *= attenuation * mis_weight(scatter_pdf, sampling_pdf)

                        ray_origin = _offset_ray_origin(rec.point, normal, new_direction)
                        ray_direction = tm.normalize(new_direction)

    return radiance, rng


@ti.func
def render_sample_impl(
    pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, sample_index: ti.i32
) -> vec3:
    """Radiance estimate for one sample of one pixel.

    The random stream depends only on the pixel, the sample index and the
    configured seed.
    """
    rng = init_rng(pixel_j * width + pixel_i, sample_index, _seed[None])
    ray, rng = get_ray_jittered(pixel_i, pixel_j, width, height, rng)
    color, rng = cast_ray(ray.origin, ray.direction, _max_depth[None], rng)
    return color


@ti.func
def _sanitize(color: vec3) -> vec3:
    """Clamp negatives and replace NaN/Inf components with zero."""
    result = tm.max(color, vec3(0.0, 0.0, 0.0))
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_one_spp(width: ti.i32, height: ti.i32):
    """Render one sample per pixel and fold it into the running mean."""
    for i, j in ti.ndrange(width, height):
        n_prev = _sample_count[i, j]
        color = _sanitize(render_sample_impl(i, j, width, height, n_prev))

        _sample_count[i, j] = n_prev + 1
        n = _sample_count[i, j]

        # avg_n = avg_{n-1} + (x_n - avg_{n-1}) / n
        _color_buffer[i, j] += (color - _color_buffer[i, j]) / ti.cast(n, ti.f32)


_single_result = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, sample_index: ti.i32
):
    # Single-iteration outer loop keeps the path loop serial
    for _ in range(1):
        _single_result[None] = render_sample_impl(pixel_i, pixel_j, width, height, sample_index)


@ti.kernel
def _trace_ray_kernel(
    origin: vec3, direction: vec3, bounce_budget: ti.i32, seed: ti.i32, sample_index: ti.i32
):
    for _ in range(1):
        rng = init_rng(0, sample_index, seed)
        color, rng = cast_ray(origin, direction, bounce_budget, rng)
        _single_result[None] = color


# =============================================================================
# Public Rendering API
# =============================================================================


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    bounce_budget: int | None = None,
    seed: int = 0,
    sample_index: int = 0,
) -> tuple[float, float, float]:
    """Estimate the radiance along one ray through the current scene.

    Args:
        origin: Ray origin.
        direction: Ray direction.
        bounce_budget: Maximum scattering events. None uses the configured
            max_depth.
        seed: Seed of the random stream.
        sample_index: Sample index of the random stream.

    Returns:
        Tuple of (R, G, B) radiance, unclamped.
    """
    _ensure_configured()
    if bounce_budget is None:
        bounce_budget = _settings.max_depth

    _trace_ray_kernel(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        bounce_budget,
        seed,
        sample_index,
    )
    color = _single_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def render_sample(pixel_i: int, pixel_j: int, sample_index: int = 0) -> tuple[float, float, float]:
    """Render a single sample for a specific pixel, without accumulating it.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        sample_index: Which sample of the pixel's random sequence to draw.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    _ensure_configured()

    width, height = get_image_dimensions()
    _render_single_pixel(pixel_i, pixel_j, width, height, sample_index)
    color = _single_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(num_samples: int = 1) -> None:
    """Accumulate ``num_samples`` more samples per pixel.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If num_samples is negative.
    """
    _check_render_target_initialized()
    _ensure_configured()
    if num_samples < 0:
        raise ValueError(f"num_samples must be >= 0, got {num_samples}")

    width, height = get_image_dimensions()
    for _ in range(num_samples):
        _render_one_spp(width, height)


def get_total_samples() -> int:
    """Samples per pixel rendered so far (read from pixel (0, 0)).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return int(_sample_count[0, 0])


def get_raw_image_numpy():
    """Get the unclamped radiance estimate as a (height, width, 3) array.

    Row 0 is the top of the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    import numpy as np

    _check_render_target_initialized()

    width, height = get_image_dimensions()
    image = _color_buffer.to_numpy()[:width, :height, :]

    # (width, height, 3) -> (height, width, 3), bottom-left origin -> top-left
    image = np.flipud(np.transpose(image, (1, 0, 2)))
    return np.ascontiguousarray(image, dtype=np.float32)


def get_normalized_image_numpy():
    """Get the rendered image clamped to [0, 1] as a (height, width, 3) array.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    import numpy as np

    return np.clip(get_raw_image_numpy(), 0.0, 1.0).astype(np.float32)
