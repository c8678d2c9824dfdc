"""Look-at camera with an optional thin lens for depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The image plane sits at ``focus_distance`` in front of the lens. With
``aperture == 0`` every ray leaves from the camera center and the model is a
pinhole. A positive aperture jitters the ray origin across a disk of
diameter ``aperture`` while keeping the focus plane sharp.

Example:
    >>> camera = ThinLensCamera(
    ...     lookfrom=(0.0, 0.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     aspect_ratio=16.0 / 9.0,
    ...     aperture=0.1,
    ... )
    >>> setup_camera(camera)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from raytrace.core.ray import Ray, make_ray, random_in_unit_disk
from raytrace.core.rng import rand_f32

vec3 = tm.vec3

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a look-at camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at.
        vup: Up direction for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_distance: Distance to the plane in perfect focus. None uses
            the distance from lookfrom to lookat.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_distance: float | None = None

    def validate(self) -> None:
        """Raise ValueError for degenerate camera parameters."""
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180), got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.aperture < 0.0:
            raise ValueError(f"aperture must be >= 0, got {self.aperture}")
        if self.focus_distance is not None and self.focus_distance <= 0.0:
            raise ValueError(f"focus_distance must be positive, got {self.focus_distance}")
        view = np.subtract(self.lookfrom, self.lookat)
        if np.linalg.norm(view) < 1e-8:
            raise ValueError("lookfrom and lookat must differ")
        if np.linalg.norm(np.cross(self.vup, view)) < 1e-8:
            raise ValueError("vup must not be parallel to the view direction")


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())
_lens_radius = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: ThinLensCamera) -> None:
    """Compute the camera basis and viewport and store them in fields.

    Must be called from Python before rendering.

    Raises:
        ValueError: If the camera parameters are degenerate.
    """
    camera.validate()

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    focus_distance = camera.focus_distance
    if focus_distance is None:
        focus_distance = float(np.linalg.norm(lookfrom - lookat))

    viewport_height = 2.0 * h * focus_distance
    viewport_width = camera.aspect_ratio * viewport_height

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    horizontal = viewport_width * u
    vertical = viewport_height * v
    lower_left = lookfrom - focus_distance * w - horizontal / 2.0 - vertical / 2.0

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32, rng: ti.u32):
    """Generate a ray through normalized image coordinates (s, t).

    s runs left to right and t bottom to top, both in [0, 1].

    Returns:
        A tuple of (Ray, rng).
    """
    offset = vec3(0.0, 0.0, 0.0)
    if _lens_radius[None] > 0.0:
        disk, rng = random_in_unit_disk(rng)
        rd = _lens_radius[None] * disk
        offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None] + offset
    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    return make_ray(origin, tm.normalize(target - origin)), rng


@ti.func
def get_ray_jittered(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, rng: ti.u32):
    """Generate a ray with a random sub-pixel offset for anti-aliasing.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        rng: RNG state.

    Returns:
        A tuple of (Ray, rng).
    """
    jitter_u, rng = rand_f32(rng)
    jitter_v, rng = rand_f32(rng)
    s = (ti.cast(pixel_i, ti.f32) + jitter_u) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + jitter_v) / ti.cast(height, ti.f32)
    return get_ray(s, t, rng)


def get_camera_info() -> dict[str, tuple[float, ...]]:
    """Return the current camera state as plain tuples for inspection."""
    names = {
        "origin": _camera_origin,
        "u": _camera_u,
        "v": _camera_v,
        "w": _camera_w,
        "horizontal": _viewport_horizontal,
        "vertical": _viewport_vertical,
        "lower_left": _lower_left_corner,
    }
    info: dict[str, tuple[float, ...]] = {
        key: tuple(float(x) for x in field[None]) for key, field in names.items()
    }
    info["lens_radius"] = (float(_lens_radius[None]),)
    return info
