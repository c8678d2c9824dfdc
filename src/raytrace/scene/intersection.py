"""Scene-level primitive storage and nearest-hit queries.

Spheres, rectangles and boxes are stored in Structure-of-Arrays Taichi
fields. Each primitive carries a unified material id, so one material can be
shared by any number of primitives. The scene also owns the constant
background radiance returned for rays that escape.

``nearest_hit`` is a linear scan over every primitive that keeps the smallest
t in (t_min, t_max). A miss is reported through ``hit == 0``, never through a
special t value.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raytrace.scene.intersection import add_sphere, clear_scene, nearest_hit
    >>> clear_scene()
    >>> add_sphere(ti.math.vec3(0, 0, -1), 0.5, material_id=0)
    >>> # Use nearest_hit within a Taichi kernel
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from raytrace.geometry.box import Box, hit_box
from raytrace.geometry.rect import Rect, hit_rect
from raytrace.geometry.sphere import HitRecord, Sphere, hit_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


class GeometryKind(IntEnum):
    """Closed set of primitive kinds stored in the scene."""

    SPHERE = 0
    RECT = 1
    BOX = 2


@ti.dataclass
class SceneHitRecord:
    """Nearest intersection against the whole scene.

    Attributes:
        hit: 1 if any primitive was hit, 0 on a miss.
        t: Ray parameter of the hit.
        point: World-space hit point.
        normal: Outward geometric normal at the hit (unit length).
        front_face: 1 when the ray hit the side the outward normal faces.
        material_id: Unified material id of the hit primitive, -1 on a miss.
        kind: GeometryKind of the hit primitive, -1 on a miss.
        index: Index of the hit primitive within its kind, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32
    kind: ti.i32
    index: ti.i32


# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024
MAX_RECTS = 256
MAX_BOXES = 64

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Rectangle storage
rect_axes = ti.field(dtype=ti.i32, shape=MAX_RECTS)
rect_ks = ti.field(dtype=ti.f32, shape=MAX_RECTS)
rect_bounds = ti.Vector.field(4, dtype=ti.f32, shape=MAX_RECTS)  # (a0, a1, b0, b1)
rect_facings = ti.field(dtype=ti.i32, shape=MAX_RECTS)
rect_rotations = ti.field(dtype=ti.f32, shape=MAX_RECTS)
rect_offsets = ti.Vector.field(3, dtype=ti.f32, shape=MAX_RECTS)
rect_material_ids = ti.field(dtype=ti.i32, shape=MAX_RECTS)
num_rects = ti.field(dtype=ti.i32, shape=())

# Box storage
box_min_corners = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BOXES)
box_max_corners = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BOXES)
box_rotations = ti.field(dtype=ti.f32, shape=MAX_BOXES)
box_offsets = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BOXES)
box_material_ids = ti.field(dtype=ti.i32, shape=MAX_BOXES)
num_boxes = ti.field(dtype=ti.i32, shape=())

# Radiance returned for rays that leave the scene
background_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def clear_scene() -> None:
    """Remove every primitive and reset the background to black."""
    num_spheres[None] = 0
    num_rects[None] = 0
    num_boxes[None] = 0
    background_color[None] = vec3(0.0, 0.0, 0.0)


def set_background(color: tuple[float, float, float]) -> None:
    """Set the constant background radiance.

    Raises:
        ValueError: If any component is negative.
    """
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Background component {i} = {component} is negative.")
    background_color[None] = vec3(color[0], color[1], color[2])


def get_background() -> tuple[float, float, float]:
    c = background_color[None]
    return (float(c[0]), float(c[1]), float(c[2]))


def add_sphere(center: vec3, radius: float, material_id: int = 0) -> int:
    """Append a sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def add_rect(
    axis: int,
    k: float,
    bounds: tuple[float, float, float, float],
    facing: int,
    rotation: float = 0.0,
    offset: tuple[float, float, float] = (0.0, 0.0, 0.0),
    material_id: int = 0,
) -> int:
    """Append an axis-aligned rectangle.

    Args:
        axis: Constant axis (0 = x, 1 = y, 2 = z).
        k: Constant coordinate value.
        bounds: (a0, a1, b0, b1) in-plane bounds.
        facing: 1 for an outward normal along +axis, 0 for -axis.
        rotation: Rotation about +y in radians.
        offset: World-space offset.
        material_id: Unified material id.

    Returns:
        The index of the added rectangle.

    Raises:
        RuntimeError: If the maximum number of rectangles is exceeded.
    """
    idx = num_rects[None]
    if idx >= MAX_RECTS:
        raise RuntimeError(f"Maximum number of rects ({MAX_RECTS}) exceeded")
    rect_axes[idx] = axis
    rect_ks[idx] = k
    rect_bounds[idx] = ti.Vector([bounds[0], bounds[1], bounds[2], bounds[3]])
    rect_facings[idx] = facing
    rect_rotations[idx] = rotation
    rect_offsets[idx] = vec3(offset[0], offset[1], offset[2])
    rect_material_ids[idx] = material_id
    num_rects[None] = idx + 1
    return idx


def add_box(
    min_corner: vec3,
    max_corner: vec3,
    rotation: float = 0.0,
    offset: tuple[float, float, float] = (0.0, 0.0, 0.0),
    material_id: int = 0,
) -> int:
    """Append a box given its local corners and rigid transform.

    Returns:
        The index of the added box.

    Raises:
        RuntimeError: If the maximum number of boxes is exceeded.
    """
    idx = num_boxes[None]
    if idx >= MAX_BOXES:
        raise RuntimeError(f"Maximum number of boxes ({MAX_BOXES}) exceeded")
    box_min_corners[idx] = min_corner
    box_max_corners[idx] = max_corner
    box_rotations[idx] = rotation
    box_offsets[idx] = vec3(offset[0], offset[1], offset[2])
    box_material_ids[idx] = material_id
    num_boxes[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    return int(num_spheres[None])


def get_rect_count() -> int:
    return int(num_rects[None])


def get_box_count() -> int:
    return int(num_boxes[None])


# =============================================================================
# Taichi-side accessors
# =============================================================================


@ti.func
def get_sphere(i: ti.i32) -> Sphere:
    return Sphere(center=sphere_centers[i], radius=sphere_radii[i])


@ti.func
def get_rect(i: ti.i32) -> Rect:
    bounds = rect_bounds[i]
    return Rect(
        axis=rect_axes[i],
        k=rect_ks[i],
        a0=bounds[0],
        a1=bounds[1],
        b0=bounds[2],
        b1=bounds[3],
        facing=rect_facings[i],
        rotation=rect_rotations[i],
        offset=rect_offsets[i],
    )


@ti.func
def get_box(i: ti.i32) -> Box:
    return Box(
        min_corner=box_min_corners[i],
        max_corner=box_max_corners[i],
        rotation=box_rotations[i],
        offset=box_offsets[i],
    )


@ti.func
def get_background_color() -> vec3:
    return background_color[None]


@ti.func
def _to_scene_hit_record(rec: HitRecord, material_id: ti.i32, kind: ti.i32, index: ti.i32) -> SceneHitRecord:
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
        kind=kind,
        index=index,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
        kind=-1,
        index=-1,
    )


@ti.func
def nearest_hit(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Find the closest primitive hit along a ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record.
    """
    closest_t = t_max
    result = _make_miss_record()

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray_origin, ray_direction, get_sphere(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_hit_record(rec, sphere_material_ids[i], int(GeometryKind.SPHERE), i)

    for i in range(num_rects[None]):
        rec = hit_rect(ray_origin, ray_direction, get_rect(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_hit_record(rec, rect_material_ids[i], int(GeometryKind.RECT), i)

    for i in range(num_boxes[None]):
        rec = hit_box(ray_origin, ray_direction, get_box(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_hit_record(rec, box_material_ids[i], int(GeometryKind.BOX), i)

    return result
