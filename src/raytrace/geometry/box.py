"""Box primitive built from six rectangles sharing one rigid transform.

The box is stored in its local frame (``min_corner``/``max_corner``) together
with a rotation about +y and a world offset. All six faces inherit that
transform so the box behaves as one rotated solid. Faces are numbered

    0: back   (z = min, normal -z)      1: front (z = max, normal +z)
    2: bottom (y = min, normal -y)      3: top   (y = max, normal +y)
    4: left   (x = min, normal -x)      5: right (x = max, normal +x)

``hit_box`` returns the nearest face hit together with that face's normal, so
the normal never has to be recovered from a later query.
"""

import taichi as ti
import taichi.math as tm

from .rect import Rect, component, hit_rect, in_plane_axes
from .sphere import HitRecord, make_miss

vec3 = tm.vec3

NUM_BOX_FACES = 6


@ti.dataclass
class Box:
    """An axis-aligned box in its local frame plus a rigid transform.

    Attributes:
        min_corner: Local minimum corner.
        max_corner: Local maximum corner.
        rotation: Rotation about +y in radians.
        offset: World-space translation.
    """

    min_corner: vec3
    max_corner: vec3
    rotation: ti.f32
    offset: vec3


@ti.func
def box_face(box: Box, face: ti.i32) -> Rect:
    """Build face ``face`` (0..5) of the box as a Rect."""
    axis = 2 - face // 2
    facing = face % 2
    a_axis, b_axis = in_plane_axes(axis)
    k = ti.select(facing == 1, component(box.max_corner, axis), component(box.min_corner, axis))
    return Rect(
        axis=axis,
        k=k,
        a0=component(box.min_corner, a_axis),
        a1=component(box.max_corner, a_axis),
        b0=component(box.min_corner, b_axis),
        b1=component(box.max_corner, b_axis),
        facing=facing,
        rotation=box.rotation,
        offset=box.offset,
    )


@ti.func
def hit_box(
    ray_origin: vec3,
    ray_direction: vec3,
    box: Box,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with all six faces and keep the nearest hit."""
    closest_t = t_max
    result = make_miss()
    for face in range(NUM_BOX_FACES):
        rec = hit_rect(ray_origin, ray_direction, box_face(box, face), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec
    return result
