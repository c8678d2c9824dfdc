"""Axis-aligned rectangle primitive with rotation about +y and a world offset.

A rectangle lies in the plane where one coordinate axis (the constant axis)
equals ``k``. The remaining two axes, called ``a`` and ``b``, are bounded by
inclusive intervals:

    axis 2 (XY plane): a = x, b = y
    axis 1 (XZ plane): a = x, b = z
    axis 0 (YZ plane): a = y, b = z

The facing flag picks the outward normal, +axis when set and -axis when not.

Rectangles live in a local frame. The world transform rotates that frame by
``rotation`` radians about +y and then translates it by ``offset``.
Intersection moves the ray into the local frame instead of moving the shape,
so the plane test stays axis aligned.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raytrace.geometry.rect import Rect, hit_rect
    >>> # Ceiling light spanning x in [-1, 1], z in [-3, -2] at y = 2, facing down
    >>> light = Rect(axis=1, k=2.0, a0=-1.0, a1=1.0, b0=-3.0, b1=-2.0,
    ...              facing=0, rotation=0.0, offset=ti.math.vec3(0.0))
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord, make_miss

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Direction components below this magnitude are treated as parallel to the plane
PARALLEL_EPSILON = 1e-8

AXIS_X = 0
AXIS_Y = 1
AXIS_Z = 2


@ti.dataclass
class Rect:
    """An axis-aligned rectangle in its local frame.

    Attributes:
        axis: Index of the constant axis (0 = x, 1 = y, 2 = z).
        k: Value of the constant coordinate.
        a0: Lower bound on the first in-plane axis.
        a1: Upper bound on the first in-plane axis.
        b0: Lower bound on the second in-plane axis.
        b1: Upper bound on the second in-plane axis.
        facing: 1 for an outward normal along +axis, 0 for -axis.
        rotation: Rotation about +y in radians applied local -> world.
        offset: World-space translation applied after the rotation.
    """

    axis: ti.i32
    k: ti.f32
    a0: ti.f32
    a1: ti.f32
    b0: ti.f32
    b1: ti.f32
    facing: ti.i32
    rotation: ti.f32
    offset: vec3


# =============================================================================
# Axis helpers
# =============================================================================


@ti.func
def component(v: vec3, axis: ti.i32) -> ti.f32:
    """Select v[axis] without dynamic vector indexing."""
    return ti.select(axis == 0, v.x, ti.select(axis == 1, v.y, v.z))


@ti.func
def in_plane_axes(axis: ti.i32):
    """Return the (a, b) axis indices spanning the plane of ``axis``."""
    a_axis = ti.select(axis == 0, 1, 0)
    b_axis = ti.select(axis == 2, 1, 2)
    return a_axis, b_axis


@ti.func
def axis_vector(axis: ti.i32) -> vec3:
    """Unit vector along a coordinate axis."""
    return vec3(
        ti.select(axis == 0, 1.0, 0.0),
        ti.select(axis == 1, 1.0, 0.0),
        ti.select(axis == 2, 1.0, 0.0),
    )


@ti.func
def rotate_y(v: vec3, theta: ti.f32) -> vec3:
    """Rotate a vector by ``theta`` radians about +y."""
    c = ti.cos(theta)
    s = ti.sin(theta)
    return vec3(c * v.x + s * v.z, v.y, -s * v.x + c * v.z)


# =============================================================================
# Rectangle queries
# =============================================================================


@ti.func
def rect_normal(rect: Rect) -> vec3:
    """World-space outward normal of the rectangle."""
    sign = ti.select(rect.facing == 1, 1.0, -1.0)
    return rotate_y(sign * axis_vector(rect.axis), rect.rotation)


@ti.func
def rect_area(rect: Rect) -> ti.f32:
    return (rect.a1 - rect.a0) * (rect.b1 - rect.b0)


@ti.func
def rect_point(rect: Rect, u: ti.f32, v: ti.f32) -> vec3:
    """Map (u, v) in [0, 1]^2 to a world-space point on the rectangle."""
    a = rect.a0 + u * (rect.a1 - rect.a0)
    b = rect.b0 + v * (rect.b1 - rect.b0)
    local = vec3(0.0, 0.0, 0.0)
    if rect.axis == 0:
        local = vec3(rect.k, a, b)
    elif rect.axis == 1:
        local = vec3(a, rect.k, b)
    else:
        local = vec3(a, b, rect.k)
    return rotate_y(local, rect.rotation) + rect.offset


@ti.func
def hit_rect(
    ray_origin: vec3,
    ray_direction: vec3,
    rect: Rect,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with a rectangle.

    The ray is moved into the local frame (offset removed, then rotated by
    -rotation). A direction component along the constant axis smaller than
    PARALLEL_EPSILON is a miss, so no division by zero happens.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The ray direction.
        rect: The rectangle to test.
        t_min: Smallest accepted t.
        t_max: Largest accepted t.

    Returns:
        A HitRecord whose point is origin + t * direction and whose normal is
        the rotated outward normal.
    """
    local_origin = rotate_y(ray_origin - rect.offset, -rect.rotation)
    local_direction = rotate_y(ray_direction, -rect.rotation)
    d_k = component(local_direction, rect.axis)

    result = make_miss()

    if ti.abs(d_k) > PARALLEL_EPSILON:
        t = (rect.k - component(local_origin, rect.axis)) / d_k
        if t > t_min and t < t_max:
            local_point = local_origin + t * local_direction
            a_axis, b_axis = in_plane_axes(rect.axis)
            a = component(local_point, a_axis)
            b = component(local_point, b_axis)
            if a >= rect.a0 and a <= rect.a1 and b >= rect.b0 and b <= rect.b1:
                outward = rect_normal(rect)
                result = HitRecord(
                    hit=1,
                    t=t,
                    point=ray_origin + t * ray_direction,
                    normal=outward,
                    front_face=ti.select(tm.dot(ray_direction, outward) < 0.0, 1, 0),
                )

    return result
