"""Sphere primitive and the shared HitRecord type.

The quadratic is solved with the cancellation-free formulation from
Ray Tracing Gems (chapter 7). Only the nearer root counts: a ray whose
origin lies inside the sphere sees nothing but a "back" root and misses.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raytrace.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Result of a single primitive intersection.

    Every primitive returns the full record in one call, so no query depends
    on a previous one.

    Attributes:
        hit: 1 if the ray intersected the primitive, 0 on a miss. The other
            fields are only meaningful when hit == 1.
        t: Ray parameter of the intersection, strictly greater than t_min.
        point: origin + t * direction.
        normal: Outward geometric normal (unit length).
        front_face: 1 when the ray arrives on the side the outward normal
            faces, 0 when it arrives from behind.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def make_miss() -> HitRecord:
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
    )


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 without catastrophic cancellation.

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0
    if ti.abs(q) < 1e-10:
        # Tangent ray through the center plane
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def sphere_normal(sphere: Sphere, point: vec3) -> vec3:
    """Outward unit normal at a point on the sphere surface."""
    return tm.normalize(point - sphere.center)


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with a sphere.

    Solves |origin + t * direction - center|^2 = radius^2 using the half-b
    form a*t^2 + 2*h*t + c = 0 with

        a = dot(direction, direction)
        h = dot(direction, origin - center)
        c = |origin - center|^2 - radius^2

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The ray direction (need not be normalized).
        sphere: The sphere to test.
        t_min: Smallest accepted t (self-intersection epsilon).
        t_max: Largest accepted t.

    Returns:
        A HitRecord for the smaller root, or a miss when the discriminant is
        negative or the smaller root lies outside (t_min, t_max).
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    result = make_miss()

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, _ = _solve_quadratic_robust(h, a, c, sqrt_d)

        if t0 > t_min and t0 < t_max:
            point = ray_origin + t0 * ray_direction
            outward = sphere_normal(sphere, point)
            result = HitRecord(
                hit=1,
                t=t0,
                point=point,
                normal=outward,
                front_face=ti.select(tm.dot(ray_direction, outward) < 0.0, 1, 0),
            )

    return result
