"""Geometric primitives and their ray intersection routines.

Components:
    sphere: Sphere primitive and the shared HitRecord type
    rect: Axis-aligned rectangle with y-rotation and world offset
    box: Six-rectangle box sharing one rigid transform

Every routine is a Taichi function returning a complete HitRecord:
    record = hit_shape(ray_origin, ray_direction, shape, t_min, t_max)
"""

from .box import Box, box_face, hit_box
from .rect import Rect, hit_rect, rect_area, rect_normal, rect_point, rotate_y
from .sphere import HitRecord, Sphere, hit_sphere, sphere_normal

__all__ = [
    "HitRecord",
    "Sphere",
    "hit_sphere",
    "sphere_normal",
    "Rect",
    "hit_rect",
    "rect_area",
    "rect_normal",
    "rect_point",
    "rotate_y",
    "Box",
    "box_face",
    "hit_box",
]
