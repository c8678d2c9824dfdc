"""Scene representation and ray-scene queries.

Components:
    intersection: Structure-of-Arrays primitive storage, nearest_hit and
        the background radiance
    manager: Unified scene manager coordinating primitives and materials
    scenes: Cornell box and random ball field builders
"""

from .intersection import (
    MAX_BOXES,
    MAX_RECTS,
    MAX_SPHERES,
    GeometryKind,
    SceneHitRecord,
    add_box,
    add_rect,
    add_sphere,
    clear_scene,
    get_background,
    get_box_count,
    get_rect_count,
    get_sphere_count,
    nearest_hit,
    set_background,
)
from .manager import (
    MAX_MATERIALS,
    BoxInfo,
    MaterialInfo,
    MaterialType,
    RectInfo,
    SceneConfig,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
)
from .scenes import create_ball_scene, create_cornell_box_scene

__all__ = [
    # Intersection module
    "GeometryKind",
    "SceneHitRecord",
    "add_sphere",
    "add_rect",
    "add_box",
    "clear_scene",
    "set_background",
    "get_background",
    "get_sphere_count",
    "get_rect_count",
    "get_box_count",
    "nearest_hit",
    "MAX_SPHERES",
    "MAX_RECTS",
    "MAX_BOXES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "RectInfo",
    "BoxInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Ready-made scenes
    "create_cornell_box_scene",
    "create_ball_scene",
]
