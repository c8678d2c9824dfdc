"""Unified scene manager coordinating primitives and materials.

The SceneManager maintains:
- A unified material_id space across all material types, so one material
  can be shared by any number of primitives
- Mapping from material_id to (material_type, type_local_index), read by the
  integrator for material dispatch
- Primitive insertion for spheres, rectangles and boxes
- The background radiance and the importance sampling targets
- Scene serialization to and from plain dictionaries

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raytrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> white = scene.add_lambertian_material(albedo=(0.73, 0.73, 0.73))
    >>> lamp = scene.add_light_material(emission=(15.0, 15.0, 15.0))
    >>> scene.add_sphere((0, 0, -1), 0.5, white)
    >>> light = scene.add_xz_rect(-1, 1, -2, -1, 2.0, lamp, facing=False)
    >>> scene.set_light_target(light)
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from raytrace.core.importance import (
    disable_importance_targets,
    setup_light_target,
    setup_sphere_target,
)
from raytrace.core.utils import get_logger, to_vec_tuple
from raytrace.materials.dielectric import add_dielectric_material, clear_dielectric_materials
from raytrace.materials.lambertian import add_lambertian_material, clear_lambertian_materials
from raytrace.materials.light import add_light_material, clear_light_materials
from raytrace.materials.metal import add_metal_material, clear_metal_materials
from raytrace.scene.intersection import (
    MAX_BOXES,
    MAX_RECTS,
    MAX_SPHERES,
    add_box,
    add_rect,
    add_sphere,
    clear_scene,
    get_background,
    get_box_count,
    get_rect_count,
    get_sphere_count,
    set_background,
)

logger = get_logger()

# Type alias for 3D vectors
vec3 = tm.vec3

Vec3Tuple = tuple[float, float, float]


class MaterialType(IntEnum):
    """Enumeration of supported material types, used for dispatch."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    LIGHT = 3


# Maximum number of materials across all types
MAX_MATERIALS = 1024

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Material type for a unified id, or -1 for an invalid id."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Type-local registry index for a unified id, or -1 for an invalid id."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        type_index: The index within the type-specific registry.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    sphere_index: int
    center: Vec3Tuple
    radius: float
    material_id: int


@dataclass
class RectInfo:
    """Information about an axis-aligned rectangle in the scene.

    Attributes:
        rect_index: The index in the rectangle storage arrays.
        axis: Constant axis (0 = x, 1 = y, 2 = z).
        k: Constant coordinate.
        bounds: (a0, a1, b0, b1) in-plane bounds.
        facing: True when the outward normal points along +axis.
        rotation_degrees: Rotation about +y in degrees.
        offset: World-space offset.
        material_id: The material ID assigned to the rectangle.
    """

    rect_index: int
    axis: int
    k: float
    bounds: tuple[float, float, float, float]
    facing: bool
    rotation_degrees: float
    offset: Vec3Tuple
    material_id: int


@dataclass
class BoxInfo:
    """Information about a box in the scene.

    Attributes:
        box_index: The index in the box storage arrays.
        min_corner: World-space minimum corner before rotation.
        max_corner: World-space maximum corner before rotation.
        rotation_degrees: Rotation about +y through the box center.
        material_id: The material ID assigned to the box.
    """

    box_index: int
    min_corner: Vec3Tuple
    max_corner: Vec3Tuple
    rotation_degrees: float
    material_id: int


@dataclass
class SceneConfig:
    """Configuration for scene serialization."""

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    rects: list[dict[str, Any]] = field(default_factory=list)
    boxes: list[dict[str, Any]] = field(default_factory=list)
    background: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    light_target: int | None = None
    sphere_target: int | None = None


class SceneManager:
    """Unified scene manager coordinating primitives and materials.

    Attributes:
        materials: MaterialInfo for all registered materials.
        spheres: SphereInfo for all spheres in the scene.
        rects: RectInfo for all rectangles in the scene.
        boxes: BoxInfo for all boxes in the scene.
        light_target: Index of the rectangle used as the light target.
        sphere_target: Index of the sphere used as the specular target.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> glass = scene.add_dielectric_material(ior=1.5)
        >>> scene.add_sphere((0, 0, -1), 0.5, red)
        >>> ball = scene.add_sphere((1, 0, -1), 0.5, glass)
        >>> scene.set_sphere_target(ball)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.rects: list[RectInfo] = []
        self.boxes: list[BoxInfo] = []
        self.light_target: int | None = None
        self.sphere_target: int | None = None
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_light_materials()
        _clear_material_tracking()
        disable_importance_targets()
        self.materials.clear()
        self.spheres.clear()
        self.rects.clear()
        self.boxes.clear()
        self.light_target = None
        self.sphere_target = None

    def clear(self) -> None:
        """Clear the entire scene, including materials and targets."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self, material_type: MaterialType, type_index: int, params: dict[str, Any]
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: Vec3Tuple) -> int:
        """Add a Lambertian (diffuse) material.

        Raises:
            RuntimeError: If a registry is full.
            ValueError: If any albedo component is outside [0, 1].
        """
        albedo = to_vec_tuple(albedo, "albedo")
        type_index = add_lambertian_material(albedo)
        return self._register_material(MaterialType.LAMBERTIAN, type_index, {"albedo": albedo})

    def add_metal_material(self, albedo: Vec3Tuple, roughness: float = 0.0) -> int:
        """Add a metal material.

        Raises:
            RuntimeError: If a registry is full.
            ValueError: If the albedo or roughness is outside [0, 1].
        """
        albedo = to_vec_tuple(albedo, "albedo")
        type_index = add_metal_material(albedo, roughness)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "roughness": roughness}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass/water) material.

        Raises:
            RuntimeError: If a registry is full.
            ValueError: If IOR is less than 1.0.
        """
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def add_light_material(self, emission: Vec3Tuple) -> int:
        """Add a one-sided light material.

        Raises:
            RuntimeError: If a registry is full.
            ValueError: If any emission component is negative.
        """
        emission = to_vec_tuple(emission, "emission")
        type_index = add_light_material(emission)
        return self._register_material(MaterialType.LIGHT, type_index, {"emission": emission})

    def get_material_count(self) -> int:
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Material type for an id, from Python scope."""
        info = self.get_material_info(material_id)
        return info.material_type if info is not None else None

    def _check_material_id(self, material_id: int) -> None:
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(self, center: Vec3Tuple, radius: float, material_id: int) -> int:
        """Add a sphere to the scene.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If the radius is not positive or material_id is invalid.
        """
        self._check_material_id(material_id)
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        center = to_vec_tuple(center, "center")

        sphere_index = add_sphere(vec3(center[0], center[1], center[2]), radius, material_id)
        self.spheres.append(
            SphereInfo(sphere_index=sphere_index, center=center, radius=radius, material_id=material_id)
        )
        return sphere_index

    def add_rect(
        self,
        axis: int,
        k: float,
        bounds: tuple[float, float, float, float],
        material_id: int,
        facing: bool = True,
        rotation_degrees: float = 0.0,
        offset: Vec3Tuple = (0.0, 0.0, 0.0),
    ) -> int:
        """Add an axis-aligned rectangle.

        Args:
            axis: Constant axis (0 = x, 1 = y, 2 = z).
            k: Constant coordinate.
            bounds: (a0, a1, b0, b1). ``a`` is x for the XY and XZ planes
                and y for the YZ plane; ``b`` is y for XY and z otherwise.
            material_id: The unified material ID.
            facing: True for an outward normal along +axis.
            rotation_degrees: Rotation about +y in degrees.
            offset: World-space offset applied after the rotation.

        Returns:
            The index of the added rectangle.

        Raises:
            RuntimeError: If the maximum number of rectangles is exceeded.
            ValueError: If the axis, bounds or material_id are invalid.
        """
        self._check_material_id(material_id)
        if axis not in (0, 1, 2):
            raise ValueError(f"Rectangle axis must be 0, 1 or 2, got {axis}")
        a0, a1, b0, b1 = (float(b) for b in bounds)
        if not (a0 < a1 and b0 < b1):
            raise ValueError(f"Rectangle bounds must satisfy a0 < a1 and b0 < b1, got {bounds}")
        offset = to_vec_tuple(offset, "offset")

        rect_index = add_rect(
            axis,
            k,
            (a0, a1, b0, b1),
            1 if facing else 0,
            math.radians(rotation_degrees),
            offset,
            material_id,
        )
        self.rects.append(
            RectInfo(
                rect_index=rect_index,
                axis=axis,
                k=k,
                bounds=(a0, a1, b0, b1),
                facing=bool(facing),
                rotation_degrees=rotation_degrees,
                offset=offset,
                material_id=material_id,
            )
        )
        return rect_index

    def add_xy_rect(
        self, x0: float, x1: float, y0: float, y1: float, z: float, material_id: int, facing: bool = True
    ) -> int:
        """Rectangle in the plane z = const."""
        return self.add_rect(2, z, (x0, x1, y0, y1), material_id, facing)

    def add_xz_rect(
        self, x0: float, x1: float, z0: float, z1: float, y: float, material_id: int, facing: bool = True
    ) -> int:
        """Rectangle in the plane y = const."""
        return self.add_rect(1, y, (x0, x1, z0, z1), material_id, facing)

    def add_yz_rect(
        self, y0: float, y1: float, z0: float, z1: float, x: float, material_id: int, facing: bool = True
    ) -> int:
        """Rectangle in the plane x = const."""
        return self.add_rect(0, x, (y0, y1, z0, z1), material_id, facing)

    def add_box(
        self,
        min_corner: Vec3Tuple,
        max_corner: Vec3Tuple,
        material_id: int,
        rotation_degrees: float = 0.0,
    ) -> int:
        """Add a box, optionally rotated about +y through its center.

        Args:
            min_corner: World-space minimum corner of the unrotated box.
            max_corner: World-space maximum corner of the unrotated box.
            material_id: The unified material ID.
            rotation_degrees: Rotation about the vertical axis through the
                box center.

        Returns:
            The index of the added box.

        Raises:
            RuntimeError: If the maximum number of boxes is exceeded.
            ValueError: If min_corner is not strictly below max_corner or
                material_id is invalid.
        """
        self._check_material_id(material_id)
        lo = to_vec_tuple(min_corner, "min_corner")
        hi = to_vec_tuple(max_corner, "max_corner")
        if not all(a < b for a, b in zip(lo, hi)):
            raise ValueError(f"Box min_corner {lo} must be below max_corner {hi} on every axis")

        center = tuple((a + b) / 2.0 for a, b in zip(lo, hi))
        half = tuple((b - a) / 2.0 for a, b in zip(lo, hi))
        box_index = add_box(
            vec3(-half[0], -half[1], -half[2]),
            vec3(half[0], half[1], half[2]),
            math.radians(rotation_degrees),
            center,
            material_id,
        )
        self.boxes.append(
            BoxInfo(
                box_index=box_index,
                min_corner=lo,
                max_corner=hi,
                rotation_degrees=rotation_degrees,
                material_id=material_id,
            )
        )
        return box_index

    # =========================================================================
    # Background and Importance Targets
    # =========================================================================

    def set_background(self, color: Vec3Tuple) -> None:
        """Set the constant radiance returned for escaping rays."""
        set_background(to_vec_tuple(color, "background"))

    def get_background(self) -> Vec3Tuple:
        return get_background()

    def set_light_target(self, rect_index: int) -> None:
        """Use a rectangle of the scene as the light sampling target.

        Raises:
            ValueError: If the index does not name a rectangle.
        """
        if not 0 <= rect_index < len(self.rects):
            raise ValueError(f"Invalid rect index for light target: {rect_index}")
        rect = self.rects[rect_index]
        setup_light_target(
            rect.axis,
            rect.k,
            rect.bounds,
            1 if rect.facing else 0,
            math.radians(rect.rotation_degrees),
            rect.offset,
        )
        self.light_target = rect_index
        logger.info("Light sampling target set to rect %d", rect_index)

    def set_sphere_target(self, sphere_index: int) -> None:
        """Use a sphere of the scene as the specular sampling target.

        Raises:
            ValueError: If the index does not name a sphere.
        """
        if not 0 <= sphere_index < len(self.spheres):
            raise ValueError(f"Invalid sphere index for sphere target: {sphere_index}")
        sphere = self.spheres[sphere_index]
        setup_sphere_target(sphere.center, sphere.radius)
        self.sphere_target = sphere_index
        logger.info("Sphere sampling target set to sphere %d", sphere_index)

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    def get_rect_count(self) -> int:
        return get_rect_count()

    def get_box_count(self) -> int:
        return get_box_count()

    def get_primitive_count(self) -> int:
        return self.get_sphere_count() + self.get_rect_count() + self.get_box_count()

    def log_summary(self) -> None:
        logger.debug(
            "Scene: %d materials, %d spheres, %d rects, %d boxes",
            self.get_material_count(),
            self.get_sphere_count(),
            self.get_rect_count(),
            self.get_box_count(),
        )

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            params = {
                key: list(value) if isinstance(value, tuple) else value
                for key, value in mat.params.items()
            }
            config.materials.append({"type": mat.material_type.name.lower(), **params})

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        for rect in self.rects:
            config.rects.append(
                {
                    "axis": rect.axis,
                    "k": rect.k,
                    "bounds": list(rect.bounds),
                    "facing": rect.facing,
                    "rotation": rect.rotation_degrees,
                    "offset": list(rect.offset),
                    "material_id": rect.material_id,
                }
            )

        for box in self.boxes:
            config.boxes.append(
                {
                    "min_corner": list(box.min_corner),
                    "max_corner": list(box.max_corner),
                    "rotation": box.rotation_degrees,
                    "material_id": box.material_id,
                }
            )

        config.background = list(self.get_background())
        config.light_target = self.light_target
        config.sphere_target = self.sphere_target
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object, replacing the current one.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for mat_config in config.materials:
            mat_type = str(mat_config.get("type", "")).lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(tuple(mat_config.get("albedo", [0.5, 0.5, 0.5])))
            elif mat_type == "metal":
                self.add_metal_material(
                    tuple(mat_config.get("albedo", [0.8, 0.8, 0.8])),
                    mat_config.get("roughness", 0.0),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat_config.get("ior", 1.5))
            elif mat_type == "light":
                self.add_light_material(tuple(mat_config.get("emission", [1.0, 1.0, 1.0])))
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        for sphere_config in config.spheres:
            self.add_sphere(
                tuple(sphere_config.get("center", [0.0, 0.0, 0.0])),
                sphere_config.get("radius", 1.0),
                sphere_config.get("material_id", 0),
            )

        for rect_config in config.rects:
            self.add_rect(
                rect_config.get("axis", 2),
                rect_config.get("k", 0.0),
                tuple(rect_config.get("bounds", [0.0, 1.0, 0.0, 1.0])),
                rect_config.get("material_id", 0),
                facing=rect_config.get("facing", True),
                rotation_degrees=rect_config.get("rotation", 0.0),
                offset=tuple(rect_config.get("offset", [0.0, 0.0, 0.0])),
            )

        for box_config in config.boxes:
            self.add_box(
                tuple(box_config.get("min_corner", [0.0, 0.0, 0.0])),
                tuple(box_config.get("max_corner", [1.0, 1.0, 1.0])),
                box_config.get("material_id", 0),
                rotation_degrees=box_config.get("rotation", 0.0),
            )

        self.set_background(tuple(config.background))
        if config.light_target is not None:
            self.set_light_target(config.light_target)
        if config.sphere_target is not None:
            self.set_sphere_target(config.sphere_target)
        self.log_summary()

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "rects": config.rects,
            "boxes": config.boxes,
            "background": config.background,
            "light_target": config.light_target,
            "sphere_target": config.sphere_target,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary produced by to_dict()."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
            rects=data.get("rects", []),
            boxes=data.get("boxes", []),
            background=data.get("background", [0.0, 0.0, 0.0]),
            light_target=data.get("light_target"),
            sphere_target=data.get("sphere_target"),
        )
        self.from_config(config)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_rects() -> int:
        return MAX_RECTS

    @staticmethod
    def get_max_boxes() -> int:
        return MAX_BOXES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS
