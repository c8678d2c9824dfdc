"""Light (emitter) material.

Lights never scatter. Emission is one-sided: the emission color is returned
only when the ray strikes the side of the surface its outward normal faces
(``front_face == 1``). A ceiling panel that should shine downward is
therefore built with its outward normal pointing down.
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def emit_light(emission: vec3, front_face: ti.i32) -> vec3:
    """Emitted radiance for a hit on a light surface.

    Args:
        emission: The light's emission color.
        front_face: 1 when the ray hit the emitting side.

    Returns:
        ``emission`` on the emitting side, black otherwise.
    """
    result = vec3(0.0, 0.0, 0.0)
    if front_face == 1:
        result = emission
    return result


@ti.func
def scatter_light():
    """Lights absorb every ray.

    Returns:
        A tuple of (did_scatter, direction, attenuation, sampling_pdf) with
        did_scatter == 0.
    """
    return 0, vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 0.0), 0.0


@ti.func
def scatter_pdf_light(normal: vec3, direction: vec3) -> ti.f32:
    return 0.0


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of light materials in the scene
MAX_LIGHT_MATERIALS = 64

light_emissions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHT_MATERIALS)
num_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_light_materials() -> None:
    num_light_materials[None] = 0


def add_light_material(emission: tuple[float, float, float]) -> int:
    """Add a light material to the registry.

    Args:
        emission: The emitted radiance as (R, G, B). Components may exceed 1
            but must be non-negative.

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If any emission component is negative.
    """
    for i, component in enumerate(emission):
        if component < 0.0:
            raise ValueError(f"Emission component {i} = {component} is negative.")

    idx = num_light_materials[None]
    if idx >= MAX_LIGHT_MATERIALS:
        raise RuntimeError(f"Maximum number of light materials ({MAX_LIGHT_MATERIALS}) exceeded")

    light_emissions[idx] = vec3(emission[0], emission[1], emission[2])
    num_light_materials[None] = idx + 1
    return idx


def get_light_material_count() -> int:
    return int(num_light_materials[None])


@ti.func
def get_light_emission(material_idx: ti.i32) -> vec3:
    return light_emissions[material_idx]
