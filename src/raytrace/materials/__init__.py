"""Surface material models.

Components:
    lambertian: Ideal diffuse reflection (cosine-weighted sampling)
    metal: Mirror reflection with roughness perturbation
    dielectric: Glass-like reflection/refraction (Schlick Fresnel)
    light: One-sided emitter that never scatters

Each material provides three capabilities used by the integrator:
    - scatter_*(): sample an outgoing direction, returning
      (did_scatter, direction, attenuation, sampling_pdf, rng)
    - emission: black for everything except lights
    - scatter_pdf_*(): the true density of the material's lobe, 0 for
      delta-like materials

Parameters live in per-type Taichi field registries; the scene manager maps
a unified material id onto (type, type-local index).
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    fresnel_reflectance,
    get_dielectric_ior,
    get_dielectric_material_count,
    scatter_dielectric,
    scatter_pdf_dielectric,
    will_reflect,
)
from .lambertian import (
    LAMBERTIAN_PDF_FLOOR,
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    scatter_lambertian,
    scatter_pdf_lambertian,
)
from .light import (
    add_light_material,
    clear_light_materials,
    emit_light,
    get_light_emission,
    get_light_material_count,
    scatter_light,
    scatter_pdf_light,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_material_count,
    get_metal_roughness,
    scatter_metal,
    scatter_pdf_metal,
)

__all__ = [
    # Lambertian
    "LAMBERTIAN_PDF_FLOOR",
    "scatter_lambertian",
    "scatter_pdf_lambertian",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_albedo",
    # Metal
    "scatter_metal",
    "scatter_pdf_metal",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_albedo",
    "get_metal_roughness",
    # Dielectric
    "scatter_dielectric",
    "scatter_pdf_dielectric",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "get_dielectric_ior",
    "fresnel_reflectance",
    "will_reflect",
    # Light
    "emit_light",
    "scatter_light",
    "scatter_pdf_light",
    "add_light_material",
    "clear_light_materials",
    "get_light_material_count",
    "get_light_emission",
]
