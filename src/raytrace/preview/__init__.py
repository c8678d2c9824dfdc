"""Image output.

Components:
    export: Linear to 8-bit conversion, PPM and PNG writers, RMSE

Example:
    >>> from raytrace.preview import save_png
    >>> save_png(renderer, "output.png")
"""

from raytrace.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_image,
    save_png,
    save_png_from_array,
    save_ppm,
    save_ppm_from_array,
)

__all__ = [
    "image_to_uint8",
    "save_image",
    "save_png",
    "save_png_from_array",
    "save_ppm",
    "save_ppm_from_array",
    "compute_rmse",
]
