"""Camera models for primary ray generation.

Components:
    thin_lens: Look-at camera with optional aperture (depth of field)

Ray generation runs inside Taichi kernels and draws its sub-pixel jitter and
lens samples from the caller's RNG stream.
"""

from .thin_lens import (
    ThinLensCamera,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "setup_camera",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
]
