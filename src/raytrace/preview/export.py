"""Image export utilities for rendered images.

This module converts the accumulated linear radiance to 8-bit color and
writes it to disk.

Supported formats:
    - PPM (plain-text P3)
    - PNG (8-bit via Pillow)

The default gamma of 2.0 corresponds to taking the square root of each
channel.

Example:
    >>> from raytrace.preview.export import save_ppm
    >>> from raytrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(256, 256)
    >>> renderer.render(100)
    >>> save_ppm(renderer, "output.ppm")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from raytrace.core.utils import get_logger

if TYPE_CHECKING:
    from raytrace.core.progressive import ProgressiveRenderer

logger = get_logger()

DEFAULT_GAMMA = 2.0


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    gamma: float = DEFAULT_GAMMA,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to uint8.

    Each channel becomes ``int(255 * clip(x, 0, 1) ** (1 / gamma))``.
    NaN channels map to 0.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma correction value (default 2.0).

    Returns:
        8-bit image array of shape (H, W, 3).

    Raises:
        ValueError: If gamma is not positive or the array is not (H, W, 3).
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    image = np.asarray(image, dtype=np.float64)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")

    clipped = np.clip(np.nan_to_num(image, nan=0.0), 0.0, 1.0)
    corrected = np.power(clipped, 1.0 / gamma)
    return (corrected * 255.0).astype(np.uint8)


def save_ppm_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    gamma: float = DEFAULT_GAMMA,
) -> None:
    """Write a linear image as a plain-text (P3) PPM file.

    Rows are written top to bottom, one pixel triple per line.
    """
    pixels = image_to_uint8(image, gamma=gamma)
    height, width, _ = pixels.shape

    lines = [f"P3\n{width} {height}\n255"]
    lines.extend(f"{r} {g} {b}" for r, g, b in pixels.reshape(-1, 3).tolist())
    Path(filepath).write_text("\n".join(lines) + "\n", encoding="ascii")
    logger.info("Wrote %dx%d PPM to %s", width, height, filepath)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    gamma: float = DEFAULT_GAMMA,
) -> None:
    """Write a linear image as an 8-bit PNG file."""
    pixels = image_to_uint8(image, gamma=gamma)
    PILImage.fromarray(pixels).save(filepath)
    logger.info("Wrote %dx%d PNG to %s", pixels.shape[1], pixels.shape[0], filepath)


def save_ppm(
    renderer: ProgressiveRenderer,
    filepath: str | Path,
    *,
    gamma: float = DEFAULT_GAMMA,
) -> None:
    """Save the renderer's current image as a P3 PPM file."""
    save_ppm_from_array(renderer.get_raw_image_numpy(), filepath, gamma=gamma)


def save_png(
    renderer: ProgressiveRenderer,
    filepath: str | Path,
    *,
    gamma: float = DEFAULT_GAMMA,
) -> None:
    """Save the renderer's current image as a PNG file."""
    save_png_from_array(renderer.get_raw_image_numpy(), filepath, gamma=gamma)


def save_image(
    renderer: ProgressiveRenderer,
    filepath: str | Path,
    *,
    gamma: float = DEFAULT_GAMMA,
) -> None:
    """Save the renderer's image, picking the format from the file suffix.

    Raises:
        ValueError: If the suffix is neither .png nor .ppm.
    """
    suffix = Path(filepath).suffix.lower()
    if suffix == ".ppm":
        save_ppm(renderer, filepath, gamma=gamma)
    elif suffix == ".png":
        save_png(renderer, filepath, gamma=gamma)
    else:
        raise ValueError(f"Unsupported image format '{suffix}', expected .png or .ppm")


def compute_rmse(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
