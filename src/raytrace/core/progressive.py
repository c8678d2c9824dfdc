"""Progressive renderer for iterative sample accumulation.

This module wraps the core integrator with:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks and a generator API
- Cooperative cancellation between batches

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from raytrace.camera import setup_camera
    >>> from raytrace.core.progressive import ProgressiveRenderer
    >>> from raytrace.scene.scenes import create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(256, 256)
    >>> renderer.render(100, batch_size=10)
    >>> image = renderer.get_image_numpy()
"""

import threading
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt

from raytrace.config import RenderSettings
from raytrace.core.integrator import (
    clear_render_target,
    configure_renderer,
    get_image,
    get_normalized_image_numpy,
    get_raw_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)
from raytrace.core.utils import get_logger

logger = get_logger()

# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer keeps its own width/height and delegates to the global
    integrator buffers (which are Taichi fields). Constructing it applies
    the given render settings.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        settings: The applied RenderSettings.
    """

    def __init__(self, width: int, height: int, settings: RenderSettings | None = None) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            settings: Estimator settings. None uses the defaults.

        Raises:
            ValueError: If dimensions or settings are invalid.
        """
        self.settings = configure_renderer(settings)
        self._width = width
        self._height = height
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def sample_count(self) -> int:
        """Current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Clear the accumulator without changing the image dimensions."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulator.

        Raises:
            ValueError: If dimensions exceed maximum supported size.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height

    def configure(self, settings: RenderSettings) -> None:
        """Apply new settings and reset the accumulator.

        Raises:
            ValueError: If the settings are invalid.
        """
        self.settings = configure_renderer(settings)
        self.reset()

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> int:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
            callback: Optional callback called after each batch with
                (current_total_samples, target_total_samples).
            cancel_event: Optional event checked before each batch; once set,
                rendering stops and the samples so far are kept.

        Returns:
            The number of samples actually added.

        Raises:
            ValueError: If batch_size is not positive.
        """
        rendered = 0
        for current, target in self.render_progressive(num_samples, batch_size, cancel_event):
            rendered = current - (target - num_samples)
            if callback is not None:
                callback(current, target)
        return rendered

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        cancel_event: threading.Event | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.
            cancel_event: Optional event checked before each batch.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size is not positive.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if num_samples <= 0:
            return

        target_samples = self.sample_count + num_samples

        remaining = num_samples
        while remaining > 0:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "Render cancelled at %d/%d samples", self.sample_count, target_samples
                )
                return
            batch = min(batch_size, remaining)
            render_image(batch)
            remaining -= batch
            current = self.sample_count
            logger.debug("Rendered %d/%d samples", current, target_samples)
            yield (current, target_samples)

    def get_image(self) -> Any:
        """Get the raw Taichi color buffer field (full preallocated size)."""
        return get_image()

    def get_raw_image_numpy(self) -> npt.NDArray[np.float32]:
        """Unclamped linear radiance, shape (height, width, 3)."""
        return get_raw_image_numpy()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array.

        Values are clamped to [0, 1] and optionally gamma corrected. The
        array shape is (height, width, 3).

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
        """
        image = get_normalized_image_numpy()

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image

    def get_image_uint8(self, gamma: float = 2.0) -> npt.NDArray[np.uint8]:
        """Get the rendered image as an 8-bit array with gamma applied."""
        from raytrace.preview.export import image_to_uint8

        return image_to_uint8(get_normalized_image_numpy(), gamma=gamma)

    def save_image(self, filepath: str | Path, gamma: float = 2.0) -> None:
        """Save the rendered image; the format follows the file suffix.

        Raises:
            ValueError: If the suffix is neither .png nor .ppm.
        """
        from raytrace.preview.export import save_image

        save_image(self, filepath, gamma=gamma)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
