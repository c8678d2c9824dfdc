"""Render settings.

``RenderSettings`` gathers the knobs that control the estimator itself, as
opposed to the scene. The integrator copies them into Taichi fields through
``raytrace.core.integrator.configure_renderer``.

Example:
    >>> settings = RenderSettings(max_depth=8, seed=7)
    >>> settings.validate()
    >>> RenderSettings.from_dict(settings.to_dict()) == settings
    True
"""

from dataclasses import asdict, dataclass, fields
from typing import Any

# Upper bound on the bounce budget
MAX_BOUNCE_BUDGET = 512


@dataclass
class RenderSettings:
    """Estimator configuration.

    Attributes:
        max_depth: Bounce budget. A path is truncated after this many
            scattering events; a negative budget renders black.
        firefly_pdf_threshold: Diffuse mixture samples whose density falls
            below this value are redrawn. 0 disables the redraw except for
            zero densities.
        max_firefly_retries: Redraw cap before falling back to a plain
            hemisphere sample.
        light_sampling_weight: Mixture weight of the light target.
        sphere_sampling_weight: Mixture weight of the specular sphere target.
        seed: Seed for the per-sample random streams.
    """

    max_depth: int = 50
    firefly_pdf_threshold: float = 0.15
    max_firefly_retries: int = 16
    light_sampling_weight: float = 0.5
    sphere_sampling_weight: float = 0.0
    seed: int = 0

    def validate(self) -> None:
        """Check every field.

        Raises:
            ValueError: If any setting is out of range.
        """
        if self.max_depth < -1 or self.max_depth > MAX_BOUNCE_BUDGET:
            raise ValueError(
                f"max_depth must be in [-1, {MAX_BOUNCE_BUDGET}], got {self.max_depth}"
            )
        if self.firefly_pdf_threshold < 0.0:
            raise ValueError(
                f"firefly_pdf_threshold must be >= 0, got {self.firefly_pdf_threshold}"
            )
        if self.max_firefly_retries < 0:
            raise ValueError(
                f"max_firefly_retries must be >= 0, got {self.max_firefly_retries}"
            )
        if self.light_sampling_weight < 0.0 or self.sphere_sampling_weight < 0.0:
            raise ValueError("Sampling weights must be non-negative")
        if self.light_sampling_weight + self.sphere_sampling_weight > 1.0:
            raise ValueError(
                "light_sampling_weight + sphere_sampling_weight must not exceed 1, got "
                f"{self.light_sampling_weight + self.sphere_sampling_weight}"
            )
        if self.seed < 0 or self.seed > 0x7FFFFFFF:
            raise ValueError(f"seed must be a non-negative 31-bit integer, got {self.seed}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderSettings":
        """Build validated settings from a dictionary.

        Raises:
            ValueError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown render settings: {sorted(unknown)}")
        settings = cls(**data)
        settings.validate()
        return settings
