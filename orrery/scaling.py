#!/usr/bin/env python3
"""
Scale transform: physical meters to bounded render-space units.

Responsibilities
- Derive one position factor per snapshot batch from the current body set, so
  every body in a frame shares the same scale.
- Map physical radii into a visually comparable band, either linearly or with
  a power-law normalization that compresses the star/planet dynamic range.

Two transforms are provided:
- PlanarScale frames the top-down trace: the farthest body (in the x/y plane)
  lands `padding` pixels inside the smaller half-extent of the viewport.
- SpatialScale divides positions by a fixed constant for the 3D scene.

Numerical notes
- The primary body (the star named by `primary_name`) sits at ~0 distance and
  is skipped when searching for the farthest body; it is still rendered. When
  no body carries that name every body counts toward the framing distance.
- Degenerate input (no bodies, all magnitudes zero, non-finite results)
  yields FALLBACK_SCALE instead of NaN/Infinity.

Everything here is pure: transforms are frozen dataclasses and identical
inputs always give identical outputs.
"""
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from .constants import (
    DEFAULT_PADDING,
    DEFAULT_PRIMARY_NAME,
    FALLBACK_SCALE,
    POSITION_DIVISOR_3D,
    PRIMARY_RADIUS_DIVISOR_3D,
    RADIUS_DIVISOR_3D,
    RADIUS_EXPONENT,
    RADIUS_MIN,
    RADIUS_SCALE_MAX,
    VIEW_HEIGHT,
    VIEW_WIDTH,
)
from .data_models import CelestialBody
from .vector_utils import Vec3, planar_len, vec_len, vec_scale


@dataclass(frozen=True)
class ScaleFactors:
    """
    Per-batch scale factors.

    - position_scale: render units per meter of position
    - radius_scale: render units per meter of radius (linear), or 1/max_radius
      (power law normalization)
    - reference_distance: farthest non-primary distance the factors were derived from
    - reference_radius: largest radius in the batch
    """
    position_scale: float = FALLBACK_SCALE
    radius_scale: float = FALLBACK_SCALE
    reference_distance: float = 0.0
    reference_radius: float = 0.0


def _safe_inverse(magnitude: float, numerator: float = 1.0) -> float:
    if magnitude <= 0.0 or not math.isfinite(magnitude):
        return FALLBACK_SCALE
    value = numerator / magnitude
    if not math.isfinite(value) or value <= 0.0:
        return FALLBACK_SCALE
    return value


def find_primary(bodies: Sequence[CelestialBody], primary_name: Optional[str] = DEFAULT_PRIMARY_NAME) -> Optional[CelestialBody]:
    """Return the body named `primary_name`, or None when no body carries that name."""
    if not primary_name:
        return None
    for b in bodies:
        if b.name == primary_name:
            return b
    return None


def max_distance(bodies: Sequence[CelestialBody], planar: bool = True,
                 primary_name: Optional[str] = DEFAULT_PRIMARY_NAME) -> float:
    """Largest distance from the origin among the non-primary bodies."""
    primary = find_primary(bodies, primary_name)
    measure = planar_len if planar else vec_len
    distances = [measure(b.position) for b in bodies if primary is None or b.name != primary.name]
    return max(distances, default=0.0)


def max_radius(bodies: Sequence[CelestialBody]) -> float:
    return max((b.radius for b in bodies), default=0.0)


@dataclass(frozen=True)
class RadiusModel:
    """
    How physical radii become render radii.

    mode "power": scaled = max(minimum, (radius / max_radius) ** exponent * scale_max)
    mode "linear": scaled = max(minimum, radius / divisor), the primary using
    primary_divisor so the star does not swallow the inner orbits.
    """
    mode: str = "power"
    exponent: float = RADIUS_EXPONENT
    scale_max: float = RADIUS_SCALE_MAX
    minimum: float = RADIUS_MIN
    divisor: float = RADIUS_DIVISOR_3D
    primary_divisor: float = PRIMARY_RADIUS_DIVISOR_3D

    def __post_init__(self):
        if self.mode not in ("power", "linear"):
            raise ValueError(f"unknown radius mode: {self.mode}")

    def factor(self, bodies: Sequence[CelestialBody]) -> float:
        if self.mode == "power":
            return _safe_inverse(max_radius(bodies))
        return _safe_inverse(self.divisor)

    def apply(self, radius: float, factor: float, is_primary: bool = False) -> float:
        if self.mode == "power":
            scaled = (max(radius, 0.0) * factor) ** self.exponent * self.scale_max
        elif is_primary:
            scaled = radius * _safe_inverse(self.primary_divisor)
        else:
            scaled = radius * factor
        if not math.isfinite(scaled):
            return self.minimum
        return max(self.minimum, scaled)


class _Transform:
    """Shared application of factors; subclasses decide how factors are derived."""

    primary_name: Optional[str]
    radius_model: RadiusModel

    def factors(self, bodies: Sequence[CelestialBody]) -> ScaleFactors:
        raise NotImplementedError

    def position(self, vec: Vec3, factors: ScaleFactors) -> Vec3:
        return vec_scale(vec, factors.position_scale)

    def radius(self, body: CelestialBody, factors: ScaleFactors, is_primary: bool = False) -> float:
        return self.radius_model.apply(body.radius, factors.radius_scale, is_primary)

    def scale(self, bodies: Sequence[CelestialBody]) -> Tuple[float, float]:
        """The (position_scale, radius_scale) pair for a body set."""
        f = self.factors(bodies)
        return (f.position_scale, f.radius_scale)


@dataclass(frozen=True)
class PlanarScale(_Transform):
    viewport: Tuple[int, int] = (VIEW_WIDTH, VIEW_HEIGHT)
    padding: float = DEFAULT_PADDING
    radius_model: RadiusModel = field(default_factory=RadiusModel)
    primary_name: Optional[str] = DEFAULT_PRIMARY_NAME

    def factors(self, bodies: Sequence[CelestialBody]) -> ScaleFactors:
        half_extent = min(self.viewport[0], self.viewport[1]) / 2 - self.padding
        distance = max_distance(bodies, planar=True, primary_name=self.primary_name)
        if half_extent <= 0:
            position_scale = FALLBACK_SCALE
        else:
            position_scale = _safe_inverse(distance, half_extent)
        return ScaleFactors(
            position_scale=position_scale,
            radius_scale=self.radius_model.factor(bodies),
            reference_distance=distance,
            reference_radius=max_radius(bodies),
        )

    def resized(self, width: int, height: int) -> "PlanarScale":
        return PlanarScale(
            viewport=(int(width), int(height)),
            padding=self.padding,
            radius_model=self.radius_model,
            primary_name=self.primary_name,
        )


@dataclass(frozen=True)
class SpatialScale(_Transform):
    position_divisor: float = POSITION_DIVISOR_3D
    radius_model: RadiusModel = field(default_factory=lambda: RadiusModel(mode="linear"))
    primary_name: Optional[str] = DEFAULT_PRIMARY_NAME

    def factors(self, bodies: Sequence[CelestialBody]) -> ScaleFactors:
        return ScaleFactors(
            position_scale=_safe_inverse(self.position_divisor),
            radius_scale=self.radius_model.factor(bodies),
            reference_distance=max_distance(bodies, planar=False, primary_name=self.primary_name),
            reference_radius=max_radius(bodies),
        )
