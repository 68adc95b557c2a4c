#!/usr/bin/env python3
"""
Scene model builder.

Assembles the latest body states, the orbit history and a scale transform
into a renderer-agnostic scene description.

- Scale factors come from the latest snapshot only, so the framing follows
  the current configuration rather than historical extremes.
- Trails are scaled with the same factors as the bodies of that frame.
- Positions are render-space offsets from the origin; renderers add their own
  screen center or camera.
"""
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .constants import (
    BODY_COLORS,
    BODY_TEXTURES,
    DEFAULT_BODY_COLOR,
    DEFAULT_TEXTURE,
)
from .data_models import CelestialBody
from .history import History
from .scaling import PlanarScale, ScaleFactors, SpatialScale, find_primary
from .vector_utils import Vec3

Color = Tuple[int, int, int]


def lookup(table: Mapping[str, Any], name: str, default: Any) -> Any:
    """Keyed presentation lookup with an explicit fallback for unknown names."""
    return table.get(name, default)


def body_color(name: str) -> Color:
    return lookup(BODY_COLORS, name, DEFAULT_BODY_COLOR)


def body_texture(name: str) -> str:
    return lookup(BODY_TEXTURES, name, DEFAULT_TEXTURE)


@dataclass(frozen=True)
class SceneBody:
    name: str
    position: Vec3  # render units
    radius: float  # render units
    color: Color
    texture: str
    is_primary: bool
    mass: float
    velocity: Vec3


@dataclass(frozen=True)
class SceneModel:
    bodies: Tuple[SceneBody, ...]
    trails: Mapping[str, Tuple[Vec3, ...]]
    factors: ScaleFactors

    def body(self, name: str) -> Optional[SceneBody]:
        for b in self.bodies:
            if b.name == name:
                return b
        return None

    def to_2d_payload(self) -> Dict[str, Any]:
        """Input of the top-down trace renderer."""
        return {
            "bodies": [
                {"name": b.name, "position2D": [b.position[0], b.position[1]], "radius2D": b.radius}
                for b in self.bodies
            ],
            "trails": {name: [[p[0], p[1]] for p in trail] for name, trail in self.trails.items()},
        }

    def to_3d_payload(self) -> Dict[str, Any]:
        """Input of the 3D renderer; `texture` is an asset key, loading is the renderer's business."""
        return {
            "bodies": [
                {
                    "name": b.name,
                    "position3D": list(b.position),
                    "radius3D": b.radius,
                    "texture": b.texture,
                }
                for b in self.bodies
            ],
            "trails": {name: [list(p) for p in trail] for name, trail in self.trails.items()},
        }


def project(latest: Sequence[CelestialBody], history: History, transform, factors: ScaleFactors) -> SceneModel:
    """Apply already computed factors to a snapshot and its trails."""
    primary = find_primary(latest, transform.primary_name)
    bodies = []
    for b in latest:
        is_primary = primary is not None and b.name == primary.name
        bodies.append(SceneBody(
            name=b.name,
            position=transform.position(b.position, factors),
            radius=transform.radius(b, factors, is_primary),
            color=body_color(b.name),
            texture=body_texture(b.name),
            is_primary=is_primary,
            mass=b.mass,
            velocity=b.velocity,
        ))
    trails = {
        name: tuple(transform.position(p, factors) for p in trail)
        for name, trail in history.items()
    }
    return SceneModel(bodies=tuple(bodies), trails=trails, factors=factors)


def build_scene(latest: Sequence[CelestialBody], history: History, transform) -> SceneModel:
    """Pure projection: same inputs, same scene."""
    return project(latest, history, transform, transform.factors(latest))


class SceneModelBuilder:
    """
    Owner of the latest-state cache.

    The cache is replaced wholesale by each non-empty batch, and both factor
    sets are recomputed once at that moment; building a frame never rescales.
    Range batches hold several instants; only the newest state of each body
    is kept.
    """

    def __init__(self, planar: Optional[PlanarScale] = None, spatial: Optional[SpatialScale] = None):
        self.lock = threading.RLock()
        self.planar = planar or PlanarScale()
        self.spatial = spatial or SpatialScale()
        self._latest: Tuple[CelestialBody, ...] = ()
        self._planar_factors = self.planar.factors(())
        self._spatial_factors = self.spatial.factors(())

    @staticmethod
    def latest_states(bodies: Sequence[CelestialBody]) -> Tuple[CelestialBody, ...]:
        """Newest state per body name, in first-seen order."""
        newest: Dict[str, CelestialBody] = {}
        for b in bodies:
            newest[b.name] = b
        return tuple(newest.values())

    def update(self, bodies: Sequence[CelestialBody]) -> bool:
        if not bodies:
            return False
        latest = self.latest_states(bodies)
        with self.lock:
            self._latest = latest
            self._planar_factors = self.planar.factors(latest)
            self._spatial_factors = self.spatial.factors(latest)
        return True

    def set_viewport(self, width: int, height: int) -> None:
        with self.lock:
            self.planar = self.planar.resized(width, height)
            self._planar_factors = self.planar.factors(self._latest)

    def latest(self) -> Tuple[CelestialBody, ...]:
        with self.lock:
            return self._latest

    def reset(self) -> None:
        with self.lock:
            self._latest = ()
            self._planar_factors = self.planar.factors(())
            self._spatial_factors = self.spatial.factors(())

    def build_2d(self, history: History) -> SceneModel:
        with self.lock:
            latest, factors, transform = self._latest, self._planar_factors, self.planar
        return project(latest, history, transform, factors)

    def build_3d(self, history: History) -> SceneModel:
        with self.lock:
            latest, factors, transform = self._latest, self._spatial_factors, self.spatial
        return project(latest, history, transform, factors)

    def cards(self) -> List[Dict[str, str]]:
        """Readable per-body summaries for the UI body list."""
        rows = []
        for b in self.latest():
            rows.append({
                "name": b.name,
                "mass": f"{b.mass:.2e} kg",
                "radius": f"{b.radius / 1000:,.0f} km",
                "position": "[" + ", ".join(f"{c:.2e}" for c in b.position) + "] m",
                "velocity": "[" + ", ".join(f"{c:.2e}" for c in b.velocity) + "] m/s",
            })
        return rows
