#!/usr/bin/env python3
"""
Data models for the Orrery Viewer.

This module defines the CelestialBody dataclass shared between the client,
the history store, the scene builder and the UI, plus the ISO-8601 helpers
used on the wire.

Units and usage
- position is in meters [m], velocity in meters per second [m/s], radius in
  meters [m], mass in kg.
- timestamp is a timezone-aware UTC datetime; the service may omit it on
  single-instant responses, in which case the requested instant is used.
- Bodies are immutable; a new snapshot always carries new instances.
"""
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import PayloadError
from .vector_utils import Vec3, as_vec3

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_instant(text: str) -> datetime:
    """
    Parse an ISO-8601 instant into an aware UTC datetime.

    Accepts a trailing 'Z', explicit offsets and sub-microsecond fractions
    (truncated to microseconds). Naive values are taken as UTC.
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError(f"invalid instant: {text!r}")
    value = text.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    value = _FRACTION_RE.sub(r"\1", value)
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_instant(dt: datetime) -> str:
    """Format an instant the way browsers do: millisecond precision, 'Z' suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    text = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _as_float(data: Mapping[str, Any], key: str) -> float:
    try:
        value = float(data[key])
    except KeyError:
        raise PayloadError(f"missing field '{key}'") from None
    except (TypeError, ValueError, OverflowError):
        raise PayloadError(f"field '{key}' is not a number: {data[key]!r}") from None
    if not math.isfinite(value):
        raise PayloadError(f"field '{key}' is not finite")
    return value


def _as_vector(data: Mapping[str, Any], key: str) -> Vec3:
    try:
        vec = as_vec3(data[key])
    except KeyError:
        raise PayloadError(f"missing field '{key}'") from None
    except (TypeError, ValueError, OverflowError) as exc:
        raise PayloadError(f"field '{key}' is not a 3-vector: {exc}") from None
    if not all(math.isfinite(c) for c in vec):
        raise PayloadError(f"field '{key}' has non-finite components")
    return vec


@dataclass(frozen=True)
class CelestialBody:
    """
    State of one simulated object at one instant.

    Fields:
    - name: identifier, unique within a snapshot and stable across the run
    - mass: mass in kilograms (informational)
    - radius: physical radius in meters
    - position: 3D position (x, y, z) in meters, origin at the primary
    - velocity: 3D velocity in meters/second (passed through)
    - timestamp: instant of this sample
    """
    name: str
    mass: float
    radius: float
    position: Vec3
    velocity: Vec3
    timestamp: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Any, default_timestamp: Optional[datetime] = None) -> "CelestialBody":
        if not isinstance(data, Mapping):
            raise PayloadError(f"body state must be an object, got {type(data).__name__}")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise PayloadError(f"invalid body name: {name!r}")
        mass = _as_float(data, "mass")
        radius = _as_float(data, "radius")
        if mass < 0:
            raise PayloadError(f"{name}: negative mass")
        if radius <= 0:
            raise PayloadError(f"{name}: radius must be positive")

        raw_ts = data.get("timestamp")
        if raw_ts is None:
            timestamp = default_timestamp
        else:
            try:
                timestamp = parse_instant(raw_ts)
            except (TypeError, ValueError):
                raise PayloadError(f"{name}: invalid timestamp {raw_ts!r}") from None

        return cls(
            name=name,
            mass=mass,
            radius=radius,
            position=_as_vector(data, "position"),
            velocity=_as_vector(data, "velocity"),
            timestamp=timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "mass": self.mass,
            "radius": self.radius,
            "position": list(self.position),
            "velocity": list(self.velocity),
            "timestamp": format_instant(self.timestamp) if self.timestamp else None,
        }


def validate_snapshot(bodies: Iterable[CelestialBody]) -> List[CelestialBody]:
    """Reject a single-instant snapshot that names the same body twice."""
    result = list(bodies)
    seen = set()
    for b in result:
        if b.name in seen:
            raise PayloadError(f"duplicate body name in snapshot: {b.name}")
        seen.add(b.name)
    return result
