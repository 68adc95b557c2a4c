#!/usr/bin/env python3
"""
Viewer configuration loading.

Configuration lives in an optional JSON file; every key is optional and
unknown keys are ignored.

Schema
======
viewer.json:
{
  "api_url": "http://localhost:8080",
  "request_timeout_s": 10.0,
  "start_instant": "2025-04-11T00:00:00Z",
  "step_unit": "day",                # day | month | year | century | millennium
  "step_amount": 1,                  # positive integer
  "backfill": true,                  # seed trails with one bulk range request
  "backfill_steps": 10,
  "tick_interval_s": 0.05,
  "primary_name": "Soleil",
  "viewport": [1100, 800],
  "padding": 40,
  "radius_exponent": 0.25,
  "radius_scale_max": 16.0,
  "radius_min": 1.0,
  "position_divisor_3d": 1e9,
  "radius_divisor_3d": 1e6,
  "primary_radius_divisor_3d": 2e7,
  "history_tolerance": 0.0,          # 0 = exact dedup of trail points
  "history_abs_tolerance": 0.0,      # meters; also dedups jitter around the origin
  "trail_limit": null,               # null = unbounded trails
  "log_level": "INFO"
}

Environment overrides: ORRERY_API_URL, ORRERY_LOG_LEVEL.
"""
import json
import logging
import os
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .constants import (
    DEFAULT_API_URL,
    DEFAULT_BACKFILL_STEPS,
    DEFAULT_PADDING,
    DEFAULT_PRIMARY_NAME,
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_START_INSTANT,
    DEFAULT_TICK_INTERVAL_S,
    POSITION_DIVISOR_3D,
    PRIMARY_RADIUS_DIVISOR_3D,
    RADIUS_DIVISOR_3D,
    RADIUS_EXPONENT,
    RADIUS_MIN,
    RADIUS_SCALE_MAX,
    STEP_UNIT_SECONDS,
    VIEW_HEIGHT,
    VIEW_WIDTH,
)
from .data_models import parse_instant
from .errors import ConfigError
from .scaling import PlanarScale, RadiusModel, SpatialScale

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def step_seconds(unit: str, amount: int) -> float:
    """Convert a step selection into seconds (fixed calendar approximations)."""
    if unit not in STEP_UNIT_SECONDS:
        raise ValueError(f"unknown step unit: {unit!r}")
    if isinstance(amount, bool) or int(amount) != amount or amount <= 0:
        raise ValueError(f"step amount must be a positive integer, got {amount!r}")
    return float(int(amount) * STEP_UNIT_SECONDS[unit])


def try_float(val) -> Optional[float]:
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


@dataclass
class ViewerConfig:
    api_url: str = DEFAULT_API_URL
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    start_instant: str = DEFAULT_START_INSTANT
    step_unit: str = "day"
    step_amount: int = 1
    backfill: bool = True
    backfill_steps: int = DEFAULT_BACKFILL_STEPS
    tick_interval_s: float = DEFAULT_TICK_INTERVAL_S
    primary_name: str = DEFAULT_PRIMARY_NAME
    viewport: Tuple[int, int] = (VIEW_WIDTH, VIEW_HEIGHT)
    padding: float = DEFAULT_PADDING
    radius_exponent: float = RADIUS_EXPONENT
    radius_scale_max: float = RADIUS_SCALE_MAX
    radius_min: float = RADIUS_MIN
    position_divisor_3d: float = POSITION_DIVISOR_3D
    radius_divisor_3d: float = RADIUS_DIVISOR_3D
    primary_radius_divisor_3d: float = PRIMARY_RADIUS_DIVISOR_3D
    history_tolerance: float = 0.0
    history_abs_tolerance: float = 0.0
    trail_limit: Optional[int] = None
    log_level: str = "INFO"

    @property
    def step_seconds(self) -> float:
        return step_seconds(self.step_unit, self.step_amount)

    @property
    def start(self) -> datetime:
        return parse_instant(self.start_instant)

    def planar_scale(self) -> PlanarScale:
        return PlanarScale(
            viewport=self.viewport,
            padding=self.padding,
            radius_model=RadiusModel(
                mode="power",
                exponent=self.radius_exponent,
                scale_max=self.radius_scale_max,
                minimum=self.radius_min,
            ),
            primary_name=self.primary_name,
        )

    def spatial_scale(self) -> SpatialScale:
        return SpatialScale(
            position_divisor=self.position_divisor_3d,
            radius_model=RadiusModel(
                mode="linear",
                minimum=0.0,
                divisor=self.radius_divisor_3d,
                primary_divisor=self.primary_radius_divisor_3d,
            ),
            primary_name=self.primary_name,
        )

    def validate(self) -> "ViewerConfig":
        try:
            self.step_seconds
        except ValueError as exc:
            raise ConfigError(str(exc)) from None
        try:
            self.start
        except ValueError as exc:
            raise ConfigError(f"start_instant: {exc}") from None
        for name in ("request_timeout_s", "position_divisor_3d", "radius_divisor_3d",
                     "primary_radius_divisor_3d", "radius_scale_max"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        for name in ("tick_interval_s", "padding", "radius_exponent", "radius_min", "history_tolerance",
                     "history_abs_tolerance"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")
        if self.backfill_steps < 1:
            raise ConfigError("backfill_steps must be >= 1")
        if self.trail_limit is not None and self.trail_limit < 1:
            raise ConfigError("trail_limit must be a positive integer or null")
        if len(self.viewport) != 2 or min(self.viewport) <= 0:
            raise ConfigError("viewport must be [width, height] with positive sizes")
        if logging.getLevelName(self.log_level.upper()) not in (
                logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL):
            raise ConfigError(f"unknown log_level: {self.log_level}")
        return self


_FLOAT_KEYS = {
    "request_timeout_s", "tick_interval_s", "padding", "radius_exponent", "radius_scale_max",
    "radius_min", "position_divisor_3d", "radius_divisor_3d", "primary_radius_divisor_3d",
    "history_tolerance", "history_abs_tolerance",
}
_INT_KEYS = {"step_amount", "backfill_steps"}
_STR_KEYS = {"api_url", "start_instant", "step_unit", "primary_name", "log_level"}


def _coerce(key: str, value: Any) -> Any:
    if key in _FLOAT_KEYS:
        f = try_float(value)
        if f is None or isinstance(value, bool):
            raise ConfigError(f"{key} must be a number, got {value!r}")
        return f
    if key in _INT_KEYS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{key} must be an integer, got {value!r}")
        return value
    if key in _STR_KEYS:
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string, got {value!r}")
        return value
    if key == "backfill":
        if not isinstance(value, bool):
            raise ConfigError(f"backfill must be true or false, got {value!r}")
        return value
    if key == "viewport":
        try:
            w, h = value
            return (int(w), int(h))
        except (TypeError, ValueError):
            raise ConfigError(f"viewport must be [width, height], got {value!r}") from None
    if key == "trail_limit":
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"trail_limit must be an integer or null, got {value!r}")
        return value
    return value


def _read_json(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from None
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must hold a JSON object")
    return data


def load_config(path: Optional[str] = None, env: Optional[Dict[str, str]] = None,
                overrides: Optional[Dict[str, Any]] = None) -> ViewerConfig:
    """
    Load a configuration file (a missing file means defaults), then apply
    environment overrides, then explicit `overrides` (command-line values;
    None entries are ignored), and validate the result.
    """
    env = os.environ if env is None else env
    data = _read_json(path) if path else {}
    known = {f.name for f in fields(ViewerConfig)}
    values = {k: _coerce(k, v) for k, v in data.items() if k in known}
    if env.get("ORRERY_API_URL"):
        values["api_url"] = env["ORRERY_API_URL"]
    if env.get("ORRERY_LOG_LEVEL"):
        values["log_level"] = env["ORRERY_LOG_LEVEL"]
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = _coerce(key, value)
    return ViewerConfig(**values).validate()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
