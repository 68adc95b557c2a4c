#!/usr/bin/env python3
"""
Orbit history store.

Accumulates, per body name, the ordered sequence of positions observed so far
(the "trail" drawn behind each body).

Rules
- Order is observation order; trails are never re-sorted.
- A position is appended only if it differs from every point already stored
  for that body. Exact component-wise equality by default; with a positive
  `tolerance` or `abs_tol` (meters), components are compared loosely, which
  absorbs floating-point jitter on retried instants (see vec_close).
- Trails only grow. The optional `limit` keeps the newest N points per body
  for long sessions; it is off unless configured.
- Updates return a new mapping and never touch the previous one, so a
  renderer holding an older value keeps a consistent picture.
"""
import logging
import threading
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .data_models import CelestialBody
from .vector_utils import Vec3, vec_close

log = logging.getLogger(__name__)

Trail = Tuple[Vec3, ...]
History = Mapping[str, Trail]


def _contains(trail: Iterable[Vec3], point: Vec3, tolerance: float, abs_tol: float) -> bool:
    return any(vec_close(p, point, tolerance, abs_tol) for p in trail)


def append_positions(history: History, bodies: Iterable[CelestialBody],
                     tolerance: float = 0.0, limit: Optional[int] = None,
                     abs_tol: float = 0.0) -> Dict[str, Trail]:
    """
    Return a new history with the positions of `bodies` appended.

    Bodies are processed in the given order, so a range batch holding several
    instants extends each trail chronologically.
    """
    result: Dict[str, Trail] = dict(history)
    pending: Dict[str, list] = {}
    for body in bodies:
        trail = pending.get(body.name)
        if trail is None:
            trail = list(result.get(body.name, ()))
            pending[body.name] = trail
        if not _contains(trail, body.position, tolerance, abs_tol):
            trail.append(body.position)

    for name, trail in pending.items():
        if limit is not None and len(trail) > limit:
            trail = trail[-limit:]
        result[name] = tuple(trail)
    return result


class OrbitHistoryStore:
    """
    Owner of the current history value.

    Thread-safe: the fetch worker appends while the renderer thread reads.
    Readers get the whole immutable value, never a partially updated one.
    """

    def __init__(self, tolerance: float = 0.0, limit: Optional[int] = None, abs_tol: float = 0.0):
        if tolerance < 0 or abs_tol < 0:
            raise ValueError("tolerances must be >= 0")
        if limit is not None and limit < 1:
            raise ValueError("limit must be a positive integer or None")
        self.lock = threading.RLock()
        self.tolerance = float(tolerance)
        self.abs_tol = float(abs_tol)
        self.limit = limit
        self._history: Dict[str, Trail] = {}

    def append(self, bodies: Iterable[CelestialBody]) -> History:
        with self.lock:
            self._history = append_positions(self._history, bodies, self.tolerance, self.limit, self.abs_tol)
            return MappingProxyType(self._history)

    def snapshot(self) -> History:
        with self.lock:
            return MappingProxyType(self._history)

    def trail(self, name: str) -> Trail:
        with self.lock:
            return self._history.get(name, ())

    def reset(self) -> None:
        with self.lock:
            self._history = {}
        log.debug("orbit history cleared")

    def __len__(self) -> int:
        with self.lock:
            return len(self._history)
