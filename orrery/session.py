#!/usr/bin/env python3
"""
Viewer session: the pipeline from controller to scene.

    controller.next_request -> client.fetch -> controller.apply_result
        -> history append -> scene builder update

The fetch is the only blocking call and runs without holding any lock, so the
renderer and the UI keep reading the previous, consistent state meanwhile.
Results are applied under the session lock, in issue order.

Threading
- FetchWorker runs `tick()` in a background thread, the way the renderer runs
  its draw loop; the UI thread only flips controller flags.
"""
import logging
import threading
import time
from enum import Enum
from typing import Optional, Tuple

from .config import ViewerConfig
from .controller import AnimationController
from .client import SimulationClient
from .errors import SimulationClientError
from .history import OrbitHistoryStore
from .scene import SceneModel, SceneModelBuilder

log = logging.getLogger(__name__)


class TickOutcome(Enum):
    SKIPPED = "skipped"  # idle, paused or a request still in flight
    APPLIED = "applied"
    STALE = "stale"  # result of a superseded request, discarded
    FAILED = "failed"  # fetch raised, clock unchanged


class ViewerSession:
    def __init__(self, client: SimulationClient, controller: AnimationController,
                 history: Optional[OrbitHistoryStore] = None, builder: Optional[SceneModelBuilder] = None):
        self.lock = threading.RLock()
        self.client = client
        self.controller = controller
        self.history = history or OrbitHistoryStore()
        self.builder = builder or SceneModelBuilder()
        self.last_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: ViewerConfig, client: Optional[SimulationClient] = None) -> "ViewerSession":
        client = client or SimulationClient(config.api_url, config.request_timeout_s)
        controller = AnimationController(
            start_instant=config.start,
            step_seconds=config.step_seconds,
            backfill=config.backfill,
            backfill_steps=config.backfill_steps,
            paused=True,
        )
        history = OrbitHistoryStore(tolerance=config.history_tolerance, limit=config.trail_limit,
                                    abs_tol=config.history_abs_tolerance)
        builder = SceneModelBuilder(config.planar_scale(), config.spatial_scale())
        return cls(client, controller, history, builder)

    def tick(self) -> TickOutcome:
        request = self.controller.next_request()
        if request is None:
            return TickOutcome.SKIPPED

        try:
            bodies = self.client.fetch(request)
        except SimulationClientError as exc:
            return self._fail(request, exc)
        except Exception as exc:
            log.exception("unexpected error while fetching tick #%d", request.seq)
            return self._fail(request, exc)

        with self.lock:
            if not self.controller.apply_result(request, bodies):
                return TickOutcome.STALE
            self.history.append(bodies)
            self.builder.update(bodies)
            self.last_error = None
        log.debug("tick #%d applied %d states", request.seq, len(bodies))
        return TickOutcome.APPLIED

    def _fail(self, request, exc: Exception) -> TickOutcome:
        with self.lock:
            if self.controller.fail_request(request, exc):
                self.last_error = str(exc)
                return TickOutcome.FAILED
        return TickOutcome.STALE

    def reset(self) -> None:
        """Full state reset: clock back to its start and paused, trails and latest states dropped."""
        with self.lock:
            self.controller.reset()
            self.controller.set_paused(True)
            self.history.reset()
            self.builder.reset()
            self.last_error = None
        log.info("session reset")

    def scene_2d(self) -> SceneModel:
        with self.lock:
            return self.builder.build_2d(self.history.snapshot())

    def scene_3d(self) -> SceneModel:
        with self.lock:
            return self.builder.build_3d(self.history.snapshot())

    def check_server(self) -> Tuple[bool, str]:
        try:
            message = self.client.ping()
        except SimulationClientError as exc:
            log.warning("simulation service unreachable: %s", exc)
            return False, f"Error: {exc}"
        log.info("simulation service says: %s", message)
        return True, message


class FetchWorker(threading.Thread):
    """
    Background loop driving the session. One pass per `interval_s`; a pass
    that has nothing to do returns immediately.
    """

    def __init__(self, session: ViewerSession, interval_s: float):
        super().__init__(daemon=True, name="orrery-fetch")
        self.session = session
        self.interval_s = max(0.0, float(interval_s))
        self._stop_event = threading.Event()

    def run(self):
        while not self._stop_event.is_set():
            started = time.perf_counter()
            self.session.controller.activate()
            self.session.tick()
            remaining = self.interval_s - (time.perf_counter() - started)
            self._stop_event.wait(max(remaining, 0.001))

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout=timeout)
