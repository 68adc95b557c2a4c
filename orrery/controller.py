#!/usr/bin/env python3
"""
Simulation clock and animation controller.

The controller is the single owner of the simulated clock. Every tick reads
the current pause/step/instant values through it, never a copy captured when
the tick was scheduled.

States
- IDLE: before the first activation.
- BACKFILLING: entered once on activation; one bulk range request seeds the
  trails with several points at once.
- STEPPING: one instant per tick, `current_instant + step`.
`paused` is an orthogonal flag; it only stops new requests from being issued.

Concurrency
- At most one request is in flight. `next_request()` returns None while one is
  outstanding, so results are applied in issue order.
- Each request carries a sequence number; a result or failure for anything
  other than the in-flight request is stale and discarded.
- Pausing does not cancel the in-flight request; its result still applies.

Clock rules
- Non-empty result: clock moves to `last timestamp + step`, never backwards.
- Empty result: clock advances one step (the service has no more data).
- Failure: clock untouched; the next tick retries.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Sequence

from .constants import DEFAULT_BACKFILL_STEPS
from .data_models import CelestialBody

log = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = "idle"
    BACKFILLING = "backfilling"
    STEPPING = "stepping"


class RequestKind(Enum):
    RANGE = "range"
    INSTANT = "instant"


@dataclass(frozen=True)
class TickRequest:
    """One outstanding request: a backfill range or a single instant."""
    seq: int
    kind: RequestKind
    start: datetime
    end: Optional[datetime]
    step_seconds: float

    @property
    def instant(self) -> datetime:
        return self.start


@dataclass(frozen=True)
class ClockState:
    phase: Phase
    paused: bool
    current_instant: datetime
    step_seconds: float
    in_flight: bool

    @property
    def initialized(self) -> bool:
        """Whether the backfill has completed."""
        return self.phase is Phase.STEPPING


def _aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class AnimationController:
    def __init__(self, start_instant: datetime, step_seconds: float, backfill: bool = True,
                 backfill_steps: int = DEFAULT_BACKFILL_STEPS, paused: bool = False):
        if step_seconds <= 0:
            raise ValueError("step_seconds must be positive")
        if backfill_steps < 1:
            raise ValueError("backfill_steps must be >= 1")
        self.lock = threading.RLock()
        self.backfill = backfill
        self.backfill_steps = int(backfill_steps)
        self._start_instant = _aware(start_instant)
        self._current = self._start_instant
        self._step = float(step_seconds)
        self._paused = paused
        self._phase = Phase.IDLE
        self._seq = 0
        self._in_flight: Optional[TickRequest] = None

    # ---- state -----------------------------------------------------------

    @property
    def phase(self) -> Phase:
        with self.lock:
            return self._phase

    @property
    def paused(self) -> bool:
        with self.lock:
            return self._paused

    @property
    def current_instant(self) -> datetime:
        with self.lock:
            return self._current

    @property
    def step_seconds(self) -> float:
        with self.lock:
            return self._step

    @property
    def in_flight(self) -> bool:
        with self.lock:
            return self._in_flight is not None

    def state(self) -> ClockState:
        with self.lock:
            return ClockState(
                phase=self._phase,
                paused=self._paused,
                current_instant=self._current,
                step_seconds=self._step,
                in_flight=self._in_flight is not None,
            )

    # ---- transitions -----------------------------------------------------

    def activate(self) -> Phase:
        """Leave IDLE. Later calls are no-ops."""
        with self.lock:
            if self._phase is Phase.IDLE:
                self._phase = Phase.BACKFILLING if self.backfill else Phase.STEPPING
                log.info("controller activated at %s (%s)", self._current.isoformat(), self._phase.value)
            return self._phase

    def toggle_pause(self) -> bool:
        with self.lock:
            self._paused = not self._paused
            return self._paused

    def set_paused(self, paused: bool) -> None:
        with self.lock:
            self._paused = bool(paused)

    def set_step(self, step_seconds: float) -> None:
        """Replace the step size; applies from the next request on."""
        step_seconds = float(step_seconds)
        if step_seconds <= 0:
            raise ValueError("step_seconds must be positive")
        with self.lock:
            self._step = step_seconds

    def reset(self, start_instant: Optional[datetime] = None) -> None:
        """Back to IDLE. Any in-flight request becomes stale."""
        with self.lock:
            if start_instant is not None:
                self._start_instant = _aware(start_instant)
            self._current = self._start_instant
            self._phase = Phase.IDLE
            self._in_flight = None

    # ---- tick protocol ---------------------------------------------------

    def next_request(self) -> Optional[TickRequest]:
        """
        Issue the next request, or None when idle, paused or still waiting
        on the previous one.
        """
        with self.lock:
            if self._phase is Phase.IDLE or self._paused or self._in_flight is not None:
                return None
            self._seq += 1
            step = timedelta(seconds=self._step)
            if self._phase is Phase.BACKFILLING:
                request = TickRequest(
                    seq=self._seq,
                    kind=RequestKind.RANGE,
                    start=self._current,
                    end=self._current + step * self.backfill_steps,
                    step_seconds=self._step,
                )
            else:
                request = TickRequest(
                    seq=self._seq,
                    kind=RequestKind.INSTANT,
                    start=self._current + step,
                    end=None,
                    step_seconds=self._step,
                )
            self._in_flight = request
            return request

    def _is_current(self, request: TickRequest) -> bool:
        return self._in_flight is not None and self._in_flight.seq == request.seq

    def apply_result(self, request: TickRequest, bodies: Sequence[CelestialBody]) -> bool:
        """
        Apply a result to the clock. Returns False when the request is stale
        and the result was discarded.
        """
        with self.lock:
            if not self._is_current(request):
                log.debug("discarding stale result for request #%d", request.seq)
                return False
            self._in_flight = None
            step = timedelta(seconds=self._step)

            last_ts = bodies[-1].timestamp if bodies else None
            if last_ts is not None:
                candidate = _aware(last_ts) + step
            else:
                candidate = self._current + step
            if candidate > self._current:
                self._current = candidate

            if self._phase is Phase.BACKFILLING:
                self._phase = Phase.STEPPING
                log.info("backfill complete (%d states), stepping from %s",
                         len(bodies), self._current.isoformat())
            return True

    def fail_request(self, request: TickRequest, error: Exception) -> bool:
        """Release the in-flight gate after a failed fetch; the clock stays put."""
        with self.lock:
            if not self._is_current(request):
                log.debug("ignoring failure of stale request #%d", request.seq)
                return False
            self._in_flight = None
        log.warning("tick #%d failed (%s); will retry on next tick", request.seq, error)
        return True
