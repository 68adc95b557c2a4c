from datetime import datetime

import pytest

from orrery.controller import AnimationController, Phase, RequestKind
from orrery.errors import TransportError

from conftest import DAY, T0, days, make_body


def stepping_controller(**kwargs):
    controller = AnimationController(T0, DAY, backfill=False, **kwargs)
    controller.activate()
    return controller


class TestStates:
    def test_starts_idle_and_issues_nothing(self):
        controller = AnimationController(T0, DAY)
        assert controller.phase is Phase.IDLE
        assert controller.next_request() is None

    def test_activation_enters_backfill_once(self):
        controller = AnimationController(T0, DAY)
        assert controller.activate() is Phase.BACKFILLING
        assert controller.activate() is Phase.BACKFILLING

    def test_backfill_can_be_skipped(self):
        assert stepping_controller().phase is Phase.STEPPING

    def test_backfill_requests_a_range(self):
        controller = AnimationController(T0, DAY, backfill_steps=10)
        controller.activate()
        request = controller.next_request()
        assert request.kind is RequestKind.RANGE
        assert request.start == T0
        assert request.end == T0 + days(10)
        assert request.step_seconds == DAY

    def test_empty_backfill_moves_to_stepping_one_step_later(self):
        controller = AnimationController(T0, DAY)
        controller.activate()
        request = controller.next_request()
        assert controller.apply_result(request, [])
        state = controller.state()
        assert state.phase is Phase.STEPPING
        assert state.initialized
        assert state.current_instant == T0 + days(1)

    def test_backfill_result_anchors_clock_on_last_timestamp(self):
        controller = AnimationController(T0, DAY)
        controller.activate()
        request = controller.next_request()
        batch = [make_body(position=(float(i), 0.0, 0.0), timestamp=T0 + days(i)) for i in range(4)]
        controller.apply_result(request, batch)
        assert controller.phase is Phase.STEPPING
        assert controller.current_instant == T0 + days(4)

    def test_stepping_requests_next_instant(self):
        controller = stepping_controller()
        request = controller.next_request()
        assert request.kind is RequestKind.INSTANT
        assert request.instant == T0 + days(1)
        assert request.end is None


class TestClock:
    def test_clock_strictly_increases_over_successful_ticks(self):
        controller = stepping_controller()
        instants = []
        for _ in range(5):
            request = controller.next_request()
            controller.apply_result(request, [make_body(timestamp=request.instant)])
            instants.append(controller.current_instant)
        assert all(b > a for a, b in zip(instants, instants[1:]))

    def test_clock_never_moves_backwards(self):
        controller = stepping_controller()
        request = controller.next_request()
        controller.apply_result(request, [make_body(timestamp=T0 + days(5))])
        request = controller.next_request()
        controller.apply_result(request, [make_body(timestamp=T0)])
        assert controller.current_instant == T0 + days(6)

    def test_naive_timestamps_are_taken_as_utc(self):
        controller = stepping_controller()
        request = controller.next_request()
        controller.apply_result(request, [make_body(timestamp=datetime(2025, 4, 12))])
        assert controller.current_instant == T0 + days(2)

    def test_set_step_applies_to_next_request_only(self):
        controller = stepping_controller()
        request = controller.next_request()
        controller.set_step(2 * DAY)
        assert request.step_seconds == DAY
        controller.apply_result(request, [make_body(timestamp=T0 + days(1))])
        assert controller.current_instant == T0 + days(3)
        assert controller.next_request().instant == T0 + days(5)

    def test_set_step_rejects_non_positive(self):
        with pytest.raises(ValueError):
            stepping_controller().set_step(0)

    def test_failure_leaves_clock_untouched_and_allows_retry(self):
        controller = stepping_controller()
        request = controller.next_request()
        assert controller.fail_request(request, TransportError("boom"))
        assert controller.current_instant == T0
        assert controller.phase is Phase.STEPPING
        retry = controller.next_request()
        assert retry is not None
        assert retry.instant == request.instant
        assert retry.seq > request.seq


class TestConcurrency:
    def test_no_second_request_while_one_is_in_flight(self):
        controller = stepping_controller()
        first = controller.next_request()
        assert controller.in_flight
        assert controller.next_request() is None
        controller.apply_result(first, [make_body(timestamp=first.instant)])
        assert controller.next_request() is not None

    def test_stale_result_is_discarded(self):
        controller = stepping_controller()
        first = controller.next_request()
        controller.apply_result(first, [make_body(timestamp=first.instant)])
        before = controller.current_instant
        assert controller.apply_result(first, [make_body(timestamp=T0 + days(30))]) is False
        assert controller.current_instant == before

    def test_result_after_reset_is_stale(self):
        controller = stepping_controller()
        request = controller.next_request()
        controller.reset()
        assert controller.apply_result(request, [make_body(timestamp=T0 + days(1))]) is False
        assert controller.phase is Phase.IDLE
        assert controller.current_instant == T0


class TestPause:
    def test_paused_controller_issues_nothing(self):
        controller = stepping_controller(paused=True)
        assert controller.next_request() is None
        controller.toggle_pause()
        assert controller.next_request() is not None

    def test_toggle_pause_does_not_touch_clock(self):
        controller = stepping_controller()
        controller.toggle_pause()
        controller.toggle_pause()
        assert controller.current_instant == T0

    def test_in_flight_request_completes_after_pause(self):
        controller = stepping_controller()
        request = controller.next_request()
        assert controller.toggle_pause() is True
        assert controller.apply_result(request, [make_body(timestamp=request.instant)])
        assert controller.current_instant == T0 + days(2)
        assert controller.next_request() is None
        controller.set_paused(False)
        assert controller.next_request() is not None


def test_constructor_validation():
    with pytest.raises(ValueError):
        AnimationController(T0, 0)
    with pytest.raises(ValueError):
        AnimationController(T0, DAY, backfill_steps=0)
