from datetime import datetime, timedelta, timezone

import pytest

from orrery.data_models import CelestialBody

T0 = datetime(2025, 4, 11, tzinfo=timezone.utc)
DAY = 86400.0


def make_body(name="Terre", position=(1.0, 0.0, 0.0), radius=6.4e6, mass=5.97e24,
              velocity=(0.0, 1.0, 0.0), timestamp=T0):
    return CelestialBody(name=name, mass=mass, radius=radius, position=position,
                         velocity=velocity, timestamp=timestamp)


def solar_snapshot(timestamp=T0, earth_x=1.496e11):
    return [
        make_body("Soleil", (0.0, 0.0, 0.0), radius=6.96e8, mass=1.989e30, velocity=(0.0, 0.0, 0.0),
                  timestamp=timestamp),
        make_body("Terre", (earth_x, 0.0, 0.0), timestamp=timestamp),
        make_body("Mars", (0.0, 2.279e11, 1.0e9), radius=3.39e6, mass=6.42e23, timestamp=timestamp),
    ]


class FakeClient:
    """Stands in for SimulationClient: replays queued results or errors."""

    def __init__(self, results=None):
        self.results = list(results or [])
        self.requests = []
        self.pings = []

    def fetch(self, request):
        self.requests.append(request)
        outcome = self.results.pop(0) if self.results else []
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def ping(self):
        outcome = self.pings.pop(0) if self.pings else "pong"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        pass


@pytest.fixture
def fake_client():
    return FakeClient()


def days(n):
    return timedelta(seconds=n * DAY)
