#!/usr/bin/env python3
"""
Simulation service client.

Handles the request/response contract with the external simulation engine:

- GET  /ping (falls back to GET / on 404) -> liveness text
- POST /simulate {"date": iso} -> body states for one instant
- POST /get_simulated_range {"from": iso, "to": iso, "step_seconds": n}
  -> body states across the range, each with its own timestamp

Payloads are UTF-8 JSON. The service double-encodes its arrays (a JSON string
holding the JSON array), so both shapes decode here.

Failures surface as SimulationClientError subclasses; recovering from them is
the caller's job.
"""
import json
import logging
from datetime import datetime
from typing import Any, List, Optional

import requests

from .constants import DEFAULT_API_URL, DEFAULT_REQUEST_TIMEOUT_S
from .controller import RequestKind, TickRequest
from .data_models import CelestialBody, format_instant, validate_snapshot
from .errors import PayloadError, TransportError

log = logging.getLogger(__name__)


def decode_bodies(payload: Any, default_timestamp: Optional[datetime] = None) -> List[CelestialBody]:
    """Turn a decoded response body into body states."""
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise PayloadError(f"embedded JSON could not be decoded: {exc}") from None
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise PayloadError(f"expected a list of body states, got {type(payload).__name__}")
    return [CelestialBody.from_dict(item, default_timestamp) for item in payload]


class SimulationClient:
    """
    Thin wrapper over a requests.Session bound to one service base URL.
    """

    def __init__(self, base_url: str = DEFAULT_API_URL, timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _send(self, method: str, path: str, body: Optional[dict] = None) -> requests.Response:
        url = self._url(path)
        try:
            if method == "GET":
                response = self.session.get(url, timeout=self.timeout_s)
            else:
                response = self.session.post(url, json=body, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        if not response.ok:
            raise TransportError(
                f"{method} {url} returned HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
            )
        return response

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise PayloadError(f"response is not JSON: {exc}") from None

    def ping(self) -> str:
        try:
            response = self._send("GET", "/ping")
        except TransportError as exc:
            if exc.status_code != 404:
                raise
            response = self._send("GET", "/")
        return response.text

    def simulate(self, instant: datetime) -> List[CelestialBody]:
        body = {"date": format_instant(instant)}
        log.debug("POST /simulate %s", body)
        bodies = decode_bodies(self._json(self._send("POST", "/simulate", body)), default_timestamp=instant)
        return validate_snapshot(bodies)

    def simulated_range(self, start: datetime, end: datetime, step_seconds: float) -> List[CelestialBody]:
        if step_seconds <= 0:
            raise ValueError("step_seconds must be positive")
        body = {"from": format_instant(start), "to": format_instant(end), "step_seconds": step_seconds}
        log.debug("POST /get_simulated_range %s", body)
        return decode_bodies(self._json(self._send("POST", "/get_simulated_range", body)))

    def fetch(self, request: TickRequest) -> List[CelestialBody]:
        """Run the HTTP call a controller request stands for."""
        if request.kind is RequestKind.RANGE:
            return self.simulated_range(request.start, request.end, request.step_seconds)
        return self.simulate(request.instant)

    def close(self) -> None:
        self.session.close()
