#!/usr/bin/env python3
"""
Error taxonomy for the Orrery Viewer.

- SimulationClientError: base for anything that goes wrong talking to the
  simulation service. The session recovers from it by skipping the tick.
- TransportError: the service could not be reached or answered with a
  non-success HTTP status.
- PayloadError: the response body could not be decoded into body states.
- ConfigError: invalid viewer configuration; raised to the entry point.
"""
from typing import Optional


class SimulationClientError(Exception):
    """Base class for simulation service failures."""


class TransportError(SimulationClientError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PayloadError(SimulationClientError):
    pass


class ConfigError(ValueError):
    pass
