from .client import SimulationClient, decode_bodies
from .config import ViewerConfig, configure_logging, load_config, step_seconds
from .controller import AnimationController, ClockState, Phase, RequestKind, TickRequest
from .data_models import CelestialBody, format_instant, parse_instant
from .errors import ConfigError, PayloadError, SimulationClientError, TransportError
from .history import OrbitHistoryStore, append_positions
from .scaling import PlanarScale, RadiusModel, ScaleFactors, SpatialScale
from .scene import SceneModel, SceneModelBuilder, build_scene
from .session import FetchWorker, TickOutcome, ViewerSession

__all__ = [
    "SimulationClient",
    "decode_bodies",
    "ViewerConfig",
    "configure_logging",
    "load_config",
    "step_seconds",
    "AnimationController",
    "ClockState",
    "Phase",
    "RequestKind",
    "TickRequest",
    "CelestialBody",
    "format_instant",
    "parse_instant",
    "ConfigError",
    "PayloadError",
    "SimulationClientError",
    "TransportError",
    "OrbitHistoryStore",
    "append_positions",
    "PlanarScale",
    "RadiusModel",
    "ScaleFactors",
    "SpatialScale",
    "SceneModel",
    "SceneModelBuilder",
    "build_scene",
    "FetchWorker",
    "TickOutcome",
    "ViewerSession",
]
