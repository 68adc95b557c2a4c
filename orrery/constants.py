#!/usr/bin/env python3
"""
Shared constants for the Orrery Viewer (SI units unless stated otherwise).

Keeping constants in one place helps ensure values are consistent across the
state engine, the renderers and the UI, and makes tuning easier.
"""

# Simulation service
DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_REQUEST_TIMEOUT_S = 10.0
DEFAULT_START_INSTANT = "2025-04-11T00:00:00Z"

# Step units (fixed calendar approximations, not calendar-exact)
SECONDS_PER_DAY = 24 * 60 * 60
STEP_UNIT_SECONDS = {
    "day": SECONDS_PER_DAY,
    "month": 30 * SECONDS_PER_DAY,
    "year": 365 * SECONDS_PER_DAY,
    "century": 100 * 365 * SECONDS_PER_DAY,
    "millennium": 1000 * 365 * SECONDS_PER_DAY,
}
STEP_UNIT_LABELS = {
    "day": "day(s)",
    "month": "month(s)",
    "year": "year(s)",
    "century": "century(ies)",
    "millennium": "millennium(a)",
}

# Animation controller
DEFAULT_BACKFILL_STEPS = 10  # backfill range ends this many steps past the start
DEFAULT_TICK_INTERVAL_S = 0.05  # pause between fetch loop passes

# The system's star; excluded from orbit framing
DEFAULT_PRIMARY_NAME = "Soleil"

# Scale transform (2D trace)
VIEW_WIDTH = 1100
VIEW_HEIGHT = 800
DEFAULT_PADDING = 40  # pixels kept free around the outermost orbit

# Scale transform (radius power law)
RADIUS_EXPONENT = 0.25
RADIUS_SCALE_MAX = 16.0
RADIUS_MIN = 1.0

# Scale transform (3D scene)
POSITION_DIVISOR_3D = 1e9
RADIUS_DIVISOR_3D = 1e6
PRIMARY_RADIUS_DIVISOR_3D = 2e7

# Sentinel factor for degenerate scale input
FALLBACK_SCALE = 1.0

# Rendering (viewport)
BACKGROUND_COLOR = (15, 23, 42)
TRAIL_COLOR = (0, 200, 255)
LABEL_COLOR = (230, 230, 230)
HUD_COLOR = (200, 200, 200)
DEFAULT_BODY_COLOR = (255, 255, 255)
DEFAULT_TEXTURE = "2k_moon.jpg"

# Presentation lookups; unknown names fall back to the defaults above
BODY_COLORS = {
    "Soleil": (255, 204, 0),
    "Mercure": (169, 169, 169),
    "Vénus": (230, 190, 120),
    "Terre": (100, 149, 237),
    "Mars": (188, 39, 50),
    "Jupiter": (210, 180, 140),
    "Saturne": (222, 200, 150),
    "Uranus": (150, 220, 230),
    "Neptune": (80, 110, 220),
}
BODY_TEXTURES = {
    "Soleil": "2k_sun.jpg",
    "Mercure": "2k_mercury.jpg",
    "Vénus": "2k_venus_atmosphere.jpg",
    "Terre": "2k_earth_daymap.jpg",
    "Mars": "2k_mars.jpg",
    "Jupiter": "2k_jupiter.jpg",
    "Saturne": "2k_saturn.jpg",
    "Uranus": "2k_uranus.jpg",
    "Neptune": "2k_neptune.jpg",
}

# 3D projection camera (render-space units)
CAMERA_DISTANCE_3D = 1000.0
CAMERA_TILT_DEG = 60.0
FOCAL_LENGTH_PX = 700.0

# Safety: avoid drawing outside reasonable integer pixel ranges
SAFE_COORD_LIMIT = 30000
