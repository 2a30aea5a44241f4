"""Tunable values for the face renderer.

Times are milliseconds (the frame clock hands out ms), distances are pixels
of the target surface unless noted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# ══════════════════════════════════════════════════════════════════════
# FRAME LOOP
# ══════════════════════════════════════════════════════════════════════
DEFAULT_FPS = 60
BG_COLOR = (15, 23, 42)

# ══════════════════════════════════════════════════════════════════════
# PARTICLE BEHAVIOURS
# ══════════════════════════════════════════════════════════════════════


class Behavior(str, Enum):
    FLOAT = "float"
    ORBIT = "orbit"
    BURST = "burst"
    SHAKE = "shake"


@dataclass(slots=True, frozen=True)
class ProfileConfig:
    name: str
    count: int
    speed: float
    size_min: float
    size_max: float
    opacity_min: float
    opacity_max: float
    behavior: Behavior


PROFILES: dict[str, ProfileConfig] = {
    "idle": ProfileConfig("idle", 30, 0.3, 2.0, 4.0, 0.2, 0.5, Behavior.FLOAT),
    "thinking": ProfileConfig("thinking", 50, 1.5, 2.0, 5.0, 0.3, 0.7, Behavior.ORBIT),
    "speaking": ProfileConfig("speaking", 60, 2.5, 3.0, 6.0, 0.4, 0.8, Behavior.BURST),
    "error": ProfileConfig("error", 40, 1.0, 2.0, 4.0, 0.3, 0.6, Behavior.SHAKE),
}

SEED_RING_RADIUS = 0.4  # × min(w, h)
SEED_RING_SPREAD = (0.8, 1.2)

FLOAT_FREQ_X = 0.001
FLOAT_FREQ_Y = 0.0008
FLOAT_AMP_X = 20.0
FLOAT_AMP_Y = 15.0
FLOAT_PULSE_FREQ = 0.002
FLOAT_PULSE_AMP = 0.1

ORBIT_STEP = 0.02  # radians per frame per unit speed
ORBIT_RADIUS = 0.35  # × min(w, h)
ORBIT_WOBBLE_FREQ = 0.001
ORBIT_OPACITY_GAIN = 0.3

BURST_FREQ = 0.003
BURST_RADIUS = 0.3  # × min(w, h)
BURST_WOBBLE_FREQ = 0.005
BURST_WOBBLE_AMP = 0.2

SHAKE_INTENSITY = 5.0

GLOW_SIZE_SCALE = 2.0
GLOW_OPACITY_SCALE = 0.3
PARTICLE_LAYER_ALPHA = 0.8

ERROR_PARTICLE_COLOR = (239, 68, 68)
DEFAULT_PARTICLE_COLOR = (59, 130, 246)

# ══════════════════════════════════════════════════════════════════════
# WEATHER
# ══════════════════════════════════════════════════════════════════════
WEATHER_LAYER_ALPHA = 0.6

WEATHER_COUNTS = {
    "rain": 100,
    "drizzle": 100,
    "heavy_rain": 200,
    "snow": 50,
    "heavy_snow": 100,
    "thunderstorm": 150,
}
WEATHER_COUNT_DEFAULT = 20

RAIN_SPEED_SCALE = 5.0
RAIN_STREAK_LEN = 10.0
RAIN_COLOR = (150, 200, 255)
SNOW_COLOR = (255, 255, 255)
SNOW_DRIFT_FREQ = 0.001
SNOW_DRIFT_AMP = 0.5
STAR_COLOR = (255, 255, 255)
STAR_TWINKLE_STEP = 0.02
STAR_DRIFT_SCALE = 0.2
STAR_WRAP_MARGIN = 50.0
RESPAWN_Y = -10.0

THUNDER_MIN_INTERVAL_MS = 3000.0
THUNDER_INTERVAL_SPREAD_MS = 5000.0
THUNDER_FLASH_OPACITY = 0.8
THUNDER_FLASH_DECAY = 0.05  # per frame

SUN_COLOR = (255, 220, 100)
SUN_ALPHA = 0.1
SUN_RADIUS = 40
MOON_COLOR = (240, 240, 220)
MOON_ALPHA = 0.15
MOON_RADIUS = 30

# (inner rgba, outer rgba) for the radial wash, alpha 0..1
WASH_NIGHT = ((15, 23, 42, 0.0), (15, 23, 42, 0.3))
WASH_SUNNY = ((255, 200, 100, 0.1), (255, 200, 100, 0.0))
WASH_RAIN = ((50, 50, 70, 0.1), (50, 50, 70, 0.2))
WASH_SNOW = ((200, 220, 255, 0.1), (200, 220, 255, 0.15))
WASH_FOG = ((200, 200, 200, 0.2), (200, 200, 200, 0.3))
WASH_RADIUS = 0.6  # × width
WASH_STEPS = 24

# ══════════════════════════════════════════════════════════════════════
# FACE GEOMETRY (400×400 design units, scaled to the surface)
# ══════════════════════════════════════════════════════════════════════
FACE_UNITS = 400.0
FACE_CX = 200.0
FACE_CY = 200.0
OUTER_RING_R = 180.0
INNER_RING_R = 150.0
STATUS_RING_R = 190.0
LEFT_EYE_CX = 140.0
RIGHT_EYE_CX = 260.0
EYE_CY = 160.0
EYE_HALF_W = 30.0
EYE_HALF_H = 20.0
GLINT_RX = 8.0
GLINT_RY = 6.0
MAX_PUPIL_OFFSET = 5.0
MOUTH_Y = 260.0
SMILE_POINTS = ((160.0, 255.0), (200.0, 285.0), (240.0, 255.0))
SPEAKING_BAR_OFFSETS = (-30.0, -15.0, 0.0, 15.0, 30.0)
THINKING_DOT_OFFSETS = (-20.0, 0.0, 20.0)
LIGHTNING_POINTS = (
    (200.0, 50.0),
    (210.0, 90.0),
    (195.0, 90.0),
    (205.0, 130.0),
    (180.0, 85.0),
    (200.0, 85.0),
    (190.0, 50.0),
)

DISCONNECTED_FACE_COLOR = (100, 116, 139)
ERROR_FACE_COLOR = (239, 68, 68)
HALO_ALPHA = 0.25
HALO_RADIUS = 196.0
