"""Configuration constants for the solar system simulation."""

import math


class ConfigurationError(Exception):
    """Raised when a body, orbit or engine setting is invalid."""
    pass


# Physical constants (SI units)
G = 6.67430e-11  # Gravitational constant in m^3 kg^-1 s^-2
AU = 1.495978707e11  # Astronomical unit in meters
SECONDS_PER_YEAR = 365.25 * 86400.0

# Orbit phase: angle = RADIANS_PER_SECOND * t_sim / period, with period in years
RADIANS_PER_SECOND = 2.0 * math.pi / SECONDS_PER_YEAR

# Ceiling on a single source's pull on a free body (newtons)
FORCE_LIMIT = 1.0e6

# Evaluate every orbit as a circle, ignoring the configured eccentricity
FORCE_CIRCULAR_ORBITS = False

# Time control
DEFAULT_TIME_SCALE = 1.0
TIME_SCALE_PRESETS = {
    "real": 1.0,
    "x10": 10.0,
    "x100": 100.0,
    "x1000": 1000.0,
    "x10000": 10000.0,
}
START_TIME = 0.0  # Simulated seconds at the epoch
PRECISION = 64  # Floating point precision: 64 or 32 bits

# Headless run parameters
TICK_DT = 1.0 / 60.0  # Wall seconds per tick for fixed-step runs
NUM_TICKS = 600
TICK_RATE = 60.0  # Ticks per second for real-time runs
LARGE_STEP_WARNING = 86400.0  # Simulated seconds per tick before warning

# Probes
PROBE_MASS = 500.0  # kg
PROBE_SIZE = 30.0  # render radius
DEFAULT_PROBE_COLOR = 0x00FF00

# Orbit tracks
ORBIT_PATH_POINTS = 500

# Help text (used in CLI --help)
HELP_CONTENT = (
    "--- Time scale presets ---\n"
    "real: 1x wall clock\n"
    "x10, x100, x1000, x10000: accelerated time\n"
    "\n"
    "--- Units ---\n"
    "Positions in meters, velocities in m/s, orbital periods in years.\n"
    "Telemetry is printed in AU and km/s."
)
