"""Prescribed elliptical orbits for the fixed celestial bodies."""

import math
import numbers
from dataclasses import dataclass

import numpy as np

from ..config import RADIANS_PER_SECOND, ORBIT_PATH_POINTS, ConfigurationError


@dataclass(frozen=True)
class OrbitalElements:
    """
    Shape, tilt and period of one prescribed orbit.

    Attributes:
        aphelion: Farthest distance from the focus
        perihelion: Nearest distance from the focus
        inclination: Orbital inclination in degrees
        eccentricity: Shape parameter in [0, 1)
        period: Orbital period (years with the default angular constant)
    """

    aphelion: float
    perihelion: float
    inclination: float
    eccentricity: float
    period: float

    def __post_init__(self):
        for name in ("aphelion", "perihelion", "inclination", "eccentricity", "period"):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise ConfigurationError(f"Orbital {name} must be a finite number, got {value!r}")
        if not 0.0 <= self.eccentricity < 1.0:
            raise ConfigurationError(
                f"Eccentricity must be in [0, 1), got {self.eccentricity}"
            )
        if self.perihelion < 0.0:
            raise ConfigurationError(f"Perihelion must be >= 0, got {self.perihelion}")
        if self.aphelion < self.perihelion:
            raise ConfigurationError(
                f"Aphelion ({self.aphelion}) must not be smaller than "
                f"perihelion ({self.perihelion})"
            )
        if self.period <= 0.0:
            raise ConfigurationError(f"Period must be positive, got {self.period}")

    @property
    def semi_major(self) -> float:
        return (self.aphelion + self.perihelion) / 2.0

    @property
    def semi_minor(self) -> float:
        return self.semi_major * math.sqrt(1.0 - self.eccentricity**2)

    @property
    def focus_offset(self) -> float:
        """Shift along world z that puts the attracting focus at the origin."""
        return self.aphelion - self.perihelion


def _ellipse_points(elements: OrbitalElements, t_sim, rads_per_second: float, circular: bool):
    """Evaluate the orbit at one time or an array of times. Returns (..., 3)."""
    # Integer truncation of e turns every orbit into a circle
    eccentricity = float(int(elements.eccentricity)) if circular else elements.eccentricity
    semi_major = elements.semi_major
    semi_minor = semi_major * math.sqrt(1.0 - eccentricity**2)

    angle = rads_per_second * np.asarray(t_sim, dtype=np.float64) / elements.period
    x = semi_major * np.cos(angle)
    y = semi_minor * np.sin(angle)

    inclination = math.radians(elements.inclination)
    return np.stack(
        [
            x * math.cos(inclination),
            x * math.sin(inclination),
            y + elements.focus_offset,
        ],
        axis=-1,
    )


def position_at(
    elements: OrbitalElements,
    t_sim: float,
    rads_per_second: float = RADIANS_PER_SECOND,
    circular: bool = False,
) -> np.ndarray:
    """
    Position of an orbit-bound body at simulated time t_sim.

    angle = rads_per_second * t_sim / period
    In-plane: x = a*cos(angle), y = b*sin(angle)
    World:    (x*cos(i), x*sin(i), y + (aphelion - perihelion))

    Args:
        elements: Orbital elements of the body
        t_sim: Simulated time
        rads_per_second: Angular constant shared by every angle computation
        circular: Evaluate with the eccentricity truncated to an integer

    Returns:
        Position vector (3,)
    """
    return _ellipse_points(elements, float(t_sim), rads_per_second, circular)


def derived_velocity(
    elements: OrbitalElements,
    t_sim: float,
    delta: float,
    rads_per_second: float = RADIANS_PER_SECOND,
    circular: bool = False,
) -> np.ndarray:
    """
    Backward finite-difference velocity (p(t) - p(t - delta)) / delta.

    Telemetry only; this is not a dynamical quantity.
    """
    if delta <= 0.0:
        raise ValueError(f"Finite-difference interval must be positive, got {delta}")
    current = position_at(elements, t_sim, rads_per_second, circular)
    previous = position_at(elements, t_sim - delta, rads_per_second, circular)
    return (current - previous) / delta


def orbit_path(
    elements: OrbitalElements,
    num_points: int = ORBIT_PATH_POINTS,
    rads_per_second: float = RADIANS_PER_SECOND,
    circular: bool = False,
) -> np.ndarray:
    """
    Sample one full revolution of the orbit.

    Returns:
        Array of shape (num_points + 1, 3); the last point closes the loop.
    """
    if num_points < 3:
        raise ConfigurationError(f"An orbit path needs at least 3 points, got {num_points}")
    full_turn = 2.0 * math.pi * elements.period / rads_per_second
    times = np.linspace(0.0, full_turn, num_points + 1)
    return _ellipse_points(elements, times, rads_per_second, circular)
