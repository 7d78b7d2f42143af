"""Shared fixtures for the simulator tests."""

import math

import jax

# Enable 64-bit floats before any array is created
jax.config.update("jax_enable_x64", True)

import pytest

from solar_sim.physics.engine import SolarSystemEngine
from solar_sim.physics.kepler import OrbitalElements


@pytest.fixture
def unit_engine():
    """Engine in unit-free settings: G = 1, one orbit per unit of time per period."""
    return SolarSystemEngine(g=1.0, force_limit=1.0e3, rads_per_second=2.0 * math.pi)


@pytest.fixture
def unit_circle():
    """Circular orbit of radius 1 and period 1, focus at the origin."""
    return OrbitalElements(
        aphelion=1.0, perihelion=1.0, inclination=0.0, eccentricity=0.0, period=1.0
    )


@pytest.fixture
def tilted_ellipse():
    """Eccentric, inclined orbit."""
    return OrbitalElements(
        aphelion=3.0, perihelion=1.0, inclination=10.0, eccentricity=0.3, period=2.0
    )
