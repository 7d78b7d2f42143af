"""Built-in solar system: orbit table, body table and starting probes."""

from typing import Dict, Optional

from ..config import AU
from ..physics.kepler import OrbitalElements

# Orbits: distances in AU, inclination in degrees, period in years
ORBITS = {
    "Mercury": dict(perihelion=0.31, aphelion=0.47, inclination=7.01, period=0.241, eccentricity=0.205),
    "Venus": dict(perihelion=0.718, aphelion=0.728, inclination=3.39, period=0.615, eccentricity=0.007),
    "Earth": dict(perihelion=1.0, aphelion=1.0, inclination=0.0, period=1.0, eccentricity=0.017),
    "Mars": dict(perihelion=1.38, aphelion=1.666, inclination=1.85, period=1.88, eccentricity=0.094),
    "Ceres": dict(perihelion=2.5577, aphelion=2.9773, inclination=10.62, period=4.6, eccentricity=0.08),
    "Pallas": dict(perihelion=2.13061, aphelion=3.41261, inclination=35.06, period=4.6, eccentricity=0.2305),
    "Vesta": dict(perihelion=2.15, aphelion=2.57, inclination=5.58, period=3.6, eccentricity=0.09),
    "Jupiter": dict(perihelion=5.0, aphelion=5.46, inclination=1.31, period=11.86, eccentricity=0.049),
    "Saturn": dict(perihelion=9.01, aphelion=9.01, inclination=2.49, period=29.46, eccentricity=0.057),
    "Uranus": dict(perihelion=18.4, aphelion=20.1, inclination=0.77, period=84.0, eccentricity=0.046),
    "Neptune": dict(perihelion=29.81, aphelion=30.33, inclination=1.77, period=164.8, eccentricity=0.011),
    "Pluto": dict(perihelion=29.7, aphelion=49.3, inclination=17.0, period=248.0, eccentricity=0.244),
}

# Bodies: mass in kg, render radius in scene units, physical radius in thousands of km
BODIES = {
    "Sun": dict(mass=1.989e30, radius=6000.0, physical_radius=695.51, color=0xFFFF00),
    "Mercury": dict(mass=3.30e23, radius=6000.0, physical_radius=2.4397, color=0xFF0000),
    "Venus": dict(mass=4.87e24, radius=6000.0, physical_radius=6.0518, color=0xFF0000),
    "Earth": dict(mass=5.97e24, radius=6371.0, physical_radius=6.371, color=0x0000FF),
    "Mars": dict(mass=6.42e23, radius=6000.0, physical_radius=3.3895, color=0xFF0000),
    "Ceres": dict(mass=8.958e20, radius=6000.0, physical_radius=0.473, color=0x00FF00),
    "Pallas": dict(mass=2.108e20, radius=6000.0, physical_radius=0.2725, color=0xFF00F0),
    "Vesta": dict(mass=2.589e20, radius=6000.0, physical_radius=0.2627, color=0xF0F000),
    "Jupiter": dict(mass=1.898e27, radius=6000.0, physical_radius=69.911, color=0xFF0000),
    "Saturn": dict(mass=5.68e26, radius=6000.0, physical_radius=58.232, color=0xFF0000),
    "Uranus": dict(mass=8.68e25, radius=6000.0, physical_radius=25.362, color=0xFF0000),
    "Neptune": dict(mass=1.02e26, radius=6000.0, physical_radius=24.622, color=0xF00F0F),
    "Pluto": dict(mass=1.46e22, radius=6000.0, physical_radius=1.188, color=0x0000FF),
}

# Probes: position in AU, velocity in m/s
PROBES = {
    "Probe1": dict(position=(1.0, 0.0, 0.0), velocity=(0.0, 0.0, 500000.0), color=0x00FF00),
    "Probe2": dict(position=(1.0, 1.0, 0.0), velocity=(0.0, 0.0, 50000.0), color=0x0000FF),
}

THOUSAND_KM = 1.0e6  # meters


def orbital_elements(name: str) -> OrbitalElements:
    """Orbital elements for a body in ORBITS, with distances converted to meters."""
    orbit = ORBITS[name]
    return OrbitalElements(
        aphelion=orbit["aphelion"] * AU,
        perihelion=orbit["perihelion"] * AU,
        inclination=orbit["inclination"],
        eccentricity=orbit["eccentricity"],
        period=orbit["period"],
    )


def build_solar_system(engine, include_probes: bool = True) -> Dict[str, Optional[OrbitalElements]]:
    """
    Register the built-in bodies with an engine.

    Bodies without an entry in ORBITS (the Sun) stay fixed at the origin.

    Args:
        engine: SolarSystemEngine to populate
        include_probes: Also launch the starting probes

    Returns:
        Mapping of orbit body name to its elements (None for fixed bodies)
    """
    registered = {}
    for name, body in BODIES.items():
        elements = orbital_elements(name) if name in ORBITS else None
        engine.register_orbit_body(
            name,
            body["mass"],
            body["radius"],
            body["color"],
            elements,
            physical_radius=body["physical_radius"] * THOUSAND_KM,
        )
        registered[name] = elements

    if include_probes:
        for name, probe in PROBES.items():
            position = tuple(component * AU for component in probe["position"])
            engine.launch_probe(name, position, probe["velocity"], color=probe["color"])

    return registered
