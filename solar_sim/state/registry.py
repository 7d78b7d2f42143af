"""Body records and the registry that owns them."""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

import numpy as np

from ..config import ConfigurationError
from ..physics.kepler import OrbitalElements


class UnknownBodyError(KeyError):
    """Raised when a body id is not registered."""
    pass


def as_vector(value, name: str = "vector") -> np.ndarray:
    """Convert value to a finite float64 array of shape (3,)."""
    try:
        vector = np.array(value, dtype=np.float64)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be three numbers, got {value!r}") from None
    if vector.shape != (3,):
        raise ConfigurationError(f"{name} must have shape (3,), got {vector.shape}")
    if not np.all(np.isfinite(vector)):
        raise ConfigurationError(f"{name} must be finite, got {vector}")
    return vector


@dataclass
class Body:
    """
    Common fields of every simulated body.

    Fields:
    - body_id: Unique identifier across orbit and free bodies
    - mass: Mass in kilograms (> 0)
    - radius: Render radius used for framing and markers
    - color: 0xRRGGBB color
    - physical_radius: Physical radius (defaults to radius)
    """

    body_id: str
    mass: float
    radius: float
    color: int
    physical_radius: Optional[float] = None

    def __post_init__(self):
        if not self.body_id:
            raise ConfigurationError("Body id must be a non-empty string")
        self.mass = float(self.mass)
        if not math.isfinite(self.mass) or self.mass <= 0.0:
            raise ConfigurationError(f"{self.body_id}: mass must be positive, got {self.mass}")
        self.radius = float(self.radius)
        if not math.isfinite(self.radius) or self.radius < 0.0:
            raise ConfigurationError(f"{self.body_id}: radius must be >= 0, got {self.radius}")
        if self.physical_radius is None:
            self.physical_radius = self.radius
        self.physical_radius = float(self.physical_radius)


@dataclass
class OrbitBody(Body):
    """
    A massive body moving on a prescribed orbit.

    position is recomputed from simulated time on every tick; velocity is a
    finite-difference estimate kept for telemetry. A body without elements
    stays at its offset (the Sun).
    """

    elements: Optional[OrbitalElements] = None
    offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        super().__post_init__()
        if self.elements is not None and not isinstance(self.elements, OrbitalElements):
            raise ConfigurationError(
                f"{self.body_id}: elements must be OrbitalElements, got {type(self.elements).__name__}"
            )
        self.offset = as_vector(self.offset, f"{self.body_id} offset")
        self.position = as_vector(self.position, f"{self.body_id} position")
        self.velocity = as_vector(self.velocity, f"{self.body_id} velocity")


@dataclass
class FreeBody(Body):
    """A body whose position and velocity are integrated under gravity."""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        super().__post_init__()
        self.position = as_vector(self.position, f"{self.body_id} position")
        self.velocity = as_vector(self.velocity, f"{self.body_id} velocity")


class BodyRegistry:
    """All registered bodies keyed by id, in registration order."""

    def __init__(self):
        self._bodies: Dict[str, Body] = {}

    def add(self, body: Body) -> Body:
        if body.body_id in self._bodies:
            raise ConfigurationError(f"Body id {body.body_id!r} is already registered")
        self._bodies[body.body_id] = body
        return body

    def remove(self, body_id: str) -> Body:
        try:
            return self._bodies.pop(body_id)
        except KeyError:
            raise UnknownBodyError(body_id) from None

    def get(self, body_id: str) -> Body:
        try:
            return self._bodies[body_id]
        except KeyError:
            raise UnknownBodyError(body_id) from None

    def orbit_bodies(self) -> List[OrbitBody]:
        return [b for b in self._bodies.values() if isinstance(b, OrbitBody)]

    def free_bodies(self) -> List[FreeBody]:
        return [b for b in self._bodies.values() if isinstance(b, FreeBody)]

    def __contains__(self, body_id) -> bool:
        return body_id in self._bodies

    def __iter__(self) -> Iterator[Body]:
        return iter(list(self._bodies.values()))

    def __len__(self) -> int:
        return len(self._bodies)
