"""Simulation engine tying the clock, orbits, gravity and integrator together."""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

import numpy as np
import jax.numpy as jnp

from ..config import (
    G,
    FORCE_LIMIT,
    RADIANS_PER_SECOND,
    FORCE_CIRCULAR_ORBITS,
    PRECISION,
    DEFAULT_TIME_SCALE,
    START_TIME,
    TICK_RATE,
    LARGE_STEP_WARNING,
    PROBE_MASS,
    PROBE_SIZE,
    DEFAULT_PROBE_COLOR,
    ORBIT_PATH_POINTS,
    ConfigurationError,
)
from ..state.clock import SimulationClock
from ..state.registry import BodyRegistry, FreeBody, OrbitBody
from .gravity import get_device_info, kernel_dtype
from .integrator import (
    compute_kinetic_energy,
    compute_potential_energy,
    gravity_step,
    integrate_step,
)
from .kepler import OrbitalElements, orbit_path, position_at

logger = logging.getLogger(__name__)

PRECISIONS = (64, 32)


class SolarSystemEngine:
    """
    Advances orbit bodies and free bodies one tick at a time.

    Orbit bodies are repositioned from simulated time; free bodies are
    integrated under the pull of the orbit bodies. All orbit positions of a
    tick are final before any force is evaluated.
    """

    def __init__(
        self,
        g: float = G,
        force_limit: float = FORCE_LIMIT,
        rads_per_second: float = RADIANS_PER_SECOND,
        circular_orbits: bool = FORCE_CIRCULAR_ORBITS,
        precision: int = PRECISION,
        time_scale: float = DEFAULT_TIME_SCALE,
        start_time: float = START_TIME,
        clock: Optional[SimulationClock] = None,
    ):
        """
        Args:
            g: Gravitational constant
            force_limit: Ceiling on each source's force magnitude (> 0)
            rads_per_second: Angular constant for every orbit phase computation
            circular_orbits: Evaluate every orbit with its eccentricity truncated
            precision: Floating point precision for the force kernels (64 or 32);
                body state is kept in float64 either way
            time_scale: Initial time scale (ignored when clock is given)
            start_time: Simulated time at the epoch (ignored when clock is given)
            clock: Existing clock to drive this engine
        """
        if precision not in PRECISIONS:
            raise ConfigurationError(f"Precision must be 64 or 32, got {precision}")
        if force_limit <= 0:
            raise ConfigurationError(f"Force limit must be positive, got {force_limit}")
        if rads_per_second <= 0:
            raise ConfigurationError(
                f"Angular constant must be positive, got {rads_per_second}"
            )

        self.g = float(g)
        self.force_limit = float(force_limit)
        self.rads_per_second = float(rads_per_second)
        self.circular_orbits = bool(circular_orbits)
        self.precision = precision
        self.dtype = kernel_dtype(precision)
        self.clock = clock or SimulationClock(time_scale=time_scale, start_time=start_time)
        self.registry = BodyRegistry()

        if self.circular_orbits:
            logger.warning("Orbit eccentricities are truncated; all orbits run circular")

    # Registration

    def register_orbit_body(
        self,
        body_id: str,
        mass: float,
        radius: float,
        color: int,
        elements: Optional[OrbitalElements],
        offset=(0.0, 0.0, 0.0),
        physical_radius: Optional[float] = None,
    ) -> OrbitBody:
        """Register a massive body on a prescribed orbit (or fixed, if elements is None)."""
        body = OrbitBody(
            body_id,
            mass,
            radius,
            color,
            physical_radius=physical_radius,
            elements=elements,
            offset=offset,
        )
        body.position = self._orbit_position(body, self.clock.sim_time)
        self.registry.add(body)
        logger.debug("Registered orbit body %s", body_id)
        return body

    def register_free_body(
        self,
        body_id: str,
        mass: float,
        radius: float,
        color: int,
        position,
        velocity,
        physical_radius: Optional[float] = None,
    ) -> FreeBody:
        """Register a body integrated under the gravity of the orbit bodies."""
        body = FreeBody(
            body_id,
            mass,
            radius,
            color,
            physical_radius=physical_radius,
            position=position,
            velocity=velocity,
        )
        self.registry.add(body)
        logger.debug("Registered free body %s", body_id)
        return body

    def launch_probe(
        self,
        body_id: str,
        position,
        velocity,
        color: int = DEFAULT_PROBE_COLOR,
        mass: float = PROBE_MASS,
        size: float = PROBE_SIZE,
    ) -> FreeBody:
        """Register a probe with the default probe mass and size."""
        return self.register_free_body(body_id, mass, size, color, position, velocity)

    def remove_body(self, body_id: str):
        """Deregister a body; its state is discarded."""
        body = self.registry.remove(body_id)
        logger.debug("Removed %s", body_id)
        return body

    # Time control

    @property
    def sim_time(self) -> float:
        return self.clock.sim_time

    @property
    def time_scale(self) -> float:
        return self.clock.time_scale

    @property
    def paused(self) -> bool:
        return self.clock.paused

    def set_time_scale(self, scale: float):
        self.clock.set_time_scale(scale)

    def set_time_scale_preset(self, name: str):
        self.clock.set_time_scale_preset(name)

    def pause(self):
        self.clock.pause()

    def resume(self):
        self.clock.resume()

    # Ticking

    def advance(self, dt_wall: float) -> Tuple[float, float]:
        """
        Run one tick covering dt_wall seconds of wall time.

        Returns:
            Tuple of (dt_sim, t_sim)
        """
        dt_sim, t_sim = self.clock.advance(dt_wall)
        self._update(dt_sim, t_sim)
        return dt_sim, t_sim

    def tick(self, now_wall: float) -> Tuple[float, float]:
        """Run one tick up to the wall time now_wall."""
        dt_sim, t_sim = self.clock.tick(now_wall)
        self._update(dt_sim, t_sim)
        return dt_sim, t_sim

    def _update(self, dt_sim: float, t_sim: float):
        if dt_sim == 0.0:
            return
        if dt_sim > LARGE_STEP_WARNING:
            logger.warning(
                "Large tick of %.1f simulated seconds; free-body accuracy will suffer",
                dt_sim,
            )

        orbit_bodies = self.registry.orbit_bodies()
        for body in orbit_bodies:
            new_position = self._orbit_position(body, t_sim)
            body.velocity = (new_position - body.position) / dt_sim
            body.position = new_position

        free_bodies = self.registry.free_bodies()
        if not free_bodies:
            return

        positions = jnp.asarray(np.stack([b.position for b in free_bodies]), dtype=jnp.float64)
        velocities = jnp.asarray(np.stack([b.velocity for b in free_bodies]), dtype=jnp.float64)
        masses = jnp.asarray([b.mass for b in free_bodies], dtype=jnp.float64)

        if orbit_bodies:
            # Read-only snapshot of this tick's finalized orbit positions
            source_positions = jnp.asarray(
                np.stack([b.position for b in orbit_bodies]), dtype=jnp.float64
            )
            source_masses = jnp.asarray([b.mass for b in orbit_bodies], dtype=jnp.float64)
            new_positions, new_velocities = gravity_step(
                positions,
                velocities,
                masses,
                source_positions,
                source_masses,
                dt_sim,
                self.g,
                self.force_limit,
                kernel_dtype=self.dtype,
            )
        else:
            new_positions, new_velocities = integrate_step(
                positions, velocities, masses, jnp.zeros_like(positions), dt_sim
            )

        new_positions = np.asarray(new_positions)
        new_velocities = np.asarray(new_velocities)
        for i, body in enumerate(free_bodies):
            np.copyto(body.position, new_positions[i])
            np.copyto(body.velocity, new_velocities[i])

    def _orbit_position(self, body: OrbitBody, t_sim: float) -> np.ndarray:
        if body.elements is None:
            return body.offset.copy()
        return body.offset + position_at(
            body.elements, t_sim, self.rads_per_second, self.circular_orbits
        )

    # Accessors

    def position_of(self, body_id: str) -> np.ndarray:
        return self.registry.get(body_id).position.copy()

    def velocity_of(self, body_id: str) -> np.ndarray:
        """Derived velocity for orbit bodies, integrated velocity for free bodies."""
        return self.registry.get(body_id).velocity.copy()

    def radius_of(self, body_id: str) -> float:
        return self.registry.get(body_id).radius

    def orbit_path(self, body_id: str, num_points: int = ORBIT_PATH_POINTS) -> np.ndarray:
        """Points along one revolution of an orbit body's track (num_points + 1, 3)."""
        body = self.registry.get(body_id)
        if not isinstance(body, OrbitBody) or body.elements is None:
            raise ConfigurationError(f"{body_id} does not follow a prescribed orbit")
        return body.offset + orbit_path(
            body.elements, num_points, self.rads_per_second, self.circular_orbits
        )

    def snapshot(self) -> dict:
        """Get a copy of all current body state."""
        bodies = list(self.registry)
        return {
            'ids': [b.body_id for b in bodies],
            'kinds': ['orbit' if isinstance(b, OrbitBody) else 'free' for b in bodies],
            'positions': np.array([b.position for b in bodies]).reshape(-1, 3),
            'velocities': np.array([b.velocity for b in bodies]).reshape(-1, 3),
            'masses': np.array([b.mass for b in bodies]),
            'radii': np.array([b.radius for b in bodies]),
            'sim_time': self.sim_time,
            'time_scale': self.time_scale,
            'paused': self.paused,
        }

    def free_body_energy(self) -> Dict[str, float]:
        """Kinetic, potential and total energy of the free bodies in the orbit bodies' field."""
        free_bodies = self.registry.free_bodies()
        orbit_bodies = self.registry.orbit_bodies()
        if not free_bodies:
            return {'kinetic': 0.0, 'potential': 0.0, 'total': 0.0}

        velocities = jnp.asarray(np.stack([b.velocity for b in free_bodies]), dtype=jnp.float64)
        masses = jnp.asarray([b.mass for b in free_bodies], dtype=jnp.float64)
        kinetic = float(compute_kinetic_energy(velocities, masses))

        potential = 0.0
        if orbit_bodies:
            potential = float(
                compute_potential_energy(
                    jnp.asarray(np.stack([b.position for b in free_bodies]), dtype=jnp.float64),
                    masses,
                    jnp.asarray(np.stack([b.position for b in orbit_bodies]), dtype=jnp.float64),
                    jnp.asarray([b.mass for b in orbit_bodies], dtype=jnp.float64),
                    self.g,
                )
            )
        return {'kinetic': kinetic, 'potential': potential, 'total': kinetic + potential}


def run_simulation_loop(
    engine: SolarSystemEngine,
    duration: float,
    tick_rate: float = TICK_RATE,
    on_tick: Optional[Callable[[SolarSystemEngine], None]] = None,
    timer: Callable[[], float] = time.perf_counter,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Drive the engine from the wall clock for duration seconds.

    Stands in for a render loop: each iteration feeds the elapsed wall time
    to engine.advance, calls on_tick, then sleeps out the rest of the frame.

    Returns:
        Number of ticks run
    """
    if tick_rate <= 0:
        raise ConfigurationError(f"Tick rate must be positive, got {tick_rate}")

    print("Simulation loop starting...")
    print(get_device_info())

    interval = 1.0 / tick_rate
    start = timer()
    last_time = start
    last_stats_time = start
    tick_count = 0
    total_ticks = 0

    try:
        while True:
            now = timer()
            if now - start >= duration:
                break

            engine.advance(now - last_time)
            last_time = now
            tick_count += 1
            total_ticks += 1
            if on_tick is not None:
                on_tick(engine)

            # Report tick rate every second
            elapsed = now - last_stats_time
            if elapsed >= 1.0:
                print(
                    f"{tick_count / elapsed:.1f} ticks/s, "
                    f"simulated time {engine.sim_time:.1f} s"
                )
                tick_count = 0
                last_stats_time = now

            remaining = interval - (timer() - now)
            if remaining > 0:
                sleep(remaining)
    finally:
        print("Simulation loop stopped.")

    return total_ticks
