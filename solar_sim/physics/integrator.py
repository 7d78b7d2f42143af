"""Explicit integrator for free bodies using JAX."""

import jax.numpy as jnp
import numpy as np
from jax import jit
from functools import partial
from typing import Tuple

from .gravity import compute_all_forces
from ..config import G, FORCE_LIMIT


@jit
def integrate_step(
    positions: jnp.ndarray,
    velocities: jnp.ndarray,
    masses: jnp.ndarray,
    forces: jnp.ndarray,
    dt: float,
) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Advance free bodies by one variable-size step.

    Per axis:
    1. a = F / m
    2. v' = v + a * dt
    3. x' = x + ((v + v') / 2 + a * dt / 2) * dt

    The displacement keeps the extra a * dt / 2 term on top of the average
    velocity, so the acceleration contributes a * dt^2 rather than the
    trapezoidal a * dt^2 / 2. Existing trajectories depend on this.

    Args:
        positions: Current positions (M, 3)
        velocities: Current velocities (M, 3)
        masses: Body masses (M,)
        forces: Forces evaluated at the current positions (M, 3)
        dt: Timestep

    Returns:
        Tuple of (new_positions, new_velocities)
    """
    accelerations = forces / masses[:, None]

    new_velocities = velocities + accelerations * dt
    average_velocities = (velocities + new_velocities) / 2.0
    displacements = (average_velocities + 0.5 * accelerations * dt) * dt

    return positions + displacements, new_velocities


@partial(jit, static_argnames=['g', 'force_limit', 'kernel_dtype'])
def gravity_step(
    positions: jnp.ndarray,
    velocities: jnp.ndarray,
    masses: jnp.ndarray,
    source_positions: jnp.ndarray,
    source_masses: jnp.ndarray,
    dt: float,
    g: float = G,
    force_limit: float = FORCE_LIMIT,
    kernel_dtype=jnp.float64,
) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Evaluate the field at the pre-step positions, then integrate one step.

    Forces are computed in kernel_dtype; the integration itself runs in the
    dtype of positions, so a narrower kernel never rounds the stored state.
    """
    forces = compute_all_forces(
        positions.astype(kernel_dtype),
        masses.astype(kernel_dtype),
        source_positions.astype(kernel_dtype),
        source_masses.astype(kernel_dtype),
        g,
        force_limit,
    )
    return integrate_step(positions, velocities, masses, forces.astype(positions.dtype), dt)


def step_free_body(
    body,
    source_positions,
    source_masses,
    dt: float,
    g: float = G,
    force_limit: float = FORCE_LIMIT,
    dtype=jnp.float64,
):
    """
    Advance a single free body in place.

    Args:
        body: FreeBody whose position and velocity are updated
        source_positions: Orbit-body positions for this tick (N, 3)
        source_masses: Orbit-body masses (N,)
        dt: Simulated seconds to advance (>= 0)
        g: Gravitational constant
        force_limit: Ceiling on each source's force magnitude
        dtype: JAX float type for the force evaluation
    """
    if dt < 0:
        raise ValueError(f"Timestep must be >= 0, got {dt}")

    positions = jnp.asarray(body.position[None, :], dtype=jnp.float64)
    velocities = jnp.asarray(body.velocity[None, :], dtype=jnp.float64)
    masses = jnp.asarray([body.mass], dtype=jnp.float64)
    source_masses = np.asarray(source_masses, dtype=np.float64).reshape(-1)

    if source_masses.size == 0:
        new_positions, new_velocities = integrate_step(
            positions, velocities, masses, jnp.zeros_like(positions), dt
        )
    else:
        new_positions, new_velocities = gravity_step(
            positions,
            velocities,
            masses,
            jnp.asarray(source_positions, dtype=jnp.float64).reshape(-1, 3),
            jnp.asarray(source_masses, dtype=jnp.float64),
            dt,
            g,
            force_limit,
            kernel_dtype=dtype,
        )
    np.copyto(body.position, np.asarray(new_positions[0]))
    np.copyto(body.velocity, np.asarray(new_velocities[0]))


@jit
def compute_kinetic_energy(velocities: jnp.ndarray, masses: jnp.ndarray) -> jnp.ndarray:
    """Compute total kinetic energy: K = 0.5 * sum(m * v^2)."""
    v_squared = jnp.sum(velocities**2, axis=1)
    return 0.5 * jnp.sum(masses * v_squared)


@partial(jit, static_argnames=['g'])
def compute_potential_energy(
    target_positions: jnp.ndarray,
    target_masses: jnp.ndarray,
    source_positions: jnp.ndarray,
    source_masses: jnp.ndarray,
    g: float = G,
) -> jnp.ndarray:
    """
    Compute the potential energy of the free bodies in the orbit bodies' field.

    U = -G * sum_{i,j} m_i * M_j / |r_i - R_j|

    Pairs at zero distance are skipped. Free bodies do not interact with
    each other, so there is no target-target term.
    """
    # diff[i, j] = target_positions[i] - source_positions[j]
    diff = target_positions[:, None, :] - source_positions[None, :, :]  # (M, N, 3)
    r = jnp.sqrt(jnp.sum(diff**2, axis=2))  # (M, N)

    # Avoid division by zero for coincident pairs (masked out below)
    r_safe = jnp.where(r > 0, r, 1.0)

    mass_products = target_masses[:, None] * source_masses[None, :]  # (M, N)
    pairwise_potential = jnp.where(r > 0, -g * mass_products / r_safe, 0.0)

    return jnp.sum(pairwise_potential)
