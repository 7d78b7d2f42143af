"""JAX-accelerated gravitational force calculations."""

import jax
import jax.numpy as jnp
from jax import jit, vmap
from functools import partial

from ..config import G, FORCE_LIMIT

# Body state is always float64; 32-bit precision only narrows the force kernel inputs
jax.config.update("jax_enable_x64", True)


@partial(jit, static_argnames=['g', 'force_limit'])
def compute_pairwise_force(
    target_pos: jnp.ndarray,
    target_mass: jnp.ndarray,
    source_pos: jnp.ndarray,
    source_mass: jnp.ndarray,
    g: float = G,
    force_limit: float = FORCE_LIMIT,
) -> jnp.ndarray:
    """
    Compute the gravitational pull of one source on one target.

    F = min(G * M * m / r^2, force_limit) * (r_source - r_target) / r

    A source at exactly the target's position contributes nothing. Any
    other source, however close, is clamped to force_limit.

    Args:
        target_pos: Position of the target (3,)
        target_mass: Mass of the target (scalar)
        source_pos: Position of the source (3,)
        source_mass: Mass of the source (scalar)
        g: Gravitational constant
        force_limit: Ceiling on the force magnitude

    Returns:
        Force vector (3,)
    """
    r_ts = source_pos - target_pos
    separated = jnp.any(r_ts != 0)

    # Normalize by the largest component so tiny separations do not underflow
    scale = jnp.where(separated, jnp.max(jnp.abs(r_ts)), 1.0)
    r_scaled = r_ts / scale
    norm_scaled = jnp.sqrt(jnp.sum(r_scaled**2))
    distance = scale * norm_scaled

    magnitude = jnp.minimum(g * source_mass * target_mass / distance / distance, force_limit)
    force = magnitude * r_scaled / norm_scaled

    return jnp.where(separated, force, jnp.zeros_like(force))


@partial(jit, static_argnames=['g', 'force_limit'])
def force_on(
    target_mass: jnp.ndarray,
    target_pos: jnp.ndarray,
    source_positions: jnp.ndarray,
    source_masses: jnp.ndarray,
    g: float = G,
    force_limit: float = FORCE_LIMIT,
) -> jnp.ndarray:
    """
    Compute the net gravitational force on a single target from all sources.

    Each source's contribution is clamped to force_limit before summation.

    Args:
        target_mass: Mass of the target (scalar)
        target_pos: Position of the target (3,)
        source_positions: Positions of the sources (N, 3)
        source_masses: Masses of the sources (N,)
        g: Gravitational constant
        force_limit: Ceiling on each source's force magnitude

    Returns:
        Total force vector (3,)
    """
    # Vectorize over all sources
    forces = vmap(
        lambda pos_j, mass_j: compute_pairwise_force(
            target_pos, target_mass, pos_j, mass_j, g, force_limit
        )
    )(source_positions, source_masses)

    return jnp.sum(forces, axis=0)


@partial(jit, static_argnames=['g', 'force_limit'])
def compute_all_forces(
    target_positions: jnp.ndarray,
    target_masses: jnp.ndarray,
    source_positions: jnp.ndarray,
    source_masses: jnp.ndarray,
    g: float = G,
    force_limit: float = FORCE_LIMIT,
) -> jnp.ndarray:
    """
    Compute gravitational forces on all free bodies.

    Targets only feel the sources; they do not attract each other. The
    source snapshot is read-only, so every target is independent.

    Args:
        target_positions: Positions of the free bodies (M, 3)
        target_masses: Masses of the free bodies (M,)
        source_positions: Positions of the orbit bodies (N, 3)
        source_masses: Masses of the orbit bodies (N,)
        g: Gravitational constant
        force_limit: Ceiling on each source's force magnitude

    Returns:
        Forces on all free bodies (M, 3)
    """
    # Vectorize over all targets
    forces = vmap(
        lambda pos_i, mass_i: force_on(
            mass_i, pos_i, source_positions, source_masses, g, force_limit
        )
    )(target_positions, target_masses)

    return forces


def kernel_dtype(precision: int):
    """Float type the force kernels run in for the given precision (64 or 32)."""
    return jnp.float64 if precision == 64 else jnp.float32


def get_device_info() -> str:
    """Get information about JAX devices being used."""
    devices = jax.devices()
    device_strs = [f"{d.platform}:{d.device_kind}" for d in devices]
    return f"JAX devices: {device_strs}"
