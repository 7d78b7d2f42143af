"""Simulation clock converting wall-clock ticks into simulated time."""

import math
from typing import Tuple

from ..config import (
    DEFAULT_TIME_SCALE,
    START_TIME,
    TIME_SCALE_PRESETS,
    ConfigurationError,
)


class InvalidTickError(ValueError):
    """Raised when a tick would move simulated time backwards."""
    pass


def validate_time_scale(scale: float) -> float:
    """Return scale as a float, rejecting non-positive or non-finite values."""
    try:
        scale = float(scale)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Time scale must be a number, got {scale!r}") from None
    if not math.isfinite(scale) or scale <= 0.0:
        raise ConfigurationError(f"Time scale must be positive and finite, got {scale}")
    return scale


class SimulationClock:
    """
    Tracks simulated time for one engine.

    Simulated time advances by ``time_scale * dt_wall`` per tick while running
    and is frozen while paused. The wall-clock reference keeps moving during a
    pause, so resuming never produces a catch-up jump.
    """

    def __init__(
        self,
        epoch_start: float = 0.0,
        time_scale: float = DEFAULT_TIME_SCALE,
        start_time: float = START_TIME,
    ):
        """
        Args:
            epoch_start: Wall time that corresponds to simulated time start_time
            time_scale: Simulated seconds per wall second (> 0)
            start_time: Simulated time at the epoch
        """
        self.epoch_start = float(epoch_start)
        self.last_tick = self.epoch_start
        self._time_scale = validate_time_scale(time_scale)
        self._paused = False
        self._sim_time = float(start_time)

    @property
    def time_scale(self) -> float:
        return self._time_scale

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def sim_time(self) -> float:
        """Simulated time reached by the last tick."""
        return self._sim_time

    def set_time_scale(self, scale: float):
        self._time_scale = validate_time_scale(scale)

    def set_time_scale_preset(self, name: str):
        """Select one of the named presets in config.TIME_SCALE_PRESETS."""
        if name not in TIME_SCALE_PRESETS:
            raise ConfigurationError(
                f"Unknown time scale preset {name!r}; "
                f"choose from {', '.join(TIME_SCALE_PRESETS)}"
            )
        self._time_scale = TIME_SCALE_PRESETS[name]

    def pause(self):
        self._paused = True

    def resume(self):
        self._paused = False

    def advance(self, dt_wall: float) -> Tuple[float, float]:
        """
        Advance the clock by dt_wall seconds of wall time.

        Returns:
            Tuple of (dt_sim, t_sim)
        """
        dt_wall = float(dt_wall)
        if not math.isfinite(dt_wall) or dt_wall < 0.0:
            raise InvalidTickError(f"Tick duration must be >= 0, got {dt_wall}")

        self.last_tick += dt_wall
        return self._accumulate(dt_wall)

    def tick(self, now_wall: float) -> Tuple[float, float]:
        """Advance the clock to the wall time now_wall."""
        dt_wall = float(now_wall) - self.last_tick
        if dt_wall < 0.0:
            raise InvalidTickError(
                f"Wall time {now_wall} is earlier than the previous tick {self.last_tick}"
            )
        self.last_tick = float(now_wall)
        return self._accumulate(dt_wall)

    def _accumulate(self, dt_wall: float) -> Tuple[float, float]:
        if self._paused:
            return 0.0, self._sim_time

        dt_sim = self._time_scale * dt_wall
        self._sim_time += dt_sim
        return dt_sim, self._sim_time
