"""
Abstract base class for integrators.

All integrator implementations inherit from IntegratorBase and implement
_advance(). The base class owns the tick-drop policy so every scheme treats
stalled or duplicate ticks the same way.
"""

import logging
import math
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

DEFAULT_MAX_DT = 0.5  # seconds


def is_usable_dt(dt, max_dt=DEFAULT_MAX_DT):
    """True if dt is finite, positive and within the stall bound."""
    try:
        dt = float(dt)
    except (TypeError, ValueError):
        return False
    return math.isfinite(dt) and 0.0 < dt <= max_dt


class IntegratorBase(ABC):
    """
    Double integration of world-frame linear acceleration.

    step() is stateless with respect to the motion itself: velocity and
    displacement go in and come out, so one tick can be tested in isolation.
    The only thing an integrator keeps is its drop counter.

    Velocity is never decayed or zeroed here. A zero-acceleration tick simply
    carries velocity forward, so constant motion is not clipped (and residual
    velocity drifts; that is accepted).
    """

    name = 'base'

    def __init__(self, max_dt=DEFAULT_MAX_DT):
        """
        Args:
            max_dt (float): Largest inter-sample gap (s) treated as real motion.
                            Longer gaps mean the sensor stalled or the app was
                            backgrounded.
        """
        self.max_dt = max_dt
        self.dropped_ticks = 0

    def step(self, acceleration, dt, velocity, displacement, previous_acceleration=None):
        """
        Advance one tick.

        Args:
            acceleration (Vector3): cleaned world-frame linear acceleration (m/s²)
            dt (float): measured time since the previous sample (s)
            velocity (Vector3): velocity before this tick (m/s)
            displacement (Vector3): displacement before this tick (m)
            previous_acceleration (Vector3, optional): acceleration of the previous tick

        Returns:
            tuple: (velocity, displacement) after this tick. Unchanged if the
            tick was dropped.
        """
        if not is_usable_dt(dt, self.max_dt):
            self.dropped_ticks += 1
            logger.debug(f"Dropping tick: dt={dt!r} outside (0, {self.max_dt}] (drop count: {self.dropped_ticks})")
            return velocity, displacement
        return self._advance(acceleration, float(dt), velocity, displacement, previous_acceleration)

    @abstractmethod
    def _advance(self, acceleration, dt, velocity, displacement, previous_acceleration):
        """Integrate one tick with a validated dt. Returns (velocity, displacement)."""
        pass
