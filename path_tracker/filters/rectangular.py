"""
Rectangular (explicit Euler) integration.

    v_t = v_{t-1} + a_t · dt
    p_t = p_{t-1} + v_t · dt

dt is the measured gap between samples, not the nominal sensor period; phone
sensor ticks jitter by tens of milliseconds.
"""

from .base import IntegratorBase


class RectangularIntegrator(IntegratorBase):
    """Euler integration, the default scheme."""

    name = 'rectangular'

    def _advance(self, acceleration, dt, velocity, displacement, previous_acceleration):
        velocity = velocity + acceleration.scale(dt)
        displacement = displacement + velocity.scale(dt)
        return velocity, displacement
