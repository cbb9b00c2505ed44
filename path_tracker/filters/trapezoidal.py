"""
Trapezoidal integration.

Averages the acceleration of consecutive ticks for velocity, and consecutive
velocities for displacement:

    v_t = v_{t-1} + (a_{t-1} + a_t) / 2 · dt
    p_t = p_{t-1} + (v_{t-1} + v_t) / 2 · dt

Without a previous acceleration (first integrated tick) the current one is
used on both ends, which reduces velocity to the Euler update.
"""

from .base import IntegratorBase


class TrapezoidalIntegrator(IntegratorBase):

    name = 'trapezoidal'

    def _advance(self, acceleration, dt, velocity, displacement, previous_acceleration):
        if previous_acceleration is None:
            previous_acceleration = acceleration

        mean_accel = (previous_acceleration + acceleration).scale(0.5)
        new_velocity = velocity + mean_accel.scale(dt)
        mean_velocity = (velocity + new_velocity).scale(0.5)
        new_displacement = displacement + mean_velocity.scale(dt)
        return new_velocity, new_displacement
