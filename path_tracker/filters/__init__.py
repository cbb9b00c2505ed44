"""
Signal conditioning and integration stages of the motion pipeline.

The gravity/noise filter turns a raw accelerometer sample into cleaned linear
acceleration; an integrator turns linear acceleration into velocity and
displacement. Integrators are swappable and share one interface.

Example usage:
    integrator = get_integrator('rectangular')
    integrator = get_integrator('trapezoidal', max_dt=0.5)

    velocity, displacement = integrator.step(accel, dt, velocity, displacement)
"""

from .gravity import GravityNoiseFilter, filter_step


def get_integrator(integration='rectangular', **kwargs):
    """
    Factory function to get an integrator implementation by name.

    Args:
        integration (str): Integration scheme - options:
            - 'rectangular': Euler integration, v += a·dt then p += v·dt (default)
            - 'trapezoidal': averages consecutive accelerations and velocities
        **kwargs: Additional arguments passed to integrator constructor

    Returns:
        Integrator instance with step() method

    Raises:
        ValueError: If integration is not recognized
    """
    if integration == 'rectangular':
        from .rectangular import RectangularIntegrator
        return RectangularIntegrator(**kwargs)
    elif integration == 'trapezoidal':
        from .trapezoidal import TrapezoidalIntegrator
        return TrapezoidalIntegrator(**kwargs)
    else:
        raise ValueError(f"Unknown integration scheme: {integration}. Use 'rectangular' or 'trapezoidal'")


__all__ = ['get_integrator', 'GravityNoiseFilter', 'filter_step']
