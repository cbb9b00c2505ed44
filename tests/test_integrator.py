import math

import pytest

from path_tracker.filters import get_integrator
from path_tracker.filters.base import is_usable_dt
from path_tracker.filters.rectangular import RectangularIntegrator
from path_tracker.filters.trapezoidal import TrapezoidalIntegrator
from path_tracker.models import ZERO, Vector3

DT = 0.05


def test_factory():
    assert isinstance(get_integrator(), RectangularIntegrator)
    assert isinstance(get_integrator('trapezoidal', max_dt=0.2), TrapezoidalIntegrator)
    assert get_integrator('trapezoidal', max_dt=0.2).max_dt == 0.2
    with pytest.raises(ValueError):
        get_integrator('simpson')


@pytest.mark.parametrize('scheme', ['rectangular', 'trapezoidal'])
def test_zero_input_stays_zero(scheme):
    integrator = get_integrator(scheme)
    velocity, displacement = ZERO, ZERO
    for _ in range(100):
        velocity, displacement = integrator.step(ZERO, DT, velocity, displacement, ZERO)
    assert velocity == ZERO
    assert displacement == ZERO


def test_constant_acceleration_rectangular():
    integrator = get_integrator('rectangular')
    a = Vector3(1.5, -0.5, 0.0)
    n = 40
    velocity, displacement = ZERO, ZERO
    expected_displacement = ZERO
    for i in range(1, n + 1):
        velocity, displacement = integrator.step(a, DT, velocity, displacement)
        expected_displacement = expected_displacement + a.scale(i * DT).scale(DT)

    assert tuple(velocity) == pytest.approx(tuple(a.scale(n * DT)))
    assert tuple(displacement) == pytest.approx(tuple(expected_displacement))


def test_constant_acceleration_trapezoidal():
    integrator = get_integrator('trapezoidal')
    a = Vector3(2.0, 0.0, 0.0)
    n = 20
    velocity, displacement, previous = ZERO, ZERO, None
    for _ in range(n):
        velocity, displacement = integrator.step(a, DT, velocity, displacement, previous)
        previous = a

    t = n * DT
    assert velocity.x == pytest.approx(a.x * t)
    # Exact for constant acceleration: 1/2·a·t²
    assert displacement.x == pytest.approx(0.5 * a.x * t * t)


def test_trapezoidal_averages_consecutive_accelerations():
    integrator = get_integrator('trapezoidal')
    velocity, _ = integrator.step(Vector3(2.0, 0.0, 0.0), 0.1, ZERO, ZERO, Vector3(0.0, 0.0, 0.0))
    assert velocity.x == pytest.approx(0.1)


@pytest.mark.parametrize('dt', [0.6, 0.0, -0.05, math.nan, math.inf, None])
def test_bad_dt_is_dropped(dt):
    integrator = get_integrator('rectangular')
    v0, p0 = Vector3(1.0, 0.0, 0.0), Vector3(3.0, 2.0, 0.0)
    velocity, displacement = integrator.step(Vector3(5.0, 5.0, 5.0), dt, v0, p0)
    assert velocity == v0
    assert displacement == p0
    assert integrator.dropped_ticks == 1


def test_max_dt_bound_is_inclusive():
    assert is_usable_dt(0.5, 0.5)
    assert not is_usable_dt(0.5000001, 0.5)
    assert not is_usable_dt('soon', 0.5)


def test_velocity_is_carried_through_zero_acceleration():
    integrator = get_integrator('rectangular')
    velocity, displacement = integrator.step(ZERO, DT, Vector3(2.0, 0.0, 0.0), ZERO)
    assert velocity == Vector3(2.0, 0.0, 0.0)
    assert displacement.x == pytest.approx(0.1)
