import math

import pytest

from path_tracker.config import PipelineConfig
from path_tracker.filters import GravityNoiseFilter, filter_step
from path_tracker.models import ZERO, Vector3

from .conftest import GRAVITY

EPS = 1e-6
RESTING = Vector3(0.0, 0.0, GRAVITY)


def test_first_sample_initialises_gravity(config):
    gravity, linear = filter_step(None, RESTING, ZERO, config)
    assert gravity == RESTING
    assert linear == ZERO


def test_still_device_produces_no_linear_acceleration(config):
    f = GravityNoiseFilter(config)
    for _ in range(50):
        assert f.update(RESTING) == ZERO
    assert f.gravity_estimate.z == pytest.approx(GRAVITY)


def test_low_pass_update(config):
    gravity, linear = filter_step(RESTING, Vector3(2.0, 0.0, GRAVITY), ZERO, config)
    assert gravity.x == pytest.approx(0.02 * 2.0)
    assert linear.x == pytest.approx(2.0 - 0.04)
    assert linear.z == pytest.approx(0.0, abs=1e-12)


class TestRotationGate:

    def test_fast_rotation_zeroes_the_tick(self, config):
        spinning = Vector3(2.0, 0.0, 0.0)
        gravity, linear = filter_step(RESTING, Vector3(3.0, -1.0, GRAVITY), spinning, config)
        assert linear == Vector3(0.0, 0.0, 0.0)
        # Gravity keeps tracking while gated
        assert gravity.x == pytest.approx(0.06)

    def test_tracking_resumes_after_rotation(self, config):
        f = GravityNoiseFilter(config)
        f.update(RESTING)
        pushed = Vector3(3.0, 0.0, GRAVITY)

        assert f.update(pushed, rotation_rate=Vector3(0.0, 0.0, 1.5)) == ZERO

        linear = f.update(pushed, rotation_rate=Vector3(0.0, 0.0, 0.1))
        assert linear.x == pytest.approx(3.0 - f.gravity_estimate.x)
        assert linear.x > config.deadband

    def test_threshold_is_exclusive(self, config):
        at_threshold = Vector3(config.rotation_rate_threshold, 0.0, 0.0)
        _, linear = filter_step(RESTING, Vector3(3.0, 0.0, GRAVITY), at_threshold, config)
        assert linear != ZERO

    def test_non_finite_rotation_rate_gates(self, config):
        _, linear = filter_step(RESTING, Vector3(3.0, 0.0, GRAVITY), Vector3(math.nan, 0.0, 0.0), config)
        assert linear == ZERO


class TestDeadband:

    @pytest.fixture
    def frozen_gravity(self):
        # alpha = 1 keeps the gravity estimate at zero, so linear == raw
        return PipelineConfig(gravity_alpha=1.0)

    def test_just_under_deadband_is_zero(self, frozen_gravity):
        raw = Vector3(frozen_gravity.deadband - EPS, 0.0, 0.0)
        _, linear = filter_step(ZERO, raw, ZERO, frozen_gravity)
        assert linear == ZERO

    def test_just_over_deadband_passes_unmodified(self, frozen_gravity):
        raw = Vector3(frozen_gravity.deadband + EPS, 0.0, 0.0)
        _, linear = filter_step(ZERO, raw, ZERO, frozen_gravity)
        assert linear == raw

    def test_deadband_uses_magnitude(self, frozen_gravity):
        # Each axis below the deadband, magnitude above it
        raw = Vector3(0.3, 0.3, 0.0)
        _, linear = filter_step(ZERO, raw, ZERO, frozen_gravity)
        assert linear == raw


class TestSanitising:

    def test_nan_axis_contributes_no_motion(self, config):
        gravity, linear = filter_step(RESTING, Vector3(math.nan, 0.0, GRAVITY), ZERO, config)
        assert linear == ZERO
        assert gravity.is_finite()

    def test_infinite_axis_on_first_sample(self, config):
        gravity, linear = filter_step(None, Vector3(0.0, math.inf, GRAVITY), ZERO, config)
        assert gravity.is_finite()
        assert gravity.y == 0.0
        assert linear == ZERO

    def test_out_of_range_axis_is_clamped(self):
        cfg = PipelineConfig(gravity_alpha=1.0)
        _, linear = filter_step(RESTING, Vector3(100.0, 0.0, GRAVITY), ZERO, cfg)
        assert linear.x == pytest.approx(cfg.accel_clamp)


def test_reset_forgets_gravity(config):
    f = GravityNoiseFilter(config)
    f.update(RESTING)
    f.reset()
    assert f.gravity_estimate is None
    # First sample after reset re-initialises, so no spurious linear output
    assert f.update(Vector3(5.0, 0.0, GRAVITY)) == ZERO
