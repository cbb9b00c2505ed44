"""
Gravity separation and noise suppression.

The accelerometer reports gravity + motion in the body frame. Gravity changes
slowly (the device tilts), motion changes fast, so a one-pole low-pass on the
raw signal tracks gravity and the residual is linear acceleration.

Two gates then remove what the low-pass cannot:

- ROTATION GATE: while the device spins faster than rotation_rate_threshold the
  low-pass lags the real gravity direction and the residual is rotation, not
  translation. The whole tick is zeroed.
- DEADBAND: a residual smaller than deadband is sensor noise; integrating it
  would drift a stationary device. Zeroed.

The gravity estimate is still updated on gated ticks so it keeps up with the
new attitude once rotation stops.
"""

import logging
import math

from ..models import ZERO, Vector3

logger = logging.getLogger(__name__)


def _clamp(value, limit):
    return max(-limit, min(limit, value))


def filter_step(gravity_estimate, raw, rotation_rate, config):
    """
    Pure filter update for one tick.

    Args:
        gravity_estimate (Vector3 or None): previous estimate, None before the
            first sample (the first sample initialises it, no calibration phase)
        raw (Vector3): body-frame acceleration including gravity (m/s²)
        rotation_rate (Vector3): angular rate (rad/s)
        config (PipelineConfig): thresholds and alpha

    Returns:
        tuple: (new gravity_estimate, linear acceleration) both body frame
    """
    limit = config.accel_clamp
    reference = gravity_estimate if gravity_estimate is not None else ZERO

    # INPUT SANITISING - NaN/inf axes take the gravity value so they add no motion
    axes = []
    for value, fallback in zip(raw, reference):
        if not math.isfinite(value):
            logger.debug(f"Non-finite accelerometer axis {value!r}, substituting {fallback:.3f}")
            value = fallback
        axes.append(_clamp(value, limit))
    clamped = Vector3(*axes)

    if gravity_estimate is None:
        gravity = clamped
    else:
        alpha = config.gravity_alpha
        gravity = gravity_estimate.scale(alpha) + clamped.scale(1.0 - alpha)

    linear = clamped - gravity

    rotation_magnitude = rotation_rate.magnitude()
    if not math.isfinite(rotation_magnitude) or rotation_magnitude > config.rotation_rate_threshold:
        return gravity, ZERO

    if linear.magnitude() < config.deadband:
        return gravity, ZERO

    return gravity, linear


class GravityNoiseFilter:
    """
    Stateful wrapper around filter_step() for live use.

    Usage:
        gravity_filter = GravityNoiseFilter(config)
        linear = gravity_filter.update(raw_accel, rotation_rate)
    """

    def __init__(self, config):
        self.config = config
        self.gravity_estimate = None

    def update(self, raw, rotation_rate=ZERO):
        """Returns cleaned linear acceleration in the body frame."""
        self.gravity_estimate, linear = filter_step(self.gravity_estimate, Vector3(*raw),
                                                    Vector3(*rotation_rate), self.config)
        return linear

    def reset(self):
        self.gravity_estimate = None
