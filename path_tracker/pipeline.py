"""
Per-tick motion pipeline: filter → rotate → integrate.

Order of operations for one MotionSample:

1. Gravity/noise filter in the BODY frame. The device's gravity vector is
   directly observable there, so gravity is subtracted before rotation.
2. Rotate the cleaned linear acceleration into the world frame using the
   sample's orientation and the configured axis order.
3. Integrate with the measured dt since the previous sample. The first sample
   of a session only sets the time baseline.

All mutable quantities (gravity estimate, velocity, displacement, last
timestamp, last acceleration) live in PipelineState, which step() takes and
returns. Nothing is hidden in module globals, so any tick can be replayed or
tested on its own.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

from .config import PipelineConfig
from .filters import get_integrator
from .filters.base import is_usable_dt
from .filters.gravity import filter_step
from .models import ZERO, Orientation, Vector3
from .rotation import rotate_to_world

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineState:
    gravity: Optional[Vector3] = None   # body frame, m/s²
    velocity: Vector3 = ZERO            # world frame, m/s
    displacement: Vector3 = ZERO        # world frame, m
    last_timestamp: Optional[float] = None
    last_acceleration: Optional[Vector3] = None  # world frame linear, m/s²
    ticks: int = 0
    dropped_ticks: int = 0


@dataclass(frozen=True)
class StepResult:
    acceleration: Vector3  # world frame linear, m/s²
    velocity: Vector3
    displacement: Vector3
    timestamp: float
    dt: Optional[float]
    dropped: bool


def step(state, sample, config, integrator=None):
    """
    Run one sample through the pipeline.

    Args:
        state (PipelineState): state before this sample
        sample (MotionSample): raw sensor tick
        config (PipelineConfig): pipeline settings
        integrator: integrator instance; built from config if omitted

    Returns:
        tuple: (PipelineState, StepResult)
    """
    if integrator is None:
        integrator = get_integrator(config.integration, max_dt=config.max_dt)

    gravity, linear_body = filter_step(state.gravity, Vector3(*sample.acceleration),
                                       Vector3(*sample.rotation_rate), config)

    orientation = Orientation(*sample.orientation)
    if not orientation.is_finite():
        logger.debug(f"Non-finite orientation {tuple(orientation)}, using identity")
        orientation = Orientation()
    linear_world = rotate_to_world(linear_body, orientation, config.axis_order)

    timestamp = sample.timestamp
    timestamp_ok = isinstance(timestamp, (int, float)) and math.isfinite(timestamp)

    velocity = state.velocity
    displacement = state.displacement
    dt = None
    dropped = False

    if state.last_timestamp is not None:
        dt = timestamp - state.last_timestamp if timestamp_ok else float('nan')
        dropped = not is_usable_dt(dt, integrator.max_dt)
        velocity, displacement = integrator.step(
            linear_world, dt, state.velocity, state.displacement, state.last_acceleration)

    new_state = PipelineState(
        gravity=gravity,
        velocity=velocity,
        displacement=displacement,
        # Baseline moves even on a dropped tick, otherwise one stall drops every later tick
        last_timestamp=timestamp if timestamp_ok else state.last_timestamp,
        last_acceleration=linear_world,
        ticks=state.ticks + 1,
        dropped_ticks=state.dropped_ticks + (1 if dropped else 0),
    )
    result = StepResult(
        acceleration=linear_world,
        velocity=velocity,
        displacement=displacement,
        timestamp=timestamp if timestamp_ok else (state.last_timestamp or 0.0),
        dt=dt,
        dropped=dropped,
    )
    return new_state, result


class MotionPipeline:
    """
    Owner of one PipelineState for live processing.

    Not thread-safe: callers must feed samples one at a time (SessionRecorder
    serialises ticks under its own lock).

    Usage:
        pipeline = MotionPipeline(PipelineConfig())
        result = pipeline.process(sample)
        result.displacement  # meters from the session origin
    """

    def __init__(self, config=None):
        self.config = config or PipelineConfig()
        self.integrator = get_integrator(self.config.integration, max_dt=self.config.max_dt)
        self.state = PipelineState()

    def process(self, sample):
        self.state, result = step(self.state, sample, self.config, self.integrator)
        return result

    def reset_path(self):
        """Restart the path at the origin, keeping the gravity estimate and time baseline."""
        self.state = replace(self.state, velocity=ZERO, displacement=ZERO, last_acceleration=None)

    def reset(self):
        """Forget everything, including the gravity estimate."""
        self.state = PipelineState()

    @property
    def velocity(self):
        return self.state.velocity

    @property
    def displacement(self):
        return self.state.displacement


def replay(samples, config=None):
    """
    Run a recorded sample sequence through a fresh pipeline.

    Uses the same code path as live recording, so replayed and live
    trajectories are comparable as long as the config matches.

    Returns:
        list: StepResult per sample
    """
    pipeline = MotionPipeline(config)
    return [pipeline.process(sample) for sample in samples]
