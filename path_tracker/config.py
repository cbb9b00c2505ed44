"""
Pipeline configuration.

All tuning knobs of the motion pipeline live in one frozen dataclass so a
recorded session can be replayed with exactly the settings it was captured
with (the config is saved alongside every export).

Defaults are tuned for a ~20 Hz phone sensor stream:

    axis_order               "ZXY"  world = Ry(gamma) · Rx(beta) · Rz(alpha) · body
    gravity_alpha            0.98   high = gravity follows slow tilt, not motion
    rotation_rate_threshold  1.2    rad/s (~70°/s), above this the tick is rotation
    deadband                 0.35   m/s², linear magnitude below this is noise
    accel_clamp              30.0   m/s², per-axis glitch clamp
    max_dt                   0.5    s, larger gaps are stalls/backgrounding
    integration              "rectangular" (Euler) or "trapezoidal"
    interval_ms              50     nominal sensor interval
    preview_capacity         100    live preview points (5 s @ 20 Hz)
    session_capacity         10000  full-session points kept in memory
    render_backlog_limit     500    pending writes before preview updates are skipped
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from pathlib import Path

import orjson

INTEGRATION_SCHEMES = ('rectangular', 'trapezoidal')


@dataclass(frozen=True)
class PipelineConfig:
    axis_order: str = 'ZXY'
    gravity_alpha: float = 0.98
    rotation_rate_threshold: float = 1.2
    deadband: float = 0.35
    accel_clamp: float = 30.0
    max_dt: float = 0.5
    integration: str = 'rectangular'
    interval_ms: int = 50
    preview_capacity: int = 100
    session_capacity: int = 10_000
    render_backlog_limit: int = 500

    def __post_init__(self):
        order = self.axis_order.upper()
        if sorted(order) != ['X', 'Y', 'Z']:
            raise ValueError(f"axis_order must be a permutation of 'XYZ', got {self.axis_order!r}")
        # Normalise case without breaking frozen-ness
        object.__setattr__(self, 'axis_order', order)

        if not 0.0 <= self.gravity_alpha <= 1.0:
            raise ValueError(f"gravity_alpha must be in [0, 1], got {self.gravity_alpha}")
        for name in ('rotation_rate_threshold', 'deadband'):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative number, got {value}")
        for name in ('accel_clamp', 'max_dt'):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.integration not in INTEGRATION_SCHEMES:
            raise ValueError(f"Unknown integration scheme: {self.integration}. "
                             f"Use one of {', '.join(INTEGRATION_SCHEMES)}")
        for name in ('interval_ms', 'preview_capacity', 'session_capacity', 'render_backlog_limit'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    def replace(self, **changes) -> "PipelineConfig":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PipelineConfig":
        """Build a config from a dict, ignoring keys this version does not know."""
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_file(cls, path) -> "PipelineConfig":
        data = orjson.loads(Path(path).read_bytes())
        # Session exports nest the config under "config"
        if isinstance(data.get('config'), dict):
            data = data['config']
        return cls.from_dict(data)
