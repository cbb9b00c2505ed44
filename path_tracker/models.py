"""
Data types shared by the pipeline, buffer, store and projector.

Vector3 carries no unit of its own. The aliases below name the unit at every
signature so acceleration, velocity and displacement never get mixed up:

    Acceleration  m/s²
    Velocity      m/s
    Displacement  m
    RotationRate  rad/s
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import NamedTuple, Optional


class Vector3(NamedTuple):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other):
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other):
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def scale(self, factor: float) -> "Vector3":
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def to_dict(self):
        return {'x': self.x, 'y': self.y, 'z': self.z}


ZERO = Vector3(0.0, 0.0, 0.0)

Acceleration = Vector3  # m/s²
Velocity = Vector3      # m/s
Displacement = Vector3  # m
RotationRate = Vector3  # rad/s


class Orientation(NamedTuple):
    """Instantaneous device attitude in radians.

    alpha rotates about the device Z axis, beta about X, gamma about Y.
    """
    alpha: float = 0.0
    beta: float = 0.0
    gamma: float = 0.0

    def is_finite(self) -> bool:
        return math.isfinite(self.alpha) and math.isfinite(self.beta) and math.isfinite(self.gamma)


@dataclass(frozen=True)
class MotionSample:
    """One sensor tick. acceleration includes gravity and is in the body frame."""
    acceleration: Acceleration
    rotation_rate: RotationRate = ZERO
    orientation: Orientation = Orientation()
    timestamp: float = 0.0  # seconds


@dataclass(frozen=True)
class TrajectoryPoint:
    """Integrated position at one tick. acceleration is world-frame linear."""
    displacement: Displacement
    timestamp: float
    elapsed: float = 0.0  # seconds since session start
    acceleration: Acceleration = ZERO
    velocity: Velocity = ZERO

    def to_dict(self):
        return {
            'timestamp': self.timestamp,
            'elapsed': self.elapsed,
            'x': self.displacement.x,
            'y': self.displacement.y,
            'z': self.displacement.z,
            'ax': self.acceleration.x,
            'ay': self.acceleration.y,
            'az': self.acceleration.z,
            'vx': self.velocity.x,
            'vy': self.velocity.y,
            'vz': self.velocity.z,
        }


@dataclass(frozen=True)
class AnchorFix:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class LatLng:
    latitude: float
    longitude: float

    def to_dict(self):
        return {'lat': self.latitude, 'lon': self.longitude}


@dataclass(frozen=True)
class Session:
    id: int
    start_time: float
    end_time: Optional[float] = None
    anchor: Optional[AnchorFix] = field(default=None)

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def to_dict(self):
        return {
            'id': self.id,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'is_open': self.is_open,
            'anchor': None if self.anchor is None else {
                'lat': self.anchor.latitude,
                'lon': self.anchor.longitude,
            },
        }
