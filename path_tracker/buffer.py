"""Thread-safe bounded trajectory buffer feeding the live chart and path."""

import threading
from collections import deque
from typing import Deque, List, Optional

from .models import ZERO, TrajectoryPoint

PREVIEW_CAPACITY = 100
SESSION_CAPACITY = 10_000


class TrajectoryBuffer:
    """
    Bounded, time-ordered sequence of TrajectoryPoints.

    Oldest points are evicted once capacity is exceeded. An offset can hide
    everything up to a timestamp and re-base the rest to the origin, so the
    user can "zero" the displayed path while the held history stays intact.
    """

    def __init__(self, capacity: int = PREVIEW_CAPACITY):
        """
        Args:
            capacity: Maximum number of points held (100 ≈ 5 s at 20 Hz for a
                      live preview; use SESSION_CAPACITY for a full session)
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.lock = threading.Lock()
        self.ring: Deque[TrajectoryPoint] = deque(maxlen=capacity)
        self._offset_since: Optional[float] = None
        self._offset_base = ZERO

    @property
    def capacity(self) -> int:
        return self.ring.maxlen

    def __len__(self) -> int:
        with self.lock:
            return len(self.ring)

    def append(self, point: TrajectoryPoint) -> None:
        with self.lock:
            self.ring.append(point)

    def reset(self) -> None:
        """Clear held points and any offset. Persisted history is not touched."""
        with self.lock:
            self.ring.clear()
            self._offset_since = None
            self._offset_base = ZERO

    def offset(self, since: float) -> None:
        """
        Show only points with timestamp > since, displaced relative to the last
        point at or before since. The underlying buffer is not modified.
        """
        with self.lock:
            self._offset_since = since
            self._offset_base = self._base_at(since, ZERO)

    def clear_offset(self) -> None:
        with self.lock:
            self._offset_since = None
            self._offset_base = ZERO

    @property
    def offset_since(self) -> Optional[float]:
        return self._offset_since

    def snapshot(self) -> List[TrajectoryPoint]:
        """Visible points in time order."""
        with self.lock:
            if self._offset_since is None:
                return list(self.ring)
            since = self._offset_since
            # Points appended after offset() may still fall at or before since
            base = self._base_at(since, self._offset_base)
            return [
                TrajectoryPoint(
                    displacement=point.displacement - base,
                    timestamp=point.timestamp,
                    elapsed=point.elapsed,
                    acceleration=point.acceleration,
                    velocity=point.velocity,
                )
                for point in self.ring if point.timestamp > since
            ]

    def _base_at(self, since, fallback):
        """Displacement of the last held point at or before since (caller holds the lock)."""
        base = fallback
        for point in self.ring:
            if point.timestamp <= since:
                base = point.displacement
        return base

    def history(self) -> List[TrajectoryPoint]:
        """All held points, ignoring the offset."""
        with self.lock:
            return list(self.ring)

    def latest(self) -> Optional[TrajectoryPoint]:
        with self.lock:
            return self.ring[-1] if self.ring else None
