"""
Sensor and absolute-fix sources.

The recorder only needs two collaborators:

- a sensor source yielding MotionSamples at a nominal interval
  (QueueSensorSource for push-style device callbacks, ReplaySensorSource for
  recorded CSV files or in-memory sequences)
- a fix source returning one AnchorFix on demand (StaticFixSource, or
  TermuxFixSource on an Android phone running Termux:API)

Replay CSV columns (seconds unless time_unit='ms'):

    timestamp, ax, ay, az          required (acceleration including gravity, m/s²)
    gx, gy, gz                     rotation rate (rad/s), default 0
    alpha, beta, gamma             orientation (rad), default 0
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Iterable, Iterator, List, Optional

import orjson
import pandas as pd

from .errors import FixUnavailableError
from .models import AnchorFix, MotionSample, Orientation, Vector3

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 50  # ~20 Hz

REQUIRED_COLUMNS = ('timestamp', 'ax', 'ay', 'az')
OPTIONAL_COLUMNS = ('gx', 'gy', 'gz', 'alpha', 'beta', 'gamma')


class QueueSensorSource:
    """
    Push-style source: a device callback calls push(), the recorder pulls.

    The queue is bounded; when full, the oldest sample is discarded so the
    recorder always sees the freshest data after a stall.
    """

    def __init__(self, interval_ms: int = DEFAULT_INTERVAL_MS, max_queue_size: int = 1000):
        self.interval_ms = interval_ms
        self.data_queue: Queue = Queue(maxsize=max_queue_size)
        self.dropped_samples = 0
        self._closed = False

    def push(self, sample: MotionSample) -> None:
        if self._closed:
            return
        while True:
            try:
                self.data_queue.put_nowait(sample)
                return
            except Full:
                try:
                    self.data_queue.get_nowait()
                    self.dropped_samples += 1
                except Empty:
                    pass

    def get(self, timeout: Optional[float] = None) -> Optional[MotionSample]:
        """Next sample, or None on timeout."""
        try:
            return self.data_queue.get(timeout=timeout)
        except Empty:
            return None

    def close(self) -> None:
        """No further pushes are accepted; iteration ends once the queue is drained."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[MotionSample]:
        while True:
            sample = self.get(timeout=self.interval_ms / 1000.0)
            if sample is not None:
                yield sample
            elif self._closed and self.data_queue.empty():
                return


class ReplaySensorSource:
    """
    Pull-style source over recorded samples.

    With realtime=True iteration sleeps for the recorded gap between samples
    (capped at 1 s), otherwise it yields as fast as the consumer pulls.
    """

    def __init__(self, samples: Iterable[MotionSample], interval_ms: int = DEFAULT_INTERVAL_MS,
                 realtime: bool = False):
        self.samples: List[MotionSample] = list(samples)
        self.interval_ms = interval_ms
        self.realtime = realtime

    @classmethod
    def from_csv(cls, path, time_unit: str = 's', **kwargs) -> "ReplaySensorSource":
        return cls(load_samples_csv(path, time_unit=time_unit), **kwargs)

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[MotionSample]:
        previous = None
        for sample in self.samples:
            if self.realtime and previous is not None:
                gap = sample.timestamp - previous.timestamp
                if 0 < gap:
                    time.sleep(min(gap, 1.0))
            previous = sample
            yield sample


def samples_from_frame(df: pd.DataFrame, time_unit: str = 's') -> List[MotionSample]:
    """
    Convert a DataFrame with the replay columns into MotionSamples.

    Non-numeric cells become NaN (the pipeline sanitises them); rows without a
    usable timestamp are dropped.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Replay data is missing required columns: {', '.join(missing)}")

    df = df.copy()
    for column in REQUIRED_COLUMNS + OPTIONAL_COLUMNS:
        if column in df.columns:
            df[column] = pd.to_numeric(df[column], errors='coerce')
        else:
            df[column] = 0.0

    before = len(df)
    df = df.dropna(subset=['timestamp'])
    if len(df) < before:
        logger.warning(f"Dropped {before - len(df)} replay rows without a timestamp")

    if time_unit == 'ms':
        df['timestamp'] = df['timestamp'] / 1000.0
    elif time_unit != 's':
        raise ValueError(f"Unknown time_unit: {time_unit}. Use 's' or 'ms'")

    samples = []
    for row in df.itertuples(index=False):
        samples.append(MotionSample(
            acceleration=Vector3(float(row.ax), float(row.ay), float(row.az)),
            rotation_rate=Vector3(float(row.gx), float(row.gy), float(row.gz)),
            orientation=Orientation(float(row.alpha), float(row.beta), float(row.gamma)),
            timestamp=float(row.timestamp),
        ))
    return samples


def samples_to_frame(samples: Iterable[MotionSample]) -> pd.DataFrame:
    rows = []
    for s in samples:
        rows.append({
            'timestamp': s.timestamp,
            'ax': s.acceleration.x, 'ay': s.acceleration.y, 'az': s.acceleration.z,
            'gx': s.rotation_rate.x, 'gy': s.rotation_rate.y, 'gz': s.rotation_rate.z,
            'alpha': s.orientation.alpha, 'beta': s.orientation.beta, 'gamma': s.orientation.gamma,
        })
    return pd.DataFrame(rows, columns=list(REQUIRED_COLUMNS + OPTIONAL_COLUMNS))


def load_samples_csv(path, time_unit: str = 's') -> List[MotionSample]:
    df = pd.read_csv(Path(path))
    samples = samples_from_frame(df, time_unit=time_unit)
    logger.info(f"Loaded {len(samples)} samples from {path}")
    return samples


def save_samples_csv(samples: Iterable[MotionSample], path) -> None:
    samples_to_frame(samples).to_csv(Path(path), index=False)


class StaticFixSource:
    """Fixed anchor, e.g. typed in by the user or read from a previous session."""

    def __init__(self, latitude: float, longitude: float):
        self.fix = AnchorFix(float(latitude), float(longitude))

    def get_fix(self) -> AnchorFix:
        return self.fix


class TermuxFixSource:
    """
    One-shot position fix from termux-location.

    Only called at session start; the core never re-anchors mid-session.
    """

    def __init__(self, provider: str = 'gps', timeout: float = 30.0, quality_threshold: float = 100.0):
        """
        Args:
            provider: 'gps' or 'network'
            timeout: seconds before the request is abandoned
            quality_threshold: reject fixes with reported accuracy worse than this (m)
        """
        self.provider = provider
        self.timeout = timeout
        self.quality_threshold = quality_threshold

    def get_fix(self) -> AnchorFix:
        try:
            result = subprocess.run(
                ['termux-location', '-p', self.provider],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise FixUnavailableError(f"termux-location ({self.provider}) failed: {e}") from e

        if result.returncode != 0 or not result.stdout.strip():
            raise FixUnavailableError(
                f"termux-location ({self.provider}) returned {result.returncode}: {result.stderr.strip()}")

        try:
            data = orjson.loads(result.stdout)
        except orjson.JSONDecodeError as e:
            raise FixUnavailableError(f"Unparseable termux-location output: {e}") from e

        latitude = data.get('latitude')
        longitude = data.get('longitude')
        if latitude is None or longitude is None:
            raise FixUnavailableError("termux-location output has no latitude/longitude")

        accuracy = data.get('accuracy')
        if accuracy is not None and accuracy > self.quality_threshold:
            raise FixUnavailableError(
                f"Fix accuracy {accuracy:.1f}m worse than {self.quality_threshold:.0f}m threshold")

        logger.info(f"Anchor fix acquired: {latitude:.6f}, {longitude:.6f} (provider {self.provider})")
        return AnchorFix(float(latitude), float(longitude))
