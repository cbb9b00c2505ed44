"""Shared fixtures: in-memory store, default config, synthetic sample streams."""

import pytest

from path_tracker.config import PipelineConfig
from path_tracker.models import AnchorFix, MotionSample, Orientation, Vector3
from path_tracker.store import SessionStore

GRAVITY = 9.81
BERLIN = AnchorFix(52.52, 13.405)


@pytest.fixture
def store():
    s = SessionStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def file_store(tmp_path):
    s = SessionStore(tmp_path / "sessions.sqlite")
    yield s
    s.close()


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def anchor():
    return BERLIN


def make_sample(t, accel=(0.0, 0.0, 0.0), rotation=(0.0, 0.0, 0.0), orientation=(0.0, 0.0, 0.0)):
    return MotionSample(
        acceleration=Vector3(*accel),
        rotation_rate=Vector3(*rotation),
        orientation=Orientation(*orientation),
        timestamp=t,
    )


def still_stream(n, dt=0.05, t0=1000.0):
    """Device lying flat and still: only gravity on z."""
    return [make_sample(t0 + i * dt, accel=(0.0, 0.0, GRAVITY)) for i in range(n)]


def push_stream(n, accel_x=2.0, dt=0.05, t0=1000.0, rest=5):
    """Flat device at rest for a few ticks, then a sustained push along body x."""
    samples = still_stream(rest, dt, t0)
    for i in range(rest, rest + n):
        samples.append(make_sample(t0 + i * dt, accel=(accel_x, 0.0, GRAVITY)))
    return samples


@pytest.fixture
def sample_factory():
    return make_sample


@pytest.fixture
def recorded_session(store, anchor):
    """A closed session with a short eastward push, anchored in Berlin."""
    from path_tracker.recorder import SessionRecorder
    from path_tracker.sensors import ReplaySensorSource

    recorder = SessionRecorder(store, PipelineConfig())
    session = recorder.record(ReplaySensorSource(push_stream(20)), anchor=anchor,
                              start_time=1000.0, end_time=1001.25)
    recorder.close()
    return session
