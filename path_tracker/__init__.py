"""
Path Tracker - inertial dead reckoning from phone motion sensors.

Turns body-frame accelerometer, rotation-rate and orientation samples into a
world-frame displacement path, and projects it onto latitude/longitude around
one anchor fix taken at session start.

Components:
- rotate_to_world: body frame → world frame (fixed axis order, default ZXY)
- GravityNoiseFilter: low-pass gravity separation, rotation gate, deadband
- get_integrator: rectangular or trapezoidal double integration
- TrajectoryBuffer: bounded live-preview / session history
- SessionStore: SQLite session and motion log
- project: equirectangular displacement → lat/lon

Usage:
    from path_tracker import PipelineConfig, SessionRecorder, SessionStore, StaticFixSource

    store = SessionStore("sessions.sqlite")
    recorder = SessionRecorder(store, PipelineConfig(), fix_source=StaticFixSource(52.52, 13.405))
    recorder.start()
    recorder.handle_sample(sample)   # per sensor tick
    recorder.projected_path()        # live lat/lon path
    recorder.stop()
"""

from .buffer import TrajectoryBuffer
from .config import PipelineConfig
from .errors import FixUnavailableError, InvalidStateError, PathTrackerError, SessionNotFoundError
from .filters import GravityNoiseFilter, get_integrator
from .models import AnchorFix, LatLng, MotionSample, Orientation, Session, TrajectoryPoint, Vector3
from .pipeline import MotionPipeline, PipelineState, replay, step
from .projection import project, unproject
from .recorder import SessionRecorder
from .rotation import compose_rotation, rotate_to_world
from .sensors import QueueSensorSource, ReplaySensorSource, StaticFixSource, TermuxFixSource
from .store import SessionStore

__all__ = [
    # Models
    'Vector3',
    'Orientation',
    'MotionSample',
    'TrajectoryPoint',
    'Session',
    'AnchorFix',
    'LatLng',

    # Pipeline
    'PipelineConfig',
    'PipelineState',
    'MotionPipeline',
    'step',
    'replay',
    'GravityNoiseFilter',
    'get_integrator',
    'rotate_to_world',
    'compose_rotation',

    # Storage and recording
    'TrajectoryBuffer',
    'SessionStore',
    'SessionRecorder',

    # Sources
    'QueueSensorSource',
    'ReplaySensorSource',
    'StaticFixSource',
    'TermuxFixSource',

    # Projection
    'project',
    'unproject',

    # Errors
    'PathTrackerError',
    'InvalidStateError',
    'SessionNotFoundError',
    'FixUnavailableError',
]

__version__ = '1.0.0'
