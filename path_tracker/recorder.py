"""
Session recording: the live loop around the motion pipeline.

SessionRecorder owns one MotionPipeline, a live-preview buffer, a full-session
buffer and an ordered MotionWriter. Every tick runs

    filter → rotate → integrate → buffer append → queue persistence

under a single lock, so at most one tick is in flight and pipeline state is
never mutated concurrently. Persistence happens on the writer thread.

BACKPRESSURE: if the writer backlog grows past render_backlog_limit, the tick
still integrates and still queues its row, but the live-preview append is
skipped. Position of record wins over live display.

LIFECYCLE:
    recorder = SessionRecorder(store, config, fix_source=StaticFixSource(52.52, 13.40))
    session = recorder.start()        # creates the session, captures the anchor once
    recorder.handle_sample(sample)    # or recorder.run(source)
    recorder.snapshot()               # live path for a chart
    recorder.projected_path()         # live path as lat/lon for a map
    session = recorder.stop()         # drains writes, closes the session
"""

import logging
import threading
import time

from .buffer import TrajectoryBuffer
from .config import PipelineConfig
from .errors import InvalidStateError
from .models import TrajectoryPoint
from .pipeline import MotionPipeline
from .projection import project, project_path
from .writer import MotionWriter

logger = logging.getLogger(__name__)


class SessionRecorder:

    def __init__(self, store, config=None, fix_source=None, clock=time.time, recover_stale_sessions=True):
        """
        Args:
            store (SessionStore): durable session log, driven by this recorder only
            config (PipelineConfig): pipeline settings (defaults if omitted)
            fix_source: object with get_fix() -> AnchorFix, used once per start()
            clock: wall-clock function for session start/end times
            recover_stale_sessions (bool): on start(), close sessions a crashed
                process left open instead of refusing to record
        """
        self.store = store
        self.recover_stale_sessions = recover_stale_sessions
        self.config = config or PipelineConfig()
        self.fix_source = fix_source
        self.clock = clock

        self.pipeline = MotionPipeline(self.config)
        self.preview = TrajectoryBuffer(self.config.preview_capacity)
        self.session_buffer = TrajectoryBuffer(self.config.session_capacity)
        self.writer = MotionWriter(store)

        # One tick at a time; start/stop take the same lock
        self.tick_lock = threading.Lock()
        self.stop_event = threading.Event()

        self.session = None
        self.anchor = None
        self._first_timestamp = None

        # Statistics
        self.samples_processed = 0
        self.samples_ignored = 0
        self.dropped_render_updates = 0

    @property
    def recording(self):
        return self.session is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, anchor=None, start_time=None):
        """
        Open a session and begin accepting samples.

        Args:
            anchor (AnchorFix, optional): explicit anchor; otherwise fix_source
                is asked once. A session without an anchor still records
                displacement, it just cannot be projected.
            start_time (float, optional): defaults to clock()

        Returns:
            Session: the open session

        Raises:
            InvalidStateError: already recording, or the store has an open session
                and recover_stale_sessions is off
            FixUnavailableError: the fix source could not deliver an anchor
        """
        with self.tick_lock:
            if self.session is not None:
                raise InvalidStateError(f"Already recording session {self.session.id}")

            if anchor is None and self.fix_source is not None:
                anchor = self.fix_source.get_fix()

            if start_time is None:
                start_time = self.clock()
            if self.recover_stale_sessions:
                self.store.close_stale_sessions()
            session_id = self.store.create_session(start_time, anchor)

            self.pipeline.reset()
            self.preview.reset()
            self.session_buffer.reset()
            self._first_timestamp = None
            self.samples_processed = 0
            self.samples_ignored = 0
            self.dropped_render_updates = 0
            self.writer.start()
            self.stop_event.clear()

            self.anchor = anchor
            self.session = self.store.get_session(session_id)

        if anchor is None:
            logger.warning(f"Session {session_id} started without an anchor fix; map projection disabled")
        return self.session

    def stop(self, end_time=None):
        """
        Stop consuming samples, let in-flight writes finish, close the session.

        Returns:
            Session: the closed session

        Raises:
            InvalidStateError: not recording
        """
        with self.tick_lock:
            if self.session is None:
                raise InvalidStateError("Not recording")
            session_id = self.session.id
            self.session = None
            self.stop_event.set()

            # Drain everything queued before the stop
            self.writer.stop()
            if end_time is None:
                end_time = self.clock()
            self.store.close_session(session_id, end_time)

        status = self.writer.get_status()
        if status['failed_writes']:
            logger.warning(f"Session {session_id}: {status['failed_writes']} motion rows could not be saved "
                           f"(last error: {status['last_error']})")
        logger.info(f"Session {session_id} stopped after {self.samples_processed} samples")
        return self.store.get_session(session_id)

    def close(self):
        """Stop recording if needed. The store is left open (the caller owns it)."""
        if self.recording:
            self.stop()
        self.writer.stop()

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def handle_sample(self, sample):
        """
        Process one sensor tick.

        Returns:
            TrajectoryPoint or None: None when not recording (late callbacks
            after stop() are ignored) or when the tick was dropped for a bad dt
        """
        with self.tick_lock:
            if self.session is None:
                self.samples_ignored += 1
                logger.debug("Sample ignored: not recording")
                return None

            result = self.pipeline.process(sample)
            self.samples_processed += 1
            if result.dropped:
                return None

            if self._first_timestamp is None:
                self._first_timestamp = result.timestamp
            point = TrajectoryPoint(
                displacement=result.displacement,
                timestamp=result.timestamp,
                elapsed=result.timestamp - self._first_timestamp,
                acceleration=result.acceleration,
                velocity=result.velocity,
            )

            self.session_buffer.append(point)
            if self.writer.backlog > self.config.render_backlog_limit:
                self.dropped_render_updates += 1
            else:
                self.preview.append(point)

            position = project(self.anchor, point.displacement) if self.anchor is not None else None
            self.writer.submit(self.session.id, point.displacement, point.elapsed,
                               timestamp=point.timestamp, position=position)
            return point

    def run(self, source, duration=None):
        """
        Pull samples from a source until it is exhausted, stop() is called or
        duration (seconds of wall clock) has passed.

        Returns:
            int: samples handed to the pipeline
        """
        if not self.recording:
            raise InvalidStateError("start() must be called before run()")

        deadline = None if duration is None else self.clock() + duration
        count = 0

        if hasattr(source, 'get'):
            # Push-style source: poll so stop_event is checked between samples
            timeout = getattr(source, 'interval_ms', 50) / 1000.0
            while not self.stop_event.is_set():
                sample = source.get(timeout=timeout)
                if sample is None:
                    if getattr(source, 'closed', False):
                        break
                else:
                    self.handle_sample(sample)
                    count += 1
                if deadline is not None and self.clock() >= deadline:
                    break
        else:
            for sample in source:
                if self.stop_event.is_set():
                    break
                self.handle_sample(sample)
                count += 1
                if deadline is not None and self.clock() >= deadline:
                    break
        return count

    def record(self, source, anchor=None, start_time=None, end_time=None):
        """start(), run() the whole source, stop(). Returns the closed Session."""
        self.start(anchor=anchor, start_time=start_time)
        try:
            self.run(source)
        finally:
            session = self.stop(end_time=end_time)
        return session

    # ------------------------------------------------------------------
    # Display controls and reads
    # ------------------------------------------------------------------

    def reset_path(self):
        """Restart the live path at the origin. Persisted history is kept."""
        with self.tick_lock:
            self.pipeline.reset_path()
            self.preview.reset()

    def offset(self, since=None):
        """
        Zero the displayed path at `since`.

        Defaults to the latest point, or the last sample seen when the preview
        is empty. Before the first sample there is nothing to zero.
        """
        if since is None:
            latest = self.preview.latest()
            since = latest.timestamp if latest is not None else self.pipeline.state.last_timestamp
            if since is None:
                return
        self.preview.offset(since)

    def snapshot(self):
        return self.preview.snapshot()

    def projected_path(self):
        if self.anchor is None:
            return []
        return project_path(self.anchor, self.preview.snapshot())

    def status(self):
        state = self.pipeline.state
        writer_status = self.writer.get_status()
        return {
            'recording': self.recording,
            'session_id': None if self.session is None else self.session.id,
            'anchor': None if self.anchor is None else {'lat': self.anchor.latitude, 'lon': self.anchor.longitude},
            'samples_processed': self.samples_processed,
            'samples_ignored': self.samples_ignored,
            'dropped_ticks': state.dropped_ticks,
            'dropped_render_updates': self.dropped_render_updates,
            'velocity': state.velocity.to_dict(),
            'displacement': state.displacement.to_dict(),
            'writer': writer_status,
            # Recoverable notice for the UI, not a crash
            'persistence_warning': (f"{writer_status['failed_writes']} motion rows failed to save"
                                    if writer_status['failed_writes'] else None),
        }
