"""
Background motion writer.

Persistence must not stall the sensor tick, so motion rows are handed to a
single worker thread through a FIFO queue. One worker + one queue keeps writes
for a session in submission order, which preserves the append-only ordering
of the motion table.

The queue is unbounded on purpose: when the store falls behind, the recorder
drops live-preview updates (see SessionRecorder) but never persisted rows.

A failed write is logged and counted; it never propagates into the pipeline.
"""

import logging
import sqlite3
import threading
from dataclasses import dataclass
from queue import Queue
from typing import Optional

from .errors import InvalidStateError, PathTrackerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MotionWrite:
    session_id: int
    displacement: tuple
    elapsed: float
    timestamp: Optional[float] = None
    position: object = None


_STOP = object()


class MotionWriter:
    """
    Single-threaded ordered writer in front of a SessionStore.

    Usage:
        writer = MotionWriter(store)
        writer.start()
        writer.submit(session_id, displacement, elapsed, timestamp, position)
        writer.flush()   # wait for everything submitted so far
        writer.stop()
    """

    def __init__(self, store):
        self.store = store
        self.queue = Queue()
        self.worker_thread = None

        self.completed_writes = 0
        self.failed_writes = 0
        self.last_error = None
        self._stats_lock = threading.Lock()

    def start(self):
        """Start the worker thread. Safe to call again after stop()."""
        if self.is_alive():
            return True
        self.worker_thread = threading.Thread(target=self._write_loop, name="motion-writer", daemon=True)
        self.worker_thread.start()
        logger.debug("Motion writer started")
        return True

    def is_alive(self):
        return self.worker_thread is not None and self.worker_thread.is_alive()

    @property
    def backlog(self):
        """Writes submitted but not yet attempted."""
        return self.queue.qsize()

    def submit(self, session_id, displacement, elapsed, timestamp=None, position=None):
        """
        Queue one motion row.

        Raises:
            InvalidStateError: session_id is None, or the writer is not running
        """
        if session_id is None:
            raise InvalidStateError("Cannot persist motion without a session id")
        if not self.is_alive():
            raise InvalidStateError("Motion writer is not running; call start() first")
        self.queue.put(MotionWrite(session_id, tuple(displacement), elapsed, timestamp, position))

    def flush(self):
        """Block until every write submitted so far has been attempted."""
        self.queue.join()

    def stop(self):
        """Drain pending writes, then stop the worker."""
        if not self.is_alive():
            return
        self.queue.put(_STOP)
        self.worker_thread.join()
        self.worker_thread = None
        logger.debug(f"Motion writer stopped ({self.completed_writes} written, {self.failed_writes} failed)")

    def get_status(self):
        with self._stats_lock:
            return {
                'running': self.is_alive(),
                'backlog': self.backlog,
                'completed_writes': self.completed_writes,
                'failed_writes': self.failed_writes,
                'last_error': self.last_error,
            }

    def _write_loop(self):
        while True:
            job = self.queue.get()
            try:
                if job is _STOP:
                    return
                self._write(job)
            finally:
                self.queue.task_done()

    def _write(self, job):
        try:
            self.store.append_motion(job.session_id, job.displacement, job.elapsed,
                                     timestamp=job.timestamp, position=job.position)
        except (sqlite3.Error, PathTrackerError) as e:
            with self._stats_lock:
                self.failed_writes += 1
                self.last_error = str(e)
            logger.exception(f"Motion write failed for session {job.session_id} (failures: {self.failed_writes})")
        else:
            with self._stats_lock:
                self.completed_writes += 1
