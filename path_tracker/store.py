"""
SQLite session store.

Two tables: `session` (one row per recording, end_time NULL while recording)
and `motion` (append-only integrated samples, FK to session with ON DELETE
CASCADE). Motion rows are read back in primary-key order, which is insertion
order, which is time order.

At most one session may be open at a time.
"""

import logging
import os
import sqlite3
import threading
from pathlib import Path

from .errors import InvalidStateError, SessionNotFoundError
from .models import AnchorFix, Session, TrajectoryPoint, Vector3

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.path.join(os.path.expanduser("~/path_tracker"), "sessions.sqlite")

SCHEMA = """
CREATE TABLE IF NOT EXISTS session (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    start_time REAL NOT NULL,
    end_time REAL,
    anchor_lat REAL,
    anchor_lon REAL
);
CREATE TABLE IF NOT EXISTS motion (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL,
    x REAL NOT NULL,
    y REAL NOT NULL,
    z REAL NOT NULL,
    elapsed REAL NOT NULL,
    timestamp REAL,
    latitude REAL,
    longitude REAL,
    FOREIGN KEY(session_id) REFERENCES session(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS motion_session_idx ON motion(session_id, id);
"""


def default_db_path():
    """PATH_TRACKER_DB overrides the default location."""
    return os.environ.get("PATH_TRACKER_DB", DEFAULT_DB_PATH)


def _row_to_session(row):
    anchor = None
    if row["anchor_lat"] is not None and row["anchor_lon"] is not None:
        anchor = AnchorFix(row["anchor_lat"], row["anchor_lon"])
    return Session(id=row["id"], start_time=row["start_time"], end_time=row["end_time"], anchor=anchor)


class SessionStore:
    """
    Durable append-only log of motion rows keyed by session.

    Safe to share between the recording thread and the writer thread: the
    connection is opened with check_same_thread=False and every statement runs
    under one lock.
    """

    def __init__(self, db_path=None):
        """
        Args:
            db_path (str): SQLite file, or ":memory:" for a throwaway store.
                           Defaults to default_db_path().
        """
        self.db_path = str(db_path or default_db_path())
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self.lock = threading.Lock()
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON;")
        if self.db_path != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, start_time, anchor=None):
        """
        Open a new session.

        Returns:
            int: new session id

        Raises:
            InvalidStateError: another session is still open
        """
        with self.lock:
            row = self.conn.execute("SELECT id FROM session WHERE end_time IS NULL LIMIT 1").fetchone()
            if row is not None:
                raise InvalidStateError(f"Session {row['id']} is still open; close it before starting another")
            with self.conn:
                cursor = self.conn.execute(
                    "INSERT INTO session (start_time, anchor_lat, anchor_lon) VALUES (?, ?, ?)",
                    (float(start_time),
                     None if anchor is None else float(anchor.latitude),
                     None if anchor is None else float(anchor.longitude)),
                )
            session_id = cursor.lastrowid
        logger.info(f"Session {session_id} opened at {start_time:.3f}")
        return session_id

    def close_session(self, session_id, end_time):
        """
        Record the end time of an open session.

        Raises:
            SessionNotFoundError: unknown id
            InvalidStateError: the session is already closed
        """
        self._require_id(session_id)
        with self.lock:
            with self.conn:
                cursor = self.conn.execute(
                    "UPDATE session SET end_time = ? WHERE id = ? AND end_time IS NULL",
                    (float(end_time), session_id))
                if cursor.rowcount == 0:
                    row = self.conn.execute("SELECT end_time FROM session WHERE id = ?", (session_id,)).fetchone()
                    if row is None:
                        raise SessionNotFoundError(session_id)
                    raise InvalidStateError(f"Session {session_id} was already closed at {row['end_time']:.3f}")
        logger.info(f"Session {session_id} closed at {end_time:.3f}")

    def close_stale_sessions(self):
        """
        Close sessions left open by a process that never called stop().

        The end time is the start time plus the elapsed time of the session's
        last motion row (just the start time if nothing was recorded).

        Returns:
            list: ids of the sessions closed
        """
        with self.lock:
            rows = self.conn.execute(
                "SELECT s.id, s.start_time + COALESCE(MAX(m.elapsed), 0) AS end_time "
                "FROM session s LEFT JOIN motion m ON m.session_id = s.id "
                "WHERE s.end_time IS NULL GROUP BY s.id ORDER BY s.id ASC"
            ).fetchall()
            with self.conn:
                for row in rows:
                    self.conn.execute("UPDATE session SET end_time = ? WHERE id = ?", (row["end_time"], row["id"]))
        for row in rows:
            logger.warning(f"Session {row['id']} was left open; closed at {row['end_time']:.3f}")
        return [row["id"] for row in rows]

    def get_session(self, session_id):
        self._require_id(session_id)
        with self.lock:
            row = self.conn.execute("SELECT * FROM session WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            raise SessionNotFoundError(session_id)
        return _row_to_session(row)

    def open_session(self):
        """The currently open session, or None."""
        with self.lock:
            row = self.conn.execute("SELECT * FROM session WHERE end_time IS NULL LIMIT 1").fetchone()
        return None if row is None else _row_to_session(row)

    def list_sessions(self, limit=None, offset=0):
        """Sessions in creation order."""
        sql = "SELECT * FROM session ORDER BY id ASC"
        params = ()
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params = (int(limit), int(offset))
        with self.lock:
            rows = self.conn.execute(sql, params).fetchall()
        return [_row_to_session(row) for row in rows]

    def count_sessions(self):
        with self.lock:
            return self.conn.execute("SELECT COUNT(*) FROM session").fetchone()[0]

    def delete_session(self, session_id):
        """Delete a session and, by cascade, all of its motion rows."""
        self._require_id(session_id)
        with self.lock:
            with self.conn:
                cursor = self.conn.execute("DELETE FROM session WHERE id = ?", (session_id,))
        if cursor.rowcount == 0:
            raise SessionNotFoundError(session_id)
        logger.info(f"Session {session_id} deleted")

    # ------------------------------------------------------------------
    # Motion rows
    # ------------------------------------------------------------------

    def append_motion(self, session_id, displacement, elapsed, timestamp=None, position=None):
        """
        Append one integrated sample.

        Args:
            session_id (int): owning session (open or closed)
            displacement (Vector3): meters from the session origin
            elapsed (float): seconds since session start
            timestamp (float, optional): sample timestamp
            position (LatLng, optional): projected position at write time

        Returns:
            int: motion row id
        """
        self._require_id(session_id)
        with self.lock:
            exists = self.conn.execute("SELECT 1 FROM session WHERE id = ?", (session_id,)).fetchone()
            if exists is None:
                raise SessionNotFoundError(session_id)
            with self.conn:
                cursor = self.conn.execute(
                    "INSERT INTO motion (session_id, x, y, z, elapsed, timestamp, latitude, longitude) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (session_id,
                     float(displacement[0]), float(displacement[1]), float(displacement[2]),
                     float(elapsed),
                     None if timestamp is None else float(timestamp),
                     None if position is None else position.latitude,
                     None if position is None else position.longitude),
                )
            return cursor.lastrowid

    def list_motion(self, session_id):
        """Motion rows of a session as TrajectoryPoints, ascending by insertion order.

        An unknown (e.g. deleted) session yields an empty list.
        """
        rows = self._motion_rows(session_id)
        return [
            TrajectoryPoint(
                displacement=Vector3(row["x"], row["y"], row["z"]),
                timestamp=row["timestamp"] if row["timestamp"] is not None else row["elapsed"],
                elapsed=row["elapsed"],
            )
            for row in rows
        ]

    def list_motion_rows(self, session_id):
        """Raw motion rows as dicts (id, x, y, z, elapsed, timestamp, latitude, longitude)."""
        return [dict(row) for row in self._motion_rows(session_id)]

    def count_motion(self, session_id):
        self._require_id(session_id)
        with self.lock:
            return self.conn.execute(
                "SELECT COUNT(*) FROM motion WHERE session_id = ?", (session_id,)).fetchone()[0]

    def close(self):
        with self.lock:
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ------------------------------------------------------------------

    def _motion_rows(self, session_id):
        # Unknown or deleted sessions simply have no rows
        self._require_id(session_id)
        with self.lock:
            return self.conn.execute(
                "SELECT id, session_id, x, y, z, elapsed, timestamp, latitude, longitude "
                "FROM motion WHERE session_id = ? ORDER BY id ASC",
                (session_id,),
            ).fetchall()

    @staticmethod
    def _require_id(session_id):
        if session_id is None:
            raise InvalidStateError("No session id: persistence attempted outside a session")
