"""
Exception hierarchy for the path tracker.

Degenerate sensor input (NaN axes, stalled ticks, rotation-dominated samples)
is never an error; it is clamped, dropped or zeroed inside the pipeline.
These exceptions are reserved for lifecycle bugs and missing collaborators.
"""


class PathTrackerError(Exception):
    """Base class for all path tracker errors."""


class InvalidStateError(PathTrackerError):
    """Operation attempted in the wrong lifecycle state (e.g. no open session)."""


class SessionNotFoundError(PathTrackerError, LookupError):
    """Session id does not exist in the store."""

    def __init__(self, session_id):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class FixUnavailableError(PathTrackerError):
    """The absolute position fix could not be acquired."""
