"""
Path Tracker - Dashboard API
FastAPI server exposing recorded sessions and the live path as JSON/GPX.

Read-only apart from session deletion; rendering (map, chart) is left to
whatever client consumes these endpoints.
"""

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response

from .errors import SessionNotFoundError
from .export import generate_gpx, session_stats, track_points


def create_app(store, recorder=None, config=None):
    """
    Build the dashboard app.

    Args:
        store (SessionStore): session database
        recorder (SessionRecorder, optional): enables the /api/live endpoints
        config (PipelineConfig, optional): reported alongside session details
    """
    app = FastAPI(title="Path Tracker Dashboard")

    def load_session(session_id):
        try:
            return store.get_session(session_id)
        except SessionNotFoundError:
            raise HTTPException(status_code=404, detail="Session not found")

    @app.get("/api/sessions")
    def list_sessions(limit: int = 20, offset: int = 0):
        """List sessions (paginated, oldest first)"""
        total = store.count_sessions()
        sessions = store.list_sessions(limit=limit, offset=offset)
        return {
            "sessions": [s.to_dict() for s in sessions],
            "total": total,
            "offset": offset,
            "limit": limit,
            "hasMore": (offset + limit) < total,
        }

    @app.get("/api/sessions/{session_id}")
    def get_session_details(session_id: int):
        session = load_session(session_id)
        return {
            **session.to_dict(),
            "stats": session_stats(store, session_id),
            "config": None if config is None else config.to_dict(),
        }

    @app.get("/api/sessions/{session_id}/motion")
    def get_session_motion(session_id: int):
        load_session(session_id)
        return {
            "session_id": session_id,
            "points": [
                {"elapsed": p.elapsed, "timestamp": p.timestamp,
                 "x": p.displacement.x, "y": p.displacement.y, "z": p.displacement.z}
                for p in store.list_motion(session_id)
            ],
        }

    @app.get("/api/sessions/{session_id}/track")
    def get_session_track(session_id: int):
        session = load_session(session_id)
        points = [p for p in track_points(store, session_id) if p["lat"] is not None]
        return {
            "session_id": session_id,
            "anchor": session.to_dict()["anchor"],
            "track": [{"lat": p["lat"], "lon": p["lon"], "elapsed": p["elapsed"]} for p in points],
        }

    @app.get("/api/sessions/{session_id}/gpx")
    def get_session_gpx(session_id: int):
        session = load_session(session_id)
        if session.anchor is None:
            raise HTTPException(status_code=404, detail="Session has no anchor fix; no GPX track available")
        return Response(content=generate_gpx(store, session_id), media_type="application/gpx+xml")

    @app.delete("/api/sessions/{session_id}")
    def delete_session(session_id: int):
        session = load_session(session_id)
        if recorder is not None and recorder.recording and recorder.session.id == session.id:
            raise HTTPException(status_code=409, detail="Session is recording; stop it first")
        store.delete_session(session_id)
        return {"deleted": session_id}

    @app.get("/api/live/status")
    def get_live_status():
        if recorder is None:
            return {"status": "INACTIVE", "message": "No recorder attached"}
        status = recorder.status()
        status["status"] = "RECORDING" if status["recording"] else "IDLE"
        return status

    @app.get("/api/live/path")
    def get_live_path():
        if recorder is None:
            raise HTTPException(status_code=404, detail="No recorder attached")
        points = recorder.snapshot()
        positions = recorder.projected_path()
        return {
            "points": [p.to_dict() for p in points],
            "track": [pos.to_dict() for pos in positions],
        }

    return app
