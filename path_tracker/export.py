"""
Session export: JSON (orjson, optionally gzip), GPX and CSV/DataFrame.

Exports carry the pipeline config the session was recorded with, so an offline
replay can reproduce the same axis order and thresholds.
"""

from __future__ import annotations

import gzip
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import orjson
import pandas as pd

from .models import LatLng, Vector3
from .projection import path_length, project

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace('+00:00', 'Z')


def track_points(store, session_id) -> List[Dict]:
    """
    Motion rows with their projected position.

    The position is recomputed from the session anchor on read; the lat/lon
    columns stored at write time are only used when the session has no anchor.
    """
    session = store.get_session(session_id)
    points = []
    for row in store.list_motion_rows(session_id):
        lat, lon = row['latitude'], row['longitude']
        if session.anchor is not None:
            position = project(session.anchor, Vector3(row['x'], row['y'], row['z']))
            lat, lon = position.latitude, position.longitude
        points.append({
            'elapsed': row['elapsed'],
            'timestamp': row['timestamp'],
            'x': row['x'],
            'y': row['y'],
            'z': row['z'],
            'lat': lat,
            'lon': lon,
        })
    return points


def session_stats(store, session_id) -> Dict:
    session = store.get_session(session_id)
    points = track_points(store, session_id)

    stats = {
        'samples': len(points),
        'duration_s': points[-1]['elapsed'] if points else 0.0,
        'final_displacement_m': 0.0,
        'max_displacement_m': 0.0,
        'path_length_m': 0.0,
    }
    if not points:
        return stats

    final = Vector3(points[-1]['x'], points[-1]['y'], 0.0)
    stats['final_displacement_m'] = final.magnitude()
    stats['max_displacement_m'] = max(Vector3(p['x'], p['y'], 0.0).magnitude() for p in points)

    if session.anchor is not None:
        positions = [LatLng(p['lat'], p['lon']) for p in points]
        stats['path_length_m'] = path_length(positions)
    else:
        planar = [Vector3(p['x'], p['y'], 0.0) for p in points]
        stats['path_length_m'] = sum((b - a).magnitude() for a, b in zip(planar, planar[1:]))
    return stats


def session_to_dict(store, session_id, config=None) -> Dict:
    session = store.get_session(session_id)
    return {
        'version': EXPORT_VERSION,
        'session': session.to_dict(),
        'start_time': _iso(session.start_time),
        'end_time': _iso(session.end_time),
        'config': None if config is None else config.to_dict(),
        'stats': session_stats(store, session_id),
        'points': track_points(store, session_id),
    }


def save_session_json(store, session_id, path, config=None, indent=False) -> Path:
    """
    Write a session export. A path ending in .gz is gzip-compressed.

    Written to a .tmp file first and renamed, so a crash never leaves a
    half-written export behind.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = session_to_dict(store, session_id, config=config)
    payload = orjson.dumps(data, option=orjson.OPT_INDENT_2 if indent else 0)

    temp_path = path.with_name(path.name + '.tmp')
    if path.suffix == '.gz':
        with gzip.open(temp_path, 'wb') as f:
            f.write(payload)
    else:
        temp_path.write_bytes(payload)
    os.replace(temp_path, path)

    logger.info(f"Session {session_id} exported to {path} ({len(data['points'])} points)")
    return path


def load_session_json(path) -> Dict:
    path = Path(path)
    opener = gzip.open if path.suffix == '.gz' else open
    with opener(path, 'rb') as f:
        return orjson.loads(f.read())


def generate_gpx(store, session_id) -> str:
    """GPX 1.1 track of the projected path. Empty track if the session has no anchor."""
    session = store.get_session(session_id)
    points = track_points(store, session_id)
    start_iso = _iso(session.start_time)

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<gpx version="1.1" creator="path_tracker" xmlns="http://www.topografix.com/GPX/1/1">',
        '  <metadata>',
        f'    <name>Session {session.id}</name>',
        f'    <time>{start_iso}</time>',
        '  </metadata>',
        '  <trk>',
        f'    <name>Session {session.id} dead reckoning</name>',
        '    <trkseg>',
    ]
    for pt in points:
        if pt['lat'] is None or pt['lon'] is None:
            continue
        lines.append(f'      <trkpt lat="{pt["lat"]:.8f}" lon="{pt["lon"]:.8f}">')
        # Trackpoint time is wall clock: session start + elapsed
        lines.append(f'        <time>{_iso(session.start_time + pt["elapsed"])}</time>')
        lines.append('      </trkpt>')
    lines.extend([
        '    </trkseg>',
        '  </trk>',
        '</gpx>',
        '',
    ])
    return '\n'.join(lines)


def save_gpx(store, session_id, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_gpx(store, session_id), encoding='utf-8')
    return path


def motion_dataframe(store, session_id) -> pd.DataFrame:
    columns = ['elapsed', 'timestamp', 'x', 'y', 'z', 'lat', 'lon']
    return pd.DataFrame(track_points(store, session_id), columns=columns)


def save_session_csv(store, session_id, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    motion_dataframe(store, session_id).to_csv(path, index=False)
    return path
