"""
Path Tracker command line.

Replays recorded sensor CSVs into sessions and inspects, exports, plots or
serves the session database.

    path-tracker replay drive.csv --lat 52.52 --lon 13.405
    path-tracker sessions
    path-tracker show 3
    path-tracker export 3 --format gpx
    path-tracker plot 3
    path-tracker delete 3
    path-tracker recover
    path-tracker serve --port 8000
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .config import INTEGRATION_SCHEMES, PipelineConfig
from .errors import PathTrackerError
from .export import save_gpx, save_session_csv, save_session_json, session_stats
from .models import AnchorFix
from .recorder import SessionRecorder
from .sensors import ReplaySensorSource, TermuxFixSource
from .store import SessionStore, default_db_path

logger = logging.getLogger("path_tracker")


def build_config(args: argparse.Namespace) -> PipelineConfig:
    config = PipelineConfig.from_file(args.config) if args.config else PipelineConfig()
    overrides = {}
    for name in ('axis_order', 'gravity_alpha', 'rotation_rate_threshold', 'deadband', 'max_dt', 'integration'):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    return config.replace(**overrides) if overrides else config


def cmd_replay(args: argparse.Namespace, store: SessionStore) -> int:
    config = build_config(args)
    source = ReplaySensorSource.from_csv(args.csv, time_unit=args.time_unit, interval_ms=config.interval_ms)
    if not len(source):
        print(f"⚠ No samples in {args.csv}")
        return 1

    if args.lat is not None and args.lon is not None:
        anchor = AnchorFix(args.lat, args.lon)
        fix_source = None
    elif args.termux_fix:
        anchor = None
        fix_source = TermuxFixSource()
    else:
        anchor = None
        fix_source = None

    recorder = SessionRecorder(store, config, fix_source=fix_source)
    try:
        session = recorder.record(source, anchor=anchor)
    finally:
        recorder.close()

    stats = session_stats(store, session.id)
    print(f"✓ Session {session.id} recorded from {args.csv}")
    print(f"  Samples: {len(source)} in, {stats['samples']} stored, "
          f"{recorder.pipeline.state.dropped_ticks} ticks dropped")
    print(f"  Final displacement: {stats['final_displacement_m']:.2f} m, "
          f"path length {stats['path_length_m']:.2f} m")

    if args.export:
        path = save_session_json(store, session.id, args.export, config=config)
        print(f"  Exported: {path}")
    return 0


def cmd_sessions(args: argparse.Namespace, store: SessionStore) -> int:
    sessions = store.list_sessions()
    if not sessions:
        print("No sessions recorded")
        return 0
    print(f"{'ID':>5}  {'START':<20} {'DURATION':>10} {'ROWS':>7}  ANCHOR")
    for s in sessions:
        start = datetime.fromtimestamp(s.start_time).strftime("%Y-%m-%d %H:%M:%S")
        duration = "open" if s.is_open else f"{s.duration:.1f}s"
        anchor = "-" if s.anchor is None else f"{s.anchor.latitude:.6f},{s.anchor.longitude:.6f}"
        print(f"{s.id:>5}  {start:<20} {duration:>10} {store.count_motion(s.id):>7}  {anchor}")
    return 0


def cmd_show(args: argparse.Namespace, store: SessionStore) -> int:
    session = store.get_session(args.session_id)
    stats = session_stats(store, session.id)
    print(f"Session {session.id} ({'open' if session.is_open else 'closed'})")
    for key, value in stats.items():
        print(f"  {key}: {value:.2f}" if isinstance(value, float) else f"  {key}: {value}")
    return 0


def cmd_export(args: argparse.Namespace, store: SessionStore) -> int:
    session_id = args.session_id
    suffix = {'json': '.json.gz', 'gpx': '.gpx', 'csv': '.csv'}[args.format]
    output = args.output or Path(f"session_{session_id}{suffix}")

    if args.format == 'json':
        config = PipelineConfig.from_file(args.config) if args.config else None
        save_session_json(store, session_id, output, config=config)
    elif args.format == 'gpx':
        save_gpx(store, session_id, output)
    else:
        save_session_csv(store, session_id, output)
    print(f"✓ Session {session_id} exported to {output}")
    return 0


def cmd_recover(args: argparse.Namespace, store: SessionStore) -> int:
    closed = store.close_stale_sessions()
    if not closed:
        print("No open sessions")
    for session_id in closed:
        print(f"✓ Session {session_id} closed")
    return 0


def cmd_delete(args: argparse.Namespace, store: SessionStore) -> int:
    store.delete_session(args.session_id)
    print(f"✓ Session {args.session_id} deleted")
    return 0


def cmd_plot(args: argparse.Namespace, store: SessionStore) -> int:
    from .plotting import plot_session

    output = args.output or Path(f"session_{args.session_id}.png")
    plot_session(store, args.session_id, output)
    print(f"✓ Plot saved to {output}")
    return 0


def cmd_serve(args: argparse.Namespace, store: SessionStore) -> int:
    import uvicorn

    from .dashboard import create_app

    app = create_app(store)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="path-tracker", description="Inertial dead-reckoning path tracker")
    parser.add_argument("--db", type=Path, help=f"Session database (default: {default_db_path()})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Record a session from a sensor CSV")
    replay.add_argument("csv", type=Path, help="CSV with timestamp, ax, ay, az[, gx, gy, gz, alpha, beta, gamma]")
    replay.add_argument("--lat", type=float, help="Anchor latitude (degrees)")
    replay.add_argument("--lon", type=float, help="Anchor longitude (degrees)")
    replay.add_argument("--termux-fix", action="store_true", help="Acquire the anchor with termux-location")
    replay.add_argument("--time-unit", choices=("s", "ms"), default="s", help="Unit of the timestamp column")
    replay.add_argument("--export", type=Path, help="Also export the session to this JSON path")
    replay.add_argument("--config", type=Path, help="JSON config (or a previous export) to load settings from")
    replay.add_argument("--axis-order", dest="axis_order", help="Rotation order, e.g. ZXY")
    replay.add_argument("--alpha", dest="gravity_alpha", type=float, help="Gravity low-pass alpha")
    replay.add_argument("--rotation-threshold", dest="rotation_rate_threshold", type=float,
                        help="Rotation-rate gate (rad/s)")
    replay.add_argument("--deadband", type=float, help="Linear acceleration deadband (m/s²)")
    replay.add_argument("--max-dt", dest="max_dt", type=float, help="Largest usable sample gap (s)")
    replay.add_argument("--integration", choices=INTEGRATION_SCHEMES, help="Integration scheme")
    replay.set_defaults(func=cmd_replay)

    sessions = sub.add_parser("sessions", help="List sessions")
    sessions.set_defaults(func=cmd_sessions)

    show = sub.add_parser("show", help="Show session statistics")
    show.add_argument("session_id", type=int)
    show.set_defaults(func=cmd_show)

    export = sub.add_parser("export", help="Export a session")
    export.add_argument("session_id", type=int)
    export.add_argument("--format", choices=("json", "gpx", "csv"), default="json")
    export.add_argument("--output", type=Path)
    export.add_argument("--config", type=Path, help="Config to embed in a JSON export")
    export.set_defaults(func=cmd_export)

    delete = sub.add_parser("delete", help="Delete a session and its motion rows")
    delete.add_argument("session_id", type=int)
    delete.set_defaults(func=cmd_delete)

    recover = sub.add_parser("recover", help="Close sessions left open by a crash")
    recover.set_defaults(func=cmd_recover)

    plot = sub.add_parser("plot", help="Render a session PNG")
    plot.add_argument("session_id", type=int)
    plot.add_argument("--output", type=Path)
    plot.set_defaults(func=cmd_plot)

    serve = sub.add_parser("serve", help="Run the dashboard API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        store = SessionStore(args.db)
    except (sqlite3.Error, OSError) as e:
        print(f"⚠ Cannot open session database: {e}", file=sys.stderr)
        return 2

    logger.debug(f"Session database: {store.db_path}")
    try:
        return args.func(args, store)
    except (PathTrackerError, ValueError) as e:
        print(f"⚠ {e}", file=sys.stderr)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
