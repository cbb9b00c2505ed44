"""
Offline session plots.

One PNG per session with three panels: XY displacement path, projected
lat/lon track (when the session has an anchor) and displacement components
over elapsed time.
"""

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from .export import motion_dataframe  # noqa: E402

logger = logging.getLogger(__name__)


def plot_session(store, session_id, output_file):
    """
    Render a session overview PNG.

    Returns:
        Path: the written file
    """
    session = store.get_session(session_id)
    df = motion_dataframe(store, session_id)
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    fig, axes = plt.subplots(1, 3, figsize=(18, 6))
    fig.suptitle(f"Session {session.id} - dead reckoning", fontsize=14, fontweight='bold')

    # Plot 1: XY path
    ax = axes[0]
    if not df.empty:
        ax.plot(df['x'], df['y'], color='tab:blue', linewidth=2, label='Path')
        ax.scatter([df['x'].iloc[0]], [df['y'].iloc[0]], marker='o', s=80, color='green',
                   edgecolors='black', zorder=5, label='Start')
        ax.scatter([df['x'].iloc[-1]], [df['y'].iloc[-1]], marker='s', s=80, color='red',
                   edgecolors='black', zorder=5, label='End')
        ax.legend()
    ax.set_title("Displacement (m)")
    ax.set_xlabel("East x (m)")
    ax.set_ylabel("North y (m)")
    ax.set_aspect('equal', adjustable='datalim')
    ax.grid(True, alpha=0.3)

    # Plot 2: projected track
    ax = axes[1]
    track = df.dropna(subset=['lat', 'lon'])
    if not track.empty:
        ax.plot(track['lon'], track['lat'], color='tab:red', linewidth=2)
        if session.anchor is not None:
            ax.scatter([session.anchor.longitude], [session.anchor.latitude], marker='*', s=150,
                       color='gold', edgecolors='black', zorder=5, label='Anchor')
            ax.legend()
    else:
        ax.text(0.5, 0.5, "No anchor fix", ha='center', va='center', transform=ax.transAxes)
    ax.set_title("Projected track")
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.grid(True, alpha=0.3)

    # Plot 3: components over time
    ax = axes[2]
    if not df.empty:
        for column, color in (('x', 'tomato'), ('y', 'blue'), ('z', 'green')):
            ax.plot(df['elapsed'], df[column], color=color, label=column)
        distance = np.sqrt(df['x'] ** 2 + df['y'] ** 2)
        ax.plot(df['elapsed'], distance, color='black', linestyle='--', label='|xy|')
        ax.legend()
    ax.set_title("Displacement over time")
    ax.set_xlabel("Elapsed (s)")
    ax.set_ylabel("m")
    ax.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(output_file, dpi=100)
    plt.close(fig)

    logger.info(f"Session {session_id} plot written to {output_file}")
    return output_file
