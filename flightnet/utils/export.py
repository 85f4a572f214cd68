"""
Export utilities for simulation snapshots.

This module writes the per-tick output to disk:
- CSV: node positions (and optionally link segments)
- Summary: plain-text statistics about the layout

Usage:
    >>> from flightnet.utils.export import export_snapshot_csv
    >>> export_snapshot_csv(sim.snapshot(), "layout.csv")
"""

from __future__ import annotations

import csv
import math
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flightnet.core.sim import Simulation, Snapshot


@dataclass
class ExportStats:
    """Statistics from an export operation."""
    file_path: Path
    node_count: int
    link_count: int
    tick: int
    timestamp: str


def export_snapshot_csv(
    snapshot: "Snapshot",
    output_path: str | Path,
    *,
    include_links: bool = False,
) -> ExportStats:
    """
    Export node positions to a CSV file.

    Args:
        snapshot: Snapshot returned by Simulation.tick()
        output_path: Path to output CSV file
        include_links: Also write a second section with link segments

    Returns:
        ExportStats with export details
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().isoformat()
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([f"# flightnet export - {timestamp}"])
        writer.writerow([f"# tick {snapshot.tick} alpha {snapshot.alpha:.6f} state {snapshot.state.value}"])
        writer.writerow(["id", "x", "y"])
        for n in snapshot.nodes:
            writer.writerow([n.id, f"{n.x:.6f}", f"{n.y:.6f}"])

        if include_links:
            writer.writerow([])
            writer.writerow(["source", "target", "weight", "x1", "y1", "x2", "y2"])
            for s in snapshot.links:
                writer.writerow([
                    s.source,
                    s.target,
                    f"{s.weight:g}",
                    f"{s.x1:.6f}",
                    f"{s.y1:.6f}",
                    f"{s.x2:.6f}",
                    f"{s.y2:.6f}",
                ])

    return ExportStats(
        file_path=output_path,
        node_count=len(snapshot.nodes),
        link_count=len(snapshot.links) if include_links else 0,
        tick=snapshot.tick,
        timestamp=timestamp,
    )


def export_summary(sim: "Simulation", output_path: str | Path) -> Path:
    """
    Export summary statistics to a text file.

    Args:
        sim: Simulation to summarize
        output_path: Path to output file

    Returns:
        Path to the created file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    snap = sim.snapshot()
    cx, cy = snap.centroid()
    particles = sim.particles
    if particles:
        speeds = [math.hypot(p.vx, p.vy) for p in particles]
        avg_speed = sum(speeds) / len(speeds)
        max_speed = max(speeds)
    else:
        avg_speed = max_speed = 0.0
    lengths = [math.hypot(s.x2 - s.x1, s.y2 - s.y1) for s in snap.links]
    avg_len = sum(lengths) / len(lengths) if lengths else 0.0
    pinned = sum(1 for p in particles if p.pinned)

    with open(output_path, "w") as f:
        f.write("flightnet Layout Summary\n")
        f.write(f"Generated: {datetime.now().isoformat()}\n")
        f.write("\n")
        f.write("Graph:\n")
        f.write(f"  Airports: {len(particles)}\n")
        f.write(f"  Routes: {len(snap.links)}\n")
        f.write(f"  Pinned: {pinned}\n")
        f.write("\n")
        f.write("Cooling:\n")
        f.write(f"  Tick: {snap.tick}\n")
        f.write(f"  Alpha: {snap.alpha:.6f}\n")
        f.write(f"  State: {snap.state.value}\n")
        f.write(f"  Forces: {', '.join(k.value for k in sim.active_forces)}\n")
        f.write("\n")
        f.write("Centroid:\n")
        f.write(f"  X: {cx:.4f}\n")
        f.write(f"  Y: {cy:.4f}\n")
        f.write("\n")
        f.write("Motion:\n")
        f.write(f"  Average speed: {avg_speed:.4f}\n")
        f.write(f"  Max speed: {max_speed:.4f}\n")
        f.write(f"  Average route length: {avg_len:.4f}\n")

    return output_path
