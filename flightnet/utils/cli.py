#!/usr/bin/env python3
"""
Run the airport layout headless and export the result.

Usage:
    python -m flightnet.utils.cli airports.csv flights.csv --mode map --ticks 300 --out layout.csv
"""

from __future__ import annotations

import argparse
import sys

from flightnet.core.sim import Simulation
from flightnet.errors import FlightNetError
from flightnet.params import SimParams
from flightnet.physics.forces import LayoutMode
from flightnet.ui.layout import LayoutModeSwitch
from flightnet.utils.dataset import load_dataset
from flightnet.utils.export import export_snapshot_csv, export_summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute an airport network layout")
    parser.add_argument("airports", help="Airports CSV (iata,name,city,state,country,latitude,longitude)")
    parser.add_argument("flights", help="Flights CSV (origin,destination,count)")
    parser.add_argument("--mode", choices=[m.value for m in LayoutMode], default=None,
                        help="Layout mode (default: from params)")
    parser.add_argument("--ticks", "-t", type=int, default=300, help="Number of ticks to run")
    parser.add_argument("--params", "-p", default=None, help="JSON parameter file")
    parser.add_argument("--out", "-o", default=None, help="Write node positions to this CSV")
    parser.add_argument("--links", action="store_true", help="Include link segments in the CSV")
    parser.add_argument("--summary", default=None, help="Write a text summary to this file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    params = SimParams.load(args.params) if args.params else SimParams().clamp()
    for warning in params.validate():
        print(f"[params] {warning}", file=sys.stderr)

    try:
        data = load_dataset(args.airports, args.flights, verbose=True)
        sim = Simulation(data.nodes, data.edges, params)
    except (FlightNetError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.mode is not None and args.mode != params.layout_mode:
        LayoutModeSwitch(sim).set_mode(args.mode)

    snap = sim.tick(max(1, args.ticks))
    print(
        f"{len(snap.nodes)} airports, {len(snap.links)} routes, "
        f"tick {snap.tick}, alpha {snap.alpha:.4f} ({snap.state.value})"
    )

    if args.out:
        stats = export_snapshot_csv(snap, args.out, include_links=args.links)
        print(f"Exported {stats.node_count} positions to {stats.file_path}")
    if args.summary:
        path = export_summary(sim, args.summary)
        print(f"Summary written to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
