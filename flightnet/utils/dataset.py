"""
Dataset loading for the airport network.

Reads the two CSV inputs and turns them into the node/edge records the
simulation consumes:
- airports: iata,name,city,state,country,latitude,longitude
- flights:  origin,destination,count

Usage:
    >>> from flightnet.utils.dataset import load_dataset
    >>> data = load_dataset("airports.csv", "flights.csv")
    >>> sim = Simulation(data.nodes, data.edges)
"""

from __future__ import annotations

import csv
import math
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from flightnet.core.particles import Edge, Node
from flightnet.errors import InvalidWeightError


@dataclass(slots=True, frozen=True)
class Airport:
    iata: str
    name: str
    city: str
    state: str
    country: str
    latitude: float
    longitude: float


@dataclass(slots=True, frozen=True)
class Flight:
    origin: str
    destination: str
    count: float


@dataclass
class Dataset:
    """Simulation input built from the CSV files."""
    nodes: list[Node]
    edges: list[Edge]
    categories: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)


def _number(raw: object, name: str, where: str, *, non_negative: bool = False) -> float:
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidWeightError(name, raw, where=where) from None
    if not math.isfinite(value) or (non_negative and value < 0.0):
        raise InvalidWeightError(name, raw, where=where)
    return value


def read_airports(path: str | Path) -> list[Airport]:
    airports: list[Airport] = []
    with open(path, newline="", encoding="utf-8") as f:
        for line, row in enumerate(csv.DictReader(f), start=2):
            where = f"{Path(path).name}:{line}"
            airports.append(Airport(
                iata=(row.get("iata") or "").strip(),
                name=(row.get("name") or "").strip(),
                city=(row.get("city") or "").strip(),
                state=(row.get("state") or "").strip(),
                country=(row.get("country") or "").strip(),
                latitude=_number(row.get("latitude"), "latitude", where),
                longitude=_number(row.get("longitude"), "longitude", where),
            ))
    return airports


def read_flights(path: str | Path) -> list[Flight]:
    flights: list[Flight] = []
    with open(path, newline="", encoding="utf-8") as f:
        for line, row in enumerate(csv.DictReader(f), start=2):
            where = f"{Path(path).name}:{line}"
            flights.append(Flight(
                origin=(row.get("origin") or "").strip(),
                destination=(row.get("destination") or "").strip(),
                count=_number(row.get("count"), "flight count", where, non_negative=True),
            ))
    return flights


def aggregate_flights(flights: Iterable[Flight]) -> dict[str, float]:
    """Total flights through each airport (as origin or destination)."""
    totals: dict[str, float] = defaultdict(float)
    for fl in flights:
        totals[fl.origin] += fl.count
        totals[fl.destination] += fl.count
    return dict(totals)


def build_dataset(airports: Iterable[Airport], flights: Iterable[Flight]) -> Dataset:
    """
    Join airports and flights into simulation input.

    Airports without any flight volume are dropped: they would have no link
    and nothing to anchor them in the network layout.
    """
    flights = list(flights)
    totals = aggregate_flights(flights)

    nodes: list[Node] = []
    dropped: list[str] = []
    categories: list[str] = []
    for ap in airports:
        if ap.state and ap.state not in categories:
            categories.append(ap.state)
        total = totals.get(ap.iata, 0.0)
        if total <= 0.0:
            dropped.append(ap.iata)
            continue
        nodes.append(Node(
            id=ap.iata,
            label=ap.name,
            category=ap.state,
            geo_lat=ap.latitude,
            geo_lon=ap.longitude,
            weight=total,
        ))

    edges = [Edge(source=fl.origin, target=fl.destination, weight=fl.count) for fl in flights]
    return Dataset(nodes=nodes, edges=edges, categories=categories, dropped=dropped)


def load_dataset(airports_path: str | Path, flights_path: str | Path, *, verbose: bool = False) -> Dataset:
    data = build_dataset(read_airports(airports_path), read_flights(flights_path))
    if verbose and data.dropped:
        print(f"[dataset] dropped {len(data.dropped)} airport(s) without flights", file=sys.stderr)
    return data
