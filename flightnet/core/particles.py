"""
Particle store for the flight network simulation.

Turns the dataset (airport nodes + flight edges) into simulatable state:
- one mutable Particle per airport with non-zero flight volume
- one Link per flight route, resolved once to integer particle indices

Initial positions follow a phyllotaxis spiral around the canvas center so
no two particles start on top of each other.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from flightnet.errors import DuplicateNodeError, InvalidWeightError, MissingNodeError


INITIAL_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


@dataclass(slots=True, frozen=True)
class Node:
    """
    An airport as delivered by the dataset.

    Attributes:
        id: Unique key (IATA code)
        label: Display name
        category: Classification tag (state), used for coloring
        geo_lat, geo_lon: Geographic anchor in degrees
        weight: Aggregate flight volume through this airport
    """
    id: str
    label: str = ""
    category: str = ""
    geo_lat: float = 0.0
    geo_lon: float = 0.0
    weight: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Node":
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", "")),
            category=str(data.get("category", "")),
            geo_lat=float(data.get("geo_lat", data.get("geoLat", 0.0))),
            geo_lon=float(data.get("geo_lon", data.get("geoLon", 0.0))),
            weight=float(data.get("weight", 0.0)),
        )


@dataclass(slots=True, frozen=True)
class Edge:
    """A flight route between two airports, weighted by flight count."""
    source: str
    target: str
    weight: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Edge":
        source = data.get("source", data.get("sourceId"))
        target = data.get("target", data.get("destination", data.get("destinationId")))
        if source is None or target is None:
            raise KeyError("edge needs source and target/destination")
        return cls(source=str(source), target=str(target), weight=float(data.get("weight", 0.0)))


@dataclass(slots=True)
class Particle:
    index: int
    id: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    fx: float | None = None
    fy: float | None = None

    @property
    def pinned(self) -> bool:
        return self.fx is not None or self.fy is not None

    def pin(self, x: float, y: float) -> None:
        self.fx = float(x)
        self.fy = float(y)

    def unpin(self) -> None:
        self.fx = None
        self.fy = None


@dataclass(slots=True, frozen=True)
class Link:
    """Resolved edge: endpoints are indices into the particle arena."""
    index: int
    source: int
    target: int
    weight: float = 0.0


def spiral_position(i: int, *, center: tuple[float, float], initial_radius: float) -> tuple[float, float]:
    """
    Deterministic starting slot for particle i.

    Args:
        i: Particle index
        center: (cx, cy) the spiral is centered on
        initial_radius: Radius scale of the spiral

    Returns:
        (x, y) position
    """
    r = initial_radius * math.sqrt(0.5 + i)
    a = i * INITIAL_ANGLE
    return center[0] + r * math.cos(a), center[1] + r * math.sin(a)


def initialize_particles(
    nodes: Iterable[Node],
    *,
    center: tuple[float, float] = (0.0, 0.0),
    initial_radius: float = 10.0,
) -> list[Particle]:
    """Create one particle per node, placed on the spiral with zero velocity."""
    particles: list[Particle] = []
    for i, node in enumerate(nodes):
        x, y = spiral_position(i, center=center, initial_radius=initial_radius)
        particles.append(Particle(index=i, id=node.id, x=x, y=y))
    return particles


def _check_finite(name: str, value: float, where: str) -> None:
    if not math.isfinite(value):
        raise InvalidWeightError(name, value, where=where)


@dataclass
class ParticleStore:
    """
    Arena of particles plus the resolved links between them.

    Attributes:
        nodes: Node records, aligned with particles
        particles: Mutable physical state, particles[i].index == i
        links: Resolved edges
        degree: Number of link endpoints per particle
    """
    nodes: list[Node]
    particles: list[Particle]
    links: list[Link]
    degree: list[int] = field(default_factory=list)
    _index: dict[str, int] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if not self._index:
            self._index = {p.id: p.index for p in self.particles}
        if not self.degree:
            self.degree = [0] * len(self.particles)
            for link in self.links:
                self.degree[link.source] += 1
                self.degree[link.target] += 1

    @classmethod
    def build(
        cls,
        nodes: Iterable[Node | Mapping[str, Any]],
        edges: Iterable[Edge | Mapping[str, Any]],
        *,
        center: tuple[float, float] = (0.0, 0.0),
        initial_radius: float = 10.0,
    ) -> "ParticleStore":
        """
        Build the store from raw node and edge records.

        Nodes with zero flight volume are dropped. Every edge must reference
        a kept node, otherwise MissingNodeError is raised; dropping the edge
        would silently change the link degrees.
        """
        kept: list[Node] = []
        seen: set[str] = set()
        for raw in nodes:
            node = raw if isinstance(raw, Node) else Node.from_dict(raw)
            if node.id in seen:
                raise DuplicateNodeError(node.id)
            seen.add(node.id)
            _check_finite("weight", node.weight, node.id)
            _check_finite("geo_lat", node.geo_lat, node.id)
            _check_finite("geo_lon", node.geo_lon, node.id)
            if node.weight < 0.0:
                raise InvalidWeightError("weight", node.weight, where=node.id)
            if node.weight == 0.0:
                continue
            kept.append(node)

        particles = initialize_particles(kept, center=center, initial_radius=initial_radius)
        index = {p.id: p.index for p in particles}

        links: list[Link] = []
        for k, raw in enumerate(edges):
            edge = raw if isinstance(raw, Edge) else Edge.from_dict(raw)
            _check_finite("flight count", edge.weight, f"edge {k}")
            if edge.weight < 0.0:
                raise InvalidWeightError("flight count", edge.weight, where=f"edge {k}")
            try:
                s = index[edge.source]
            except KeyError:
                raise MissingNodeError(edge.source, edge_index=k) from None
            try:
                t = index[edge.target]
            except KeyError:
                raise MissingNodeError(edge.target, edge_index=k) from None
            links.append(Link(index=k, source=s, target=t, weight=edge.weight))

        return cls(nodes=kept, particles=particles, links=links, _index=index)

    def __len__(self) -> int:
        return len(self.particles)

    def index_of(self, node_id: str) -> int:
        try:
            return self._index[node_id]
        except KeyError:
            raise MissingNodeError(node_id) from None

    def get(self, node_id: str) -> Particle:
        return self.particles[self.index_of(node_id)]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def endpoints(self, link: Link) -> tuple[Particle, Particle]:
        return self.particles[link.source], self.particles[link.target]
