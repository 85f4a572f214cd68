from __future__ import annotations

import math
import random
import sys
import time
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

import numpy as np

from flightnet.core.particles import Edge, Node, Particle, ParticleStore, spiral_position
from flightnet.params import SimParams
from flightnet.physics.forces import (
    FORCE_ORDER,
    MODE_FORCES,
    Force,
    ForceKind,
    LayoutMode,
    build_forces,
)
from flightnet.utils.config_groups import COOLING_KEYS, forces_affected_by, is_anchor_related
from flightnet.utils.scales import Projection, geo_projection


class SimState(Enum):
    COOLING = "cooling"  # alpha above target, layout settling
    RESTING = "resting"  # negligible energy, forces skipped
    REHEATED = "reheated"  # target held at/above alpha by a drag or mode switch


@dataclass(slots=True, frozen=True)
class NodePosition:
    id: str
    x: float
    y: float


@dataclass(slots=True, frozen=True)
class LinkSegment:
    source: str
    target: str
    weight: float
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Positions handed to the renderer after a tick."""
    tick: int
    alpha: float
    state: SimState
    nodes: tuple[NodePosition, ...]
    links: tuple[LinkSegment, ...]

    def position(self, node_id: str) -> tuple[float, float]:
        for n in self.nodes:
            if n.id == node_id:
                return n.x, n.y
        raise KeyError(node_id)

    def as_array(self) -> np.ndarray:
        """(N, 2) float array of node positions, in particle order."""
        out = np.empty((len(self.nodes), 2), dtype=np.float64)
        for i, n in enumerate(self.nodes):
            out[i, 0] = n.x
            out[i, 1] = n.y
        return out

    def centroid(self) -> tuple[float, float]:
        if not self.nodes:
            return 0.0, 0.0
        arr = self.as_array()
        cx, cy = arr.mean(axis=0)
        return float(cx), float(cy)


TickCallback = Callable[[Snapshot], None]


class Simulation:
    """
    Force-directed layout of the airport network.

    Owns the particle arena, the force modules, the active force set and
    the cooling state (alpha). It owns no timer: a host frame clock (or a
    test) calls tick() once per frame.
    """

    def __init__(
        self,
        nodes: Iterable[Node | Mapping[str, Any]],
        edges: Iterable[Edge | Mapping[str, Any]],
        params: SimParams | None = None,
        *,
        project_x: Projection | None = None,
        project_y: Projection | None = None,
        on_tick: TickCallback | None = None,
    ) -> None:
        # private copy; _applied is what the live forces were built from
        self.params = replace(params if params is not None else SimParams()).clamp()
        self._applied = replace(self.params)
        self.on_tick = on_tick
        self._project_x = project_x
        self._project_y = project_y

        # particles are built once and live as long as the simulation
        self.store = ParticleStore.build(
            nodes,
            edges,
            center=self.params.center,
            initial_radius=self.params.initial_radius,
        )
        self.anchors: list[tuple[float, float]] = []
        self.forces: dict[ForceKind, Force] = {}
        self.active_forces: tuple[ForceKind, ...] = ()
        self.mode = LayoutMode(self.params.layout_mode)
        self.last_force_ms: dict[ForceKind, float] = {}
        self.tick_count = 0
        self.alpha = 1.0
        self.alpha_min = 0.001
        self.alpha_decay = 0.0
        self.alpha_target = 0.0
        self.velocity_decay = 0.4

        self.reset()

    def reset(self) -> None:
        """
        Restart the layout from scratch on the same particles.

        Particles go back to their spiral slots at rest and unpinned; the
        Particle objects themselves are kept, so references held by a drag
        controller or a renderer stay valid.
        """
        p = self.params.clamp()
        self._applied = replace(p)
        self._rng = random.Random(p.seed)
        for pt in self.store.particles:
            pt.x, pt.y = spiral_position(pt.index, center=p.center, initial_radius=p.initial_radius)
            pt.vx = pt.vy = 0.0
            pt.unpin()
        self.anchors = self._compute_anchors()
        self.forces = build_forces(self.store, p, anchors=self.anchors, rng=self._rng)
        self.last_force_ms = {}
        self.tick_count = 0

        self.alpha = p.alpha
        self.alpha_min = p.alpha_min
        self.alpha_decay = p.alpha_decay
        self.alpha_target = p.alpha_target
        self.velocity_decay = p.velocity_decay
        self.set_mode(p.layout_mode)

    def _compute_anchors(self) -> list[tuple[float, float]]:
        default_x, default_y = geo_projection(self.params)
        px = self._project_x or default_x
        py = self._project_y or default_y
        return [(float(px(n.geo_lon)), float(py(n.geo_lat))) for n in self.store.nodes]

    # ------------------------------------------------------------------
    # state access
    # ------------------------------------------------------------------

    @property
    def particles(self) -> list[Particle]:
        return self.store.particles

    def particle(self, node_id: str) -> Particle:
        """Particle for an airport id; raises MissingNodeError if unknown."""
        return self.store.get(node_id)

    @property
    def state(self) -> SimState:
        if self.alpha < self.alpha_min and self.alpha_target < self.alpha_min:
            return SimState.RESTING
        if self.alpha_target >= self.alpha_min and self.alpha <= self.alpha_target:
            return SimState.REHEATED
        return SimState.COOLING

    def set_forces(self, kinds: Iterable[ForceKind]) -> tuple[ForceKind, ...]:
        """Replace the active force set; order is always FORCE_ORDER."""
        wanted = set()
        for kind in kinds:
            if not isinstance(kind, ForceKind):
                raise TypeError(f"expected ForceKind, got {kind!r}")
            wanted.add(kind)
        self.active_forces = tuple(k for k in FORCE_ORDER if k in wanted)
        return self.active_forces

    def set_mode(self, mode: LayoutMode | str) -> tuple[ForceKind, ...]:
        """Activate the force set of a layout mode; alpha is left alone."""
        self.mode = LayoutMode(mode)
        return self.set_forces(MODE_FORCES[self.mode])

    def restart(self) -> "Simulation":
        """Re-heat: lift alpha to at least alpha_target so forces act again."""
        if self.alpha < self.alpha_target:
            self.alpha = self.alpha_target
        return self

    def find(self, x: float, y: float, radius: float | None = None) -> Particle | None:
        """Nearest particle to (x, y), optionally within radius."""
        best: Particle | None = None
        best_d2 = math.inf if radius is None else radius * radius
        for p in self.store.particles:
            dx = x - p.x
            dy = y - p.y
            d2 = dx * dx + dy * dy
            if d2 < best_d2:
                best = p
                best_d2 = d2
        return best

    def kinetic_energy(self) -> float:
        return sum((p.vx * p.vx) + (p.vy * p.vy) for p in self.store.particles) * 0.5

    # ------------------------------------------------------------------
    # stepping
    # ------------------------------------------------------------------

    def tick(self, iterations: int = 1) -> Snapshot:
        """
        Advance the layout by one or more steps.

        Each step decays alpha, applies the active forces (skipped while
        resting), integrates velocities and positions, then hands a snapshot
        to on_tick.

        Args:
            iterations: Number of steps to run; 0 only takes a snapshot.

        Returns:
            Snapshot after the last step.
        """
        iterations = int(iterations)
        if iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {iterations}")
        snap: Snapshot | None = None
        for _ in range(iterations):
            self._step()
            if self.on_tick is not None:
                snap = self.snapshot()
                self.on_tick(snap)
        return snap if snap is not None else self.snapshot()

    def _step(self) -> None:
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self.tick_count += 1
        particles = self.store.particles

        self._sanitize()

        if self.state is not SimState.RESTING:
            for kind in self.active_forces:
                t0 = time.perf_counter()
                try:
                    self.forces[kind].apply(particles, self.alpha)
                except ArithmeticError as exc:
                    print(f"[sim] {kind.value} force skipped on tick {self.tick_count}: {exc}", file=sys.stderr)
                self.last_force_ms[kind] = (time.perf_counter() - t0) * 1000.0

        self._integrate(particles)
        self._sanitize()

    def _integrate(self, particles: list[Particle]) -> None:
        keep = 1.0 - self.velocity_decay
        for pt in particles:
            if pt.fx is None:
                pt.vx *= keep
                pt.x += pt.vx
            else:
                pt.x = pt.fx
                pt.vx = 0.0
            if pt.fy is None:
                pt.vy *= keep
                pt.y += pt.vy
            else:
                pt.y = pt.fy
                pt.vy = 0.0

    def _sanitize(self) -> int:
        """Reset non-finite state and clamp runaway values; returns particles touched."""
        p = self.params
        limit = p.max_coordinate
        fixed = 0
        for pt in self.store.particles:
            if not (math.isfinite(pt.x) and math.isfinite(pt.y)):
                pt.x, pt.y = spiral_position(pt.index, center=p.center, initial_radius=p.initial_radius)
                pt.vx = pt.vy = 0.0
                fixed += 1
            elif not (math.isfinite(pt.vx) and math.isfinite(pt.vy)):
                pt.vx = pt.vy = 0.0
                fixed += 1
            if pt.fx is not None and not math.isfinite(pt.fx):
                pt.fx = None
                fixed += 1
            if pt.fy is not None and not math.isfinite(pt.fy):
                pt.fy = None
                fixed += 1

            # pinned axes sit exactly on their pin, wherever it is
            if pt.fx is None:
                pt.x = max(-limit, min(limit, pt.x))
            if pt.fy is None:
                pt.y = max(-limit, min(limit, pt.y))
            pt.vx = max(-limit, min(limit, pt.vx))
            pt.vy = max(-limit, min(limit, pt.vy))

        if fixed:
            print(f"[sim] tick {self.tick_count}: recovered {fixed} non-finite value(s)", file=sys.stderr)
        return fixed

    def snapshot(self) -> Snapshot:
        particles = self.store.particles
        nodes = tuple(NodePosition(pt.id, pt.x, pt.y) for pt in particles)
        links = []
        for link in self.store.links:
            s = particles[link.source]
            t = particles[link.target]
            links.append(LinkSegment(s.id, t.id, link.weight, s.x, s.y, t.x, t.y))
        return Snapshot(
            tick=self.tick_count,
            alpha=self.alpha,
            state=self.state,
            nodes=nodes,
            links=tuple(links),
        )

    # ------------------------------------------------------------------
    # configuration
    # ------------------------------------------------------------------

    def set_params(self, params: SimParams) -> set[str]:
        """
        Apply new parameters.

        The particles are never replaced. Anchor keys re-project the
        geographic anchors; force keys rebuild only the affected force
        modules; cooling keys are copied onto the live alpha state. Editing
        sim.params in place and passing it back works: changes are measured
        against the parameters last applied.

        Returns:
            Names of the parameters that changed.
        """
        params = replace(params).clamp()
        changed = {
            f.name for f in fields(params)
            if getattr(params, f.name) != getattr(self._applied, f.name)
        }
        self.params = params
        self._applied = replace(params)
        if not changed:
            return changed

        if "seed" in changed:
            self._rng = random.Random(params.seed)
        if any(is_anchor_related(k) for k in changed):
            self.anchors = self._compute_anchors()

        affected = forces_affected_by(changed)
        if affected:
            rebuilt = build_forces(self.store, params, anchors=self.anchors, rng=self._rng)
            for kind in affected:
                self.forces[kind] = rebuilt[kind]

        if changed & COOLING_KEYS:
            self.alpha_min = params.alpha_min
            self.alpha_decay = params.alpha_decay
            self.alpha_target = params.alpha_target
            self.velocity_decay = params.velocity_decay

        if "layout_mode" in changed:
            self.set_mode(params.layout_mode)
        return changed

    def validate_state(self) -> list[str]:
        issues: list[str] = []
        for pt in self.store.particles:
            if not (
                math.isfinite(pt.x)
                and math.isfinite(pt.y)
                and math.isfinite(pt.vx)
                and math.isfinite(pt.vy)
            ):
                issues.append(f"particle {pt.id} has non-finite position/velocity")
                continue
            if pt.fx is not None and pt.x != pt.fx:
                issues.append(f"particle {pt.id} is not at its x pin")
            if pt.fy is not None and pt.y != pt.fy:
                issues.append(f"particle {pt.id} is not at its y pin")
        return issues
