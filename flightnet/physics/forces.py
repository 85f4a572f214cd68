"""
Force modules for the flight network layout.

Every force adds velocity deltas to the particles in place; the simulation
sums them all before a single integration pass. Four kinds exist:
- many-body: pairwise repulsion, via Barnes-Hut (quadtree) or direct O(N²)
- link: spring along every flight route, softer around high-degree hubs
- center: translates the whole layout toward the canvas center
- position: weak spring toward each airport's projected geographic anchor

Example:
    >>> forces = build_forces(store, params, anchors=anchors, rng=random.Random(1))
    >>> forces[ForceKind.LINK].apply(store.particles, alpha=1.0)
"""

from __future__ import annotations

import math
import random
import time
from enum import Enum
from typing import TYPE_CHECKING, Sequence

import numpy as np

from flightnet.physics.quadtree import JIGGLE_SCALE, build_quadtree, jiggle

if TYPE_CHECKING:
    from flightnet.core.particles import Particle, ParticleStore
    from flightnet.params import SimParams


class ForceKind(Enum):
    MANY_BODY = "many_body"
    LINK = "link"
    CENTER = "center"
    POSITION = "position"


# Application order within a tick
FORCE_ORDER: tuple[ForceKind, ...] = (
    ForceKind.MANY_BODY,
    ForceKind.LINK,
    ForceKind.CENTER,
    ForceKind.POSITION,
)


def _distance_limits(params: "SimParams") -> tuple[float, float]:
    dmin2 = params.distance_min * params.distance_min
    dmax2 = params.distance_max * params.distance_max if params.distance_max > 0.0 else math.inf
    return dmin2, dmax2


def compute_repulsion_direct(
    xs: list[float],
    ys: list[float],
    masses: list[float],
    alpha: float,
    distance_min2: float = 1.0,
    distance_max2: float = math.inf,
) -> tuple[list[float], list[float]]:
    """
    Many-body velocity deltas by direct O(N²) summation (pure Python).

    This is the reference implementation for testing. Coincident pairs
    contribute nothing here instead of being jiggled.
    """
    n = len(xs)
    dvx = [0.0] * n
    dvy = [0.0] * n
    for i in range(n):
        xi, yi = xs[i], ys[i]
        ax = ay = 0.0
        for j in range(n):
            if i == j:
                continue
            dx = xs[j] - xi
            dy = ys[j] - yi
            l2 = dx * dx + dy * dy
            if l2 == 0.0 or l2 >= distance_max2:
                continue
            if l2 < distance_min2:
                l2 = math.sqrt(distance_min2 * l2)
            f = masses[j] * alpha / l2
            ax += dx * f
            ay += dy * f
        dvx[i] = ax
        dvy[i] = ay
    return dvx, dvy


class ManyBodySolver:
    """
    Abstract interface for many-body solvers.

    Subclasses implement different algorithms for the pairwise push.
    """

    def compute(
        self,
        xs: list[float],
        ys: list[float],
        masses: list[float],
        alpha: float,
        *,
        distance_min2: float,
        distance_max2: float,
        rng: random.Random,
    ) -> tuple[list[float], list[float]]:
        """
        Compute velocity deltas for all particles.

        Returns:
            (dvx, dvy) lists
        """
        raise NotImplementedError


class BarnesHutSolver(ManyBodySolver):
    """
    Quadtree-based solver.

    Approximates distant particle groups as single point masses,
    achieving O(N log N) complexity.

    Attributes:
        theta: Accuracy parameter (0 = exact, higher = faster but coarser)
    """

    def __init__(self, theta: float = 0.9):
        self.theta = theta
        self.last_build_time_ms: float | None = None
        self.last_traverse_time_ms: float | None = None

    def compute(
        self,
        xs: list[float],
        ys: list[float],
        masses: list[float],
        alpha: float,
        *,
        distance_min2: float = 1.0,
        distance_max2: float = math.inf,
        rng: random.Random,
    ) -> tuple[list[float], list[float]]:
        n = len(xs)
        if n == 0:
            return [], []

        # positions move every tick, so the tree is rebuilt every call
        t0 = time.perf_counter()
        root = build_quadtree(xs, ys)
        root.accumulate_mass(masses, xs, ys)
        self.last_build_time_ms = (time.perf_counter() - t0) * 1000.0

        t0 = time.perf_counter()
        dvx = [0.0] * n
        dvy = [0.0] * n
        for i in range(n):
            dvx[i], dvy[i] = root.accel_on(
                idx=i,
                xi=xs[i],
                yi=ys[i],
                alpha=alpha,
                theta=self.theta,
                xs=xs,
                ys=ys,
                masses=masses,
                distance_min2=distance_min2,
                distance_max2=distance_max2,
                rng=rng,
            )
        self.last_traverse_time_ms = (time.perf_counter() - t0) * 1000.0
        return dvx, dvy


class DirectSolver(ManyBodySolver):
    """
    Exact O(N²) solver using NumPy.

    Slower than Barnes-Hut for large graphs but free of approximation error.
    Uses tiled computation to bound memory use.
    """

    def __init__(self, tile_size: int = 256):
        self.tile_size = tile_size

    def compute(
        self,
        xs: list[float],
        ys: list[float],
        masses: list[float],
        alpha: float,
        *,
        distance_min2: float = 1.0,
        distance_max2: float = math.inf,
        rng: random.Random,
    ) -> tuple[list[float], list[float]]:
        n = len(xs)
        if n == 0:
            return [], []

        gen = np.random.default_rng(rng.randrange(2**32))
        pos = np.empty((n, 2), dtype=np.float64)
        pos[:, 0] = xs
        pos[:, 1] = ys
        m = np.asarray(masses, dtype=np.float64)

        acc = np.zeros((n, 2), dtype=np.float64)
        tile = max(1, self.tile_size)

        for i0 in range(0, n, tile):
            i1 = min(n, i0 + tile)
            pi = pos[i0:i1]
            acc_i = np.zeros((i1 - i0, 2), dtype=np.float64)

            for j0 in range(0, n, tile):
                j1 = min(n, j0 + tile)
                pj = pos[j0:j1]
                mj = m[j0:j1].reshape(1, -1)

                d = pj[None, :, :] - pi[:, None, :]
                far = np.sum(d * d, axis=2) >= distance_max2

                zero = d == 0.0
                if zero.any():
                    d[zero] = (gen.random(int(zero.sum())) - 0.5) * JIGGLE_SCALE
                l2 = np.sum(d * d, axis=2)

                if i0 == j0:
                    diag = np.arange(i1 - i0)
                    l2[diag, diag] = np.inf
                    d[diag, diag, :] = 0.0

                l2 = np.where(l2 < distance_min2, np.sqrt(distance_min2 * l2), l2)
                w = (mj * alpha) / l2
                w[far] = 0.0
                acc_i += np.sum(d * w[:, :, None], axis=1)

            acc[i0:i1] = acc_i

        return acc[:, 0].tolist(), acc[:, 1].tolist()


class Force:
    """Base class: one force module acting on the whole particle arena."""

    kind: ForceKind

    def apply(self, particles: list["Particle"], alpha: float) -> None:
        raise NotImplementedError


class ManyBodyForce(Force):
    """Pairwise push (negative strength) or pull (positive) between all particles."""

    kind = ForceKind.MANY_BODY

    def __init__(self, params: "SimParams", rng: random.Random) -> None:
        self.strength = float(params.charge_strength)
        self.distance_min2, self.distance_max2 = _distance_limits(params)
        self.rng = rng
        self.solver: ManyBodySolver
        if params.charge_backend == "direct":
            self.solver = DirectSolver()
        else:
            self.solver = BarnesHutSolver(theta=params.theta)

    def apply(self, particles: list["Particle"], alpha: float) -> None:
        n = len(particles)
        if n < 2 or self.strength == 0.0:
            return
        xs = [p.x for p in particles]
        ys = [p.y for p in particles]
        masses = [self.strength] * n
        dvx, dvy = self.solver.compute(
            xs,
            ys,
            masses,
            alpha,
            distance_min2=self.distance_min2,
            distance_max2=self.distance_max2,
            rng=self.rng,
        )
        for p, ax, ay in zip(particles, dvx, dvy):
            p.vx += ax
            p.vy += ay


class LinkForce(Force):
    """
    Spring along every flight route.

    Per link, strength is 1 / min(degree) so hubs are not over-constrained,
    and the correction is split between the endpoints by degree (the
    better-connected endpoint moves less).
    """

    kind = ForceKind.LINK

    def __init__(self, store: "ParticleStore", params: "SimParams", rng: random.Random) -> None:
        self.distance = float(params.link_distance)
        self.iterations = int(params.link_iterations)
        self.rng = rng
        self.sources: list[int] = []
        self.targets: list[int] = []
        self.strengths: list[float] = []
        self.biases: list[float] = []
        degree = store.degree
        for link in store.links:
            s, t = link.source, link.target
            if s == t:
                continue
            ds, dt = degree[s], degree[t]
            self.sources.append(s)
            self.targets.append(t)
            self.strengths.append(1.0 / min(ds, dt))
            self.biases.append(ds / (ds + dt))

    def __len__(self) -> int:
        return len(self.sources)

    def apply(self, particles: list["Particle"], alpha: float) -> None:
        rest = self.distance
        for _ in range(self.iterations):
            for s, t, k, b in zip(self.sources, self.targets, self.strengths, self.biases):
                src = particles[s]
                tgt = particles[t]
                # measured on predicted positions (x + v)
                dx = (tgt.x + tgt.vx - src.x - src.vx) or jiggle(self.rng)
                dy = (tgt.y + tgt.vy - src.y - src.vy) or jiggle(self.rng)
                dist = math.sqrt(dx * dx + dy * dy)
                f = (dist - rest) / dist * alpha * k
                dx *= f
                dy *= f
                tgt.vx -= dx * b
                tgt.vy -= dy * b
                src.vx += dx * (1.0 - b)
                src.vy += dy * (1.0 - b)


class CenterForce(Force):
    """Translates all particles so their centroid moves toward (cx, cy)."""

    kind = ForceKind.CENTER

    def __init__(self, center: tuple[float, float], strength: float = 1.0) -> None:
        self.cx, self.cy = center
        self.strength = strength

    def apply(self, particles: list["Particle"], alpha: float) -> None:
        n = len(particles)
        if n == 0:
            return
        sx = sum(p.x for p in particles) / n
        sy = sum(p.y for p in particles) / n
        sx = (sx - self.cx) * self.strength
        sy = (sy - self.cy) * self.strength
        for p in particles:
            p.x -= sx
            p.y -= sy


class PositionForce(Force):
    """Pulls each particle a fraction of the way toward its fixed anchor."""

    kind = ForceKind.POSITION

    def __init__(self, anchors: Sequence[tuple[float, float]], strength: float = 0.1) -> None:
        self.anchors = list(anchors)
        self.strength = strength

    def apply(self, particles: list["Particle"], alpha: float) -> None:
        k = self.strength * alpha
        for p, (ax, ay) in zip(particles, self.anchors):
            p.vx += (ax - p.x) * k
            p.vy += (ay - p.y) * k


def build_forces(
    store: "ParticleStore",
    params: "SimParams",
    *,
    anchors: Sequence[tuple[float, float]],
    rng: random.Random,
) -> dict[ForceKind, Force]:
    """Instantiate every force kind for this store; activation is up to the caller."""
    return {
        ForceKind.MANY_BODY: ManyBodyForce(params, rng),
        ForceKind.LINK: LinkForce(store, params, rng),
        ForceKind.CENTER: CenterForce(params.center, params.center_strength),
        ForceKind.POSITION: PositionForce(anchors, params.position_strength),
    }


class LayoutMode(Enum):
    NETWORK = "network"
    MAP = "map"


# Force set active in each layout mode
MODE_FORCES: dict[LayoutMode, tuple[ForceKind, ...]] = {
    LayoutMode.NETWORK: (ForceKind.MANY_BODY, ForceKind.LINK, ForceKind.CENTER),
    LayoutMode.MAP: (ForceKind.POSITION,),
}
