"""
Barnes-Hut quadtree for the many-body (repulsion) force.

Approximates the pairwise push between all particles in O(N log N)
instead of O(N²) direct summation.

The algorithm works by:
1. Building a tree that recursively splits the bounding square of all
   particle positions into quadrants
2. Accumulating, per cell, the total mass and its centroid
3. For each particle, walking the tree and treating any cell that is small
   relative to its distance (size / distance < theta) as a single point mass

Masses are signed strengths: negative pushes apart, positive pulls together.
Centroids are weighted by |mass| so mixed signs still give a sensible
position.

Constants:
    MAX_DEPTH: Maximum tree depth to prevent infinite recursion
    BUCKET_CAPACITY: Maximum particles per leaf before splitting
    MIN_HALF: Minimum cell half-size to prevent excessive subdivision
    MIN_ABS_MASS: Threshold for considering a cell empty
    JIGGLE_SCALE: Magnitude of the random nudge applied to coincident points

Example:
    >>> import random
    >>> from flightnet.physics.quadtree import build_quadtree
    >>> xs, ys = [0.0, 10.0, 20.0], [0.0, 0.0, 5.0]
    >>> root = build_quadtree(xs, ys)
    >>> root.accumulate_mass([-50.0, -50.0, -50.0], xs, ys)
    >>> dvx, dvy = root.accel_on(idx=0, xi=0.0, yi=0.0, alpha=1.0, theta=0.9, rng=random.Random(1),
    ...                          xs=xs, ys=ys, masses=[-50.0, -50.0, -50.0])
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass


MAX_DEPTH = 32
BUCKET_CAPACITY = 16
MIN_HALF = 1e-3
MIN_ABS_MASS = 1e-12
JIGGLE_SCALE = 1e-6


def jiggle(rng: random.Random) -> float:
    """Tiny random offset used to break exact coincidence."""
    return (rng.random() - 0.5) * JIGGLE_SCALE


@dataclass(slots=True)
class QuadtreeNode:
    """
    A cell in the Barnes-Hut quadtree.

    Each cell covers a square region and is either:
    - A leaf holding a small bucket of particle indices
    - An internal cell with 4 children (one per quadrant)

    Attributes:
        cx, cy: Center of the square region
        half: Half-size of the region (full size = 2 * half)
        child: 4 child cells if internal, None if leaf
        indices: Particle indices if leaf, None if internal
        m: Total signed mass in this cell
        w: Sum of |mass| (centroid weight)
        wx, wy: |mass|-weighted position sums

    The centroid is (wx / w, wy / w).
    """
    cx: float
    cy: float
    half: float
    child: list["QuadtreeNode"] | None = None
    indices: list[int] | None = None

    m: float = 0.0
    w: float = 0.0
    wx: float = 0.0
    wy: float = 0.0

    def is_leaf(self) -> bool:
        """Return True if this is a leaf cell (no children)."""
        return self.child is None

    def _quadrant(self, x: float, y: float) -> int:
        qx = 1 if x >= self.cx else 0
        qy = 1 if y >= self.cy else 0
        return qx | (qy << 1)

    def _ensure_children(self) -> None:
        if self.child is not None:
            return
        h = self.half * 0.5
        children: list[QuadtreeNode] = []
        for q in range(4):
            dx = h if (q & 1) else -h
            dy = h if (q & 2) else -h
            children.append(QuadtreeNode(self.cx + dx, self.cy + dy, h))
        self.child = children

    def insert(self, idx: int, xs: list[float], ys: list[float], *, depth: int = 0) -> None:
        # Stop splitting at max depth or minimal size and keep a bucket instead,
        # so coincident points cannot recurse forever.
        if self.child is None:
            if self.indices is None:
                self.indices = [idx]
                return

            if depth >= MAX_DEPTH or self.half <= MIN_HALF or len(self.indices) < BUCKET_CAPACITY:
                self.indices.append(idx)
                return

            old = self.indices
            self.indices = None
            self._ensure_children()
            for j in old:
                q = self._quadrant(xs[j], ys[j])
                assert self.child is not None
                self.child[q].insert(j, xs, ys, depth=depth + 1)

        q = self._quadrant(xs[idx], ys[idx])
        assert self.child is not None
        self.child[q].insert(idx, xs, ys, depth=depth + 1)

    def accumulate_mass(self, masses: list[float], xs: list[float], ys: list[float]) -> None:
        if self.child is None:
            m = w = wx = wy = 0.0
            for i in self.indices or ():
                mi = float(masses[i])
                c = abs(mi)
                m += mi
                w += c
                wx += xs[i] * c
                wy += ys[i] * c
            self.m = m
            self.w = w
            self.wx = wx
            self.wy = wy
            return

        m = w = wx = wy = 0.0
        for ch in self.child:
            ch.accumulate_mass(masses, xs, ys)
            m += ch.m
            w += ch.w
            wx += ch.wx
            wy += ch.wy
        self.m = m
        self.w = w
        self.wx = wx
        self.wy = wy

    def centroid(self) -> tuple[float, float] | None:
        if self.w < MIN_ABS_MASS:
            return None
        inv = 1.0 / self.w
        return self.wx * inv, self.wy * inv

    def count(self) -> int:
        if self.child is None:
            return len(self.indices or ())
        return sum(ch.count() for ch in self.child)

    def accel_on(
        self,
        *,
        idx: int,
        xi: float,
        yi: float,
        alpha: float,
        theta: float,
        xs: list[float],
        ys: list[float],
        masses: list[float],
        distance_min2: float = 1.0,
        distance_max2: float = math.inf,
        rng: random.Random,
    ) -> tuple[float, float]:
        """
        Velocity delta on particle idx from every particle in this cell.

        Each source j contributes (x_j - x_i) * m_j * alpha / r². With a
        negative mass this points away from j (repulsion).
        """
        if self.w < MIN_ABS_MASS:
            return 0.0, 0.0

        if self.child is None:
            if not self.indices:
                return 0.0, 0.0
            dvx = dvy = 0.0
            for j in self.indices:
                if j == idx:
                    continue
                dx = xs[j] - xi
                dy = ys[j] - yi
                l2 = (dx * dx) + (dy * dy)
                if l2 >= distance_max2:
                    continue
                if dx == 0.0:
                    dx = jiggle(rng)
                    l2 += dx * dx
                if dy == 0.0:
                    dy = jiggle(rng)
                    l2 += dy * dy
                if l2 < distance_min2:
                    l2 = math.sqrt(distance_min2 * l2)
                f = float(masses[j]) * alpha / l2
                dvx += dx * f
                dvy += dy * f
            return dvx, dvy

        center = self.centroid()
        if center is not None:
            dx = center[0] - xi
            dy = center[1] - yi
            l2 = (dx * dx) + (dy * dy)
            size = self.half * 2.0
            # size / distance < theta, compared squared
            if theta > 0.0 and (size * size) / (theta * theta) < l2:
                if l2 >= distance_max2:
                    return 0.0, 0.0
                if dx == 0.0:
                    dx = jiggle(rng)
                    l2 += dx * dx
                if dy == 0.0:
                    dy = jiggle(rng)
                    l2 += dy * dy
                if l2 < distance_min2:
                    l2 = math.sqrt(distance_min2 * l2)
                f = self.m * alpha / l2
                return dx * f, dy * f

        dvx = dvy = 0.0
        assert self.child is not None
        for ch in self.child:
            cx, cy = ch.accel_on(
                idx=idx,
                xi=xi,
                yi=yi,
                alpha=alpha,
                theta=theta,
                xs=xs,
                ys=ys,
                masses=masses,
                distance_min2=distance_min2,
                distance_max2=distance_max2,
                rng=rng,
            )
            dvx += cx
            dvy += cy
        return dvx, dvy


def bounding_square(xs: list[float], ys: list[float]) -> tuple[float, float, float]:
    """Center and half-size of a square covering all points (with a small margin)."""
    if not xs:
        return 0.0, 0.0, 1.0
    x0, x1 = min(xs), max(xs)
    y0, y1 = min(ys), max(ys)
    half = max(x1 - x0, y1 - y0, 2.0 * MIN_HALF) * 0.5 * 1.01
    return (x0 + x1) * 0.5, (y0 + y1) * 0.5, half


def build_quadtree(xs: list[float], ys: list[float]) -> QuadtreeNode:
    cx, cy, half = bounding_square(xs, ys)
    root = QuadtreeNode(cx, cy, half)
    for i in range(len(xs)):
        root.insert(i, xs, ys, depth=0)
    return root
