#!/usr/bin/env python3
"""
Performance benchmark for the flight network layout.

Compares the many-body backends on a random graph:
- Barnes-Hut (quadtree, O(N log N))
- Direct (NumPy, O(N²))
and times a full simulation tick for each.

Usage:
    python -m flightnet.utils.benchmark [--nodes 500] [--iterations 10]
"""

from __future__ import annotations

import argparse
import random
import sys
import time

import numpy as np

from flightnet.core.particles import Edge, Node
from flightnet.core.sim import Simulation
from flightnet.params import SimParams
from flightnet.physics.forces import BarnesHutSolver, DirectSolver


def generate_positions(n: int, seed: int = 42) -> tuple[list[float], list[float]]:
    """Random positions on a 1280x720 canvas."""
    rng = random.Random(seed)
    xs = [rng.uniform(0.0, 1280.0) for _ in range(n)]
    ys = [rng.uniform(0.0, 720.0) for _ in range(n)]
    return xs, ys


def generate_graph(n_nodes: int, n_edges: int, seed: int = 42) -> tuple[list[Node], list[Edge]]:
    """Random connected-ish airport graph with positive weights."""
    rng = random.Random(seed)
    ids = [f"A{i:04d}" for i in range(n_nodes)]
    edges: list[Edge] = []
    # a chain first so nobody is isolated
    for i in range(1, n_nodes):
        edges.append(Edge(ids[i - 1], ids[i], float(rng.randint(1, 500))))
    while len(edges) < n_edges:
        a, b = rng.sample(ids, 2)
        edges.append(Edge(a, b, float(rng.randint(1, 500))))
    nodes = [
        Node(
            id=ident,
            geo_lat=rng.uniform(25.0, 49.0),
            geo_lon=rng.uniform(-124.0, -67.0),
            weight=1.0,
        )
        for ident in ids
    ]
    return nodes, edges


def _mean_std_ms(times: list[float]) -> tuple[float, float]:
    mean = sum(times) / len(times)
    std = (sum((t - mean) ** 2 for t in times) / len(times)) ** 0.5
    return mean * 1000.0, std * 1000.0


def benchmark_solver(solver, xs, ys, *, strength: float = -50.0, iterations: int = 10) -> tuple[float, float]:
    """Time solver.compute over several runs."""
    masses = [strength] * len(xs)
    rng = random.Random(1)
    times = []
    for _ in range(iterations):
        t0 = time.perf_counter()
        solver.compute(xs, ys, masses, 1.0, distance_min2=1.0, distance_max2=float("inf"), rng=rng)
        times.append(time.perf_counter() - t0)
    return _mean_std_ms(times)


def benchmark_tick(nodes, edges, *, backend: str, iterations: int = 10) -> tuple[float, float]:
    """Time Simulation.tick with the given many-body backend."""
    sim = Simulation(nodes, edges, SimParams(charge_backend=backend))
    times = []
    for _ in range(iterations):
        t0 = time.perf_counter()
        sim.tick()
        times.append(time.perf_counter() - t0)
    return _mean_std_ms(times)


def max_relative_error(n: int, theta: float) -> float:
    """Largest per-particle error of Barnes-Hut against the exact solver."""
    xs, ys = generate_positions(n, seed=7)
    masses = [-50.0] * n
    kw = dict(distance_min2=1.0, distance_max2=float("inf"))
    bx, by = BarnesHutSolver(theta=theta).compute(xs, ys, masses, 1.0, rng=random.Random(1), **kw)
    dx, dy = DirectSolver().compute(xs, ys, masses, 1.0, rng=random.Random(1), **kw)
    approx = np.stack([bx, by], axis=1)
    exact = np.stack([dx, dy], axis=1)
    norm = np.linalg.norm(exact, axis=1)
    norm[norm == 0.0] = 1.0
    return float(np.max(np.linalg.norm(approx - exact, axis=1) / norm))


def run_benchmark(n_nodes: int, iterations: int) -> dict:
    """Run full benchmark suite."""
    print(f"\n{'='*60}")
    print(f"Benchmark: {n_nodes} airports, {iterations} iterations")
    print(f"{'='*60}")

    xs, ys = generate_positions(n_nodes)
    nodes, edges = generate_graph(n_nodes, n_nodes * 3)
    results = {}

    for theta in (0.5, 0.9):
        print(f"Barnes-Hut (θ={theta})...", end=" ", flush=True)
        mean, std = benchmark_solver(BarnesHutSolver(theta=theta), xs, ys, iterations=iterations)
        err = max_relative_error(min(n_nodes, 400), theta)
        print(f"{mean:.2f} ± {std:.2f} ms (max rel. error {err:.3f})")
        results[f"barnes_hut_{theta}"] = mean

    print("Direct (NumPy)...", end=" ", flush=True)
    mean, std = benchmark_solver(DirectSolver(), xs, ys, iterations=iterations)
    print(f"{mean:.2f} ± {std:.2f} ms")
    results["direct"] = mean

    for backend in ("barnes_hut", "direct"):
        print(f"Full tick ({backend})...", end=" ", flush=True)
        mean, std = benchmark_tick(nodes, edges, backend=backend, iterations=iterations)
        print(f"{mean:.2f} ± {std:.2f} ms")
        results[f"tick_{backend}"] = mean

    print(f"\n{'='*60}")
    print("Summary:")
    ratio = results["direct"] / results["barnes_hut_0.9"] if results["barnes_hut_0.9"] > 0 else 0.0
    print(f"  Barnes-Hut (θ=0.9): {results['barnes_hut_0.9']:.2f} ms")
    print(f"  Direct: {results['direct']:.2f} ms ({ratio:.1f}x B-H)")
    print(f"  Tick budget at 60 fps: 16.67 ms, B-H tick {results['tick_barnes_hut']:.2f} ms")
    return results


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Benchmark flight network layout forces")
    parser.add_argument("--nodes", "-n", type=int, default=500, help="Number of airports")
    parser.add_argument("--iterations", "-i", type=int, default=10, help="Benchmark iterations")
    parser.add_argument("--sweep", action="store_true", help="Run sweep over graph sizes")
    args = parser.parse_args(argv)

    print("flightnet Performance Benchmark")
    print(f"Platform: {sys.platform}")
    print(f"NumPy: {np.__version__}")

    if args.sweep:
        for n in (100, 250, 500, 1000, 2000):
            run_benchmark(n, args.iterations)
    else:
        run_benchmark(max(2, args.nodes), max(1, args.iterations))


if __name__ == "__main__":
    main()
