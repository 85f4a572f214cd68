import math
import unittest
from dataclasses import replace

from flightnet.core.particles import Edge, Node
from flightnet.core.sim import SimState, Simulation, Snapshot
from flightnet.errors import MissingNodeError
from flightnet.params import SimParams
from flightnet.physics.forces import Force, ForceKind, LayoutMode


def _graph() -> tuple[list[Node], list[Edge]]:
    nodes = [
        Node(id="JFK", category="NY", geo_lat=40.64, geo_lon=-73.78, weight=120.0),
        Node(id="LAX", category="CA", geo_lat=33.94, geo_lon=-118.41, weight=90.0),
        Node(id="ORD", category="IL", geo_lat=41.98, geo_lon=-87.90, weight=60.0),
        Node(id="ATL", category="GA", geo_lat=33.64, geo_lon=-84.43, weight=40.0),
    ]
    edges = [
        Edge("JFK", "LAX", 50.0),
        Edge("ORD", "JFK", 30.0),
        Edge("ATL", "ORD", 20.0),
        Edge("LAX", "ATL", 10.0),
    ]
    return nodes, edges


class _Exploding(Force):
    kind = ForceKind.CENTER

    def apply(self, particles, alpha):
        raise ZeroDivisionError("boom")


class TestSim(unittest.TestCase):
    def test_construction(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)

        self.assertEqual(len(sim.particles), 4)
        self.assertEqual(sim.active_forces, (ForceKind.MANY_BODY, ForceKind.LINK, ForceKind.CENTER))
        self.assertEqual(sim.state, SimState.COOLING)
        self.assertEqual(sim.validate_state(), [])

    def test_missing_node_is_fatal(self) -> None:
        nodes, edges = _graph()
        with self.assertRaises(MissingNodeError):
            Simulation(nodes, edges + [Edge("JFK", "SFO", 1.0)])

    def test_alpha_decays_monotonically(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)

        prev = sim.alpha
        for _ in range(100):
            snap = sim.tick()
            self.assertLess(snap.alpha, prev)
            self.assertGreaterEqual(snap.alpha, sim.alpha_target)
            prev = snap.alpha

    def test_comes_to_rest(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        snap = sim.tick(400)

        self.assertEqual(snap.state, SimState.RESTING)
        self.assertEqual(snap.tick, 400)

    def test_resting_skips_forces(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        sim.tick(400)
        sim.set_forces([ForceKind.CENTER])

        for p in sim.particles:
            p.x += 100.0
        cx, _ = sim.tick().centroid()

        self.assertGreater(abs(cx - 640.0), 50.0)

    def test_center_force_converges(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges, SimParams(center_strength=0.1))
        sim.set_forces([ForceKind.CENTER])
        for p in sim.particles:
            p.x += 500.0
            p.y -= 200.0

        cx, cy = sim.tick(150).centroid()

        self.assertAlmostEqual(cx, 640.0, places=3)
        self.assertAlmostEqual(cy, 360.0, places=3)

    def test_pinned_particle_holds_position(self) -> None:
        nodes, edges = _graph()
        seen: list[tuple[float, float]] = []
        sim = Simulation(
            nodes,
            edges,
            SimParams(charge_strength=-5000.0),
            on_tick=lambda snap: seen.append(snap.position("LAX")),
        )
        sim.particle("LAX").pin(100.0, 100.0)

        sim.tick(50)

        self.assertEqual(len(seen), 50)
        for pos in seen:
            self.assertEqual(pos, (100.0, 100.0))
        self.assertEqual(sim.validate_state(), [])

    def test_validate_state_flags_nan(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)

        sim.particles[0].x = float("nan")
        issues = sim.validate_state()
        self.assertTrue(any("non-finite" in issue for issue in issues))

    def test_non_finite_state_recovers(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        sim.particles[0].x = float("nan")
        sim.particles[1].vy = float("inf")
        sim.particles[2].fx = float("nan")

        sim.tick(3)

        self.assertEqual(sim.validate_state(), [])
        self.assertIsNone(sim.particles[2].fx)
        for p in sim.particles:
            self.assertTrue(math.isfinite(p.x) and math.isfinite(p.y))

    def test_positions_clamped(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges, SimParams(max_coordinate=1e4))
        sim.particles[0].x = 1e9

        sim.tick()

        self.assertLessEqual(abs(sim.particles[0].x), 1e4)

    def test_pin_beyond_coordinate_limit_is_honoured(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges, SimParams())
        jfk = sim.particle("JFK")
        jfk.pin(2e6, 100.0)

        sim.tick()

        self.assertEqual((jfk.x, jfk.y), (2e6, 100.0))
        self.assertEqual(sim.validate_state(), [])

    def test_zero_ticks_only_snapshots(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        before = [(p.x, p.y) for p in sim.particles]

        snap = sim.tick(0)

        self.assertEqual(snap.tick, 0)
        self.assertEqual(sim.tick_count, 0)
        self.assertEqual(sim.alpha, 1.0)
        self.assertEqual([(p.x, p.y) for p in sim.particles], before)

    def test_negative_ticks_rejected(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        with self.assertRaises(ValueError):
            sim.tick(-1)
        self.assertEqual(sim.tick_count, 0)

    def test_reset_reuses_particles(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        start = [(p.x, p.y) for p in sim.particles]
        jfk = sim.particle("JFK")
        jfk.pin(5.0, 5.0)
        sim.tick(10)

        sim.reset()

        self.assertIs(sim.particle("JFK"), jfk)
        self.assertFalse(jfk.pinned)
        self.assertEqual(sim.tick_count, 0)
        self.assertEqual([(p.x, p.y) for p in sim.particles], start)

    def test_arithmetic_error_in_force_is_contained(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        sim.forces[ForceKind.CENTER] = _Exploding()

        snap = sim.tick(2)

        self.assertEqual(snap.tick, 2)
        self.assertEqual(sim.validate_state(), [])

    def test_set_forces_orders_and_dedups(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)

        active = sim.set_forces([ForceKind.CENTER, ForceKind.POSITION, ForceKind.MANY_BODY, ForceKind.CENTER])

        self.assertEqual(active, (ForceKind.MANY_BODY, ForceKind.CENTER, ForceKind.POSITION))
        self.assertEqual(sim.set_forces([]), ())
        with self.assertRaises(TypeError):
            sim.set_forces(["link"])

    def test_restart(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        sim.alpha = 0.01
        sim.alpha_target = 0.3

        self.assertIs(sim.restart(), sim)
        self.assertEqual(sim.alpha, 0.3)
        self.assertEqual(sim.state, SimState.REHEATED)

        sim.alpha = 0.8
        sim.restart()
        self.assertEqual(sim.alpha, 0.8)
        self.assertEqual(sim.state, SimState.COOLING)

    def test_reheat_keeps_alpha_at_target(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        sim.tick(400)
        sim.alpha_target = 0.3
        sim.restart()

        for _ in range(20):
            self.assertAlmostEqual(sim.tick().alpha, 0.3)

    def test_find(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        ord_ = sim.particle("ORD")

        self.assertIs(sim.find(ord_.x + 0.5, ord_.y), ord_)
        self.assertIsNone(sim.find(-1e5, -1e5, radius=10.0))

    def test_unknown_particle(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        with self.assertRaises(MissingNodeError):
            sim.particle("SFO")

    def test_on_tick_called_per_step(self) -> None:
        nodes, edges = _graph()
        ticks: list[int] = []
        sim = Simulation(nodes, edges, on_tick=lambda snap: ticks.append(snap.tick))

        snap = sim.tick(5)

        self.assertEqual(ticks, [1, 2, 3, 4, 5])
        self.assertIsInstance(snap, Snapshot)
        self.assertEqual(snap.tick, 5)

    def test_snapshot(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        snap = sim.tick()

        self.assertEqual(len(snap.nodes), 4)
        self.assertEqual(len(snap.links), 4)
        self.assertEqual(snap.as_array().shape, (4, 2))
        jfk = sim.particle("JFK")
        self.assertEqual(snap.position("JFK"), (jfk.x, jfk.y))
        seg = snap.links[0]
        self.assertEqual((seg.source, seg.target, seg.weight), ("JFK", "LAX", 50.0))
        self.assertEqual((seg.x1, seg.y1), (jfk.x, jfk.y))
        with self.assertRaises(KeyError):
            snap.position("SFO")

    def test_custom_projection(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges, project_x=lambda lon: lon * 2.0, project_y=lambda lat: -lat)

        self.assertEqual(sim.anchors[0], (-73.78 * 2.0, -40.64))

    def test_empty_graph(self) -> None:
        sim = Simulation([], [])
        snap = sim.tick(3)
        self.assertEqual(snap.nodes, ())
        self.assertEqual(snap.centroid(), (0.0, 0.0))

    def test_kinetic_energy(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        self.assertEqual(sim.kinetic_energy(), 0.0)
        sim.tick()
        self.assertGreater(sim.kinetic_energy(), 0.0)


class TestSetParams(unittest.TestCase):
    def test_force_key_rebuilds_force_only(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        sim.tick(3)

        changed = sim.set_params(replace(sim.params, link_distance=80.0))

        self.assertEqual(changed, {"link_distance"})
        self.assertEqual(sim.forces[ForceKind.LINK].distance, 80.0)
        self.assertEqual(sim.tick_count, 3)

    def test_seed_change_keeps_particles_and_clock(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        sim.tick(3)
        before = list(sim.particles)
        old_link = sim.forces[ForceKind.LINK]

        changed = sim.set_params(replace(sim.params, seed=9))

        self.assertEqual(changed, {"seed"})
        self.assertEqual(sim.tick_count, 3)
        for a, b in zip(before, sim.particles):
            self.assertIs(a, b)
        self.assertIsNot(sim.forces[ForceKind.LINK], old_link)

    def test_in_place_edit_is_detected(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)

        sim.params.link_distance = 200.0
        changed = sim.set_params(sim.params)

        self.assertEqual(changed, {"link_distance"})
        self.assertEqual(sim.forces[ForceKind.LINK].distance, 200.0)

    def test_caller_params_left_untouched(self) -> None:
        nodes, edges = _graph()
        mine = SimParams(width=1)

        sim = Simulation(nodes, edges, mine)
        self.assertEqual(mine.width, 1)
        self.assertEqual(sim.params.width, 16)
        self.assertIsNot(sim.params, mine)

        other = SimParams(height=1)
        sim.set_params(other)
        self.assertEqual(other.height, 1)
        self.assertIsNot(sim.params, other)

    def test_canvas_change_keeps_particle_identity(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        jfk = sim.particle("JFK")
        old_anchor = sim.anchors[jfk.index]

        sim.set_params(replace(sim.params, width=1000))

        self.assertIs(sim.particle("JFK"), jfk)
        self.assertNotEqual(sim.anchors[jfk.index], old_anchor)
        self.assertEqual(sim.forces[ForceKind.CENTER].cx, 500.0)

    def test_layout_mode_updates_sim_mode(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)

        sim.set_params(replace(sim.params, layout_mode="map"))

        self.assertIs(sim.mode, LayoutMode.MAP)

    def test_cooling_keys_copied(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)

        sim.set_params(replace(sim.params, alpha_decay=0.05, velocity_decay=0.2))

        self.assertEqual(sim.alpha_decay, 0.05)
        self.assertEqual(sim.velocity_decay, 0.2)

    def test_layout_mode_switches_forces(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)

        sim.set_params(replace(sim.params, layout_mode="map"))

        self.assertEqual(sim.active_forces, (ForceKind.POSITION,))

    def test_unchanged(self) -> None:
        nodes, edges = _graph()
        sim = Simulation(nodes, edges)
        self.assertEqual(sim.set_params(replace(sim.params)), set())


if __name__ == "__main__":
    unittest.main()
