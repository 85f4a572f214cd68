"""
Pointer drag handling for the flight network simulation.

Dragging pins a particle under the pointer. The first drag of a gesture
re-heats the layout so neighbours follow the dragged airport through the
link force; releasing the last drag lets it cool down again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flightnet.core.particles import Particle
    from flightnet.core.sim import Simulation


# =============================================================================
# Drag Controller
# =============================================================================

class DragController:
    """
    Translates drag events into pin/unpin operations on the simulation.

    Wire drag_start / drag_move / drag_end to the pointer events of the
    rendered node shapes. Several pointers may drag at once; the cooling
    target is only touched when the first drag starts and the last one ends.
    """

    def __init__(self, sim: "Simulation", *, pick_radius: float | None = 20.0) -> None:
        self.sim = sim
        self.pick_radius = pick_radius
        self._active: set[int] = set()

    @property
    def active(self) -> int:
        """Number of particles currently being dragged."""
        return len(self._active)

    def is_dragging(self, particle: "Particle") -> bool:
        return particle.index in self._active

    def pick(self, x: float, y: float) -> "Particle | None":
        """Drag subject under the pointer, or None."""
        return self.sim.find(x, y, self.pick_radius)

    def drag_start(self, particle: "Particle") -> None:
        if not self._active:
            self.sim.alpha_target = self.sim.params.drag_alpha_target
            self.sim.restart()
        self._active.add(particle.index)
        particle.pin(particle.x, particle.y)

    def drag_move(self, particle: "Particle", x: float, y: float) -> None:
        particle.pin(x, y)

    def drag_end(self, particle: "Particle") -> None:
        self._active.discard(particle.index)
        if not self._active:
            self.sim.alpha_target = self.sim.params.release_alpha_target
        particle.unpin()
