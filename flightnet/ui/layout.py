"""
Network / map layout toggle.

Network mode runs the force graph (many-body + link + center). Map mode
replaces all of them with a weak pull toward each airport's projected
geographic position. Either switch re-heats the layout, so particles
animate to their new arrangement instead of jumping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flightnet.physics.forces import ForceKind, LayoutMode

if TYPE_CHECKING:
    from flightnet.core.sim import Simulation


class LayoutModeSwitch:
    def __init__(self, sim: "Simulation") -> None:
        self.sim = sim

    @property
    def mode(self) -> LayoutMode:
        """Current mode, as held by the simulation."""
        return self.sim.mode

    def set_mode(self, mode: LayoutMode | str) -> tuple[ForceKind, ...]:
        """
        Activate the force set of mode and re-heat the simulation.

        Args:
            mode: LayoutMode or its value ("network" / "map")

        Returns:
            The active force kinds after the switch.
        """
        active = self.sim.set_mode(mode)
        self.sim.alpha_target = self.sim.params.mode_alpha_target
        self.sim.restart()
        return active

    def toggle(self) -> LayoutMode:
        self.set_mode(LayoutMode.MAP if self.mode is LayoutMode.NETWORK else LayoutMode.NETWORK)
        return self.mode
