"""
Linear scales mapping geographic coordinates to canvas pixels.

The map layout anchors each airport at project_x(longitude),
project_y(latitude). Latitude grows upward on a map but y grows downward
on a canvas, so the latitude range is inverted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from flightnet.params import SimParams


Projection = Callable[[float], float]


@dataclass(slots=True, frozen=True)
class LinearScale:
    """Maps domain [d0, d1] linearly onto range [r0, r1] (no clamping)."""
    d0: float
    d1: float
    r0: float
    r1: float

    def __call__(self, value: float) -> float:
        span = self.d1 - self.d0
        if span == 0.0:
            return (self.r0 + self.r1) * 0.5
        t = (float(value) - self.d0) / span
        return self.r0 + t * (self.r1 - self.r0)

    def invert(self, value: float) -> float:
        span = self.r1 - self.r0
        if span == 0.0:
            return (self.d0 + self.d1) * 0.5
        t = (float(value) - self.r0) / span
        return self.d0 + t * (self.d1 - self.d0)


def geo_projection(params: "SimParams") -> tuple[LinearScale, LinearScale]:
    """
    Default (project_x, project_y) for the configured canvas and geographic box.

    Returns:
        (longitude -> x, latitude -> y) scales
    """
    project_x = LinearScale(params.lon_min, params.lon_max, 0.0, float(params.width))
    project_y = LinearScale(params.lat_min, params.lat_max, float(params.height), 0.0)
    return project_x, project_y
