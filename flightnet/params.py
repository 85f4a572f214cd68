from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any


# d3-style cooling: alpha reaches alpha_min after ~300 ticks from 1.0
DEFAULT_ALPHA_DECAY = 1.0 - math.pow(0.001, 1.0 / 300.0)
DEFAULT_THETA = 0.9


@dataclass(slots=True)
class SimParams:
    width: int = 1280
    height: int = 720

    layout_mode: str = "network"  # network | map

    alpha: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: float = DEFAULT_ALPHA_DECAY
    alpha_target: float = 0.0
    velocity_decay: float = 0.4  # fraction of velocity removed per tick

    charge_strength: float = -50.0
    charge_backend: str = "barnes_hut"  # barnes_hut | direct
    theta: float = DEFAULT_THETA  # Barnes-Hut accuracy
    distance_min: float = 1.0
    distance_max: float = 0.0  # 0 = unlimited

    link_distance: float = 50.0
    link_iterations: int = 1

    center_strength: float = 1.0
    position_strength: float = 0.1

    drag_alpha_target: float = 0.3
    release_alpha_target: float = 0.0
    mode_alpha_target: float = 1.0

    # continental US box, matches the default airport dataset
    lon_min: float = -125.5
    lon_max: float = -66.5
    lat_min: float = 24.2
    lat_max: float = 49.8

    initial_radius: float = 10.0
    max_coordinate: float = 1e6
    seed: int = 1

    def clamp(self) -> "SimParams":
        self.width = max(16, int(self.width))
        self.height = max(16, int(self.height))
        self.layout_mode = str(self.layout_mode or "network").strip().lower()
        if self.layout_mode not in {"network", "map"}:
            self.layout_mode = "network"

        self.alpha = max(0.0, float(self.alpha))
        self.alpha_min = min(1.0, max(0.0, float(self.alpha_min)))
        self.alpha_decay = min(1.0, max(0.0, float(self.alpha_decay)))
        self.alpha_target = max(0.0, float(self.alpha_target))
        self.velocity_decay = min(1.0, max(0.0, float(self.velocity_decay)))

        self.charge_strength = float(self.charge_strength)
        self.charge_backend = str(self.charge_backend or "barnes_hut").strip().lower()
        if self.charge_backend in {"bh", "barnes-hut", "cpu"}:
            self.charge_backend = "barnes_hut"
        if self.charge_backend not in {"barnes_hut", "direct"}:
            self.charge_backend = "barnes_hut"
        self.theta = min(2.0, max(0.0, float(self.theta)))
        self.distance_min = max(1e-3, float(self.distance_min))
        self.distance_max = max(0.0, float(self.distance_max))
        if math.isinf(self.distance_max):
            self.distance_max = 0.0

        self.link_distance = max(0.0, float(self.link_distance))
        self.link_iterations = max(1, min(16, int(self.link_iterations)))

        self.center_strength = min(1.0, max(0.0, float(self.center_strength)))
        self.position_strength = min(1.0, max(0.0, float(self.position_strength)))

        self.drag_alpha_target = max(0.0, float(self.drag_alpha_target))
        self.release_alpha_target = max(0.0, float(self.release_alpha_target))
        self.mode_alpha_target = max(0.0, float(self.mode_alpha_target))

        self.lon_min = float(self.lon_min)
        self.lon_max = float(self.lon_max)
        self.lat_min = float(self.lat_min)
        self.lat_max = float(self.lat_max)

        self.initial_radius = max(0.1, float(self.initial_radius))
        self.max_coordinate = max(1.0, float(self.max_coordinate))
        self.seed = int(self.seed)
        return self

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2.0, self.height / 2.0

    def validate(self) -> list[str]:
        warnings: list[str] = []

        if self.alpha_target >= self.alpha_min:
            warnings.append("alpha_target >= alpha_min: the simulation will never come to rest.")
        if self.alpha_decay <= 0.0:
            warnings.append("alpha_decay=0: alpha never moves toward alpha_target.")
        if self.velocity_decay >= 1.0:
            warnings.append("velocity_decay=1 removes all velocity; particles only move when pinned.")
        if self.velocity_decay <= 0.0:
            warnings.append("velocity_decay=0 disables friction; layouts may not settle.")
        if self.charge_strength > 0.0:
            warnings.append("charge_strength > 0 makes the many-body force attractive.")
        if self.charge_backend == "barnes_hut" and self.theta == 0.0:
            warnings.append("theta=0 disables the Barnes-Hut approximation.")
        if self.charge_backend == "direct" and self.theta != DEFAULT_THETA:
            warnings.append("theta ignored when charge_backend=direct.")
        if 0.0 < self.distance_max <= self.distance_min:
            warnings.append("distance_max <= distance_min: many-body force has no effect.")
        if self.release_alpha_target >= self.drag_alpha_target:
            warnings.append("release_alpha_target >= drag_alpha_target: releasing a node will not cool the layout.")
        if self.lon_min == self.lon_max or self.lat_min == self.lat_max:
            warnings.append("degenerate geographic domain: map anchors collapse to a line.")

        return warnings

    @classmethod
    def load(cls, path: str | Path) -> "SimParams":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Parameter file must contain a JSON object.")
        known = {f.name for f in fields(cls)}
        filtered: dict[str, Any] = {k: v for k, v in data.items() if k in known}
        return cls(**filtered).clamp()

    def save(self, path: str | Path) -> None:
        data = asdict(self)
        Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
