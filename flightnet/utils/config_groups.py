"""
Parameter groups for the flight network simulation.

This module centralizes what a parameter change has to refresh: the
geographic anchors, one or more force modules, or the live cooling state.
Particles themselves are never rebuilt by a parameter change.
"""

from __future__ import annotations

from flightnet.physics.forces import ForceKind


# =============================================================================
# Anchor Keys - Changes that move the projected geographic anchors
# =============================================================================

ANCHOR_KEYS = {
    "width",
    "height",
    "lon_min",
    "lon_max",
    "lat_min",
    "lat_max",
}


# =============================================================================
# Force Keys - Parameters read when a force module is built
# =============================================================================

FORCE_KEYS: dict[ForceKind, set[str]] = {
    ForceKind.MANY_BODY: {
        "charge_strength",
        "charge_backend",
        "theta",
        "distance_min",
        "distance_max",
        "seed",
    },
    ForceKind.LINK: {
        "link_distance",
        "link_iterations",
        "seed",
    },
    ForceKind.CENTER: {
        "center_strength",
        "width",
        "height",
    },
    ForceKind.POSITION: {
        "position_strength",
        *ANCHOR_KEYS,
    },
}

COOLING_KEYS = {
    "alpha_min",
    "alpha_decay",
    "alpha_target",
    "velocity_decay",
}


# =============================================================================
# Helper Functions
# =============================================================================

def is_anchor_related(key: str) -> bool:
    """Check if changing this parameter moves the geographic anchors."""
    return key in ANCHOR_KEYS


def forces_affected_by(keys: set[str] | list[str]) -> set[ForceKind]:
    """Force kinds that must be rebuilt after the given keys changed."""
    wanted = set(keys)
    return {kind for kind, fkeys in FORCE_KEYS.items() if fkeys & wanted}
