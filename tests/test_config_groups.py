"""
Tests for config_groups module.
"""

from dataclasses import fields

import pytest

from flightnet.params import SimParams
from flightnet.physics.forces import ForceKind
from flightnet.utils.config_groups import (
    ANCHOR_KEYS,
    COOLING_KEYS,
    FORCE_KEYS,
    forces_affected_by,
    is_anchor_related,
)


PARAM_NAMES = {f.name for f in fields(SimParams)}


class TestConfigGroups:
    """Tests for configuration group constants and functions."""

    def test_anchor_keys_contain_canvas(self):
        assert "width" in ANCHOR_KEYS
        assert "height" in ANCHOR_KEYS

    def test_all_keys_are_params(self):
        groups = [ANCHOR_KEYS, COOLING_KEYS, *FORCE_KEYS.values()]
        for group in groups:
            assert group <= PARAM_NAMES

    @pytest.mark.parametrize("key,expected", [
        ("lon_min", True),
        ("lat_max", True),
        ("seed", False),
        ("link_distance", False),
    ])
    def test_is_anchor_related(self, key, expected):
        assert is_anchor_related(key) is expected


class TestForcesAffectedBy:
    def test_single_force(self):
        assert forces_affected_by({"link_distance"}) == {ForceKind.LINK}
        assert forces_affected_by(["theta"]) == {ForceKind.MANY_BODY}

    def test_canvas_affects_center_and_position(self):
        assert forces_affected_by({"width"}) == {ForceKind.CENTER, ForceKind.POSITION}

    def test_seed_affects_jittering_forces(self):
        assert forces_affected_by({"seed"}) == {ForceKind.MANY_BODY, ForceKind.LINK}

    def test_cooling_keys_affect_no_force(self):
        assert forces_affected_by(COOLING_KEYS) == set()
