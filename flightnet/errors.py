"""
Error types raised while building a flight network simulation.

Construction-time problems (bad dataset, dangling edge) are fatal and
raised to the caller. Numerical trouble during a tick is never raised:
the force code recovers from it locally so the animation keeps running.
"""

from __future__ import annotations


class FlightNetError(Exception):
    """Base class for all flightnet errors."""


class MissingNodeError(FlightNetError, KeyError):
    """An edge (or a lookup) references a node id that is not in the store."""

    def __init__(self, node_id: str, *, edge_index: int | None = None) -> None:
        self.node_id = node_id
        self.edge_index = edge_index
        if edge_index is None:
            msg = f"unknown node {node_id!r}"
        else:
            msg = f"edge {edge_index} references unknown node {node_id!r}"
        super().__init__(msg)

    def __str__(self) -> str:
        # KeyError would repr() the message otherwise
        return str(self.args[0])


class DuplicateNodeError(FlightNetError, ValueError):
    """Two nodes share the same id."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"duplicate node id {node_id!r}")


class InvalidWeightError(FlightNetError, ValueError):
    """A flight count, node weight or coordinate is negative or non-finite."""

    def __init__(self, field: str, value: object, *, where: str = "") -> None:
        self.field = field
        self.value = value
        loc = f" ({where})" if where else ""
        super().__init__(f"invalid {field}={value!r}{loc}")
