"""Layered (Sugiyama-style) graph drawing port.

Given sized nodes and weighted edges, return the center of every node.
Implementations must accept disconnected graphs, isolated nodes and
cycles without raising.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from casemap.domain.services.layout import LayeredLayoutRequest


@runtime_checkable
class LayeredLayoutPort(Protocol):
    def compute(self, request: LayeredLayoutRequest) -> Mapping[str, tuple[float, float]]: ...
