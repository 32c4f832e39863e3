"""Map surface abstraction.

The mapping library (map instance, circles, markers, layer groups,
panes) is an external collaborator. Managers only talk to it through
:class:`MapHandle`, which makes them drivable against a real map
binding, a headless :class:`InMemoryMap`, or a test double.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from shapely.geometry.base import BaseGeometry

_logger = logging.getLogger(__name__)

ZoomListener = Callable[[float], None]


class MapHandle(Protocol):
    """Structural interface of the host map."""

    def get_zoom(self) -> float:
        ...

    def add_layer(self, layer: RenderLayer) -> None:
        ...

    def remove_layer(self, layer: RenderLayer) -> None:
        ...

    def has_layer(self, layer: RenderLayer) -> bool:
        ...

    def on_zoom_end(self, listener: ZoomListener) -> Callable[[], None]:
        """Register *listener* for zoom-end events; returns an unsubscribe callable."""
        ...


# ---------------------------------------------------------------------------
# Render primitives
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CirclePrimitive:
    """A geodesic circle around a point, pre-tessellated to ``polygon``."""

    lat: float
    lon: float
    radius_m: float
    polygon: BaseGeometry
    style: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MarkerPrimitive:
    lat: float
    lon: float
    style: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)
    alt: str = ""


@dataclass(frozen=True, slots=True)
class ShapePrimitive:
    """Any non-point GeoJSON geometry, rendered with a path style."""

    geometry: dict[str, Any]
    style: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)


Primitive = CirclePrimitive | MarkerPrimitive | ShapePrimitive


@dataclass(eq=False)
class RenderLayer:
    """A group of primitives added to or removed from the map as a unit.

    Equality and hashing are by identity: two groups with the same
    contents are still two different map layers.
    """

    name: str
    pane: str = "overlayPane"
    items: list[Primitive] = field(default_factory=list)

    def clear(self) -> None:
        self.items.clear()

    def add(self, item: Primitive) -> None:
        self.items.append(item)

    def __len__(self) -> int:
        return len(self.items)


# ---------------------------------------------------------------------------
# Headless map
# ---------------------------------------------------------------------------


class InMemoryMap:
    """Headless :class:`MapHandle` that records which layers are attached.

    Adding an attached layer or removing a detached one raises
    ``ValueError`` so tests catch managers that skip their ``has_layer``
    guard.
    """

    def __init__(self, zoom: float = 7) -> None:
        self._zoom = zoom
        self._layers: list[RenderLayer] = []
        self._listeners: list[ZoomListener] = []
        self.add_calls = 0
        self.remove_calls = 0

    def get_zoom(self) -> float:
        return self._zoom

    def set_zoom(self, zoom: float) -> None:
        """Change the zoom and fire zoom-end listeners (even if unchanged)."""
        self._zoom = zoom
        for listener in list(self._listeners):
            listener(zoom)

    def add_layer(self, layer: RenderLayer) -> None:
        if self.has_layer(layer):
            raise ValueError(f"layer {layer.name!r} is already on the map")
        self._layers.append(layer)
        self.add_calls += 1

    def remove_layer(self, layer: RenderLayer) -> None:
        if not self.has_layer(layer):
            raise ValueError(f"layer {layer.name!r} is not on the map")
        self._layers = [existing for existing in self._layers if existing is not layer]
        self.remove_calls += 1

    def has_layer(self, layer: RenderLayer) -> bool:
        return any(existing is layer for existing in self._layers)

    def on_zoom_end(self, listener: ZoomListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                _logger.debug("Zoom listener already removed")

        return _unsubscribe

    @property
    def layers(self) -> list[RenderLayer]:
        return list(self._layers)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def layer_names(self) -> list[str]:
        return [layer.name for layer in self._layers]


def attach(map_handle: MapHandle, layer: RenderLayer) -> bool:
    """Add *layer* unless already present. Returns True if it was added."""
    if map_handle.has_layer(layer):
        return False
    map_handle.add_layer(layer)
    return True


def detach(map_handle: MapHandle, layer: RenderLayer) -> bool:
    """Remove *layer* if present. Returns True if it was removed."""
    if not map_handle.has_layer(layer):
        return False
    map_handle.remove_layer(layer)
    return True
