"""User-selected features as a synthetic map layer.

Selected features never mutate their source layer. They are collected
into one virtual layer (id ``SELECTION_LAYER_ID``) that has its own
marker styling and its own coverage buffers, generated through the
shared :class:`~pymapview.buffers.FrontendBufferManager` under the same
sentinel parent id.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pymapview._constants import SELECTION_CATEGORY, SELECTION_LAYER_ID, SELECTION_LAYER_NAME
from pymapview._events import Subscribers
from pymapview.buffers import FrontendBufferManager
from pymapview.models.geojson import Feature, FeatureCollection
from pymapview.models.selection import SelectedFeature, SelectionLayer
from pymapview.surface import MapHandle, MarkerPrimitive, RenderLayer, attach, detach

_logger = logging.getLogger(__name__)

SelectionChangeCallback = Callable[[list[SelectedFeature]], None]
LayerUpdateCallback = Callable[[SelectionLayer], None]

SELECTED_MARKER_STYLE: dict[str, Any] = {
    "fillColor": "#FFD700",
    "color": "#FFA500",
    "weight": 2,
    "iconSize": (36, 36),
    "iconAnchor": (18, 36),
    "popupAnchor": (0, -36),
    "className": "selected-feature-icon",
    "pane": "markerPane",
}


def selection_id(lat: float, lon: float) -> str:
    """Stable selection id for a point, rounded to six decimals (~0.1 m)."""
    return f"{lat:.6f}_{lon:.6f}"


class SelectionManager:
    """Maintains the selected set and keeps its synthetic layer on the map in sync.

    Without a map (before :meth:`initialize` or after :meth:`cleanup`)
    membership is still tracked but nothing is rendered.
    """

    def __init__(self, buffer_manager: FrontendBufferManager, *, visible: bool = True) -> None:
        self._buffers = buffer_manager
        self._visible = visible
        self._map: MapHandle | None = None
        self._selected: dict[str, SelectedFeature] = {}
        self._group = RenderLayer(name=SELECTION_LAYER_NAME, pane="markerPane")
        self._selection_subscribers: Subscribers[SelectionChangeCallback] = Subscribers("selection change")
        self._layer_subscribers: Subscribers[LayerUpdateCallback] = Subscribers("selection layer")

    def initialize(self, map_handle: MapHandle) -> None:
        previous = self._map
        if previous is not None and previous is not map_handle:
            self._buffers.toggle_parent_layer_buffers(SELECTION_LAYER_ID, False, previous)
            detach(previous, self._group)
        self._map = map_handle
        if self._selected:
            self._refresh()

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def toggle_feature(
        self,
        feature_id: str,
        raw_properties: dict[str, Any] | None,
        coordinates: tuple[float, float],
        source_layer_name: str,
        owner_category: str,
        source_layer_id: int | None = None,
    ) -> bool:
        """Flip membership of *feature_id*; returns the new selected state."""
        if feature_id in self._selected:
            self.deselect_feature(feature_id)
            return False
        self.select_feature(
            feature_id,
            raw_properties,
            coordinates,
            source_layer_name,
            owner_category,
            source_layer_id,
        )
        return True

    def select_feature(
        self,
        feature_id: str,
        raw_properties: dict[str, Any] | None,
        coordinates: tuple[float, float],
        source_layer_name: str,
        owner_category: str,
        source_layer_id: int | None = None,
    ) -> None:
        self._selected[feature_id] = SelectedFeature(
            id=feature_id,
            raw_properties=dict(raw_properties or {}),
            coordinates=coordinates,
            source_layer_name=source_layer_name,
            owner_category=owner_category,
            source_layer_id=source_layer_id,
        )
        _logger.debug("Selected %s from %s", feature_id, source_layer_name)
        self._changed()

    def deselect_feature(self, feature_id: str) -> None:
        if self._selected.pop(feature_id, None) is None:
            return
        _logger.debug("Deselected %s", feature_id)
        self._changed()

    def clear_all(self) -> None:
        """Drop every selection and take the synthetic layer off the map."""
        if not self._selected:
            return
        self._selected.clear()
        self._changed()

    def is_selected(self, feature_id: str) -> bool:
        return feature_id in self._selected

    def get_selected_features(self) -> list[SelectedFeature]:
        return list(self._selected.values())

    def get_feature_collection(self) -> FeatureCollection:
        """The selected set as GeoJSON, coordinates in ``[lon, lat]`` order."""
        return FeatureCollection.from_features(
            [
                Feature(
                    id=feature.id,
                    geometry={"type": "Point", "coordinates": [feature.lon, feature.lat]},
                    properties={**feature.raw_properties, "selection_id": feature.id},
                )
                for feature in self._selected.values()
            ]
        )

    # ------------------------------------------------------------------
    # Synthetic layer
    # ------------------------------------------------------------------

    def get_selection_layer(self) -> SelectionLayer:
        return SelectionLayer(
            visible=self._visible,
            rendered=self.is_rendered(),
            feature_count=len(self._selected),
        )

    def get_render_layer(self) -> RenderLayer:
        return self._group

    def is_rendered(self) -> bool:
        return self._map is not None and self._map.has_layer(self._group)

    def set_layer_visible(self, visible: bool) -> None:
        """Show or hide the synthetic layer together with its buffers."""
        self._visible = visible
        map_handle = self._map
        if map_handle is not None and self._selected:
            if visible:
                attach(map_handle, self._group)
                self._buffers.toggle_parent_layer_buffers(SELECTION_LAYER_ID, True, map_handle)
            else:
                self._buffers.toggle_parent_layer_buffers(SELECTION_LAYER_ID, False, map_handle)
                detach(map_handle, self._group)
        self._layer_subscribers.emit(self.get_selection_layer())

    def _changed(self) -> None:
        self._refresh()
        self._selection_subscribers.emit(self.get_selected_features())
        self._layer_subscribers.emit(self.get_selection_layer())

    def _refresh(self) -> None:
        map_handle = self._map
        if map_handle is None:
            return

        self._group.clear()
        for feature in self._selected.values():
            self._group.add(
                MarkerPrimitive(
                    lat=feature.lat,
                    lon=feature.lon,
                    style=SELECTED_MARKER_STYLE,
                    properties={**feature.raw_properties, "selection_id": feature.id},
                    alt=f"selected-{feature.id}",
                )
            )

        if not self._selected:
            self._buffers.toggle_parent_layer_buffers(SELECTION_LAYER_ID, False, map_handle)
            detach(map_handle, self._group)
            self._buffers.remove_buffers_for_parent(SELECTION_LAYER_ID, map_handle)
            return

        self._buffers.generate_buffers_from_feature_data(
            self.get_feature_collection(),
            SELECTION_LAYER_ID,
            SELECTION_LAYER_NAME,
            SELECTION_CATEGORY,
        )
        if self._visible:
            attach(map_handle, self._group)
            self._buffers.toggle_parent_layer_buffers(SELECTION_LAYER_ID, True, map_handle)
        else:
            self._buffers.toggle_parent_layer_buffers(SELECTION_LAYER_ID, False, map_handle)
            detach(map_handle, self._group)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cleanup(self) -> None:
        """Detach the synthetic layer and its buffers and forget the selection."""
        map_handle = self._map
        if map_handle is not None:
            self._buffers.toggle_parent_layer_buffers(SELECTION_LAYER_ID, False, map_handle)
            detach(map_handle, self._group)
        self._buffers.remove_buffers_for_parent(SELECTION_LAYER_ID, map_handle)
        self._group.clear()
        self._selected.clear()
        self._selection_subscribers.clear()
        self._layer_subscribers.clear()
        self._map = None

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_selection_change(self, callback: SelectionChangeCallback) -> Callable[[], None]:
        return self._selection_subscribers.subscribe(callback)

    def off_selection_change(self, callback: SelectionChangeCallback) -> None:
        self._selection_subscribers.unsubscribe(callback)

    def on_layer_update(self, callback: LayerUpdateCallback) -> Callable[[], None]:
        return self._layer_subscribers.subscribe(callback)

    def off_layer_update(self, callback: LayerUpdateCallback) -> None:
        self._layer_subscribers.unsubscribe(callback)
