"""Composition root of a map viewer session.

:class:`ViewerOrchestrator` owns one instance of each manager, loads a
project's layers one at a time and integrates each before the next is
fetched, and relays manager notifications to the presentation layer.
It is the only component that adds or removes primary layers; buffer
overlays and the selection layer are attached by their own managers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from pymapview._constants import SELECTION_LAYER_ID, SELECTION_LAYER_NAME, WORLD_BOUNDS
from pymapview._events import Subscribers
from pymapview.buffers import BuffersChangedCallback, FrontendBufferManager
from pymapview.config import ViewerConfig
from pymapview.exceptions import MapViewError
from pymapview.geometry import owner_category_from_name, owner_color
from pymapview.models.buffers import BufferOverlay, BufferStats
from pymapview.models.geojson import FeatureCollection
from pymapview.models.project import Basemap, LayerInfo, ProjectDefinition
from pymapview.models.selection import SelectedFeature
from pymapview.models.viewer import LayerControlEntry, LoadProgress
from pymapview.models.visibility import LayerZoomStatus, ToggleReason, ZoomHint
from pymapview.selection import SelectionChangeCallback, SelectionManager, selection_id
from pymapview.surface import MapHandle, MarkerPrimitive, RenderLayer, ShapePrimitive, attach, detach
from pymapview.visibility import LayerToggleCallback, ZoomHintsCallback, ZoomVisibilityManager

_logger = logging.getLogger(__name__)

LoadProgressCallback = Callable[[LoadProgress], None]


class LayerDataSource(Protocol):
    """What the viewer needs from the backend; :class:`~pymapview.client.MapViewClient` satisfies it."""

    async def get_project(self, project_id: int) -> ProjectDefinition:
        ...

    async def load_layer_features(
        self,
        layer_id: int,
        bounds: str = WORLD_BOUNDS,
        zoom: int = 1,
        *,
        layer_name: str = "",
    ) -> FeatureCollection:
        ...


def layer_owner_category(layer: LayerInfo) -> str:
    return layer.owner_category or owner_category_from_name(layer.name)


def build_primary_layer(layer: LayerInfo, collection: FeatureCollection) -> RenderLayer:
    """Markers for point features, path shapes for everything else."""
    color = owner_color(layer_owner_category(layer))
    marker_style: dict[str, Any] = {
        "color": color,
        "fillColor": color,
        "radius": 6,
        "weight": 1,
        "fillOpacity": 0.8,
        "pane": "markerPane",
        **layer.style,
    }
    shape_style: dict[str, Any] = {"color": color, "weight": 2, "fillOpacity": 0.2, **layer.style}

    group = RenderLayer(name=layer.name, pane="markerPane")
    for feature in collection.features:
        coords = feature.point_coordinates()
        if coords is not None:
            lon, lat = coords
            group.add(
                MarkerPrimitive(
                    lat=lat,
                    lon=lon,
                    style=marker_style,
                    properties=dict(feature.properties),
                    alt=f"{layer.name}-{feature.id}" if feature.id is not None else layer.name,
                )
            )
        elif feature.geometry is not None and feature.geometry.type != "Point":
            group.add(
                ShapePrimitive(
                    geometry=feature.geometry.model_dump(),
                    style=shape_style,
                    properties=dict(feature.properties),
                )
            )
    return group


class ViewerOrchestrator:
    """Sequences layer loading and keeps the map in step with the managers.

    Usage::

        async with MapViewClient(config) as client:
            viewer = ViewerOrchestrator(client, config)
            viewer.attach_map(map_handle)
            await viewer.load_project(42)
            ...
            viewer.close()
    """

    def __init__(
        self,
        source: LayerDataSource,
        config: ViewerConfig | None = None,
        *,
        visibility: ZoomVisibilityManager | None = None,
        buffers: FrontendBufferManager | None = None,
        selection: SelectionManager | None = None,
    ) -> None:
        self._source = source
        self._config = config or ViewerConfig()
        self._visibility = visibility if visibility is not None else ZoomVisibilityManager.from_config(self._config)
        self._buffers = buffers if buffers is not None else FrontendBufferManager.from_config(self._config)
        self._selection = (
            selection
            if selection is not None
            else SelectionManager(self._buffers, visible=self._config.selection_visible)
        )
        self._map: MapHandle | None = None
        self._project: ProjectDefinition | None = None
        self._layers: dict[int, LayerInfo] = {}
        self._primary: dict[int, RenderLayer] = {}
        self._user_visible: dict[int, bool] = {}
        self._closed = False
        self._progress_subscribers: Subscribers[LoadProgressCallback] = Subscribers("load progress")
        self._visibility.on_layer_toggle(self._on_layer_toggle)

    # ------------------------------------------------------------------
    # Managers
    # ------------------------------------------------------------------

    @property
    def visibility(self) -> ZoomVisibilityManager:
        return self._visibility

    @property
    def buffers(self) -> FrontendBufferManager:
        return self._buffers

    @property
    def selection(self) -> SelectionManager:
        return self._selection

    @property
    def project(self) -> ProjectDefinition | None:
        return self._project

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Map binding
    # ------------------------------------------------------------------

    def attach_map(self, map_handle: MapHandle) -> None:
        """Bind every manager to *map_handle* and draw what is already rendered."""
        if self._closed:
            raise MapViewError("Viewer is closed")
        previous = self._map
        if previous is not None and previous is not map_handle:
            for layer_id, group in self._primary.items():
                self._buffers.toggle_parent_layer_buffers(layer_id, False, previous)
                detach(previous, group)
        self._map = map_handle
        self._visibility.initialize(map_handle)
        for layer_id in list(self._primary):
            self._sync_layer(layer_id, self._visibility.is_rendered(layer_id))
        self._selection.initialize(map_handle)

    def _on_layer_toggle(self, layer_id: int, rendered: bool, reason: ToggleReason) -> None:
        _logger.debug("Layer %d toggled to %s (%s)", layer_id, rendered, reason)
        self._sync_layer(layer_id, rendered)

    def _sync_layer(self, layer_id: int, rendered: bool) -> None:
        # Buffers leave the map before their parent and arrive after it.
        map_handle = self._map
        group = self._primary.get(layer_id)
        if rendered:
            if group is not None and map_handle is not None:
                attach(map_handle, group)
            self._buffers.toggle_parent_layer_buffers(layer_id, True, map_handle)
        else:
            self._buffers.toggle_parent_layer_buffers(layer_id, False, map_handle)
            if group is not None and map_handle is not None:
                detach(map_handle, group)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_project(self, project_id: int) -> LoadProgress:
        """Fetch a project and load its layers sequentially.

        A layer whose data fails to load is logged and skipped. If the
        viewer is closed while a request is in flight, the result is
        discarded and loading stops.
        """
        project = await self._source.get_project(project_id)
        if self._closed:
            _logger.debug("Viewer closed while loading project %d; discarding", project_id)
            return LoadProgress(status="cancelled")
        self._project = project

        layers = project.all_layers()
        for layer in layers:
            self._user_visible.setdefault(layer.id, layer.initially_visible)

        progress = LoadProgress(total=len(layers), status="loading")
        self._progress_subscribers.emit(progress)

        for index, layer in enumerate(layers, start=1):
            _logger.debug("Loading %s (%d/%d)", layer.name, index, len(layers))
            try:
                collection = await self._source.load_layer_features(
                    layer.id,
                    WORLD_BOUNDS,
                    1,
                    layer_name=layer.name,
                )
            except MapViewError as exc:
                _logger.warning("Skipping layer %s (%d): %s", layer.name, layer.id, exc)
                progress = progress.model_copy(
                    update={"failed": progress.failed + 1, "layer_name": layer.name, "status": "failed"}
                )
                self._progress_subscribers.emit(progress)
                continue

            if self._closed:
                _logger.debug("Viewer closed while loading %s; discarding", layer.name)
                return progress.model_copy(update={"status": "cancelled"})

            self.integrate_layer(layer, collection)
            progress = progress.model_copy(
                update={"loaded": progress.loaded + 1, "layer_name": layer.name, "status": "loaded"}
            )
            self._progress_subscribers.emit(progress)

        progress = progress.model_copy(update={"layer_name": "", "status": "complete"})
        self._progress_subscribers.emit(progress)
        _logger.info(
            "Project %s: %d of %d layers loaded, %d failed",
            project.project.name or project_id,
            progress.loaded,
            progress.total,
            progress.failed,
        )
        return progress

    def integrate_layer(self, layer: LayerInfo, collection: FeatureCollection) -> bool:
        """Register a loaded layer with the managers and draw it if eligible.

        Returns False (and registers nothing) for an empty collection or a
        closed viewer.
        """
        if self._closed:
            return False
        if len(collection) == 0:
            _logger.debug("Layer %s (%d) has no features; not registered", layer.name, layer.id)
            return False

        previous = self._primary.get(layer.id)
        if previous is not None and self._map is not None:
            detach(self._map, previous)
        self._primary[layer.id] = build_primary_layer(layer, collection)
        self._layers[layer.id] = layer
        user_visible = self._user_visible.setdefault(layer.id, layer.initially_visible)

        self._visibility.register_layer(
            layer.id,
            layer.name,
            layer.is_restricted_category,
            user_visible,
            layer.custom_min_zoom,
        )

        if layer.is_restricted_category and collection.point_features:
            self._buffers.generate_buffers_from_feature_data(
                collection,
                layer.id,
                layer.name,
                layer_owner_category(layer),
            )
        else:
            self._buffers.remove_buffers_for_parent(layer.id, self._map)

        self._sync_layer(layer.id, self._visibility.is_rendered(layer.id))
        return True

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def set_layer_visibility(self, layer_id: int, visible: bool) -> None:
        if self._closed:
            return
        if layer_id == SELECTION_LAYER_ID:
            self._selection.set_layer_visible(visible)
            return
        if layer_id not in self._layers:
            if layer_id in self._user_visible:
                # in the project but not loaded yet; applied on integration
                self._user_visible[layer_id] = visible
            else:
                _logger.debug("Visibility change for unknown layer %d ignored", layer_id)
            return
        self._user_visible[layer_id] = visible
        self._visibility.set_user_visibility(layer_id, visible)

    def toggle_layer(self, layer_id: int) -> bool:
        """Flip the user's intent for a layer; returns the intent now in effect.

        A layer outside the current project is left alone and reports False.
        """
        if layer_id == SELECTION_LAYER_ID:
            self.set_layer_visibility(layer_id, not self._selection.get_selection_layer().visible)
            return self._selection.get_selection_layer().visible
        self.set_layer_visibility(layer_id, not self._user_visible.get(layer_id, False))
        return self._user_visible.get(layer_id, False)

    def toggle_buffer(self, buffer_id: str, enabled: bool) -> None:
        if self._closed:
            return
        overlay = self._buffers.get_buffer_layer(buffer_id)
        if overlay is None:
            _logger.debug("Toggle for unknown buffer %s ignored", buffer_id)
            return
        if overlay.parent_layer_id == SELECTION_LAYER_ID:
            parent_rendered = self._selection.is_rendered()
        else:
            parent_rendered = self._visibility.is_rendered(overlay.parent_layer_id)
        self._buffers.toggle_buffer_layer(buffer_id, enabled, self._map, parent_rendered)

    def toggle_feature_selection(
        self,
        source_layer_id: int,
        coordinates: tuple[float, float],
        raw_properties: dict[str, Any] | None = None,
        feature_id: str | None = None,
    ) -> bool:
        """Select or deselect a point of a loaded layer; returns the new state.

        ``coordinates`` are ``(lat, lon)``. Without *feature_id* the id is
        derived from the coordinates.
        """
        layer = self._layers.get(source_layer_id)
        layer_name = layer.name if layer is not None else str(source_layer_id)
        category = layer_owner_category(layer) if layer is not None else owner_category_from_name(layer_name)
        lat, lon = coordinates
        return self._selection.toggle_feature(
            feature_id or selection_id(lat, lon),
            raw_properties,
            (lat, lon),
            layer_name,
            category,
            source_layer_id,
        )

    def unregister_layer(self, layer_id: int) -> None:
        """Remove a layer, its buffers and its map presence."""
        self._visibility.unregister_layer(layer_id)
        self._buffers.remove_buffers_for_parent(layer_id, self._map)
        group = self._primary.pop(layer_id, None)
        if group is not None and self._map is not None:
            detach(self._map, group)
        self._layers.pop(layer_id, None)
        self._user_visible.pop(layer_id, None)

    # ------------------------------------------------------------------
    # Presentation relays
    # ------------------------------------------------------------------

    def on_zoom_hints(self, callback: ZoomHintsCallback) -> Callable[[], None]:
        return self._visibility.on_zoom_hints(callback)

    def on_layer_toggle(self, callback: LayerToggleCallback) -> Callable[[], None]:
        return self._visibility.on_layer_toggle(callback)

    def on_buffers_changed(self, callback: BuffersChangedCallback) -> Callable[[], None]:
        return self._buffers.on_buffers_changed(callback)

    def on_selection_change(self, callback: SelectionChangeCallback) -> Callable[[], None]:
        return self._selection.on_selection_change(callback)

    def on_load_progress(self, callback: LoadProgressCallback) -> Callable[[], None]:
        return self._progress_subscribers.subscribe(callback)

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------

    def get_layer_control(self) -> list[LayerControlEntry]:
        """Rows for a layer-control panel, in project order, selection last."""
        entries: list[LayerControlEntry] = []
        for layer_id, layer in self._layers.items():
            status = self._visibility.get_layer_zoom_status(layer_id)
            entries.append(
                LayerControlEntry(
                    layer_id=layer_id,
                    name=layer.name,
                    group_name=layer.group_name,
                    user_visible=self._user_visible.get(layer_id, False),
                    rendered=self._visibility.is_rendered(layer_id),
                    is_restricted_category=layer.is_restricted_category,
                    needs_zoom=status.needs_zoom,
                    buffers=self._buffers.get_buffers_for_parent(layer_id),
                )
            )
        selection_layer = self._selection.get_selection_layer()
        if selection_layer.feature_count:
            entries.append(
                LayerControlEntry(
                    layer_id=SELECTION_LAYER_ID,
                    name=SELECTION_LAYER_NAME,
                    group_name="Selection",
                    user_visible=selection_layer.visible,
                    rendered=selection_layer.rendered,
                    buffers=self._buffers.get_buffers_for_parent(SELECTION_LAYER_ID),
                )
            )
        return entries

    def get_layer_zoom_status(self, layer_id: int) -> LayerZoomStatus:
        return self._visibility.get_layer_zoom_status(layer_id)

    def get_zoom_hints(self) -> list[ZoomHint]:
        return self._visibility.get_zoom_hints()

    def get_buffer_stats(self) -> BufferStats:
        return self._buffers.get_stats()

    def get_buffers_for_layer(self, layer_id: int) -> list[BufferOverlay]:
        return self._buffers.get_buffers_for_parent(layer_id)

    def get_selected_features(self) -> list[SelectedFeature]:
        return self._selection.get_selected_features()

    def get_render_layer(self, layer_id: int) -> RenderLayer | None:
        return self._primary.get(layer_id)

    @property
    def active_basemap(self) -> Basemap | None:
        if self._project is None:
            return None
        return self._project.default_basemap()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Tear down every manager and take all layers off the map. Idempotent."""
        if self._closed:
            return
        self._closed = True
        map_handle = self._map
        self._selection.cleanup()
        self._buffers.cleanup(map_handle)
        if map_handle is not None:
            for group in self._primary.values():
                detach(map_handle, group)
        self._visibility.cleanup()
        self._progress_subscribers.clear()
        self._primary.clear()
        self._layers.clear()
        self._user_visible.clear()
        self._map = None
        _logger.debug("Viewer closed")
