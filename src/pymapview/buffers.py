"""Lifecycle of client-synthesized coverage buffer overlays.

Overlays are keyed by parent layer. Geometry comes from
:mod:`pymapview.geometry`; this module only decides which overlays
exist and which of them are attached to the map. An overlay is drawn
iff its ``is_enabled_by_user`` flag is set and its parent layer is
currently rendered.

Map mutations are idempotent: attaching an attached overlay or
detaching a detached one does nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from pymapview._events import Subscribers
from pymapview.config import BufferStyle, ViewerConfig
from pymapview.geometry import BufferGeometry, buffer_id, generate_buffer_geometries
from pymapview.models.buffers import BufferOverlay, BufferStats, ParentBufferRelationship
from pymapview.models.geojson import FeatureCollection
from pymapview.surface import CirclePrimitive, MapHandle, RenderLayer, attach, detach

_logger = logging.getLogger(__name__)

BuffersChangedCallback = Callable[[list[ParentBufferRelationship]], None]


def _unique(radii: Sequence[float]) -> list[float]:
    seen: set[float] = set()
    result: list[float] = []
    for radius in radii:
        value = float(radius)
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class FrontendBufferManager:
    """Creates, shows, hides and tears down buffer overlays per parent layer."""

    def __init__(
        self,
        *,
        radii_miles: Sequence[float] = (2.0, 5.0),
        style: BufferStyle | None = None,
        circle_segments: int = 64,
    ) -> None:
        self._radii = _unique(radii_miles)
        self._style = style or BufferStyle()
        self._segments = circle_segments
        self._overlays: dict[str, BufferOverlay] = {}
        self._groups: dict[str, RenderLayer] = {}
        self._parents: dict[int, list[str]] = {}
        self._parent_rendered: dict[int, bool] = {}
        self._attached: dict[str, MapHandle] = {}
        self._closed = False
        self._subscribers: Subscribers[BuffersChangedCallback] = Subscribers("buffer relationships")

    @classmethod
    def from_config(cls, config: ViewerConfig) -> FrontendBufferManager:
        return cls(
            radii_miles=config.buffer_radii_miles,
            style=config.buffer_style,
            circle_segments=config.circle_segments,
        )

    @property
    def radii(self) -> list[float]:
        return list(self._radii)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_buffers_from_feature_data(
        self,
        feature_collection: FeatureCollection,
        parent_layer_id: int,
        parent_layer_name: str,
        owner_category: str,
        radii: Sequence[float] | None = None,
    ) -> list[BufferOverlay]:
        """Synthesize one overlay per radius for a parent layer.

        Replaces any overlays the parent already had. An overlay whose id
        survives the replacement keeps its ``is_enabled_by_user`` flag
        and, if it was drawn, is drawn again on the same map.
        If geometry generation raises, the existing overlays are left as
        they were.
        """
        if self._closed:
            return []
        radii_list = _unique(radii) if radii is not None else list(self._radii)
        geometries = generate_buffer_geometries(
            feature_collection,
            radii_list,
            owner_category,
            style=self._style,
            segments=self._segments,
        )

        previous_flags = {
            overlay_id: self._overlays[overlay_id].is_enabled_by_user
            for overlay_id in self._parents.get(parent_layer_id, [])
        }
        previous_maps = {
            overlay_id: self._attached[overlay_id]
            for overlay_id in self._parents.get(parent_layer_id, [])
            if overlay_id in self._attached
        }
        self._drop_parent(parent_layer_id, None)

        created: list[BufferOverlay] = []
        ids: list[str] = []
        for geometry in geometries:
            overlay_id = buffer_id(parent_layer_id, geometry.radius)
            overlay = BufferOverlay(
                id=overlay_id,
                parent_layer_id=parent_layer_id,
                parent_layer_name=parent_layer_name,
                owner_category=owner_category,
                radius=geometry.radius,
                radius_meters=geometry.radius_m,
                color=geometry.color,
                rendered_feature_count=geometry.feature_count,
                is_enabled_by_user=previous_flags.get(overlay_id, False),
            )
            self._overlays[overlay_id] = overlay
            self._groups[overlay_id] = self._build_group(parent_layer_name, owner_category, geometry)
            ids.append(overlay_id)
            created.append(overlay.model_copy())

        self._parents[parent_layer_id] = ids
        self._parent_rendered.setdefault(parent_layer_id, False)

        for overlay_id, map_handle in previous_maps.items():
            overlay = self._overlays.get(overlay_id)
            if overlay is not None and overlay.is_enabled_by_user and self._parent_rendered[parent_layer_id]:
                self._attach(overlay_id, map_handle)

        _logger.debug(
            "Generated %d buffer overlays for %s (%d) with %d circles each",
            len(created),
            parent_layer_name,
            parent_layer_id,
            created[0].rendered_feature_count if created else 0,
        )
        self._notify()
        return created

    def _build_group(self, parent_layer_name: str, owner_category: str, geometry: BufferGeometry) -> RenderLayer:
        group = RenderLayer(name=f"{parent_layer_name} ({geometry.radius:g} mi buffer)", pane=self._style.pane)
        for circle in geometry.circles:
            group.add(
                CirclePrimitive(
                    lat=circle.lat,
                    lon=circle.lon,
                    radius_m=circle.radius_m,
                    polygon=circle.polygon,
                    style=geometry.style,
                    properties={
                        **circle.properties,
                        "buffer_radius_miles": geometry.radius,
                        "owner_category": owner_category,
                    },
                )
            )
        return group

    # ------------------------------------------------------------------
    # Map attachment
    # ------------------------------------------------------------------

    def _attach(self, overlay_id: str, map_handle: MapHandle) -> None:
        group = self._groups[overlay_id]
        current = self._attached.get(overlay_id)
        if current is not None and current is not map_handle:
            detach(current, group)
        attach(map_handle, group)
        self._attached[overlay_id] = map_handle

    def _detach(self, overlay_id: str, map_handle: MapHandle | None) -> None:
        group = self._groups.get(overlay_id)
        target = self._attached.pop(overlay_id, None) or map_handle
        if group is not None and target is not None:
            detach(target, group)

    def toggle_parent_layer_buffers(
        self,
        parent_layer_id: int,
        parent_is_rendered: bool,
        map_handle: MapHandle | None,
    ) -> None:
        """Show or hide every overlay of a parent, honouring each overlay's own flag."""
        if self._closed:
            return
        self._parent_rendered[parent_layer_id] = parent_is_rendered
        overlay_ids = self._parents.get(parent_layer_id)
        if not overlay_ids or map_handle is None:
            return
        for overlay_id in overlay_ids:
            if parent_is_rendered and self._overlays[overlay_id].is_enabled_by_user:
                self._attach(overlay_id, map_handle)
            else:
                self._detach(overlay_id, map_handle)
        self._notify()

    def toggle_buffer_layer(
        self,
        buffer_id: str,
        enabled: bool,
        map_handle: MapHandle | None,
        parent_currently_rendered: bool = True,
    ) -> None:
        """Set one overlay's user flag and attach it iff enabled and the parent is rendered."""
        if self._closed:
            return
        overlay = self._overlays.get(buffer_id)
        if overlay is None:
            _logger.debug("Toggle for unknown buffer %s ignored", buffer_id)
            return
        overlay.is_enabled_by_user = enabled
        self._parent_rendered[overlay.parent_layer_id] = parent_currently_rendered
        if map_handle is not None:
            if enabled and parent_currently_rendered:
                self._attach(buffer_id, map_handle)
            else:
                self._detach(buffer_id, map_handle)
        self._notify()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _drop_parent(self, parent_layer_id: int, map_handle: MapHandle | None) -> bool:
        overlay_ids = self._parents.pop(parent_layer_id, None)
        if overlay_ids is None:
            return False
        for overlay_id in overlay_ids:
            self._detach(overlay_id, map_handle)
            self._overlays.pop(overlay_id, None)
            self._groups.pop(overlay_id, None)
        return True

    def remove_buffers_for_parent(self, parent_layer_id: int, map_handle: MapHandle | None = None) -> None:
        """Detach and forget every overlay of a parent layer."""
        if self._closed:
            return
        removed = self._drop_parent(parent_layer_id, map_handle)
        self._parent_rendered.pop(parent_layer_id, None)
        if removed:
            _logger.debug("Removed buffers for parent layer %d", parent_layer_id)
            self._notify()

    def cleanup(self, map_handle: MapHandle | None = None) -> None:
        """Detach all overlays and clear state and subscribers.

        Later mutating calls are no-ops. Safe to call repeatedly.
        """
        if self._closed:
            return
        for overlay_id in list(self._overlays):
            self._detach(overlay_id, map_handle)
        self._overlays.clear()
        self._groups.clear()
        self._parents.clear()
        self._parent_rendered.clear()
        self._attached.clear()
        self._subscribers.clear()
        self._closed = True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_buffer_layer(self, buffer_id: str) -> BufferOverlay | None:
        overlay = self._overlays.get(buffer_id)
        return overlay.model_copy() if overlay is not None else None

    def get_render_layer(self, buffer_id: str) -> RenderLayer | None:
        return self._groups.get(buffer_id)

    def get_buffers_for_parent(self, parent_layer_id: int) -> list[BufferOverlay]:
        return [self._overlays[overlay_id].model_copy() for overlay_id in self._parents.get(parent_layer_id, [])]

    def has_buffers_for_layer(self, layer_id: int) -> bool:
        return layer_id in self._parents

    def get_buffer_count_for_layer(self, layer_id: int) -> int:
        return len(self._parents.get(layer_id, []))

    def is_drawn(self, buffer_id: str) -> bool:
        group = self._groups.get(buffer_id)
        map_handle = self._attached.get(buffer_id)
        return group is not None and map_handle is not None and map_handle.has_layer(group)

    def get_relationships(self) -> list[ParentBufferRelationship]:
        relationships: list[ParentBufferRelationship] = []
        for parent_layer_id, overlay_ids in self._parents.items():
            if not overlay_ids:
                continue
            first = self._overlays[overlay_ids[0]]
            relationships.append(
                ParentBufferRelationship(
                    parent_layer_id=parent_layer_id,
                    parent_layer_name=first.parent_layer_name,
                    owner_category=first.owner_category,
                    parent_rendered=self._parent_rendered.get(parent_layer_id, False),
                    buffers=[self._overlays[overlay_id].model_copy() for overlay_id in overlay_ids],
                )
            )
        return relationships

    def get_stats(self) -> BufferStats:
        return BufferStats(
            total_buffers=len(self._overlays),
            total_parents=len(self._parents),
            total_buffer_circles=sum(overlay.rendered_feature_count for overlay in self._overlays.values()),
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_buffers_changed(self, callback: BuffersChangedCallback) -> Callable[[], None]:
        return self._subscribers.subscribe(callback)

    def off_buffers_changed(self, callback: BuffersChangedCallback) -> None:
        self._subscribers.unsubscribe(callback)

    def _notify(self) -> None:
        if len(self._subscribers) == 0:
            return
        self._subscribers.emit(self.get_relationships())
