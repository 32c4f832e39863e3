"""Zoom-gated layer visibility.

:class:`ZoomVisibilityManager` is the single source of truth for whether
a layer is actually rendered. Each layer is a tiny combinational state
machine over two booleans, the user's intent and zoom eligibility:

    currently_rendered == user_visible and zoom_eligible

The non-trivial part is the notification discipline. ``on_layer_toggle``
fires only on an actual edge of ``currently_rendered``, never on a
re-evaluation that leaves it unchanged, so repeated zoom ticks do not
thrash the map. ``on_zoom_hints`` fires once per zoom event with the
full recomputed hint list, and otherwise only when that list changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pymapview._events import Subscribers
from pymapview.config import ViewerConfig
from pymapview.models.visibility import (
    LayerVisibilityState,
    LayerZoomStatus,
    ToggleReason,
    VisibilityStats,
    ZoomHint,
)
from pymapview.surface import MapHandle

_logger = logging.getLogger(__name__)

LayerToggleCallback = Callable[[int, bool, ToggleReason], None]
ZoomHintsCallback = Callable[[list[ZoomHint]], None]


class ZoomVisibilityManager:
    """Tracks user intent against zoom eligibility for every registered layer.

    The manager may be driven before :meth:`initialize` (no zoom known:
    every layer counts as zoom-eligible). After :meth:`cleanup` every
    call is a no-op until the manager is initialised again.
    """

    def __init__(self, *, restricted_min_zoom: int = 11) -> None:
        self._restricted_min_zoom = restricted_min_zoom
        self._map: MapHandle | None = None
        self._detach_listener: Callable[[], None] | None = None
        self._closed = False
        self._states: dict[int, LayerVisibilityState] = {}
        self._last_hints: list[ZoomHint] = []
        self._toggle_subscribers: Subscribers[LayerToggleCallback] = Subscribers("layer toggle")
        self._hint_subscribers: Subscribers[ZoomHintsCallback] = Subscribers("zoom hints")

    @classmethod
    def from_config(cls, config: ViewerConfig) -> ZoomVisibilityManager:
        return cls(restricted_min_zoom=config.restricted_min_zoom)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, map_handle: MapHandle) -> None:
        """Bind to *map_handle*'s zoom-end signal and re-evaluate all layers."""
        self._unbind()
        self._closed = False
        self._map = map_handle
        self._detach_listener = map_handle.on_zoom_end(self._on_zoom_end)
        _logger.debug(
            "Zoom visibility manager bound to map at zoom %s (restricted min zoom %d)",
            map_handle.get_zoom(),
            self._restricted_min_zoom,
        )
        if self._states:
            self.handle_zoom_change()

    def cleanup(self) -> None:
        """Detach from the map and drop all state. Safe to call repeatedly."""
        self._unbind()
        self._states.clear()
        self._last_hints = []
        self._toggle_subscribers.clear()
        self._hint_subscribers.clear()
        self._closed = True

    def _unbind(self) -> None:
        detach = self._detach_listener
        self._detach_listener = None
        self._map = None
        if detach is not None:
            detach()

    @property
    def is_initialized(self) -> bool:
        return self._map is not None

    @property
    def restricted_min_zoom(self) -> int:
        return self._restricted_min_zoom

    def _current_zoom(self) -> float | None:
        if self._map is None:
            return None
        return self._map.get_zoom()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_layer(
        self,
        layer_id: int,
        name: str,
        is_restricted_category: bool,
        user_visible: bool,
        custom_min_zoom: int | None = None,
    ) -> None:
        """Start tracking a layer and settle it against the current zoom."""
        if self._closed:
            return
        min_zoom = self._min_zoom_for(is_restricted_category, custom_min_zoom)
        previous = self._states.get(layer_id)
        state = LayerVisibilityState(
            layer_id=layer_id,
            display_name=name,
            is_restricted_category=is_restricted_category,
            user_visible=user_visible,
            zoom_eligible=self._is_eligible(min_zoom, self._current_zoom()),
            currently_rendered=previous.currently_rendered if previous is not None else False,
            min_zoom=min_zoom,
            custom_min_zoom=custom_min_zoom,
        )
        self._states[layer_id] = state
        _logger.debug(
            "Registered layer %s (%d): restricted=%s min_zoom=%d",
            name,
            layer_id,
            is_restricted_category,
            min_zoom,
        )
        self._settle(state, ToggleReason.REGISTER)
        self._emit_hints_if_changed()

    def unregister_layer(self, layer_id: int) -> None:
        """Stop tracking a layer; a rendered layer is first toggled off."""
        if self._closed:
            return
        state = self._states.get(layer_id)
        if state is None:
            return
        if state.currently_rendered:
            state.currently_rendered = False
            self._toggle_subscribers.emit(layer_id, False, ToggleReason.UNREGISTER)
        self._states.pop(layer_id, None)
        self._emit_hints_if_changed()

    def _min_zoom_for(self, is_restricted_category: bool, custom_min_zoom: int | None) -> int:
        if custom_min_zoom is not None:
            return custom_min_zoom
        return self._restricted_min_zoom if is_restricted_category else 0

    @staticmethod
    def _is_eligible(min_zoom: int, zoom: float | None) -> bool:
        if zoom is None:
            return True
        return zoom >= min_zoom

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def set_user_visibility(self, layer_id: int, visible: bool) -> None:
        """Record the user's intent for one layer and re-settle it."""
        if self._closed:
            return
        state = self._states.get(layer_id)
        if state is None:
            _logger.debug("Visibility change for unregistered layer %d ignored", layer_id)
            return
        state.user_visible = visible
        self._settle(state, ToggleReason.USER)
        self._emit_hints_if_changed()

    def handle_zoom_change(self, zoom: float | None = None) -> None:
        """Re-evaluate zoom eligibility of every layer.

        Only layers whose eligibility flipped are re-settled; the hint
        list is emitted exactly once per call.
        """
        if self._closed or self._map is None:
            return
        current_zoom = self._map.get_zoom() if zoom is None else zoom
        for state in list(self._states.values()):
            if self._states.get(state.layer_id) is not state:
                continue
            eligible = self._is_eligible(state.min_zoom, current_zoom)
            if eligible == state.zoom_eligible:
                continue
            state.zoom_eligible = eligible
            _logger.debug("Layer %s: zoom eligibility -> %s at zoom %s", state.display_name, eligible, current_zoom)
            self._settle(state, ToggleReason.ZOOM)
        self._emit_hints(self._compute_hints(current_zoom))

    def _on_zoom_end(self, zoom: float) -> None:
        self.handle_zoom_change(zoom)

    def set_restricted_min_zoom(self, min_zoom: int) -> None:
        """Change the default minimum zoom of restricted layers.

        Layers registered with a custom minimum keep it.
        """
        if min_zoom < 0:
            raise ValueError(f"min_zoom must be >= 0, got {min_zoom}")
        self._restricted_min_zoom = min_zoom
        if self._closed:
            return
        current_zoom = self._current_zoom()
        for state in list(self._states.values()):
            if not state.is_restricted_category or state.custom_min_zoom is not None:
                continue
            state.min_zoom = min_zoom
            state.zoom_eligible = self._is_eligible(min_zoom, current_zoom)
            self._settle(state, ToggleReason.CONFIG)
        self._emit_hints_if_changed()

    def _settle(self, state: LayerVisibilityState, reason: ToggleReason) -> None:
        should_render = state.user_visible and state.zoom_eligible
        if state.currently_rendered == should_render:
            return
        state.currently_rendered = should_render
        _logger.debug(
            "Layer %s: rendered=%s (user=%s, zoom=%s, reason=%s)",
            state.display_name,
            should_render,
            state.user_visible,
            state.zoom_eligible,
            reason,
        )
        self._toggle_subscribers.emit(state.layer_id, should_render, reason)

    # ------------------------------------------------------------------
    # Zoom hints
    # ------------------------------------------------------------------

    def _compute_hints(self, current_zoom: float | None) -> list[ZoomHint]:
        zoom = current_zoom if current_zoom is not None else 0
        return [
            ZoomHint(
                layer_id=state.layer_id,
                display_name=state.display_name,
                required_zoom=state.min_zoom,
                current_zoom=zoom,
            )
            for state in self._states.values()
            if state.hidden_by_zoom
        ]

    def _emit_hints(self, hints: list[ZoomHint]) -> None:
        self._last_hints = hints
        self._hint_subscribers.emit(list(hints))

    def _emit_hints_if_changed(self) -> None:
        hints = self._compute_hints(self._current_zoom())
        if hints != self._last_hints:
            self._emit_hints(hints)

    def get_zoom_hints(self) -> list[ZoomHint]:
        return self._compute_hints(self._current_zoom())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_layer_zoom_status(self, layer_id: int) -> LayerZoomStatus:
        state = self._states.get(layer_id)
        current_zoom = self._current_zoom()
        if state is None or current_zoom is None:
            return LayerZoomStatus(can_show=True, needs_zoom=None, current_zoom=0)
        return LayerZoomStatus(
            can_show=state.zoom_eligible,
            needs_zoom=None if state.zoom_eligible else state.min_zoom,
            current_zoom=current_zoom,
        )

    def is_registered(self, layer_id: int) -> bool:
        return layer_id in self._states

    def is_rendered(self, layer_id: int) -> bool:
        state = self._states.get(layer_id)
        return state is not None and state.currently_rendered

    def get_layer_state(self, layer_id: int) -> LayerVisibilityState | None:
        state = self._states.get(layer_id)
        return state.model_copy() if state is not None else None

    def get_layer_states(self) -> list[LayerVisibilityState]:
        return [state.model_copy() for state in self._states.values()]

    def has_hidden_restricted_layers(self) -> bool:
        return any(state.is_restricted_category and state.hidden_by_zoom for state in self._states.values())

    def get_stats(self) -> VisibilityStats:
        restricted = [state for state in self._states.values() if state.is_restricted_category]
        current_zoom = self._current_zoom()
        return VisibilityStats(
            total_layers=len(self._states),
            restricted_layers=len(restricted),
            hidden_by_zoom=sum(1 for state in restricted if state.hidden_by_zoom),
            current_zoom=current_zoom if current_zoom is not None else 0,
            restricted_min_zoom=self._restricted_min_zoom,
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_layer_toggle(self, callback: LayerToggleCallback) -> Callable[[], None]:
        return self._toggle_subscribers.subscribe(callback)

    def off_layer_toggle(self, callback: LayerToggleCallback) -> None:
        self._toggle_subscribers.unsubscribe(callback)

    def on_zoom_hints(self, callback: ZoomHintsCallback) -> Callable[[], None]:
        return self._hint_subscribers.subscribe(callback)

    def off_zoom_hints(self, callback: ZoomHintsCallback) -> None:
        self._hint_subscribers.unsubscribe(callback)
