"""Zoom visibility state and the values derived from it."""

from __future__ import annotations

import math
from enum import StrEnum

from pymapview.models._base import SnapshotModel, StateModel


class ToggleReason(StrEnum):
    """What caused a layer's rendered state to flip."""

    USER = "user"
    ZOOM = "zoom"
    REGISTER = "register"
    UNREGISTER = "unregister"
    CONFIG = "config"


class LayerVisibilityState(StateModel):
    """Per-layer visibility state owned by the zoom visibility manager.

    After every settle ``currently_rendered == user_visible and zoom_eligible``.
    """

    layer_id: int
    display_name: str
    is_restricted_category: bool = False
    user_visible: bool = False
    zoom_eligible: bool = True
    currently_rendered: bool = False
    min_zoom: int = 0
    custom_min_zoom: int | None = None

    @property
    def hidden_by_zoom(self) -> bool:
        return self.user_visible and not self.zoom_eligible


class LayerZoomStatus(SnapshotModel):
    can_show: bool = True
    needs_zoom: int | None = None
    current_zoom: float = 0


class ZoomHint(SnapshotModel):
    """A layer the user wants visible that the zoom gate currently hides."""

    layer_id: int
    display_name: str
    required_zoom: int
    current_zoom: float

    @property
    def zoom_levels_needed(self) -> int:
        return max(0, math.ceil(self.required_zoom - self.current_zoom))

    @property
    def message(self) -> str:
        levels = self.zoom_levels_needed
        plural = "" if levels == 1 else "s"
        return f"Zoom in {levels} more level{plural} to see {self.display_name}"


class VisibilityStats(SnapshotModel):
    total_layers: int = 0
    restricted_layers: int = 0
    hidden_by_zoom: int = 0
    current_zoom: float = 0
    restricted_min_zoom: int = 0
