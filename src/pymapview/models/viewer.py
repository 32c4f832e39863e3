"""Presentation-facing snapshots produced by the viewer."""

from __future__ import annotations

from pydantic import Field

from pymapview.models._base import SnapshotModel
from pymapview.models.buffers import BufferOverlay


class LoadProgress(SnapshotModel):
    loaded: int = 0
    failed: int = 0
    total: int = 0
    layer_name: str = ""
    status: str = ""

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return round(100.0 * (self.loaded + self.failed) / self.total, 1)


class LayerControlEntry(SnapshotModel):
    """One row of a layer-control panel."""

    layer_id: int
    name: str
    group_name: str = ""
    user_visible: bool = False
    rendered: bool = False
    is_restricted_category: bool = False
    needs_zoom: int | None = None
    buffers: list[BufferOverlay] = Field(default_factory=list)
