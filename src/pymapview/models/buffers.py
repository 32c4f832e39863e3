"""Coverage buffer overlay models."""

from __future__ import annotations

from pydantic import Field

from pymapview.models._base import SnapshotModel, StateModel


class BufferOverlay(StateModel):
    """One ring of coverage circles (a single radius) around a parent layer's points.

    Drawn on the map iff ``is_enabled_by_user`` and the parent layer is
    currently rendered.
    """

    id: str
    parent_layer_id: int
    parent_layer_name: str
    owner_category: str
    radius: float
    radius_meters: float
    color: str
    rendered_feature_count: int = 0
    is_enabled_by_user: bool = False


class ParentBufferRelationship(SnapshotModel):
    parent_layer_id: int
    parent_layer_name: str
    owner_category: str
    parent_rendered: bool = False
    buffers: list[BufferOverlay] = Field(default_factory=list)


class BufferStats(SnapshotModel):
    total_buffers: int = 0
    total_parents: int = 0
    total_buffer_circles: int = 0
