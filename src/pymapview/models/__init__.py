"""Data models for pymapview."""

from pymapview.models._base import SnapshotModel, StateModel, WireModel
from pymapview.models.buffers import BufferOverlay, BufferStats, ParentBufferRelationship
from pymapview.models.geojson import Feature, FeatureCollection, Geometry
from pymapview.models.project import Basemap, LayerGroup, LayerInfo, ProjectDefinition, ProjectInfo
from pymapview.models.selection import SelectedFeature, SelectionLayer
from pymapview.models.viewer import LayerControlEntry, LoadProgress
from pymapview.models.visibility import (
    LayerVisibilityState,
    LayerZoomStatus,
    ToggleReason,
    VisibilityStats,
    ZoomHint,
)

__all__ = [
    "Basemap",
    "BufferOverlay",
    "BufferStats",
    "Feature",
    "FeatureCollection",
    "Geometry",
    "LayerControlEntry",
    "LayerGroup",
    "LayerInfo",
    "LayerVisibilityState",
    "LayerZoomStatus",
    "LoadProgress",
    "ParentBufferRelationship",
    "ProjectDefinition",
    "ProjectInfo",
    "SelectedFeature",
    "SelectionLayer",
    "SnapshotModel",
    "StateModel",
    "ToggleReason",
    "VisibilityStats",
    "WireModel",
    "ZoomHint",
]
