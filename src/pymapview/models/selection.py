"""Feature selection models."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pymapview._constants import SELECTION_CATEGORY, SELECTION_LAYER_ID, SELECTION_LAYER_NAME
from pymapview.models._base import SnapshotModel


class SelectedFeature(SnapshotModel):
    """A point feature the user picked from any layer.

    ``coordinates`` are ``(lat, lon)``.
    """

    id: str
    raw_properties: dict[str, Any] = Field(default_factory=dict)
    coordinates: tuple[float, float]
    source_layer_name: str
    owner_category: str
    source_layer_id: int | None = None

    @property
    def lat(self) -> float:
        return self.coordinates[0]

    @property
    def lon(self) -> float:
        return self.coordinates[1]


class SelectionLayer(SnapshotModel):
    """The synthetic layer that holds every selected feature."""

    id: int = SELECTION_LAYER_ID
    name: str = SELECTION_LAYER_NAME
    layer_type_name: str = "Point Layer"
    visible: bool = False
    rendered: bool = False
    feature_count: int = 0
    owner_category: str = SELECTION_CATEGORY
