"""Minimal GeoJSON models for feature data returned by the layer endpoint."""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import Field, field_validator

from pymapview.models._base import WireModel, none_to_empty_dict


class Geometry(WireModel):
    type: str
    coordinates: Any = None


class Feature(WireModel):
    """A single GeoJSON feature.

    ``geometry`` is ``None`` for features without a usable geometry
    object; such features are kept so counts stay honest, but they are
    never rendered as points.
    """

    type: Literal["Feature"] = "Feature"
    id: str | int | None = None
    geometry: Geometry | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("geometry", mode="before")
    @classmethod
    def _drop_malformed_geometry(cls, value: Any) -> Any:
        if not isinstance(value, dict) or not isinstance(value.get("type"), str):
            return None
        return value

    @field_validator("properties", mode="before")
    @classmethod
    def _coerce_properties(cls, value: Any) -> Any:
        value = none_to_empty_dict(value)
        return value if isinstance(value, dict) else {}

    @property
    def is_point(self) -> bool:
        return self.point_coordinates() is not None

    def point_coordinates(self) -> tuple[float, float] | None:
        """Return ``(lon, lat)`` for a valid Point geometry, else ``None``."""
        geometry = self.geometry
        if geometry is None or geometry.type != "Point":
            return None
        coords = geometry.coordinates
        if not isinstance(coords, (list, tuple)) or len(coords) < 2:
            return None
        try:
            lon = float(coords[0])
            lat = float(coords[1])
        except (TypeError, ValueError):
            return None
        if math.isnan(lon) or math.isnan(lat):
            return None
        if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
            return None
        return lon, lat


class FeatureCollection(WireModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[Feature] = Field(default_factory=list)

    @field_validator("features", mode="before")
    @classmethod
    def _coerce_features(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        return [item for item in value if isinstance(item, (dict, Feature))]

    def __len__(self) -> int:
        return len(self.features)

    @property
    def point_features(self) -> list[Feature]:
        return [feature for feature in self.features if feature.is_point]

    @classmethod
    def from_features(cls, features: list[Feature]) -> FeatureCollection:
        return cls(features=list(features))
