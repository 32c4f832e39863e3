"""Buffer geometry engine.

Pure computation of coverage circles around point features. There is
no map dependency here: callers get plain geometry plus styling and
decide themselves when (and whether) to attach anything to a map.

Circles are geodesic: every ring vertex is the forward solution on the
WGS84 ellipsoid from the centre at a fixed distance, so a 5 mile buffer
is 5 miles wide at any latitude.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from pyproj import Geod
from shapely.geometry import Polygon

from pymapview._constants import FALLBACK_CATEGORY, OWNER_COLORS, miles_to_meters
from pymapview.config import BufferStyle
from pymapview.models.geojson import FeatureCollection

_logger = logging.getLogger(__name__)

_GEOD = Geod(ellps="WGS84")

# Substrings recognised by owner_category_from_name, first match wins.
_NAME_CATEGORY_HINTS: tuple[tuple[str, str], ...] = (
    ("american tower", "American Towers"),
    ("sba", "SBA"),
    ("crown castle", "Crown Castle"),
)


@dataclass(frozen=True, slots=True)
class BufferCircle:
    """One circle around one point feature."""

    lon: float
    lat: float
    radius_m: float
    polygon: Polygon
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BufferGeometry:
    """All circles of a single radius for one feature collection."""

    radius: float
    radius_m: float
    color: str
    style: dict[str, Any]
    circles: tuple[BufferCircle, ...] = ()

    @property
    def feature_count(self) -> int:
        return len(self.circles)


def owner_color(category: str | None) -> str:
    """Colour for an owner category, falling back to the ``Other`` colour."""
    if category is None:
        return OWNER_COLORS[FALLBACK_CATEGORY]
    return OWNER_COLORS.get(category, OWNER_COLORS[FALLBACK_CATEGORY])


def owner_category_from_name(layer_name: str) -> str:
    """Best-effort owner category from a layer display name.

    Only meant for data sources that carry no category at all. It is
    never used to decide whether a layer is zoom-restricted.
    """
    lowered = layer_name.lower()
    for needle, category in _NAME_CATEGORY_HINTS:
        if needle in lowered:
            return category
    return FALLBACK_CATEGORY


def buffer_id(parent_layer_id: int, radius: float) -> str:
    """Deterministic overlay id, e.g. ``buffer_12_2mi`` or ``buffer_-1_2.5mi``."""
    return f"buffer_{parent_layer_id}_{radius:g}mi"


def circle_polygon(lon: float, lat: float, radius_m: float, segments: int = 64) -> Polygon:
    """Approximate a geodesic circle as a closed lon/lat polygon.

    Raises :class:`ValueError` for a non-positive radius or fewer than
    three segments.
    """
    if radius_m <= 0:
        raise ValueError(f"radius_m must be > 0, got {radius_m}")
    if segments < 3:
        raise ValueError(f"segments must be >= 3, got {segments}")

    azimuths = np.linspace(0.0, 360.0, segments, endpoint=False)
    lons = np.full(segments, float(lon))
    lats = np.full(segments, float(lat))
    dists = np.full(segments, float(radius_m))
    ring_lons, ring_lats, _ = _GEOD.fwd(lons, lats, azimuths, dists)
    return Polygon(np.column_stack([ring_lons, ring_lats]))


def circle_style(color: str, radius_index: int, style: BufferStyle) -> dict[str, Any]:
    """Leaflet-style path options for the *radius_index*-th smallest radius."""
    inner = radius_index == 0
    result: dict[str, Any] = {
        "color": color,
        "fillColor": color,
        "opacity": style.opacity,
        "weight": style.inner_weight if inner else style.outer_weight,
        "fillOpacity": style.inner_fill_opacity if inner else style.outer_fill_opacity,
        "pane": style.pane,
    }
    if not inner and style.outer_dash_array:
        result["dashArray"] = style.outer_dash_array
    return result


def generate_buffer_geometries(
    collection: FeatureCollection,
    radii_miles: Sequence[float],
    owner_category: str | None,
    *,
    style: BufferStyle | None = None,
    segments: int = 64,
) -> list[BufferGeometry]:
    """Build one :class:`BufferGeometry` per radius, in the order given.

    Every Point feature contributes one circle per radius; other
    geometry types and malformed points are skipped.
    """
    style = style or BufferStyle()
    color = owner_color(owner_category)
    points = [
        (coords, feature.properties)
        for feature in collection.features
        if (coords := feature.point_coordinates()) is not None
    ]
    skipped = len(collection.features) - len(points)
    if skipped:
        _logger.debug("Skipped %d non-point features while generating buffers", skipped)

    ranks = {radius: index for index, radius in enumerate(sorted(set(radii_miles)))}
    geometries: list[BufferGeometry] = []
    for radius in radii_miles:
        radius_m = miles_to_meters(radius)
        circles = tuple(
            BufferCircle(
                lon=lon,
                lat=lat,
                radius_m=radius_m,
                polygon=circle_polygon(lon, lat, radius_m, segments),
                properties=dict(properties),
            )
            for (lon, lat), properties in points
        )
        geometries.append(
            BufferGeometry(
                radius=float(radius),
                radius_m=radius_m,
                color=color,
                style=circle_style(color, ranks[radius], style),
                circles=circles,
            )
        )
    return geometries
