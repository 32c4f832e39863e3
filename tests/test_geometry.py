from __future__ import annotations

import pytest
from pyproj import Geod

from pymapview._constants import miles_to_meters
from pymapview.config import BufferStyle
from pymapview.geometry import (
    buffer_id,
    circle_polygon,
    circle_style,
    generate_buffer_geometries,
    owner_category_from_name,
    owner_color,
)
from pymapview.models.geojson import FeatureCollection

_GEOD = Geod(ellps="WGS84")


def test_circle_vertices_lie_at_the_requested_geodesic_distance() -> None:
    radius_m = miles_to_meters(5)

    polygon = circle_polygon(-83.0, 40.0, radius_m, segments=32)

    ring = list(polygon.exterior.coords)[:-1]
    assert len(ring) == 32
    for lon, lat in ring:
        _, _, distance = _GEOD.inv(-83.0, 40.0, lon, lat)
        assert distance == pytest.approx(radius_m, rel=1e-6)
    assert polygon.is_valid
    assert polygon.contains(polygon.centroid)


def test_circle_width_is_latitude_independent() -> None:
    radius_m = miles_to_meters(2)

    equator = circle_polygon(0.0, 0.0, radius_m)
    north = circle_polygon(0.0, 60.0, radius_m)

    # Same ground distance spans roughly twice the longitude at 60 degrees.
    equator_width = equator.bounds[2] - equator.bounds[0]
    north_width = north.bounds[2] - north.bounds[0]
    assert north_width == pytest.approx(2 * equator_width, rel=0.01)


@pytest.mark.parametrize(("radius_m", "segments"), [(0.0, 64), (-5.0, 64), (100.0, 2)])
def test_circle_polygon_rejects_degenerate_input(radius_m: float, segments: int) -> None:
    with pytest.raises(ValueError):
        circle_polygon(0.0, 0.0, radius_m, segments)


def test_owner_colours_and_fallback() -> None:
    assert owner_color("American Towers") == "#dc3545"
    assert owner_color("Selected") == "#FFD700"
    assert owner_color("Unknown Co") == "#0d6efd"
    assert owner_color(None) == "#0d6efd"


def test_owner_category_from_name() -> None:
    assert owner_category_from_name("SBA Sites Ohio") == "SBA"
    assert owner_category_from_name("crown castle - east") == "Crown Castle"
    assert owner_category_from_name("County boundaries") == "Other"


def test_buffer_id_format() -> None:
    assert buffer_id(12, 2.0) == "buffer_12_2mi"
    assert buffer_id(-1, 2.5) == "buffer_-1_2.5mi"


def test_smallest_radius_gets_inner_style_regardless_of_order() -> None:
    collection = FeatureCollection.model_validate(
        {"features": [{"type": "Feature", "geometry": {"type": "Point", "coordinates": [1.0, 2.0]}}]}
    )

    geometries = generate_buffer_geometries(collection, [5, 2], "SBA", segments=8)

    assert [geometry.radius for geometry in geometries] == [5.0, 2.0]
    assert geometries[0].style["dashArray"] == "5,5"
    assert "dashArray" not in geometries[1].style
    assert geometries[1].style["fillOpacity"] == 0.15
    assert geometries[0].circles[0].lon == 1.0
    assert geometries[0].circles[0].lat == 2.0


def test_circle_style_without_dash_pattern() -> None:
    style = circle_style("#123456", 1, BufferStyle(outer_dash_array=None))

    assert "dashArray" not in style
    assert style["weight"] == 1
    assert style["fillColor"] == "#123456"


def test_empty_collection_still_yields_one_geometry_per_radius() -> None:
    geometries = generate_buffer_geometries(FeatureCollection(), [2, 5], None)

    assert [geometry.feature_count for geometry in geometries] == [0, 0]
