from __future__ import annotations

import pytest

from pymapview.config import BufferStyle, ViewerConfig
from pymapview.exceptions import MapViewConfigError


def test_defaults() -> None:
    config = ViewerConfig()

    assert config.restricted_min_zoom == 11
    assert config.buffer_radii_miles == (2.0, 5.0)
    assert config.chunk_size == 1000
    assert config.cache_ttl == 1800
    assert config.selection_visible is True
    assert config.buffer_style == BufferStyle()


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAPVIEW_BASE_URL", "https://maps.example.com/api/v1/")
    monkeypatch.setenv("MAPVIEW_API_TOKEN", "tok")
    monkeypatch.setenv("MAPVIEW_RESTRICTED_MIN_ZOOM", "12")
    monkeypatch.setenv("MAPVIEW_BUFFER_RADII", "1, 3,10")
    monkeypatch.setenv("MAPVIEW_CACHE_TTL", "0")
    monkeypatch.setenv("MAPVIEW_SELECTION_VISIBLE", "no")

    config = ViewerConfig.from_env()

    assert config.base_url == "https://maps.example.com/api/v1"
    assert config.api_token == "tok"
    assert config.restricted_min_zoom == 12
    assert config.buffer_radii_miles == (1.0, 3.0, 10.0)
    assert config.cache_ttl == 0.0
    assert config.selection_visible is False


def test_explicit_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAPVIEW_RESTRICTED_MIN_ZOOM", "12")
    monkeypatch.setenv("MAPVIEW_CHUNK_SIZE", "not-a-number")

    config = ViewerConfig.from_env(restricted_min_zoom=9, chunk_size=50)

    assert config.restricted_min_zoom == 9
    assert config.chunk_size == 50


def test_invalid_numeric_env_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAPVIEW_CIRCLE_SEGMENTS", "many")

    with pytest.raises(MapViewConfigError):
        ViewerConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"buffer_radii_miles": (2.0, 0.0)},
        {"circle_segments": 2},
        {"restricted_min_zoom": -1},
        {"chunk_size": 0},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(MapViewConfigError):
        ViewerConfig(**kwargs)  # type: ignore[arg-type]


def test_invalid_radii_list_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAPVIEW_BUFFER_RADII", "2,five")

    with pytest.raises(MapViewConfigError):
        ViewerConfig.from_env()
