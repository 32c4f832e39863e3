from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import aiohttp
import pytest

from pymapview._cache import LayerDataCache
from pymapview._transport import HttpTransport
from pymapview.client import MapViewClient
from pymapview.config import ViewerConfig
from pymapview.exceptions import LayerLoadError, MapViewApiError, MapViewError, MapViewTransportError
from pymapview.models.geojson import FeatureCollection
from pymapview.surface import InMemoryMap
from pymapview.viewer import ViewerOrchestrator


def _point(index: int) -> dict[str, Any]:
    return {
        "type": "Feature",
        "id": index,
        "geometry": {"type": "Point", "coordinates": [-83.0 + index / 1000, 40.0]},
        "properties": {"n": index},
    }


@dataclass
class FakeMapBackend:
    """Serves ``/constructor/`` and chunked ``/data/`` responses."""

    layer_sizes: dict[int, int] = field(default_factory=dict)
    chunk_size: int = 3
    fail_chunks: set[tuple[int, int]] = field(default_factory=set)
    project_payload: Any = None
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def get_json(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        query = dict(params or {})
        self.calls.append((endpoint, query))
        if endpoint.startswith("/constructor/"):
            return self.project_payload
        layer_id = int(endpoint.strip("/").split("/")[1])
        chunk_id = int(query["chunk_id"])
        if (layer_id, chunk_id) in self.fail_chunks:
            raise MapViewTransportError("HTTP 500", status_code=500, endpoint=endpoint)
        start = (chunk_id - 1) * self.chunk_size
        end = min(start + self.chunk_size, self.layer_sizes.get(layer_id, 0))
        return {"type": "FeatureCollection", "features": [_point(i) for i in range(start, end)]}

    def data_calls(self, layer_id: int) -> list[dict[str, Any]]:
        return [query for endpoint, query in self.calls if endpoint == f"/data/{layer_id}/"]


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


def _config(**overrides: Any) -> ViewerConfig:
    return ViewerConfig(chunk_size=3, **overrides)


@pytest.mark.asyncio
async def test_pagination_stops_on_short_chunk() -> None:
    backend = FakeMapBackend(layer_sizes={5: 7})

    async with MapViewClient(_config(), transport=backend) as client:
        collection = await client.load_layer_features(5)

    assert len(collection) == 7
    assert [query["chunk_id"] for query in backend.data_calls(5)] == [1, 2, 3]
    assert backend.data_calls(5)[0]["bounds"] == "-180,-90,180,90"
    assert backend.data_calls(5)[0]["zoom"] == 1


@pytest.mark.asyncio
async def test_pagination_stops_on_empty_chunk() -> None:
    backend = FakeMapBackend(layer_sizes={5: 6})

    async with MapViewClient(_config(), transport=backend) as client:
        collection = await client.load_layer_features(5)

    assert len(collection) == 6
    assert [query["chunk_id"] for query in backend.data_calls(5)] == [1, 2, 3]


@pytest.mark.asyncio
async def test_failure_on_later_chunk_keeps_loaded_features() -> None:
    backend = FakeMapBackend(layer_sizes={5: 9}, fail_chunks={(5, 2)})

    async with MapViewClient(_config(), transport=backend) as client:
        collection = await client.load_layer_features(5)

    assert len(collection) == 3


@pytest.mark.asyncio
async def test_failure_on_first_chunk_raises_layer_load_error() -> None:
    backend = FakeMapBackend(layer_sizes={5: 9}, fail_chunks={(5, 1)})

    async with MapViewClient(_config(), transport=backend) as client:
        with pytest.raises(LayerLoadError) as excinfo:
            await client.load_layer_features(5)

    assert excinfo.value.layer_id == 5
    assert isinstance(excinfo.value.__cause__, MapViewTransportError)


@pytest.mark.asyncio
async def test_max_chunks_bounds_pagination() -> None:
    backend = FakeMapBackend(layer_sizes={5: 100})

    async with MapViewClient(_config(max_chunks=2), transport=backend) as client:
        collection = await client.load_layer_features(5)

    assert len(collection) == 6


@pytest.mark.asyncio
async def test_cached_layer_is_not_fetched_again_until_expired() -> None:
    backend = FakeMapBackend(layer_sizes={5: 2})
    clock = _Clock()
    cache = LayerDataCache(ttl=timedelta(minutes=30), clock=clock)

    async with MapViewClient(_config(), transport=backend, cache=cache) as client:
        first = await client.load_layer_features(5, layer_name="Towers")
        second = await client.load_layer_features(5)
        assert second is first
        assert len(backend.data_calls(5)) == 1
        assert client.cache_info().entries == 1
        assert client.cache_info().total_features == 2

        clock.now += timedelta(minutes=31)
        await client.load_layer_features(5)

    assert len(backend.data_calls(5)) == 2


@pytest.mark.asyncio
async def test_zero_ttl_disables_cache() -> None:
    backend = FakeMapBackend(layer_sizes={5: 2})

    async with MapViewClient(_config(cache_ttl=0), transport=backend) as client:
        await client.load_layer_features(5)
        await client.load_layer_features(5)

    assert len(backend.data_calls(5)) == 2


@pytest.mark.asyncio
async def test_get_project_parses_definition() -> None:
    backend = FakeMapBackend(
        project_payload={
            "project": {"id": 3, "name": "Demo"},
            "layer_groups": [{"id": 1, "name": "G", "layers": [{"id": 5, "name": "Towers"}]}],
        }
    )

    async with MapViewClient(_config(), transport=backend) as client:
        project = await client.get_project(3)

    assert backend.calls[0][0] == "/constructor/3/"
    assert [layer.name for layer in project.all_layers()] == ["Towers"]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, [], {"layer_groups": []}])
async def test_get_project_rejects_malformed_payload(payload: Any) -> None:
    backend = FakeMapBackend(project_payload=payload)

    async with MapViewClient(_config(), transport=backend) as client:
        with pytest.raises(MapViewApiError):
            await client.get_project(3)


@pytest.mark.asyncio
async def test_client_requires_context_manager() -> None:
    client = MapViewClient(_config())

    with pytest.raises(MapViewError):
        await client.get_project(1)


@pytest.mark.asyncio
async def test_viewer_loads_project_through_client() -> None:
    backend = FakeMapBackend(
        layer_sizes={5: 4, 6: 2},
        fail_chunks={(7, 1)},
        project_payload={
            "project": {"id": 3, "name": "Demo"},
            "layer_groups": [
                {
                    "id": 1,
                    "name": "G",
                    "layers": [
                        {"id": 5, "name": "Counties", "is_visible": True},
                        {"id": 6, "name": "SBA Towers", "is_visible": True, "restricted": True},
                        {"id": 7, "name": "Broken", "is_visible": True},
                    ],
                }
            ],
        },
    )
    map_handle = InMemoryMap(zoom=12)

    async with MapViewClient(_config(circle_segments=8), transport=backend) as client:
        viewer = ViewerOrchestrator(client, _config(circle_segments=8))
        viewer.attach_map(map_handle)
        progress = await viewer.load_project(3)

    assert (progress.loaded, progress.failed, progress.status) == (2, 1, "complete")
    assert viewer.visibility.is_rendered(5)
    assert viewer.visibility.is_rendered(6)
    assert not viewer.visibility.is_registered(7)
    assert len(viewer.get_render_layer(5)) == 4
    assert [overlay.rendered_feature_count for overlay in viewer.get_buffers_for_layer(6)] == [2, 2]
    assert map_handle.layer_names() == ["Counties", "SBA Towers"]
    viewer.close()


def test_cache_purge_and_invalidate() -> None:
    clock = _Clock()
    cache = LayerDataCache(ttl=timedelta(seconds=60), clock=clock)
    cache.put(1, "A", FeatureCollection())
    clock.now += timedelta(seconds=30)
    cache.put(2, "B", FeatureCollection())
    clock.now += timedelta(seconds=45)

    assert cache.purge_expired() == 1
    assert 2 in cache
    assert cache.info().oldest_age_seconds == 45.0

    cache.invalidate()
    assert len(cache) == 0


# ----------------------------------------------------------------------
# HttpTransport against a fake aiohttp session
# ----------------------------------------------------------------------


class _FakeResponse:
    def __init__(self, status: int, body: bytes) -> None:
        self.status = status
        self._body = body

    async def read(self) -> bytes:
        return self._body

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _FakeSession:
    def __init__(self, status: int = 200, body: bytes = b"{}", error: Exception | None = None) -> None:
        self._status = status
        self._body = body
        self._error = error
        self.requests: list[dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.requests.append({"url": url, **kwargs})
        if self._error is not None:
            raise self._error
        return _FakeResponse(self._status, self._body)


@pytest.mark.asyncio
async def test_http_transport_sends_token_and_decodes_json() -> None:
    session = _FakeSession(body=b'{"ok": true}')
    transport = HttpTransport(ViewerConfig(base_url="https://maps.test/api", api_token="tok"), session)  # type: ignore[arg-type]

    result = await transport.get_json("/data/5/", {"chunk_id": 1, "bounds": None})

    assert result == {"ok": True}
    [request] = session.requests
    assert request["url"] == "https://maps.test/api/data/5/"
    assert request["params"] == {"chunk_id": "1"}
    assert request["headers"]["authorization"] == "Bearer tok"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("session", "status_code"),
    [
        (_FakeSession(status=404, body=b"not found"), 404),
        (_FakeSession(body=b"<html>"), None),
        (_FakeSession(body=b'{"features": "\xff\xfe"}'), None),
        (_FakeSession(error=aiohttp.ClientConnectionError("refused")), None),
    ],
)
async def test_http_transport_maps_failures(session: _FakeSession, status_code: int | None) -> None:
    transport = HttpTransport(ViewerConfig(), session)  # type: ignore[arg-type]

    with pytest.raises(MapViewTransportError) as excinfo:
        await transport.get_json("/constructor/1/")

    assert excinfo.value.status_code == status_code
    assert excinfo.value.endpoint == "/constructor/1/"
