"""High-level async client for the map backend."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

import aiohttp

from pymapview._api.layers import fetch_layer_features
from pymapview._api.projects import fetch_project_definition
from pymapview._cache import CacheInfo, LayerDataCache
from pymapview._constants import WORLD_BOUNDS
from pymapview._transport import HttpTransport, Transport
from pymapview.config import ViewerConfig
from pymapview.exceptions import MapViewError
from pymapview.models.geojson import FeatureCollection
from pymapview.models.project import ProjectDefinition

_logger = logging.getLogger(__name__)


class MapViewClient:
    """Async client for project definitions and layer feature data.

    Usage::

        async with MapViewClient(config) as client:
            project = await client.get_project(42)
            features = await client.load_layer_features(project.all_layers()[0].id)

    A ready-made :class:`~pymapview._transport.Transport` may be passed
    instead of an HTTP session, which is how the tests drive it.
    """

    def __init__(
        self,
        config: ViewerConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        cache: LayerDataCache | None = None,
    ) -> None:
        self._config = config or ViewerConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._external_transport = transport is not None
        if cache is None:
            cache = LayerDataCache(ttl=timedelta(seconds=self._config.cache_ttl))
        self._cache = cache

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MapViewClient:
        if not self._external_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise MapViewError("Client not initialized. Use 'async with MapViewClient(...) as client:'")
        return self._transport

    @property
    def config(self) -> ViewerConfig:
        return self._config

    @property
    def cache(self) -> LayerDataCache:
        return self._cache

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_project(self, project_id: int) -> ProjectDefinition:
        """Fetch a project's layer groups and basemaps."""
        project = await fetch_project_definition(self._require_transport(), project_id)
        _logger.info(
            "Loaded project %s (%d) with %d layers",
            project.project.name,
            project_id,
            len(project.all_layers()),
        )
        return project

    async def load_layer_features(
        self,
        layer_id: int,
        bounds: str = WORLD_BOUNDS,
        zoom: int = 1,
        *,
        layer_name: str = "",
        use_cache: bool = True,
    ) -> FeatureCollection:
        """Load all feature chunks of a layer, served from the cache when fresh.

        Raises
        ------
        LayerLoadError
            If the layer's first chunk cannot be loaded.
        """
        if use_cache:
            cached = self._cache.get(layer_id)
            if cached is not None:
                _logger.debug("Using cached data for layer %d", layer_id)
                return cached

        collection = await fetch_layer_features(
            self._require_transport(),
            layer_id,
            bounds=bounds,
            zoom=zoom,
            chunk_size=self._config.chunk_size,
            max_chunks=self._config.max_chunks,
        )
        _logger.debug("Loaded %d features for layer %d", len(collection), layer_id)
        if use_cache:
            self._cache.put(layer_id, layer_name or str(layer_id), collection)
        return collection

    def cache_info(self) -> CacheInfo:
        return self._cache.info()

    def invalidate_cache(self, layer_id: int | None = None) -> None:
        self._cache.invalidate(layer_id)
