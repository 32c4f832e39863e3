"""Layer feature endpoint: /data/{id}/?chunk_id=n.

The endpoint pages features in fixed-size chunks numbered from 1. A
chunk that is empty or shorter than the page size is the last one.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from pymapview._transport import Transport
from pymapview.exceptions import LayerLoadError, MapViewError
from pymapview.models.geojson import Feature, FeatureCollection

_logger = logging.getLogger(__name__)


def layer_data_endpoint(layer_id: int) -> str:
    return f"/data/{layer_id}/"


def parse_chunk(payload: Any) -> list[Feature]:
    """Features of one chunk; anything that is not a FeatureCollection yields none."""
    if not isinstance(payload, dict):
        return []
    return FeatureCollection.model_validate(payload).features


async def fetch_layer_features(
    transport: Transport,
    layer_id: int,
    *,
    bounds: str,
    zoom: int,
    chunk_size: int = 1000,
    max_chunks: int = 500,
) -> FeatureCollection:
    """Load every chunk of a layer and return them as one collection.

    Raises
    ------
    LayerLoadError
        If the first chunk cannot be loaded. A failure on a later chunk
        ends pagination and keeps the features loaded so far.
    """
    endpoint = layer_data_endpoint(layer_id)
    features: list[Feature] = []

    for chunk_id in range(1, max_chunks + 1):
        params = {"chunk_id": chunk_id, "bounds": bounds, "zoom": zoom}
        try:
            chunk = parse_chunk(await transport.get_json(endpoint, params))
        except (MapViewError, ValidationError) as exc:
            if chunk_id == 1:
                raise LayerLoadError(f"Failed to load layer {layer_id}: {exc}", layer_id=layer_id) from exc
            _logger.debug("No more chunks after chunk %d for layer %d: %s", chunk_id - 1, layer_id, exc)
            break

        if not chunk:
            break
        features.extend(chunk)
        _logger.debug("Loaded chunk %d with %d features for layer %d", chunk_id, len(chunk), layer_id)
        if len(chunk) < chunk_size:
            break
    else:
        _logger.warning("Layer %d hit the %d chunk limit; data may be truncated", layer_id, max_chunks)

    return FeatureCollection.from_features(features)
