"""Viewer configuration for pymapview."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pymapview._constants import BASE_URL
from pymapview.exceptions import MapViewConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_radii(value: str) -> tuple[float, ...]:
    try:
        return tuple(float(part) for part in value.split(",") if part.strip())
    except ValueError as exc:
        raise MapViewConfigError(f"Invalid buffer radii list: {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class BufferStyle:
    """Stroke and fill styling applied to synthesized buffer circles.

    The smallest configured radius is drawn with the *inner* style, every
    larger radius with the *outer* (dashed) style.
    """

    opacity: float = 0.8
    inner_fill_opacity: float = 0.15
    outer_fill_opacity: float = 0.1
    inner_weight: int = 2
    outer_weight: int = 1
    outer_dash_array: str | None = "5,5"
    pane: str = "overlayPane"


@dataclasses.dataclass(frozen=True)
class ViewerConfig:
    """Viewer configuration.

    Parameters
    ----------
    base_url : str
        REST API base URL (without trailing slash).
    api_token : str or None
        Bearer token sent with every request, if set.
    request_timeout : float
        Total timeout per HTTP request in seconds.
    chunk_size : int
        Page size of the layer data endpoint. A chunk shorter than this
        ends pagination.
    max_chunks : int
        Upper bound on chunks fetched for a single layer.
    cache_ttl : float
        Lifetime of cached layer feature data in seconds. ``0`` disables
        the cache.
    restricted_min_zoom : int
        Minimum zoom for restricted layers without a custom minimum.
    buffer_radii_miles : tuple of float
        Radii of the coverage buffers generated around point features.
    circle_segments : int
        Vertices per buffer ring.
    selection_visible : bool
        Whether the selected-features layer is shown as soon as it has
        members.
    buffer_style : BufferStyle
        Styling of the generated buffer circles.
    """

    base_url: str = BASE_URL
    api_token: str | None = None
    request_timeout: float = 30.0
    chunk_size: int = 1000
    max_chunks: int = 500
    cache_ttl: float = 30 * 60
    restricted_min_zoom: int = 11
    buffer_radii_miles: tuple[float, ...] = (2.0, 5.0)
    circle_segments: int = 64
    selection_visible: bool = True
    buffer_style: BufferStyle = dataclasses.field(default_factory=BufferStyle)

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise MapViewConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.max_chunks <= 0:
            raise MapViewConfigError(f"max_chunks must be positive, got {self.max_chunks}")
        if self.restricted_min_zoom < 0:
            raise MapViewConfigError(f"restricted_min_zoom must be >= 0, got {self.restricted_min_zoom}")
        if self.circle_segments < 3:
            raise MapViewConfigError(f"circle_segments must be >= 3, got {self.circle_segments}")
        if any(radius <= 0 for radius in self.buffer_radii_miles):
            raise MapViewConfigError(f"buffer radii must be positive, got {self.buffer_radii_miles}")

    @classmethod
    def from_env(cls, **overrides: Any) -> ViewerConfig:
        """Create configuration from environment variables.

        Reads optional ``MAPVIEW_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ViewerConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        for env_key, field_name in {
            "MAPVIEW_BASE_URL": "base_url",
            "MAPVIEW_API_TOKEN": "api_token",
        }.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _NUMERIC_ENV_MAP: dict[str, tuple[str, type]] = {
            "MAPVIEW_REQUEST_TIMEOUT": ("request_timeout", float),
            "MAPVIEW_CHUNK_SIZE": ("chunk_size", int),
            "MAPVIEW_MAX_CHUNKS": ("max_chunks", int),
            "MAPVIEW_CACHE_TTL": ("cache_ttl", float),
            "MAPVIEW_RESTRICTED_MIN_ZOOM": ("restricted_min_zoom", int),
            "MAPVIEW_CIRCLE_SEGMENTS": ("circle_segments", int),
        }
        for env_key, (field_name, type_fn) in _NUMERIC_ENV_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = type_fn(val)
            except ValueError as exc:
                raise MapViewConfigError(f"{env_key} is not a valid {type_fn.__name__}: {val!r}") from exc

        radii_env = env.get("MAPVIEW_BUFFER_RADII")
        if radii_env is not None and "buffer_radii_miles" not in overrides:
            config_kwargs["buffer_radii_miles"] = _env_radii(radii_env)

        if "selection_visible" not in overrides:
            config_kwargs["selection_visible"] = _env_bool(env.get("MAPVIEW_SELECTION_VISIBLE"), True)

        config_kwargs.update(overrides)
        if "base_url" in config_kwargs:
            config_kwargs["base_url"] = str(config_kwargs["base_url"]).rstrip("/")

        return cls(**config_kwargs)
