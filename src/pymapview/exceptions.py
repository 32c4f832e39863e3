"""Custom exception hierarchy for pymapview."""

from __future__ import annotations


class MapViewError(Exception):
    """Base exception for all pymapview errors."""


class MapViewConfigError(MapViewError):
    """Invalid or missing configuration."""


class MapViewTransportError(MapViewError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class MapViewApiError(MapViewError):
    """Backend answered, but with a payload we cannot use."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class LayerLoadError(MapViewError):
    """Feature data for a single layer could not be loaded."""

    def __init__(self, message: str, *, layer_id: int) -> None:
        self.layer_id = layer_id
        super().__init__(message)
