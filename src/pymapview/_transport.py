"""HTTP transport for the map backend REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pymapview._constants import USER_AGENT
from pymapview.config import ViewerConfig
from pymapview.exceptions import MapViewTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        ...


class HttpTransport:
    """GET-only JSON transport over an :class:`aiohttp.ClientSession`."""

    def __init__(self, config: ViewerConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def get_json(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET ``base_url + endpoint`` and return the decoded JSON body.

        Raises
        ------
        MapViewTransportError
            On network errors, timeouts, non-2xx status or a body that is
            not UTF-8 JSON.
        """
        url = f"{self._config.base_url}{endpoint}"
        query = {key: str(value) for key, value in (params or {}).items() if value is not None}

        _logger.debug("GET %s %s", url, query)

        try:
            async with self._http.get(url, params=query, headers=self._headers(), timeout=self._timeout) as resp:
                body = await resp.read()
                text = body.decode("utf-8", errors="replace")
                if not 200 <= resp.status < 300:
                    raise MapViewTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except MapViewTransportError:
            raise
        except TimeoutError as exc:
            raise MapViewTransportError(
                f"Request to {endpoint} timed out after {self._config.request_timeout}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise MapViewTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MapViewTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc
