"""Project definition endpoint: /constructor/{id}/."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from pymapview._transport import Transport
from pymapview.exceptions import MapViewApiError
from pymapview.models.project import ProjectDefinition


def project_endpoint(project_id: int) -> str:
    return f"/constructor/{project_id}/"


def parse_project_definition(payload: Any, endpoint: str) -> ProjectDefinition:
    """Validate a decoded ``/constructor/`` response.

    Raises
    ------
    MapViewApiError
        If the payload is not an object or does not describe a project.
    """
    if not isinstance(payload, dict):
        raise MapViewApiError(
            f"Project definition from {endpoint} is not an object: {type(payload).__name__}",
            endpoint=endpoint,
        )
    try:
        return ProjectDefinition.model_validate(payload)
    except ValidationError as exc:
        raise MapViewApiError(
            f"Malformed project definition from {endpoint}: {exc.error_count()} validation error(s)",
            code="invalid_payload",
            endpoint=endpoint,
        ) from exc


async def fetch_project_definition(transport: Transport, project_id: int) -> ProjectDefinition:
    endpoint = project_endpoint(project_id)
    payload = await transport.get_json(endpoint)
    return parse_project_definition(payload, endpoint)
