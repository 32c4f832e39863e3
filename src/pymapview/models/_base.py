"""Base models shared by every pymapview data type.

Two flavours exist:

* :class:`WireModel` for payloads received from the REST backend. It is
  frozen, ignores unknown keys and accepts field names as well as
  aliases, so backend additions never break parsing.
* :class:`StateModel` for manager-internal mutable state. Unknown keys
  are rejected; managers hand out copies, never the instance itself.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class WireModel(BaseModel):
    """Base for backend response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


class StateModel(BaseModel):
    """Base for mutable manager state."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class SnapshotModel(BaseModel):
    """Base for read-only values handed to subscribers."""

    model_config = ConfigDict(frozen=True, extra="forbid")


def none_to_empty_dict(value: Any) -> Any:
    """Coerce ``None`` (JSON ``null``) to an empty dict before validation."""
    return {} if value is None else value
