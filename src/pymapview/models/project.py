"""Project definition models (the ``/constructor/{id}/`` payload)."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pymapview.models._base import WireModel, none_to_empty_dict


class LayerInfo(WireModel):
    """Definition of a single map layer.

    Parameters
    ----------
    id : int
        Backend layer id.
    name : str
        Display name.
    is_restricted_category : bool
        Whether the layer belongs to a category that must not render
        below a minimum zoom. Supplied by the backend (or by whoever
        builds the definition); never inferred from the name.
    owner_category : str or None
        Owner used to colour markers and buffers.
    min_zoom_visibility : int or None
        Custom minimum zoom for this layer; ``0``/``None`` means unset.
    group_name : str
        Name of the enclosing layer group, filled in by
        :meth:`ProjectDefinition.all_layers`.
    """

    id: int
    name: str
    description: str = ""
    layer_type_name: str | None = None
    is_visible: bool = False
    is_visible_by_default: bool = False
    is_restricted_category: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_restricted_category", "restricted", "zoom_restricted"),
    )
    owner_category: str | None = Field(
        default=None,
        validation_alias=AliasChoices("owner_category", "company_name", "category"),
    )
    min_zoom_visibility: int | None = None
    enable_clustering: bool = False
    style: dict[str, Any] = Field(default_factory=dict)
    group_name: str = ""

    @field_validator("style", mode="before")
    @classmethod
    def _coerce_style(cls, value: Any) -> Any:
        return none_to_empty_dict(value)

    @property
    def initially_visible(self) -> bool:
        return self.is_visible or self.is_visible_by_default

    @property
    def custom_min_zoom(self) -> int | None:
        if self.min_zoom_visibility is None or self.min_zoom_visibility <= 0:
            return None
        return self.min_zoom_visibility


class LayerGroup(WireModel):
    id: int
    name: str
    display_order: int = 0
    is_visible_by_default: bool = False
    layers: list[LayerInfo] = Field(default_factory=list)

    @field_validator("layers", mode="before")
    @classmethod
    def _coerce_layers(cls, value: Any) -> Any:
        return [] if value is None else value


class Basemap(WireModel):
    id: int
    name: str
    provider: str = ""
    url_template: str = ""
    attribution: str = ""
    min_zoom: int = 0
    max_zoom: int = 19
    is_default: bool = False


class ProjectInfo(WireModel):
    id: int
    name: str = ""
    default_center_lat: float = 40.0
    default_center_lng: float = -83.0
    default_zoom_level: int = 7


class ProjectDefinition(WireModel):
    """A project with its layer groups and basemaps."""

    project: ProjectInfo
    layer_groups: list[LayerGroup] = Field(default_factory=list)
    basemaps: list[Basemap] = Field(default_factory=list)

    @field_validator("layer_groups", "basemaps", mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any) -> Any:
        return [] if value is None else value

    def all_layers(self) -> list[LayerInfo]:
        """Every layer of every group, in group display order."""
        layers: list[LayerInfo] = []
        for group in sorted(self.layer_groups, key=lambda g: g.display_order):
            for layer in group.layers:
                layers.append(layer.model_copy(update={"group_name": group.name}))
        return layers

    def initial_visible_layer_ids(self) -> set[int]:
        return {layer.id for layer in self.all_layers() if layer.initially_visible}

    def default_basemap(self) -> Basemap | None:
        for basemap in self.basemaps:
            if basemap.is_default:
                return basemap
        return self.basemaps[0] if self.basemaps else None
