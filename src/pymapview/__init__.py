"""pymapview - Layer visibility orchestration for GIS map viewers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymapview")
except PackageNotFoundError:
    __version__ = "0+local"
from pymapview.buffers import FrontendBufferManager
from pymapview.client import MapViewClient
from pymapview.config import BufferStyle, ViewerConfig
from pymapview.exceptions import (
    LayerLoadError,
    MapViewApiError,
    MapViewConfigError,
    MapViewError,
    MapViewTransportError,
)
from pymapview.models import (
    BufferOverlay,
    BufferStats,
    Feature,
    FeatureCollection,
    LayerControlEntry,
    LayerInfo,
    LayerVisibilityState,
    LayerZoomStatus,
    LoadProgress,
    ParentBufferRelationship,
    ProjectDefinition,
    SelectedFeature,
    SelectionLayer,
    ToggleReason,
    ZoomHint,
)
from pymapview.selection import SelectionManager
from pymapview.surface import InMemoryMap, MapHandle, RenderLayer
from pymapview.viewer import LayerDataSource, ViewerOrchestrator
from pymapview.visibility import ZoomVisibilityManager

__all__ = [
    "__version__",
    "BufferOverlay",
    "BufferStats",
    "BufferStyle",
    "Feature",
    "FeatureCollection",
    "FrontendBufferManager",
    "InMemoryMap",
    "LayerControlEntry",
    "LayerDataSource",
    "LayerInfo",
    "LayerLoadError",
    "LayerVisibilityState",
    "LayerZoomStatus",
    "LoadProgress",
    "MapHandle",
    "MapViewApiError",
    "MapViewClient",
    "MapViewConfigError",
    "MapViewError",
    "MapViewTransportError",
    "ParentBufferRelationship",
    "ProjectDefinition",
    "RenderLayer",
    "SelectedFeature",
    "SelectionLayer",
    "SelectionManager",
    "ToggleReason",
    "ViewerConfig",
    "ViewerOrchestrator",
    "ZoomHint",
    "ZoomVisibilityManager",
]
