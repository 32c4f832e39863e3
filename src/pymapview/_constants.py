"""Internal constants shared across the library."""

BASE_URL = "http://localhost:8000/api/v1"
USER_AGENT = "pymapview/0.1"

#: Bounds string the data endpoint accepts for "the whole world".
WORLD_BOUNDS = "-180,-90,180,90"

#: Parent id of the synthetic "selected features" layer.
SELECTION_LAYER_ID = -1
SELECTION_LAYER_NAME = "Selected Features"
SELECTION_CATEGORY = "Selected"

FALLBACK_CATEGORY = "Other"

# ------------------------------------------------------------------
# Owner category colours (used for buffers and markers)
# ------------------------------------------------------------------

OWNER_COLORS: dict[str, str] = {
    "American Towers": "#dc3545",
    "SBA": "#6f42c1",
    "Crown Castle": "#fd7e14",
    SELECTION_CATEGORY: "#FFD700",
    FALLBACK_CATEGORY: "#0d6efd",
}

# ------------------------------------------------------------------
# Units
# ------------------------------------------------------------------

METERS_PER_MILE = 1609.34


def miles_to_meters(miles: float) -> float:
    """Convert a radius in statute miles to meters."""
    return float(miles) * METERS_PER_MILE
