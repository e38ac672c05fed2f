from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_ZOOM = 15
MAX_ZOOM = 22
MIN_DETAILS = 2
MAX_DETAILS = 4

# --- Enums ---
class LocationType(str, Enum):
    POINT = "point"
    AREA = "area"

class DetailIcon(str, Enum):
    CALENDAR = "calendar"
    GLOBE = "globe"
    GEOLOGY = "geology"
    ARCHITECTURE = "architecture"
    GROWTH = "growth"
    TIME = "time"
    SPARKLES = "sparkles"

    @classmethod
    def _missing_(cls, value):
        # Unknown icon names render with the default icon
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return cls.SPARKLES

    @property
    def glyph(self) -> str:
        return ICON_GLYPHS[self]

ICON_GLYPHS = {
    DetailIcon.CALENDAR: "📅",
    DetailIcon.GLOBE: "🌍",
    DetailIcon.GEOLOGY: "🪨",
    DetailIcon.ARCHITECTURE: "🏛️",
    DetailIcon.GROWTH: "🌱",
    DetailIcon.TIME: "⏳",
    DetailIcon.SPARKLES: "✨",
}

# --- Categories ---
class Category(BaseModel):
    key: str
    name: str
    emoji: str

CATEGORIES: List[Category] = [
    Category(key="ancient", name="Ancient", emoji="🏛️"),
    Category(key="nature", name="Nature", emoji="🌳"),
    Category(key="growth", name="Growth", emoji="📈"),
    Category(key="time", name="Time", emoji="⏳"),
]

# --- Domain Models ---
class PlaceDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    value: str
    icon: DetailIcon = DetailIcon.SPARKLES

    @field_validator("icon", mode="before")
    @classmethod
    def fallback_icon(cls, value):
        if value is None:
            return DetailIcon.SPARKLES
        return DetailIcon(value)

class Place(BaseModel):
    """A discovered place. Never patched; a new discovery builds a new one."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    category: str
    zoom_level: int = Field(..., alias="zoomLevel", ge=MIN_ZOOM, le=MAX_ZOOM)
    location_type: LocationType = Field(..., alias="locationType")
    place_id: str = Field("", alias="placeId")
    details: tuple[PlaceDetail, ...] = Field(..., min_length=MIN_DETAILS, max_length=MAX_DETAILS)

# --- API Request Models ---
class DiscoverRequest(BaseModel):
    category: str = Field(..., min_length=1, description="Category key selected in the dock")
