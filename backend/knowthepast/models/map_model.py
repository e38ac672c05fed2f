from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from knowthepast.models.place_model import Place

# Initial camera: Manhattan
INITIAL_CENTER = (40.7831, -73.9712)
INITIAL_ZOOM = 11
# Zoom used when an area cannot be resolved to a viewport
AREA_FALLBACK_ZOOM = 12

class MapType(str, Enum):
    ROADMAP = "roadmap"
    SATELLITE = "satellite"

class LatLng(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

class Viewport(BaseModel):
    model_config = ConfigDict(frozen=True)

    northeast: LatLng
    southwest: LatLng

    @property
    def center(self) -> LatLng:
        return LatLng(
            lat=(self.northeast.lat + self.southwest.lat) / 2,
            lng=(self.northeast.lng + self.southwest.lng) / 2,
        )

# --- Map commands ---
class PanTo(BaseModel):
    op: Literal["pan_to"] = "pan_to"
    position: LatLng

class SetZoom(BaseModel):
    op: Literal["set_zoom"] = "set_zoom"
    level: int

class PlaceMarker(BaseModel):
    op: Literal["place_marker"] = "place_marker"
    position: LatLng

class ClearMarker(BaseModel):
    op: Literal["clear_marker"] = "clear_marker"

class FitBounds(BaseModel):
    op: Literal["fit_bounds"] = "fit_bounds"
    viewport: Viewport

MapCommand = Annotated[
    Union[PanTo, SetZoom, PlaceMarker, ClearMarker, FitBounds],
    Field(discriminator="op"),
]

class MapViewRequest(BaseModel):
    place: Optional[Place] = None

class MapViewResponse(BaseModel):
    commands: List[MapCommand] = []
