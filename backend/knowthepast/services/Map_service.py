import httpx
import logging
from typing import List, Optional, Protocol
from urllib.parse import urlencode

from knowthepast.core.config import settings
from knowthepast.core.errors import BoundaryResolutionError
from knowthepast.core.logger import get_logger
from knowthepast.models.map_model import (
    AREA_FALLBACK_ZOOM,
    INITIAL_CENTER,
    INITIAL_ZOOM,
    ClearMarker,
    FitBounds,
    LatLng,
    MapCommand,
    MapType,
    PanTo,
    PlaceMarker,
    SetZoom,
    Viewport,
)
from knowthepast.models.place_model import LocationType, Place

logs = get_logger("map")

STATIC_MAPS_URL = "https://maps.googleapis.com/maps/api/staticmap"

# Dark roadmap style, in Static Maps syntax
ROADMAP_STYLES = [
    "element:geometry|color:0x242f3e",
    "element:labels.text.stroke|color:0x242f3e",
    "element:labels.text.fill|color:0x746855",
    "feature:administrative.locality|element:labels.text.fill|color:0xd59563",
    "feature:poi|visibility:off",
    "feature:poi.park|element:geometry|color:0x263c3f",
    "feature:road|element:geometry|color:0x38414e",
    "feature:road|element:geometry.stroke|color:0x212a37",
    "feature:road|element:labels.text.fill|color:0x9ca5b3",
    "feature:road.highway|element:geometry|color:0x746855",
    "feature:transit|visibility:off",
    "feature:water|element:geometry|color:0x17263c",
    "feature:water|element:labels.text.fill|color:0x515c6d",
]

SATELLITE_TILT = 45
# Static Maps serves zoom levels up to 21
STATIC_MAX_ZOOM = 21


class MapWidget(Protocol):
    def pan_to(self, position: LatLng) -> None: ...
    def set_zoom(self, level: int) -> None: ...
    def place_marker(self, position: LatLng) -> None: ...
    def clear_marker(self) -> None: ...
    def fit_bounds(self, viewport: Viewport) -> None: ...


class BoundaryResolver:
    """Resolves a Google place ID to its viewport through the Geocoding API."""

    def __init__(
        self,
        api_key: str,
        url: str = settings.GEOCODING_URL,
        timeout: float = settings.GEOCODING_TIMEOUT,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def resolve(self, place_id: str) -> Viewport:
        if not place_id:
            raise BoundaryResolutionError("Place has no place id")

        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.get(
                    self.url,
                    params={"place_id": place_id, "key": self.api_key},
                    timeout=self.timeout
                )
                response.raise_for_status()
                data = response.json()
            except Exception as e:
                raise BoundaryResolutionError(f"Geocoding request failed: {str(e)}") from e

        status = data.get("status")
        results = data.get("results") or []
        viewport = (results[0].get("geometry") or {}).get("viewport") if results else None
        if status != "OK" or not viewport:
            raise BoundaryResolutionError(f"Geocode was not successful: {status}")

        try:
            return Viewport.model_validate(viewport)
        except Exception as e:
            raise BoundaryResolutionError(f"Unexpected viewport shape: {str(e)}") from e


class MapViewBinding:
    """Turns the selected place (or none) into camera and marker calls."""

    def __init__(self, resolver: BoundaryResolver, fallback_zoom: int = AREA_FALLBACK_ZOOM):
        self.resolver = resolver
        self.fallback_zoom = fallback_zoom

    async def apply(self, place: Optional[Place], widget: MapWidget) -> None:
        widget.clear_marker()

        # No selection keeps the current camera
        if place is None:
            return

        if place.location_type == LocationType.AREA:
            try:
                viewport = await self.resolver.resolve(place.place_id)
            except BoundaryResolutionError as e:
                logs.log(
                    logging.WARNING,
                    f"Boundary lookup failed for '{place.name}', falling back to point view: {str(e)}",
                    extra={"place_id": place.place_id}
                )
                self.show_point(place, widget, self.fallback_zoom)
                return
            widget.fit_bounds(viewport)
            return

        self.show_point(place, widget, place.zoom_level)

    @staticmethod
    def show_point(place: Place, widget: MapWidget, zoom: int) -> None:
        position = LatLng(lat=place.latitude, lng=place.longitude)
        widget.pan_to(position)
        widget.set_zoom(zoom)
        widget.place_marker(position)


class CommandRecorder:
    """MapWidget that records the calls so they can be sent to a client."""

    def __init__(self):
        self.commands: List[MapCommand] = []

    def pan_to(self, position: LatLng) -> None:
        self.commands.append(PanTo(position=position))

    def set_zoom(self, level: int) -> None:
        self.commands.append(SetZoom(level=level))

    def place_marker(self, position: LatLng) -> None:
        self.commands.append(PlaceMarker(position=position))

    def clear_marker(self) -> None:
        self.commands.append(ClearMarker())

    def fit_bounds(self, viewport: Viewport) -> None:
        self.commands.append(FitBounds(viewport=viewport))


class StaticMapWidget:
    """
    Camera state rendered through the Google Static Maps API.
    Map type and tilt are display settings and survive place changes.
    """

    def __init__(self, map_type: MapType = MapType.SATELLITE):
        self.center = LatLng(lat=INITIAL_CENTER[0], lng=INITIAL_CENTER[1])
        self.zoom = INITIAL_ZOOM
        self.marker: Optional[LatLng] = None
        self.bounds: Optional[Viewport] = None
        self.map_type = MapType.SATELLITE
        self.tilt = SATELLITE_TILT
        self.set_map_type(map_type)

    # --- MapWidget ---

    def pan_to(self, position: LatLng) -> None:
        self.center = position
        self.bounds = None

    def set_zoom(self, level: int) -> None:
        self.zoom = level
        self.bounds = None

    def place_marker(self, position: LatLng) -> None:
        self.marker = position

    def clear_marker(self) -> None:
        self.marker = None

    def fit_bounds(self, viewport: Viewport) -> None:
        self.bounds = viewport
        self.center = viewport.center

    # --- Display settings ---

    def set_map_type(self, map_type: MapType) -> None:
        self.map_type = MapType(map_type)
        self.set_tilt(SATELLITE_TILT if self.map_type == MapType.SATELLITE else 0)

    def set_tilt(self, degrees: int) -> None:
        self.tilt = degrees

    def toggle_map_type(self) -> MapType:
        self.set_map_type(MapType.ROADMAP if self.map_type == MapType.SATELLITE else MapType.SATELLITE)
        return self.map_type

    def replay(self, commands: List[MapCommand]) -> None:
        for command in commands:
            if isinstance(command, PanTo):
                self.pan_to(command.position)
            elif isinstance(command, SetZoom):
                self.set_zoom(command.level)
            elif isinstance(command, PlaceMarker):
                self.place_marker(command.position)
            elif isinstance(command, ClearMarker):
                self.clear_marker()
            elif isinstance(command, FitBounds):
                self.fit_bounds(command.viewport)

    def render_url(self, api_key: str, size: str = "640x400") -> str:
        params = [("size", size), ("scale", "2"), ("maptype", self.map_type.value)]
        if self.bounds is not None:
            sw, ne = self.bounds.southwest, self.bounds.northeast
            params.append(("visible", f"{sw.lat},{sw.lng}|{ne.lat},{ne.lng}"))
        else:
            params.append(("center", f"{self.center.lat},{self.center.lng}"))
            params.append(("zoom", str(min(self.zoom, STATIC_MAX_ZOOM))))
        if self.marker is not None:
            params.append(("markers", f"color:red|{self.marker.lat},{self.marker.lng}"))
        if self.map_type == MapType.ROADMAP:
            params.extend(("style", style) for style in ROADMAP_STYLES)
        params.append(("key", api_key))
        return f"{STATIC_MAPS_URL}?{urlencode(params)}"
