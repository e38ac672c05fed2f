import logging
import math
from pydantic import ValidationError

from knowthepast.core.config import settings
from knowthepast.core.errors import GenerationError
from knowthepast.core.llm_providers import BaseLLMProvider
from knowthepast.core.logger import get_logger
from knowthepast.models.place_model import (
    DetailIcon,
    LocationType,
    Place,
    MAX_DETAILS,
    MAX_ZOOM,
    MIN_DETAILS,
    MIN_ZOOM,
)

logs = get_logger("places")

CATEGORY_GUIDANCE = {
    "ancient": (
        "Choose an ancient site: a ruined city, temple complex, necropolis, rock-cut monument "
        "or archaeological dig that shaped an early civilization. Favour places built before 500 CE."
    ),
    "nature": (
        "Choose a natural wonder whose story spans geological or ecological time: a canyon, "
        "reef, volcanic field, salt flat, cave system or ancient forest. Prefer whole landscapes "
        "and protected areas, which are usually best shown as an area."
    ),
    "growth": (
        "Choose a place that tells a story of growth: a settlement that became a metropolis, "
        "a port or trade hub that expanded over centuries, or land reclaimed and transformed by people."
    ),
    "time": (
        "Choose a place tied to the measurement or passage of time: an observatory, calendar "
        "monument, clock tower, solar alignment, or a site whose layers record many eras."
    ),
}

GENERIC_GUIDANCE = (
    "Choose a fascinating, visually striking historical or natural place with a story worth telling."
)

OVERUSED_PLACES = [
    "Eiffel Tower",
    "Machu Picchu",
    "Colosseum",
    "Great Wall of China",
    "Grand Canyon",
    "Taj Mahal",
    "Stonehenge",
    "Pyramids of Giza",
]

DETAIL_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "label": {"type": "STRING", "description": "Short label, e.g. 'Founded' or 'Country'."},
        "value": {"type": "STRING", "description": "Concise value for the label."},
        "icon": {"type": "STRING", "enum": [icon.value for icon in DetailIcon]},
    },
    "required": ["label", "value", "icon"],
}

PLACE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING", "description": "Exact official name of the place."},
        "description": {
            "type": "STRING",
            "description": "Rich, engaging 3-4 sentence description of the place's visual beauty, history and character.",
        },
        "latitude": {"type": "NUMBER", "description": "Precise decimal latitude."},
        "longitude": {"type": "NUMBER", "description": "Precise decimal longitude."},
        "zoomLevel": {"type": "INTEGER", "description": f"Map zoom level between {MIN_ZOOM} and {MAX_ZOOM}."},
        "locationType": {
            "type": "STRING",
            "enum": [kind.value for kind in LocationType],
            "description": "'point' for a single site, 'area' for a region best shown by its boundary.",
        },
        "placeId": {
            "type": "STRING",
            "description": "Google Maps place ID of the place; required when locationType is 'area'.",
        },
        "details": {
            "type": "ARRAY",
            "items": DETAIL_SCHEMA,
            "minItems": MIN_DETAILS,
            "maxItems": MAX_DETAILS,
        },
    },
    "required": [
        "name", "description", "latitude", "longitude",
        "zoomLevel", "locationType", "placeId", "details",
    ],
}

REQUIRED_FIELDS = PLACE_SCHEMA["required"]


def build_discovery_prompt(category: str) -> str:
    guidance = CATEGORY_GUIDANCE.get(category.strip().lower(), GENERIC_GUIDANCE)
    avoid = ", ".join(OVERUSED_PLACES)
    return (
        f"Based on the category '{category}', pick one historically or geographically significant "
        f"place anywhere in the world. {guidance}\n"
        f"Avoid overused examples such as: {avoid}. Surprise the reader with somewhere less obvious.\n"
        f"Make sure the latitude and longitude are accurate for mapping and that the zoom level "
        f"(between {MIN_ZOOM} and {MAX_ZOOM}) shows the place in detail. "
        f"Provide {MIN_DETAILS} to {MAX_DETAILS} details, each with an icon from: "
        f"{', '.join(icon.value for icon in DetailIcon)}."
    )


def normalise_zoom(zoom):
    """
    Round and clamp a numeric zoom (or numeric string) into MIN_ZOOM..MAX_ZOOM.
    Anything else, NaN and infinities included, is left for validation to reject.
    """
    if isinstance(zoom, bool):
        return zoom
    if isinstance(zoom, str):
        try:
            zoom = float(zoom.strip())
        except ValueError:
            return zoom
    if isinstance(zoom, (int, float)) and math.isfinite(zoom):
        return min(max(int(round(zoom)), MIN_ZOOM), MAX_ZOOM)
    return zoom


class PlacesService:
    """Content generator client: asks the model to invent a place for a category."""

    def __init__(self, provider: BaseLLMProvider, timeout: float = settings.GENERATION_TIMEOUT):
        self.provider = provider
        self.timeout = timeout

    async def discover_place(self, category: str) -> Place:
        logs.log(logging.INFO, f"Discovering a place for category '{category}'")
        prompt = build_discovery_prompt(category)

        try:
            raw = await self.provider.generate_structured(
                prompt, PLACE_SCHEMA, temperature=1.0, timeout=self.timeout
            )
        except Exception as e:
            raise GenerationError(f"Failed to generate a place for '{category}': {str(e)}") from e

        place = self._to_place(raw, category)
        logs.log(logging.INFO, f"Discovered '{place.name}' ({place.location_type.value}) for '{category}'")
        return place

    def _to_place(self, raw, category: str) -> Place:
        if not isinstance(raw, dict):
            raise GenerationError("Generator returned an unexpected shape for a place")

        missing = [field for field in REQUIRED_FIELDS if raw.get(field) is None]
        if missing:
            raise GenerationError(f"Generator response is missing required fields: {', '.join(missing)}")

        data = dict(raw)
        # The generator's own category echo is not trusted
        data["category"] = category

        data["zoomLevel"] = normalise_zoom(data["zoomLevel"])

        details = data["details"]
        if isinstance(details, list) and len(details) > MAX_DETAILS:
            data["details"] = details[:MAX_DETAILS]

        try:
            return Place.model_validate(data)
        except ValidationError as e:
            logs.log(logging.WARNING, "Discarding malformed place from generator", extra={"errors": e.errors()})
            raise GenerationError(f"Generator returned an invalid place: {e.error_count()} validation error(s)") from e
