import base64
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from knowthepast.models.place_model import Place

MAX_SLIDES = 5
IMAGE_FAILED_MESSAGE = "Image failed to load."

class SlideType(str, Enum):
    OVERVIEW = "overview"
    HISTORICAL_TIMELINE = "historical_timeline"
    CULTURAL_CONTEXT = "cultural_context"
    THEN_VS_NOW = "then_vs_now"
    ARCHITECTURAL_DETAILS = "architectural_details"

class ImageStatus(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"

class Slide(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    slide_type: SlideType = Field(..., alias="slideType")
    title: str
    subtitle: str
    key_points: tuple[str, ...] = Field(..., alias="keyPoints")
    image_prompt: str = Field(..., alias="imagePrompt", min_length=1)

class ImagePayload(BaseModel):
    """Inline image as returned by the image generator (base64 data)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mime_type: str = Field(..., alias="mimeType")
    data: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)

class SlideImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ImageStatus = ImageStatus.LOADING
    image: Optional[ImagePayload] = None
    error: Optional[str] = None

class StorySlide(BaseModel):
    model_config = ConfigDict(frozen=True)

    slide: Slide
    image: SlideImage = SlideImage()

class Story(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    place_name: str = Field("", alias="placeName")
    slides: List[StorySlide] = []

    @property
    def is_empty(self) -> bool:
        return not self.slides

# --- API Request Models ---
class StoryRequest(BaseModel):
    place: Place

class RenderRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
