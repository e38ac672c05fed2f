"""
Session view-state for the explorer page.

Every asynchronous operation is requested under an epoch and delivered back as
a Result tagged with that epoch. Results whose epoch is no longer current are
ignored, so the most recently requested place always wins.
"""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Generic, List, Optional, Tuple, TypeVar

from knowthepast.core.logger import get_logger
from knowthepast.models.map_model import AREA_FALLBACK_ZOOM, ClearMarker, MapCommand, MapType
from knowthepast.models.place_model import LocationType, Place
from knowthepast.models.story_model import (
    IMAGE_FAILED_MESSAGE,
    ImagePayload,
    ImageStatus,
    SlideImage,
    Story,
    StorySlide,
)
from knowthepast.services.Map_service import MapViewBinding, StaticMapWidget

logs = get_logger("session")

T = TypeVar("T")

DISCOVERY_FAILED_PREFIX = "Failed to find a place."
NO_VISUAL_CONTENT_MESSAGE = "No visual content could be generated for this place."


class ActivePanel(str, Enum):
    NONE = "none"
    INFO = "info"
    VISUAL = "visual"


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    GENERATION = "generation"
    RENDER = "render"
    BOUNDARY = "boundary"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "Result[T]":
        return cls(error=error, kind=kind)

    @property
    def is_ok(self) -> bool:
        return self.kind is None


class PanelController:
    """At most one of the info and visual panels is expanded at a time."""

    def __init__(self):
        self.selected_place: Optional[Place] = None
        self.active_panel = ActivePanel.NONE

    def select_place(self, place: Place) -> None:
        self.selected_place = place
        self.active_panel = ActivePanel.INFO

    def toggle_panel(self, which: ActivePanel) -> ActivePanel:
        which = ActivePanel(which)
        if which == ActivePanel.NONE:
            return self.active_panel
        self.active_panel = ActivePanel.NONE if self.active_panel == which else which
        return self.active_panel

    def close(self) -> None:
        self.selected_place = None
        self.active_panel = ActivePanel.NONE


@dataclass(frozen=True)
class StoryView:
    slides: Tuple[StorySlide, ...] = ()
    current_index: int = 0
    is_loading: bool = False
    loaded: bool = False
    error: Optional[str] = None

    @property
    def has_no_content(self) -> bool:
        return self.loaded and not self.error and not self.slides

    @property
    def current(self) -> Optional[StorySlide]:
        return self.slides[self.current_index] if self.slides else None


@dataclass
class ExplorerSession:
    panels: PanelController = field(default_factory=PanelController)
    story: StoryView = field(default_factory=StoryView)
    map_widget: StaticMapWidget = field(default_factory=StaticMapWidget)
    image_cache: Dict[str, ImagePayload] = field(default_factory=dict)
    is_discovering: bool = False
    discovery_error: Optional[str] = None
    epoch: int = 0

    @property
    def selected_place(self) -> Optional[Place]:
        return self.panels.selected_place

    @property
    def active_panel(self) -> ActivePanel:
        return self.panels.active_panel

    @property
    def needs_story(self) -> bool:
        return (
            self.selected_place is not None
            and self.active_panel == ActivePanel.VISUAL
            and not self.story.loaded
            and not self.story.is_loading
        )

    def is_current(self, epoch: int) -> bool:
        return epoch == self.epoch

    # --- Discovery ---

    def begin_discovery(self, category: str) -> int:
        self.epoch += 1
        self.is_discovering = True
        self.discovery_error = None
        self.panels.close()
        self.story = StoryView()
        self.map_widget.clear_marker()
        return self.epoch

    def resolve_discovery(self, epoch: int, result: Result[Place]) -> bool:
        if not self.is_current(epoch):
            return False
        self.is_discovering = False
        if result.is_ok:
            self.panels.select_place(result.value)
            self.story = StoryView()
        else:
            self.discovery_error = f"{DISCOVERY_FAILED_PREFIX} {result.error}"
            self.panels.close()
            self.map_widget.clear_marker()
        return True

    def dismiss_error(self) -> None:
        self.discovery_error = None

    # --- Map ---

    def resolve_map(self, epoch: int, result: Result[List[MapCommand]]) -> bool:
        if not self.is_current(epoch):
            return False
        if result.is_ok:
            self.map_widget.replay(result.value)
        elif self.selected_place is not None:
            place = self.selected_place
            logs.log(logging.WARNING, f"Map view unavailable for '{place.name}', showing its coordinates: {result.error}")
            zoom = AREA_FALLBACK_ZOOM if place.location_type == LocationType.AREA else place.zoom_level
            self.map_widget.clear_marker()
            MapViewBinding.show_point(place, self.map_widget, zoom)
        return True

    def toggle_map_type(self) -> MapType:
        return self.map_widget.toggle_map_type()

    # --- Visual story ---

    def begin_story(self) -> Optional[int]:
        if self.selected_place is None:
            return None
        self.story = StoryView(is_loading=True)
        self.image_cache = {}
        return self.epoch

    def resolve_story(self, epoch: int, result: Result[Story]) -> bool:
        if not self.is_current(epoch):
            return False
        if result.is_ok:
            self.story = StoryView(slides=tuple(result.value.slides), loaded=True)
        else:
            self.story = StoryView(loaded=True, error=result.error)
        return True

    def next_pending_image(self) -> Optional[Tuple[int, str]]:
        """Index and prompt of a slide still waiting for its image, the shown one first."""
        slides = self.story.slides
        for index in [self.story.current_index, *range(len(slides))]:
            if index < len(slides) and slides[index].image.status == ImageStatus.LOADING:
                return index, slides[index].slide.image_prompt
        return None

    def cached_image(self, prompt: str) -> Optional[ImagePayload]:
        return self.image_cache.get(prompt)

    def resolve_slide_image(self, epoch: int, index: int, result: Result[ImagePayload]) -> bool:
        if not self.is_current(epoch) or not 0 <= index < len(self.story.slides):
            return False
        slide = self.story.slides[index]
        if result.is_ok:
            self.image_cache[slide.slide.image_prompt] = result.value
            image = SlideImage(status=ImageStatus.LOADED, image=result.value)
        else:
            logs.log(logging.WARNING, f"Slide {index + 1} image failed: {result.error}")
            image = SlideImage(status=ImageStatus.ERROR, error=IMAGE_FAILED_MESSAGE)
        slides = list(self.story.slides)
        slides[index] = StorySlide(slide=slide.slide, image=image)
        self.story = replace(self.story, slides=tuple(slides))
        return True

    def next_slide(self) -> int:
        if self.story.slides:
            index = (self.story.current_index + 1) % len(self.story.slides)
            self.story = replace(self.story, current_index=index)
        return self.story.current_index

    def previous_slide(self) -> int:
        if self.story.slides:
            index = (self.story.current_index - 1) % len(self.story.slides)
            self.story = replace(self.story, current_index=index)
        return self.story.current_index

    # --- Panels ---

    def toggle_panel(self, which: ActivePanel) -> ActivePanel:
        return self.panels.toggle_panel(which)

    def close(self) -> None:
        # Bumping the epoch drops any result still in flight for the old place
        self.epoch += 1
        self.is_discovering = False
        self.panels.close()
        self.story = StoryView()
        self.image_cache = {}
        self.map_widget.replay([ClearMarker()])
