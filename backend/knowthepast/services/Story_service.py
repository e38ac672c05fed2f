"""
Visual story builder.

Asks the generator for a short ordered set of slides about a place, then
resolves each slide's image independently through the image service and the
image cache. The flow is a small LangGraph state graph:

    fetch_slides -> (no slides, or outline only) -> END
                 -> resolve_images -> END

With `resolve_images=False` the story comes back as soon as the slide list is
known, every slide still loading, and the caller fetches images per slide.
"""
import asyncio
import logging
from typing import Dict, List, TypedDict

from langgraph.graph import StateGraph, END
from pydantic import ValidationError

from knowthepast.core.config import settings
from knowthepast.core.errors import GenerationError, RenderError
from knowthepast.core.llm_providers import BaseLLMProvider
from knowthepast.core.logger import get_logger
from knowthepast.models.place_model import Place
from knowthepast.models.story_model import (
    IMAGE_FAILED_MESSAGE,
    ImagePayload,
    ImageStatus,
    MAX_SLIDES,
    Slide,
    SlideImage,
    SlideType,
    Story,
    StorySlide,
)
from knowthepast.repos.image_cache_repo import ImageCacheRepository
from knowthepast.services.Image_service import ImageService

logs = get_logger("story")

STORY_EMPHASIS = {
    "ancient": "Lean on historical_timeline, architectural_details and then_vs_now.",
    "nature": "Lean on overview and then_vs_now; show how the landscape formed and changed.",
    "growth": "Lean on historical_timeline and then_vs_now to show how the place expanded.",
    "time": "Lean on historical_timeline and cultural_context around how time was kept or recorded.",
}

SLIDE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "slideType": {"type": "STRING", "enum": [kind.value for kind in SlideType]},
        "title": {"type": "STRING", "description": "Short slide title."},
        "subtitle": {"type": "STRING", "description": "One sentence caption."},
        "keyPoints": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Up to 3 short key points.",
        },
        "imagePrompt": {
            "type": "STRING",
            "description": "Detailed prompt for a photorealistic image illustrating this slide.",
        },
    },
    "required": ["slideType", "title", "subtitle", "keyPoints", "imagePrompt"],
}

STORY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "slides": {"type": "ARRAY", "items": SLIDE_SCHEMA, "maxItems": MAX_SLIDES},
    },
    "required": ["slides"],
}


def build_story_prompt(place: Place) -> str:
    emphasis = STORY_EMPHASIS.get(place.category.strip().lower(), "Pick the slide types that suit the place best.")
    details = "; ".join(f"{detail.label}: {detail.value}" for detail in place.details)
    return (
        f"Create a short visual story about {place.name}.\n"
        f"Description: {place.description}\n"
        f"Details: {details}\n"
        f"Category: {place.category}. {emphasis}\n"
        f"Choose between 1 and {MAX_SLIDES} slides, each of a type from: "
        f"{', '.join(kind.value for kind in SlideType)}. Use no more slides than the place deserves; "
        f"if there is genuinely nothing worth illustrating, return an empty list. "
        f"Give every slide at most 3 key points and an image prompt that describes a single, "
        f"historically accurate scene."
    )


class StoryGraphState(TypedDict):
    place: Place
    generation: int
    slides: List[Slide]
    images: Dict[int, SlideImage]
    with_images: bool


class StoryService:
    def __init__(
        self,
        provider: BaseLLMProvider,
        image_service: ImageService,
        cache: ImageCacheRepository = None,
        timeout: float = settings.GENERATION_TIMEOUT,
    ):
        self.provider = provider
        self.image_service = image_service
        self.cache = cache if cache is not None else ImageCacheRepository()
        self.timeout = timeout
        self._generation = 0
        self._story = Story()
        self._inflight: Dict[str, asyncio.Future] = {}
        self.graph = self._build_graph()

    def _build_graph(self):
        workflow = StateGraph(StoryGraphState)

        workflow.add_node("fetch_slides", self.fetch_slides_node)
        workflow.add_node("resolve_images", self.resolve_images_node)

        workflow.set_entry_point("fetch_slides")
        workflow.add_conditional_edges(
            "fetch_slides",
            self.route_by_slides,
            {
                "resolve": "resolve_images",
                "done": END
            }
        )
        workflow.add_edge("resolve_images", END)

        return workflow.compile()

    # --- Public API ---

    async def build_story(self, place: Place) -> List[Slide]:
        """Fetch the ordered slide list. An empty list is a valid answer."""
        logs.log(logging.INFO, f"Requesting visual story for '{place.name}'")
        try:
            raw = await self.provider.generate_structured(
                build_story_prompt(place), STORY_SCHEMA, temperature=0.7, timeout=self.timeout
            )
        except Exception as e:
            raise GenerationError(f"Failed to generate a visual story: {str(e)}") from e

        if not isinstance(raw, dict) or not isinstance(raw.get("slides"), list):
            raise GenerationError("Generator response is missing the slides list")

        try:
            slides = [Slide.model_validate(item) for item in raw["slides"][:MAX_SLIDES]]
        except ValidationError as e:
            raise GenerationError(f"Generator returned an invalid slide: {e.error_count()} validation error(s)") from e

        logs.log(logging.INFO, f"Story for '{place.name}' has {len(slides)} slide(s)")
        return slides

    def restart(self, place: Place) -> int:
        """Drop everything from the previous place in one step."""
        self._generation += 1
        self.cache.clear()
        self._inflight = {}
        self._story = Story(place_name=place.name)
        return self._generation

    async def generate(self, place: Place, resolve_images: bool = True) -> Story:
        generation = self.restart(place)
        await self.graph.ainvoke({
            "place": place,
            "generation": generation,
            "slides": [],
            "images": {},
            "with_images": resolve_images
        })
        return self.snapshot()

    def snapshot(self) -> Story:
        return self._story

    async def get_image(self, prompt: str) -> ImagePayload:
        """Cached image for `prompt`; concurrent callers share one render."""
        cached = self.cache.get(prompt)
        if cached is not None:
            logs.log(logging.DEBUG, f"✓ Image cache HIT for prompt: {prompt[:60]}")
            return cached

        pending = self._inflight.get(prompt)
        if pending is None:
            logs.log(logging.DEBUG, f"✗ Image cache MISS for prompt: {prompt[:60]}")
            pending = asyncio.ensure_future(self._render_and_store(prompt, self._generation))
            self._inflight[prompt] = pending
        return await asyncio.shield(pending)

    # --- Graph nodes ---

    async def fetch_slides_node(self, state: StoryGraphState) -> dict:
        slides = await self.build_story(state["place"])
        self._commit(
            state["generation"],
            Story(place_name=state["place"].name, slides=[StorySlide(slide=slide) for slide in slides])
        )
        return {"slides": slides}

    def route_by_slides(self, state: StoryGraphState) -> str:
        if state.get("slides") and state.get("with_images", True):
            return "resolve"
        return "done"

    async def resolve_images_node(self, state: StoryGraphState) -> dict:
        generation = state["generation"]
        results = await asyncio.gather(*(
            self._resolve_slide(index, slide, generation)
            for index, slide in enumerate(state["slides"])
        ))
        return {"images": dict(enumerate(results))}

    # --- Internals ---

    async def _render_and_store(self, prompt: str, generation: int) -> ImagePayload:
        image = await self.image_service.render_image(prompt)
        if generation == self._generation:
            self.cache.put(prompt, image)
        return image

    async def _resolve_slide(self, index: int, slide: Slide, generation: int) -> SlideImage:
        try:
            image = await self.get_image(slide.image_prompt)
            result = SlideImage(status=ImageStatus.LOADED, image=image)
        except RenderError as e:
            logs.log(logging.WARNING, f"Slide {index + 1} image failed: {str(e)}")
            result = SlideImage(status=ImageStatus.ERROR, error=IMAGE_FAILED_MESSAGE)

        self._update_slide(generation, index, result)
        return result

    def _commit(self, generation: int, story: Story) -> bool:
        if generation != self._generation:
            logs.log(logging.DEBUG, f"Dropping stale story result (generation {generation})")
            return False
        self._story = story
        return True

    def _update_slide(self, generation: int, index: int, image: SlideImage) -> None:
        if generation != self._generation:
            logs.log(logging.DEBUG, f"Dropping stale image for slide {index + 1} (generation {generation})")
            return
        slides = list(self._story.slides)
        slides[index] = StorySlide(slide=slides[index].slide, image=image)
        self._story = Story(place_name=self._story.place_name, slides=slides)
