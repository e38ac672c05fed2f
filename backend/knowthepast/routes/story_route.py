from fastapi import APIRouter, Depends, HTTPException

from knowthepast.core.errors import GenerationError, RenderError
from knowthepast.core.llm_connection import get_provider
from knowthepast.core.llm_providers import BaseLLMProvider
from knowthepast.core.logger import logs
from knowthepast.models.story_model import ImagePayload, RenderRequest, Story, StoryRequest
from knowthepast.repos.image_cache_repo import ImageCacheRepository
from knowthepast.services.Image_service import ImageService
from knowthepast.services.Story_service import StoryService

router = APIRouter()

def get_image_service(provider: BaseLLMProvider = Depends(get_provider)) -> ImageService:
    return ImageService(provider)

def get_story_service(
    provider: BaseLLMProvider = Depends(get_provider),
    image_service: ImageService = Depends(get_image_service)
) -> StoryService:
    # Fresh cache per story request; it only lives as long as one story
    return StoryService(provider, image_service, ImageCacheRepository())

@router.post("/story", response_model=Story)
async def build_story_endpoint(
    request: StoryRequest,
    service: StoryService = Depends(get_story_service)
):
    """
    Returns the slide list for a place as soon as it is known. Every slide
    comes back with its image still loading; clients fetch each one through
    /images/render. Only a failed slide-list fetch fails the request.
    """
    try:
        return await service.generate(request.place, resolve_images=False)
    except GenerationError as e:
        logs.log(40, f"Error in build_story_endpoint: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))

@router.post("/images/render", response_model=ImagePayload)
async def render_image_endpoint(
    request: RenderRequest,
    service: ImageService = Depends(get_image_service)
):
    try:
        return await service.render_image(request.prompt)
    except RenderError as e:
        logs.log(40, f"Error in render_image_endpoint: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))
