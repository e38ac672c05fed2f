import logging

from knowthepast.core.config import settings
from knowthepast.core.errors import RenderError
from knowthepast.core.llm_providers import BaseLLMProvider
from knowthepast.core.logger import get_logger
from knowthepast.models.story_model import ImagePayload

logs = get_logger("images")


class ImageService:
    """Image generator client. Renders one prompt; never retries."""

    def __init__(self, provider: BaseLLMProvider, timeout: float = settings.IMAGE_TIMEOUT):
        self.provider = provider
        self.timeout = timeout

    async def render_image(self, prompt: str) -> ImagePayload:
        logs.log(logging.INFO, f"Rendering image for prompt: {prompt[:80]}")
        try:
            result = await self.provider.generate_image(prompt, timeout=self.timeout)
        except Exception as e:
            raise RenderError(f"Image generation failed: {str(e)}") from e

        if not result:
            raise RenderError("Image generator returned no image")

        return ImagePayload(mime_type=result["mime_type"], data=result["data"])
