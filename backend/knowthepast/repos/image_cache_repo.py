import logging
from typing import Dict, Optional

from knowthepast.models.story_model import ImagePayload
from knowthepast.core.logger import get_logger

logs = get_logger("cache")

class ImageCacheRepository:
    """
    In-memory image cache keyed by the exact image prompt.
    There is no eviction: the story builder clears it whenever a new place's
    story starts, and a story holds at most a handful of prompts.
    """
    def __init__(self):
        self._entries: Dict[str, ImagePayload] = {}

    def get(self, prompt: str) -> Optional[ImagePayload]:
        return self._entries.get(prompt)

    def put(self, prompt: str, image: ImagePayload) -> None:
        # Last writer wins per key
        self._entries[prompt] = image

    def clear(self) -> None:
        if self._entries:
            logs.log(logging.DEBUG, f"Clearing {len(self._entries)} cached images")
        self._entries.clear()

    def __contains__(self, prompt: str) -> bool:
        return prompt in self._entries

    def __len__(self) -> int:
        return len(self._entries)
