"""
LLM Provider Implementations
Structured-content and image generation behind a unified interface.
"""
import json
import httpx
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from knowthepast.core.logger import get_logger

logs = get_logger("gemini")

class BaseLLMProvider(ABC):
    """Base class for all LLM providers"""

    @abstractmethod
    async def generate_structured(
        self, prompt: str, schema: dict, temperature: float = 0.9, timeout: float = 30.0
    ) -> Any:
        """Generate a JSON document constrained by `schema`"""
        pass

    @abstractmethod
    async def generate_image(self, prompt: str, timeout: float = 60.0) -> Optional[dict]:
        """Generate one image. Returns {"mime_type", "data"} or None when no image came back"""
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the name of the provider"""
        pass


class GeminiProvider(BaseLLMProvider):
    """Google Gemini Provider (REST generateContent endpoint)"""

    def __init__(
        self,
        api_key: str,
        text_model: str,
        image_model: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.api_key = api_key
        self.text_model = text_model
        self.image_model = image_model
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json"
        }

    def _endpoint(self, model: str) -> str:
        return f"{self.base_url}/models/{model}:generateContent"

    async def _post(self, model: str, payload: dict, timeout: float) -> dict:
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.post(
                self._endpoint(model),
                json=payload,
                headers=self.headers,
                timeout=timeout
            )
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _parts(data: dict) -> list:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        content = candidates[0].get("content") or {}
        return content.get("parts") or []

    async def generate_structured(
        self, prompt: str, schema: dict, temperature: float = 0.9, timeout: float = 30.0
    ) -> Any:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "responseMimeType": "application/json",
                "responseSchema": schema
            }
        }

        try:
            data = await self._post(self.text_model, payload, timeout)
            text = "".join(part.get("text", "") for part in self._parts(data)).strip()
            if not text:
                raise ValueError("Gemini returned an empty response")
            return json.loads(text)
        except Exception as e:
            logs.log(logging.ERROR, f"Gemini structured generation error: {str(e)}")
            raise

    async def generate_image(self, prompt: str, timeout: float = 60.0) -> Optional[dict]:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseModalities": ["IMAGE"]}
        }

        try:
            data = await self._post(self.image_model, payload, timeout)
        except Exception as e:
            logs.log(logging.ERROR, f"Gemini image generation error: {str(e)}")
            raise

        for part in self._parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                return {
                    "mime_type": inline.get("mimeType") or inline.get("mime_type") or "image/png",
                    "data": inline["data"]
                }
        return None

    def get_provider_name(self) -> str:
        return "Google Gemini"
