"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import asyncio
import base64
import copy
from typing import Any, Dict, List, Optional

import pytest

from knowthepast.core.llm_providers import BaseLLMProvider
from knowthepast.models.place_model import Place


class FakeProvider(BaseLLMProvider):
    """Scripted provider: structured responses are served in order, images per prompt."""

    def __init__(
        self,
        structured: Optional[List[Any]] = None,
        failing_prompts: tuple = (),
        empty_prompts: tuple = (),
        image_gate: Optional[asyncio.Event] = None,
    ):
        self.structured = list(structured or [])
        self.failing_prompts = set(failing_prompts)
        self.empty_prompts = set(empty_prompts)
        self.image_gate = image_gate
        self.structured_calls: List[Dict[str, Any]] = []
        self.image_calls: List[str] = []

    async def generate_structured(self, prompt, schema, temperature=0.9, timeout=30.0):
        self.structured_calls.append({"prompt": prompt, "schema": schema, "timeout": timeout})
        response = self.structured.pop(0)
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)

    async def generate_image(self, prompt, timeout=60.0):
        self.image_calls.append(prompt)
        if self.image_gate is not None:
            await self.image_gate.wait()
        # Let sibling resolutions interleave
        await asyncio.sleep(0)
        if prompt in self.failing_prompts:
            raise RuntimeError("upstream returned 500")
        if prompt in self.empty_prompts:
            return None
        return {"mime_type": "image/png", "data": base64.b64encode(prompt.encode()).decode()}

    def get_provider_name(self) -> str:
        return "Fake"


@pytest.fixture
def make_provider():
    """Factory for scripted providers."""
    return FakeProvider


@pytest.fixture
def raw_place() -> Dict[str, Any]:
    """A well-formed place as the generator returns it."""
    return {
        "name": "Hegra",
        "description": "Rock-cut tombs carved by the Nabataeans rise from the desert sands.",
        "latitude": 26.7916,
        "longitude": 37.9539,
        "zoomLevel": 16,
        "locationType": "point",
        "placeId": "ChIJhegra",
        "category": "nature",
        "details": [
            {"label": "Founded", "value": "1st century BCE", "icon": "calendar"},
            {"label": "Country", "value": "Saudi Arabia", "icon": "globe"},
            {"label": "Built by", "value": "Nabataeans", "icon": "architecture"},
        ],
    }


@pytest.fixture
def raw_area_place(raw_place) -> Dict[str, Any]:
    area = dict(raw_place)
    area.update({
        "name": "Wadi Rum",
        "locationType": "area",
        "placeId": "ChIJwadirum",
        "zoomLevel": 15,
    })
    return area


@pytest.fixture
def place(raw_place) -> Place:
    data = dict(raw_place, category="ancient")
    return Place.model_validate(data)


@pytest.fixture
def area_place(raw_area_place) -> Place:
    return Place.model_validate(dict(raw_area_place, category="nature"))


def make_slide(index: int, prompt: Optional[str] = None, slide_type: str = "overview") -> Dict[str, Any]:
    return {
        "slideType": slide_type,
        "title": f"Slide {index}",
        "subtitle": f"Caption {index}",
        "keyPoints": [f"Point {index}.1", f"Point {index}.2"],
        "imagePrompt": prompt or f"A photorealistic scene number {index}",
    }


@pytest.fixture
def slide_factory():
    return make_slide


@pytest.fixture
def three_slides() -> Dict[str, Any]:
    return {
        "slides": [
            make_slide(1, slide_type="overview"),
            make_slide(2, slide_type="historical_timeline"),
            make_slide(3, slide_type="then_vs_now"),
        ]
    }
