from typing import List

from fastapi import APIRouter, Depends, HTTPException

from knowthepast.core.errors import GenerationError
from knowthepast.core.llm_connection import get_provider
from knowthepast.core.llm_providers import BaseLLMProvider
from knowthepast.core.logger import logs
from knowthepast.models.place_model import CATEGORIES, Category, DiscoverRequest, Place
from knowthepast.services.Places_service import PlacesService

router = APIRouter()

def get_places_service(provider: BaseLLMProvider = Depends(get_provider)) -> PlacesService:
    return PlacesService(provider)

@router.get("/categories", response_model=List[Category])
async def list_categories():
    return CATEGORIES

@router.post("/places/discover", response_model=Place)
async def discover_place_endpoint(
    request: DiscoverRequest,
    service: PlacesService = Depends(get_places_service)
):
    try:
        return await service.discover_place(request.category)
    except GenerationError as e:
        logs.log(40, f"Error in discover_place_endpoint: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))
