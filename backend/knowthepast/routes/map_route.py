from fastapi import APIRouter, Depends

from knowthepast.core.config import settings, validate_credentials
from knowthepast.models.map_model import MapViewRequest, MapViewResponse
from knowthepast.services.Map_service import BoundaryResolver, CommandRecorder, MapViewBinding

router = APIRouter()

def get_boundary_resolver() -> BoundaryResolver:
    validate_credentials(settings)
    return BoundaryResolver(api_key=settings.MAPS_API_KEY)

def get_map_binding(resolver: BoundaryResolver = Depends(get_boundary_resolver)) -> MapViewBinding:
    return MapViewBinding(resolver)

@router.post("/map/view", response_model=MapViewResponse)
async def map_view_endpoint(
    request: MapViewRequest,
    binding: MapViewBinding = Depends(get_map_binding)
):
    """Camera and marker commands for the selected place; boundary failures fall back silently."""
    recorder = CommandRecorder()
    await binding.apply(request.place, recorder)
    return MapViewResponse(commands=recorder.commands)
