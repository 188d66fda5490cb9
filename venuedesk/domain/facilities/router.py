"""Facility router - FastAPI endpoints for facility operations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ...cache import RenderCache, bypasses_render_cache, get_or_render, get_render_cache
from ...statuses import FACILITY
from ...status_updates import get_status_update_timeout, handle_status_update
from .schemas import FacilityResponse, FacilityStatusUpdateRequest
from .service import FacilityService

router = APIRouter(prefix="/api/facilities", tags=["Facilities"])


def get_facility_service() -> FacilityService:
    """Dependency injection for FacilityService"""
    return FacilityService()


@router.post("/update-status")
async def update_facility_status(
    request: Request,
    service: FacilityService = Depends(get_facility_service),
    timeout: float = Depends(get_status_update_timeout),
):
    return await handle_status_update(request, FACILITY, FacilityStatusUpdateRequest, service, timeout)


@router.get("", response_model=list[FacilityResponse])
def list_facilities(
    request: Request,
    status: Optional[str] = Query(None),
    service: FacilityService = Depends(get_facility_service),
    cache: RenderCache = Depends(get_render_cache),
):
    path = request.url.path + (f"?status={status}" if status else "")
    return get_or_render(
        cache,
        path,
        [FACILITY.plural],
        lambda: service.list_facilities(status),
        fresh=bypasses_render_cache(request.headers),
    )


@router.get("/{facility_id}", response_model=FacilityResponse)
def get_facility(
    facility_id: str,
    request: Request,
    service: FacilityService = Depends(get_facility_service),
    cache: RenderCache = Depends(get_render_cache),
):
    return get_or_render(
        cache,
        request.url.path,
        [FACILITY.plural, FACILITY.entity_tag(facility_id)],
        lambda: service.get_facility(facility_id),
        fresh=bypasses_render_cache(request.headers),
    )
