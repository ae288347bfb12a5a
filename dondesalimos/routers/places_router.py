import logging
from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from ..config import settings
from ..dependencies import get_discovery_coordinator
from ..errors import DiscoverySuperseded, LocalSourceFailure
from ..models.schemas import Location, PlaceFilters, PlacePage, SortKey
from ..services import catalog_service
from ..services.aggregator_service import DiscoveryCoordinator

logger = logging.getLogger(__name__)

places_router = APIRouter()


@places_router.get("/places", response_model=PlacePage)
async def list_places(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: int = Query(settings.SEARCH_RADIUS_METERS, gt=0, le=50000),
    include_external: bool = True,
    category: Optional[int] = None,
    search: Optional[str] = None,
    genres: List[str] = Query([]),
    sort: SortKey = SortKey.NAME,
    page: int = 1,
    client_id: Optional[str] = Header(None, alias="X-Client-Id"),
    coordinator: DiscoveryCoordinator = Depends(get_discovery_coordinator),
):
    user_location = Location(latitude=lat, longitude=lng) if lat is not None and lng is not None else None
    origin = user_location or Location(latitude=settings.DEFAULT_LATITUDE, longitude=settings.DEFAULT_LONGITUDE)

    try:
        places = await coordinator.discover_latest(
            client_id or uuid4().hex,
            origin,
            radius,
            include_external,
        )
    except LocalSourceFailure as e:
        raise HTTPException(status_code=503, detail={"message": str(e), "retry": True}) from e
    except DiscoverySuperseded as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "retry": False}) from e

    filters = PlaceFilters(category=category, search_text=search, genres=genres)
    return catalog_service.apply(places, filters=filters, sort=sort, location=user_location, page=page)
