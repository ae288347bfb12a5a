import asyncio
import logging
from typing import Dict, List, Optional, Set

from ..config import settings
from ..errors import DiscoverySuperseded, ExternalSourceFailure, LocalSourceFailure
from ..models.schemas import Location, Place
from ..repositories.venue_repository import VenueRepository
from .geocoding_service import GeocodingResolver
from .google_maps_service import GoogleMapsService
from .place_normalizer import external_to_place, venue_to_place

logger = logging.getLogger(__name__)


class SourceAggregator:
    def __init__(
        self,
        venue_repository: VenueRepository,
        google_maps_service: GoogleMapsService,
        geocoding_resolver: GeocodingResolver,
        external_category: Optional[str] = None,
    ):
        self.venue_repository = venue_repository
        self.google_maps_service = google_maps_service
        self.geocoding_resolver = geocoding_resolver
        self.external_category = external_category or settings.EXTERNAL_PLACE_TYPE

    async def discover(self, location: Location, radius_meters: int, include_external: bool) -> List[Place]:
        """Local registry places plus (optionally) nearby external places.

        Raises LocalSourceFailure when the registry cannot be read. Any other
        failure degrades the result instead of failing the call.
        """
        logger.info(
            f"Discovery started: lat={location.latitude}, lng={location.longitude}, "
            f"radius={radius_meters}, include_external={include_external}"
        )
        if include_external:
            local_result, external_result = await asyncio.gather(
                self._load_local(location),
                self._load_external(location, radius_meters),
                return_exceptions=True,
            )
            if isinstance(local_result, BaseException):
                raise local_result
            if isinstance(external_result, BaseException):
                logger.warning(f"External contribution dropped: {external_result}")
                external_result = []
            local_places, external_places = local_result, external_result
        else:
            local_places = await self._load_local(location)
            external_places = []

        # no de-duplication between sources
        places = local_places + external_places
        logger.info(f"Discovery finished: {len(local_places)} local + {len(external_places)} external places")
        return places

    async def _load_local(self, location: Location) -> List[Place]:
        try:
            records = await self.venue_repository.list_venues()
        except Exception as e:
            logger.error(f"Venue registry read failed: {e}", exc_info=True)
            raise LocalSourceFailure("Error al cargar los lugares. Por favor, intenta nuevamente.") from e

        approved = [venue_to_place(record) for record in records if record.approved]
        logger.info(f"Registry returned {len(records)} venues, {len(approved)} approved")

        resolved = await asyncio.gather(
            *(self.geocoding_resolver.resolve(place, location) for place in approved),
            return_exceptions=True,
        )
        places: List[Place] = []
        for place, outcome in zip(approved, resolved):
            if isinstance(outcome, BaseException):
                # resolve() absorbs its own failures; this is a last resort
                logger.warning(f"Resolver raised for {place.name}: {outcome}")
                outcome = self.geocoding_resolver.approximate(place, location)
            places.append(outcome)
        return places

    async def _load_external(self, location: Location, radius_meters: int) -> List[Place]:
        try:
            raw_places = await self.google_maps_service.nearby_search(
                location.latitude,
                location.longitude,
                radius_meters,
                category=self.external_category,
            )
        except ExternalSourceFailure as e:
            logger.warning(f"External source unavailable, continuing with local places only: {e}")
            return []
        except Exception as e:
            logger.warning(f"External source failed, continuing with local places only: {e}", exc_info=True)
            return []

        places: List[Place] = []
        for raw in raw_places:
            place = external_to_place(raw)
            if place is None:
                logger.warning(f"Dropping external place without coordinate: {raw.get('name')}")
                continue
            places.append(place)
        return places


class DiscoveryCoordinator:
    """Runs one discovery per caller key, cancelling the one it supersedes."""

    def __init__(self, aggregator: SourceAggregator):
        self.aggregator = aggregator
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._superseded: Set[asyncio.Task] = set()

    async def discover_latest(
        self,
        key: str,
        location: Location,
        radius_meters: int,
        include_external: bool,
    ) -> List[Place]:
        previous = self._in_flight.get(key)
        if previous is not None and not previous.done():
            logger.info(f"Cancelling superseded discovery for {key}")
            self._superseded.add(previous)
            previous.cancel()

        task = asyncio.ensure_future(self.aggregator.discover(location, radius_meters, include_external))
        self._in_flight[key] = task
        try:
            return await task
        except asyncio.CancelledError:
            if task in self._superseded:
                raise DiscoverySuperseded(f"Discovery for {key} was superseded by a newer request")
            raise
        finally:
            self._superseded.discard(task)
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

    def in_flight(self, key: str) -> bool:
        task = self._in_flight.get(key)
        return task is not None and not task.done()
