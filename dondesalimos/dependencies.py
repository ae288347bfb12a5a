from .config import settings
from .repositories.venue_repository import VenueRepository
from .services.aggregator_service import DiscoveryCoordinator, SourceAggregator
from .services.geocoding_service import GeocodingResolver, OffsetGenerator
from .services.google_maps_service import GoogleMapsService
from .services.nominatim_service import NominatimService
from .services.reservation_client import ReservationClient
from .services.reservation_service import ReservationService, ReservationValidator

google_maps_service = GoogleMapsService()
venue_repository = VenueRepository()

if settings.GEOCODER_PROVIDER == "google" and google_maps_service.client is not None:
    geocoder = google_maps_service
else:
    geocoder = NominatimService()

geocoding_resolver = GeocodingResolver(
    geocoder=geocoder,
    offsets=OffsetGenerator(max_offset=settings.FALLBACK_OFFSET_DEGREES),
)

source_aggregator = SourceAggregator(
    venue_repository=venue_repository,
    google_maps_service=google_maps_service,
    geocoding_resolver=geocoding_resolver,
)
discovery_coordinator = DiscoveryCoordinator(source_aggregator)

reservation_service = ReservationService(
    validator=ReservationValidator(),
    client=ReservationClient(),
)


def get_discovery_coordinator() -> DiscoveryCoordinator:
    return discovery_coordinator


def get_venue_repository() -> VenueRepository:
    return venue_repository


def get_reservation_service() -> ReservationService:
    return reservation_service
