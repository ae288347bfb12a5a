import logging
import random
from typing import Optional, Protocol, Tuple

from ..models.schemas import Location, Place
from ..utils.distance import is_valid_coordinate

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    async def geocode(self, address: str) -> Tuple[float, float]:
        ...


class OffsetGenerator:
    """Random (dlat, dlng) offsets bounded to +/- max_offset degrees.

    Pass a seed (or a random.Random) to get a reproducible sequence.
    """

    def __init__(self, max_offset: float = 0.01, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.max_offset = max_offset
        self.rng = rng or random.Random(seed)

    def next_offset(self) -> Tuple[float, float]:
        return (
            self.rng.uniform(-self.max_offset, self.max_offset),
            self.rng.uniform(-self.max_offset, self.max_offset),
        )


class GeocodingResolver:
    def __init__(self, geocoder: Optional[Geocoder], offsets: Optional[OffsetGenerator] = None):
        self.geocoder = geocoder
        self.offsets = offsets or OffsetGenerator()

    async def resolve(self, place: Place, origin: Location) -> Place:
        """Return the place with a usable coordinate. Never raises."""
        if is_valid_coordinate(place.latitude, place.longitude):
            return place.model_copy(update={"is_approximate": False})

        address = (place.address or "").strip()
        if address and self.geocoder is not None:
            try:
                lat, lng = await self.geocoder.geocode(address)
                if is_valid_coordinate(lat, lng):
                    return place.model_copy(update={"latitude": lat, "longitude": lng, "is_approximate": False})
                logger.warning(f"Geocoder returned an unusable coordinate for {place.name} ({lat}, {lng})")
            except Exception as e:
                logger.warning(f"Geocoding failed for {place.name} ('{address}'): {e}")

        return self.approximate(place, origin)

    def approximate(self, place: Place, origin: Location) -> Place:
        d_lat, d_lng = self.offsets.next_offset()
        logger.info(f"Using an approximate coordinate for {place.name} (id={place.id})")
        return place.model_copy(
            update={
                "latitude": origin.latitude + d_lat,
                "longitude": origin.longitude + d_lng,
                "is_approximate": True,
            }
        )
