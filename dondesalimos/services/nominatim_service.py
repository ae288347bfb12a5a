import asyncio
import logging
from functools import partial
from typing import Optional, Tuple

from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from ..config import settings
from ..errors import GeocodingFailure

logger = logging.getLogger(__name__)

# public Nominatim usage policy: at most one request per second
NOMINATIM_MIN_DELAY_SECONDS = 1.0


class NominatimService:
    """Address lookup through OpenStreetMap, used when no Google key is set.

    Calls go through a geopy RateLimiter, so concurrent lookups from the
    executor threads are spaced at least min_delay_seconds apart.
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        geolocator: Optional[Nominatim] = None,
        timeout: float = 5.0,
        min_delay_seconds: float = NOMINATIM_MIN_DELAY_SECONDS,
    ):
        self.geolocator = geolocator or Nominatim(user_agent=user_agent or settings.NOMINATIM_USER_AGENT, timeout=timeout)
        self._geocode = RateLimiter(
            self.geolocator.geocode,
            min_delay_seconds=min_delay_seconds,
            max_retries=0,
            swallow_exceptions=False,
        )

    async def geocode(self, address: str) -> Tuple[float, float]:
        loop = asyncio.get_running_loop()
        try:
            location = await loop.run_in_executor(None, partial(self._geocode, address, exactly_one=True))
        except GeopyError as e:
            raise GeocodingFailure(address, str(e)) from e

        if location is None:
            raise GeocodingFailure(address, "no results")
        logger.debug(f"Nominatim resolved '{address}' to {location.latitude},{location.longitude}")
        return float(location.latitude), float(location.longitude)
