import googlemaps
import asyncio
from functools import partial
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..config import settings
from ..errors import ExternalSourceFailure, GeocodingFailure

logger = logging.getLogger(__name__)

EXCLUDED_KEYWORDS = [
    "hotel", "hostel", "motel", "resort", "hospedaje", "alojamiento",
    "hospital", "clinica", "clínica", "farmacia",
    "supermercado", "carniceria", "verduleria",
    "estacion de servicio", "gas station",
    "gimnasio", "gym", "fitness",
]

EXCLUDED_TYPES = [
    "lodging", "hotel", "motel",
    "hospital", "health", "doctor", "pharmacy",
    "gas_station",
    "grocery_or_supermarket", "supermarket",
]

# (type, keyword) pairs queried in parallel for one nearby search
NIGHTLIFE_SUB_SEARCHES: List[Tuple[str, str]] = [
    ("bar", ""),
    ("night_club", ""),
    ("bar", "cerveceria"),
    ("bar", "pub"),
]


def should_exclude_place(place: Dict[str, Any]) -> bool:
    name = (place.get("name") or "").lower()
    types = place.get("types") or []
    if any(keyword in name for keyword in EXCLUDED_KEYWORDS):
        return True
    return any(excluded in types for excluded in EXCLUDED_TYPES)


class GoogleMapsService:
    def __init__(self, api_key: Optional[str] = None, client: Optional[googlemaps.Client] = None, language: str = "es"):
        api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
        if client is None and api_key:
            client = googlemaps.Client(key=api_key)
        self.client = client
        self.language = language

    def _require_client(self) -> googlemaps.Client:
        if self.client is None:
            raise ExternalSourceFailure("GOOGLE_MAPS_API_KEY is not configured")
        return self.client

    async def search_nearby_places(
        self,
        latitude: float,
        longitude: float,
        radius: int,
        place_type: str = "bar",
        keyword: str = "",
    ) -> List[Dict[str, Any]]:
        client = self._require_client()
        logger.info(f"Nearby search: lat={latitude}, lng={longitude}, radius={radius}, type={place_type}, keyword='{keyword}'")
        loop = asyncio.get_running_loop()
        kwargs: Dict[str, Any] = {
            "location": (latitude, longitude),
            "radius": radius,
            "type": place_type,
            "language": self.language,
        }
        if keyword:
            kwargs["keyword"] = keyword
        result = await loop.run_in_executor(None, partial(client.places_nearby, **kwargs))
        status = result.get("status")
        if status not in ("OK", "ZERO_RESULTS"):
            raise ExternalSourceFailure(f"Nearby search returned status {status}")
        places = result.get("results", [])
        logger.info(f"Nearby search done: status={status}, results={len(places)}")
        return places

    async def nearby_search(
        self,
        latitude: float,
        longitude: float,
        radius: int,
        category: str = "bar",
    ) -> List[Dict[str, Any]]:
        """Fan out the nightlife sub-searches and merge them by place_id.

        A failing sub-search contributes nothing; only when every one of them
        fails is the whole search reported as an ExternalSourceFailure.
        """
        sub_searches = list(NIGHTLIFE_SUB_SEARCHES)
        if (category, "") not in sub_searches:
            sub_searches.insert(0, (category, ""))

        tasks = [
            self.search_nearby_places(latitude, longitude, radius, place_type=place_type, keyword=keyword)
            for place_type, keyword in sub_searches
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        for (place_type, keyword), outcome in zip(sub_searches, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Sub-search failed (type={place_type}, keyword='{keyword}'): {outcome}")
        if failures and len(failures) == len(outcomes):
            raise ExternalSourceFailure(f"All {len(outcomes)} nearby sub-searches failed") from failures[0]

        unique_places: List[Dict[str, Any]] = []
        seen_ids = set()
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                continue
            for place in outcome:
                place_id = place.get("place_id")
                if place_id and place_id not in seen_ids:
                    seen_ids.add(place_id)
                    unique_places.append(place)

        filtered = [place for place in unique_places if not should_exclude_place(place)]
        logger.info(f"Nearby search merged {len(unique_places)} unique places, {len(filtered)} kept after exclusions")
        return filtered

    async def geocode(self, address: str) -> Tuple[float, float]:
        client = self.client
        if client is None:
            raise GeocodingFailure(address, "GOOGLE_MAPS_API_KEY is not configured")
        loop = asyncio.get_running_loop()
        try:
            results = await loop.run_in_executor(None, partial(client.geocode, address, language=self.language))
        except googlemaps.exceptions.ApiError as e:
            raise GeocodingFailure(address, f"API error {e.status}") from e
        except (googlemaps.exceptions.TransportError, googlemaps.exceptions.Timeout) as e:
            raise GeocodingFailure(address, str(e)) from e

        if not results:
            raise GeocodingFailure(address, "no results")
        location = results[0].get("geometry", {}).get("location", {})
        lat = location.get("lat")
        lng = location.get("lng")
        if lat is None or lng is None:
            raise GeocodingFailure(address, "result without location")
        return float(lat), float(lng)
