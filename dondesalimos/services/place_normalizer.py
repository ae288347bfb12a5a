from typing import Any, Dict, Optional

from ..models.schemas import Place, PlaceSource, VenueRecord
from ..utils.schedule import parse_time_to_minutes

CATEGORY_BAR = 1
CATEGORY_CLUB = 2


def infer_category(google_place: Dict[str, Any]) -> int:
    types = google_place.get("types") or []
    name = (google_place.get("name") or "").lower()
    if "night_club" in types:
        return CATEGORY_CLUB
    if "disco" in name or "club" in name or "boliche" in name:
        return CATEGORY_CLUB
    return CATEGORY_BAR


def venue_to_place(record: VenueRecord) -> Place:
    return Place(
        id=record.id,
        name=record.name or "",
        address=record.address or "",
        latitude=record.latitude,
        longitude=record.longitude,
        source=PlaceSource.LOCAL,
        rating=record.average_rating,
        schedule_open=parse_time_to_minutes(record.schedule_open),
        schedule_close=parse_time_to_minutes(record.schedule_close),
        capacity=record.capacity if record.capacity and record.capacity > 0 else None,
        genre_tags=list(record.genre_tags),
        approved=record.approved,
        category_id=record.category_id,
        description=record.description,
        photo=record.photo,
    )


def external_to_place(google_place: Dict[str, Any]) -> Optional[Place]:
    """Map a nearby-search result to a Place; None when it has no coordinate."""
    location = google_place.get("geometry", {}).get("location", {})
    lat = location.get("lat")
    lng = location.get("lng")
    if lat is None or lng is None:
        return None

    rating = google_place.get("rating")
    rating_count = google_place.get("user_ratings_total")
    return Place(
        id=str(google_place.get("place_id", "")),
        name=google_place.get("name") or "",
        address=google_place.get("vicinity") or google_place.get("formatted_address") or "",
        latitude=float(lat),
        longitude=float(lng),
        source=PlaceSource.EXTERNAL,
        rating=float(rating) if rating is not None else None,
        rating_count=int(rating_count) if rating_count is not None else None,
        open_now=google_place.get("opening_hours", {}).get("open_now"),
        category_id=infer_category(google_place),
        types=list(google_place.get("types") or []),
    )
