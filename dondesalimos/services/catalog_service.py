import logging
import math
import unicodedata
from typing import Iterable, List, Optional, Sequence, Union

from ..models.schemas import Location, Place, PlaceFilters, PlacePage, SortKey
from ..utils.distance import distance_meters, format_distance

logger = logging.getLogger(__name__)

PAGE_SIZE = 9
ELLIPSIS = "..."
MAX_PAGES_TO_SHOW = 5


def _fold(text: Optional[str]) -> str:
    """Case- and accent-insensitive key, close to a locale collation."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def _contains(field: Optional[str], needle: str) -> bool:
    return bool(field) and needle in field.lower()


def _genre_string(place: Place) -> str:
    return " ".join(tag.lower().replace("_", " ") for tag in place.genre_tags)


def filter_places(places: Iterable[Place], filters: PlaceFilters) -> List[Place]:
    result = list(places)

    if filters.category is not None:
        result = [place for place in result if place.category_id == filters.category]

    search = (filters.search_text or "").strip().lower()
    if search:
        result = [
            place for place in result
            if _contains(place.name, search)
            or _contains(place.address, search)
            or _contains(place.description, search)
        ]

    genres = [genre.lower().replace("_", " ") for genre in filters.genres if genre]
    if genres:
        def matches_genre(place: Place) -> bool:
            if not place.is_local:
                return True
            tags = _genre_string(place)
            return bool(tags) and any(genre in tags for genre in genres)

        result = [place for place in result if matches_genre(place)]

    return result


def with_distances(places: Iterable[Place], location: Optional[Location]) -> List[Place]:
    if location is None:
        return list(places)
    decorated = []
    for place in places:
        if place.coordinate is None:
            decorated.append(place)
            continue
        meters = distance_meters(location.as_tuple(), place.coordinate)
        decorated.append(place.model_copy(update={"distance_meters": meters, "distance_label": format_distance(meters)}))
    return decorated


def sort_places(places: Iterable[Place], sort: Optional[SortKey], location: Optional[Location]) -> List[Place]:
    result = list(places)
    sort = sort or SortKey.NAME

    if sort == SortKey.DISTANCE and location is not None:
        def distance_key(place: Place) -> float:
            if place.distance_meters is not None:
                return place.distance_meters
            if place.coordinate is None:
                return math.inf
            return distance_meters(location.as_tuple(), place.coordinate)

        return sorted(result, key=distance_key)

    if sort == SortKey.RATING:
        return sorted(result, key=lambda place: place.rating or 0, reverse=True)

    if sort == SortKey.DISTANCE:
        logger.debug("Distance sort requested without a location, sorting by name")
    return sorted(result, key=lambda place: (_fold(place.name), place.name or ""))


def total_pages(count: int, page_size: int) -> int:
    return math.ceil(count / page_size) if count > 0 else 0


def clamp_page(page: int, pages: int) -> int:
    return max(1, min(page, pages)) if pages > 0 else 1


def page_numbers(current: int, pages: int) -> List[Union[int, str]]:
    """Page links to render, with ELLIPSIS where pages are skipped."""
    if pages <= MAX_PAGES_TO_SHOW:
        return list(range(1, pages + 1))

    numbers: List[Union[int, str]] = [1]
    start = max(2, current - 1)
    end = min(pages - 1, current + 1)
    if current <= 3:
        end = 4
    if current >= pages - 2:
        start = pages - 3

    if start > 2:
        numbers.append(ELLIPSIS)
    numbers.extend(range(start, end + 1))
    if end < pages - 1:
        numbers.append(ELLIPSIS)
    numbers.append(pages)
    return numbers


def paginate(places: Sequence[Place], page: int = 1, page_size: Optional[int] = None) -> PlacePage:
    page_size = page_size or PAGE_SIZE
    count = len(places)
    pages = total_pages(count, page_size)
    current = clamp_page(page, pages)
    start = (current - 1) * page_size
    items = list(places[start:start + page_size])
    return PlacePage(
        items=items,
        page=current,
        total_pages=pages,
        total=count,
        page_size=page_size,
        page_numbers=page_numbers(current, pages),
        first_index=start + 1 if items else 0,
        last_index=start + len(items),
    )


def apply(
    places: Iterable[Place],
    filters: Optional[PlaceFilters] = None,
    sort: Optional[SortKey] = None,
    location: Optional[Location] = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> PlacePage:
    filtered = filter_places(places, filters or PlaceFilters())
    ordered = sort_places(with_distances(filtered, location), sort, location)
    return paginate(ordered, page, page_size)


class PlaceBrowser:
    """Filter/sort/page state over one discovery result.

    Stateful API for interactive callers that keep a result set between
    requests. Any change to the visible set of places moves back to page 1.
    The stateless `apply` serves the HTTP listing.
    """

    def __init__(
        self,
        places: Iterable[Place] = (),
        filters: Optional[PlaceFilters] = None,
        sort: Optional[SortKey] = None,
        location: Optional[Location] = None,
        page_size: Optional[int] = None,
    ):
        self.places = list(places)
        self.filters = filters or PlaceFilters()
        self.sort = sort or SortKey.NAME
        self.location = location
        self.page_size = page_size or PAGE_SIZE
        self.current_page = 1
        self._visible = self._compute()

    def _compute(self) -> List[Place]:
        filtered = filter_places(self.places, self.filters)
        return sort_places(with_distances(filtered, self.location), self.sort, self.location)

    def _refresh(self) -> None:
        before = {(place.source, place.id) for place in self._visible}
        self._visible = self._compute()
        after = {(place.source, place.id) for place in self._visible}
        if before != after:
            self.current_page = 1

    def set_places(self, places: Iterable[Place]) -> None:
        self.places = list(places)
        self._refresh()

    def set_filters(self, filters: PlaceFilters) -> None:
        self.filters = filters
        self._refresh()

    def set_sort(self, sort: SortKey) -> None:
        self.sort = sort
        self._refresh()

    def set_location(self, location: Optional[Location]) -> None:
        self.location = location
        self._refresh()

    @property
    def total_pages(self) -> int:
        return total_pages(len(self._visible), self.page_size)

    def go_to(self, page: int) -> PlacePage:
        self.current_page = clamp_page(page, self.total_pages)
        return self.page()

    def next_page(self) -> PlacePage:
        return self.go_to(self.current_page + 1)

    def previous_page(self) -> PlacePage:
        return self.go_to(self.current_page - 1)

    def first_page(self) -> PlacePage:
        return self.go_to(1)

    def last_page(self) -> PlacePage:
        return self.go_to(self.total_pages)

    def page(self) -> PlacePage:
        return paginate(self._visible, self.current_page, self.page_size)
