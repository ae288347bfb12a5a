import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from dondesalimos.errors import DiscoverySuperseded, ExternalSourceFailure, LocalSourceFailure
from dondesalimos.models.schemas import Location, PlaceSource, VenueRecord
from dondesalimos.services.aggregator_service import DiscoveryCoordinator, SourceAggregator
from dondesalimos.services.geocoding_service import GeocodingResolver, OffsetGenerator

ORIGIN = Location(latitude=-34.6037, longitude=-58.3816)


def _venue(venue_id, approved=True, **overrides) -> VenueRecord:
    data = {
        "id": venue_id,
        "name": f"Venue {venue_id}",
        "address": f"Calle {venue_id}",
        "latitude": -34.59,
        "longitude": -58.41,
        "approved": approved,
    }
    data.update(overrides)
    return VenueRecord(**data)


def _google(place_id, lat=-34.6, lng=-58.4):
    return {
        "place_id": place_id,
        "name": f"Google {place_id}",
        "vicinity": "Palermo",
        "rating": 4.4,
        "user_ratings_total": 120,
        "types": ["bar"],
        "opening_hours": {"open_now": True},
        "geometry": {"location": {"lat": lat, "lng": lng}},
    }


def _aggregator(venues=None, repo_error=None, google_places=None, google_error=None, geocoder=None):
    repository = MagicMock()
    repository.list_venues = AsyncMock(return_value=venues or [], side_effect=repo_error)
    maps = MagicMock()
    maps.nearby_search = AsyncMock(return_value=google_places or [], side_effect=google_error)
    resolver = GeocodingResolver(geocoder or AsyncMock(), OffsetGenerator(seed=3))
    return SourceAggregator(repository, maps, resolver, external_category="bar"), repository, maps


def test_unapproved_venues_never_reach_output():
    aggregator, _, _ = _aggregator(venues=[_venue("1"), _venue("2", approved=False), _venue("3")])

    places = asyncio.run(aggregator.discover(ORIGIN, 10000, include_external=False))

    assert [p.id for p in places] == ["1", "3"]
    assert all(p.source == PlaceSource.LOCAL for p in places)


def test_local_and_external_are_concatenated_without_dedup():
    aggregator, _, maps = _aggregator(
        venues=[_venue("1", name="Antares")],
        google_places=[_google("g1"), _google("g2")],
    )

    places = asyncio.run(aggregator.discover(ORIGIN, 5000, include_external=True))

    assert [p.source for p in places] == [PlaceSource.LOCAL, PlaceSource.EXTERNAL, PlaceSource.EXTERNAL]
    maps.nearby_search.assert_awaited_once_with(ORIGIN.latitude, ORIGIN.longitude, 5000, category="bar")
    external = places[1]
    assert external.rating == 4.4
    assert external.rating_count == 120
    assert external.open_now is True
    assert external.is_approximate is False


def test_external_is_skipped_when_toggle_off():
    aggregator, _, maps = _aggregator(venues=[_venue("1")], google_places=[_google("g1")])

    places = asyncio.run(aggregator.discover(ORIGIN, 5000, include_external=False))

    assert len(places) == 1
    maps.nearby_search.assert_not_called()


def test_external_failure_keeps_local_results():
    aggregator, _, _ = _aggregator(venues=[_venue("1")], google_error=ExternalSourceFailure("quota"))

    places = asyncio.run(aggregator.discover(ORIGIN, 5000, include_external=True))

    assert [p.id for p in places] == ["1"]


def test_unexpected_external_error_keeps_local_results():
    aggregator, _, _ = _aggregator(venues=[_venue("1")], google_error=RuntimeError("boom"))

    places = asyncio.run(aggregator.discover(ORIGIN, 5000, include_external=True))

    assert [p.id for p in places] == ["1"]


def test_local_failure_is_fatal():
    aggregator, _, _ = _aggregator(repo_error=ConnectionError("db down"), google_places=[_google("g1")])

    with pytest.raises(LocalSourceFailure):
        asyncio.run(aggregator.discover(ORIGIN, 5000, include_external=True))


def test_every_place_leaves_with_a_coordinate():
    geocoder = AsyncMock()
    geocoder.geocode.side_effect = [(-34.62, -58.37), RuntimeError("quota")]
    venues = [
        _venue("1"),
        _venue("2", latitude=None, longitude=None, address="Defensa 900"),
        _venue("3", latitude=None, longitude=None, address="Perú 100"),
        _venue("4", latitude=None, longitude=None, address=None),
    ]
    aggregator, _, _ = _aggregator(
        venues=venues,
        google_places=[_google("g1"), {"place_id": "g2", "name": "No geometry"}],
        geocoder=geocoder,
    )

    places = asyncio.run(aggregator.discover(ORIGIN, 5000, include_external=True))

    assert [p.id for p in places] == ["1", "2", "3", "4", "g1"]
    assert all(p.latitude is not None and p.longitude is not None for p in places)
    by_id = {p.id: p for p in places}
    assert by_id["1"].is_approximate is False
    assert by_id["2"].is_approximate is False
    assert by_id["3"].is_approximate is True
    assert by_id["4"].is_approximate is True


def test_newer_discovery_supersedes_in_flight_one():
    async def scenario():
        release = asyncio.Event()
        aggregator = MagicMock()

        async def discover(location, radius, include_external):
            if location == ORIGIN:
                await release.wait()
            return [location]

        aggregator.discover = discover
        coordinator = DiscoveryCoordinator(aggregator)

        first = asyncio.ensure_future(coordinator.discover_latest("user-1", ORIGIN, 5000, True))
        await asyncio.sleep(0)
        assert coordinator.in_flight("user-1")

        newer = Location(latitude=-34.7, longitude=-58.5)
        second = await coordinator.discover_latest("user-1", newer, 5000, True)

        with pytest.raises(DiscoverySuperseded):
            await first
        return second, coordinator

    second, coordinator = asyncio.run(scenario())
    assert second == [Location(latitude=-34.7, longitude=-58.5)]
    assert not coordinator.in_flight("user-1")
