import asyncio
from unittest.mock import AsyncMock

from dondesalimos.errors import GeocodingFailure
from dondesalimos.models.schemas import Location, Place, PlaceSource
from dondesalimos.services.geocoding_service import GeocodingResolver, OffsetGenerator

ORIGIN = Location(latitude=-34.6037, longitude=-58.3816)


def _place(**overrides) -> Place:
    data = {"id": "7", "name": "La Birra", "address": "", "source": PlaceSource.LOCAL}
    data.update(overrides)
    return Place(**data)


def test_registry_coordinate_is_trusted():
    geocoder = AsyncMock()
    resolver = GeocodingResolver(geocoder)

    place = asyncio.run(resolver.resolve(_place(latitude=-34.58, longitude=-58.42, address="Av. Corrientes 1234"), ORIGIN))

    assert place.coordinate == (-34.58, -58.42)
    assert place.is_approximate is False
    geocoder.geocode.assert_not_called()


def test_address_is_geocoded_when_coordinate_missing():
    geocoder = AsyncMock()
    geocoder.geocode.return_value = (-34.6, -58.37)
    resolver = GeocodingResolver(geocoder)

    place = asyncio.run(resolver.resolve(_place(address="Defensa 900, San Telmo"), ORIGIN))

    geocoder.geocode.assert_awaited_once_with("Defensa 900, San Telmo")
    assert place.coordinate == (-34.6, -58.37)
    assert place.is_approximate is False


def test_zero_coordinate_counts_as_missing():
    geocoder = AsyncMock()
    geocoder.geocode.return_value = (-34.6, -58.37)
    resolver = GeocodingResolver(geocoder)

    place = asyncio.run(resolver.resolve(_place(latitude=0.0, longitude=0.0, address="Defensa 900"), ORIGIN))

    assert place.coordinate == (-34.6, -58.37)


def test_missing_address_falls_back_near_origin():
    resolver = GeocodingResolver(AsyncMock(), OffsetGenerator(max_offset=0.01, seed=42))

    for _ in range(50):
        place = asyncio.run(resolver.resolve(_place(), ORIGIN))
        assert place.is_approximate is True
        assert abs(place.latitude - ORIGIN.latitude) <= 0.01
        assert abs(place.longitude - ORIGIN.longitude) <= 0.01


def test_geocoding_failure_falls_back_to_approximate():
    geocoder = AsyncMock()
    geocoder.geocode.side_effect = GeocodingFailure("Calle Falsa 123", "no results")
    resolver = GeocodingResolver(geocoder, OffsetGenerator(seed=1))

    place = asyncio.run(resolver.resolve(_place(address="Calle Falsa 123"), ORIGIN))

    assert place.is_approximate is True
    assert place.source == PlaceSource.LOCAL


def test_unexpected_geocoder_error_is_absorbed():
    geocoder = AsyncMock()
    geocoder.geocode.side_effect = RuntimeError("connection reset")
    resolver = GeocodingResolver(geocoder, OffsetGenerator(seed=1))

    place = asyncio.run(resolver.resolve(_place(address="Calle Falsa 123"), ORIGIN))

    assert place.is_approximate is True


def test_seeded_offsets_are_reproducible():
    first = OffsetGenerator(seed=7)
    second = OffsetGenerator(seed=7)
    assert [first.next_offset() for _ in range(5)] == [second.next_offset() for _ in range(5)]
