import pytest

from src.roofroute.models.domain import Building, Coordinate, LocationSource, PlanConfigurationError
from src.roofroute.services.locations.resolver import (
    LocationResolver,
    ZipCentroidTable,
    normalize_postal_code,
    parse_start_location,
)
from src.roofroute.services.locations.service import resolve_start_location

CENTROIDS = ZipCentroidTable(
    {
        "75201": Coordinate(32.7876, -96.7994),
        "02108": Coordinate(42.3577, -71.0648),
    }
)


def _building(bid: str, zip_code: str = "", lat: float | None = None, lng: float | None = None) -> Building:
    return Building(
        building_id=bid,
        property_name=f"Property {bid}",
        address=f"{bid} Main St",
        city="Dallas",
        state="TX",
        zip_code=zip_code,
        latitude=lat,
        longitude=lng,
    )


class FakeGeocoder:
    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.queries: list[str] = []

    def search(self, query: str):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.result


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("75201", "75201"),
        ("75201-1234", "75201"),
        ("2108", "02108"),
        (" 02108 ", "02108"),
        (2108, "02108"),
        ("", None),
        (None, None),
        ("N/A", None),
    ],
)
def test_normalize_postal_code(raw, expected):
    assert normalize_postal_code(raw) == expected


def test_centroid_table_normalises_keys_and_lookups():
    table = ZipCentroidTable({"2108": Coordinate(42.3577, -71.0648)})

    assert "02108" in table
    assert len(table) == 1
    assert table.lookup("02108-0001") == Coordinate(42.3577, -71.0648)
    assert table.lookup("") is None


def test_building_with_own_coordinate_is_exact():
    stop = LocationResolver(CENTROIDS).resolve_building(_building("B1", "75201", 32.8, -96.8))

    assert stop.source is LocationSource.EXACT
    assert stop.coordinate == Coordinate(32.8, -96.8)
    assert not stop.is_approximate


def test_zero_coordinates_fall_back_to_postal_centroid():
    stop = LocationResolver(CENTROIDS).resolve_building(_building("B1", "75201", 0.0, 0.0))

    assert stop.source is LocationSource.POSTAL_CENTROID
    assert stop.coordinate == CENTROIDS["75201"]
    assert stop.is_approximate


def test_unknown_postal_code_is_unresolved():
    stop = LocationResolver(CENTROIDS).resolve_building(_building("B1", "99999"))

    assert stop.source is LocationSource.UNRESOLVED
    assert stop.coordinate is None


def test_resolve_all_reports_each_missing_code_once_in_first_seen_order():
    buildings = [
        _building("B1", "99902"),
        _building("B2", "75201"),
        _building("B3", "99901"),
        _building("B4", "99902-0000"),
        _building("B5", ""),
        _building("B6", "1234"),
    ]

    stops, unresolved = LocationResolver(CENTROIDS).resolve_all(buildings)

    assert [stop.building_id for stop in stops] == ["B1", "B2", "B3", "B4", "B5", "B6"]
    assert unresolved == ["99902", "99901", "01234"]


def test_parse_start_location_postal_code():
    assert parse_start_location("75201", CENTROIDS) == CENTROIDS["75201"]
    assert parse_start_location("02108-1000", CENTROIDS) == CENTROIDS["02108"]


def test_parse_start_location_unknown_postal_code_is_configuration_error():
    with pytest.raises(PlanConfigurationError):
        parse_start_location("99999", CENTROIDS)


def test_parse_start_location_coordinate_literal():
    assert parse_start_location("32.78, -96.80", CENTROIDS) == Coordinate(32.78, -96.80)

    with pytest.raises(PlanConfigurationError):
        parse_start_location("95.0, 10.0", CENTROIDS)


def test_parse_start_location_free_form_needs_geocoding():
    assert parse_start_location("1500 Marilla St, Dallas, TX", CENTROIDS) is None
    assert parse_start_location("   ", CENTROIDS) is None


def test_resolve_start_location_uses_geocoder_for_addresses():
    geocoder = FakeGeocoder(result=Coordinate(32.7767, -96.7970))

    result = resolve_start_location("1500 Marilla St, Dallas, TX", CENTROIDS, geocoder)

    assert result == Coordinate(32.7767, -96.7970)
    assert geocoder.queries == ["1500 Marilla St, Dallas, TX"]


def test_resolve_start_location_skips_geocoder_for_postal_codes():
    geocoder = FakeGeocoder(error=AssertionError("should not be called"))

    assert resolve_start_location("75201", CENTROIDS, geocoder) == CENTROIDS["75201"]
    assert resolve_start_location(None, CENTROIDS, geocoder) is None


@pytest.mark.parametrize(
    "geocoder",
    [None, FakeGeocoder(result=None), FakeGeocoder(error=ConnectionError("offline"))],
)
def test_resolve_start_location_failures_are_configuration_errors(geocoder):
    with pytest.raises(PlanConfigurationError):
        resolve_start_location("Somewhere unknown", CENTROIDS, geocoder)


def test_building_from_loose_row():
    building = Building.from_row(
        {
            "id": 17,
            "property_name": " Plaza Tower ",
            "address": "1 Main St",
            "zip_code": "75201",
            "latitude": "32.7876",
            "longitude": "",
            "is_priority": "true",
            "requires_advance_notice": None,
            "square_footage": "12,500",
            "roof_access_type": "",
            "special_equipment": "ladder, harness",
        }
    )

    assert building.building_id == "17"
    assert building.property_name == "Plaza Tower"
    assert building.latitude == 32.7876
    assert building.longitude is None
    assert building.own_coordinate is None
    assert building.is_priority is True
    assert building.requires_advance_notice is False
    assert building.square_footage == 12500.0
    assert building.roof_access_type is None
    assert building.special_equipment == ("ladder", "harness")


def test_building_from_row_requires_id():
    with pytest.raises(ValueError):
        Building.from_row({"property_name": "No id"})
