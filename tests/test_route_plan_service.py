import math

import pytest

from src.roofroute.models.domain import Building, Coordinate, LocationSource, PlanConfigurationError
from src.roofroute.services.geospatial import EARTH_RADIUS_MILES
from src.roofroute.services.locations.resolver import ZipCentroidTable
from src.roofroute.services.routing.models import CancellationToken, PlanCancelledError
from src.roofroute.services.routing.service import generate_route_plan

DALLAS = Coordinate(32.7767, -96.7970)
HOUSTON = Coordinate(29.7604, -95.3698)
CENTROIDS = ZipCentroidTable({"75201": Coordinate(32.7876, -96.7994)})


def _building(
    bid: str,
    lat: float | None = None,
    lng: float | None = None,
    *,
    zip_code: str = "75201",
    name: str | None = None,
    advance_notice: bool = False,
) -> Building:
    return Building(
        building_id=bid,
        property_name=name or f"Property {bid}",
        address=f"{bid} Commerce St",
        city="Dallas",
        state="TX",
        zip_code=zip_code,
        latitude=lat,
        longitude=lng,
        requires_advance_notice=advance_notice,
    )


def _north_of(origin: Coordinate, miles: float) -> Coordinate:
    return Coordinate(origin.latitude + math.degrees(miles / EARTH_RADIUS_MILES), origin.longitude)


def _all_ids(result):
    return [stop.building_id for cluster in result.clusters for stop in cluster.stops]


def test_empty_input_returns_empty_plan():
    result = generate_route_plan([], 5, centroids=CENTROIDS)

    assert result.clusters == []
    assert result.unresolved_postal_codes == []


def test_single_building_has_zero_distance_without_start():
    result = generate_route_plan([_building("B1", 32.78, -96.80)], 5, centroids=CENTROIDS)

    assert len(result.clusters) == 1
    assert result.clusters[0].day_number == 1
    assert result.clusters[0].estimated_distance_miles == 0.0


def test_co_located_buildings_split_evenly_with_zero_distance():
    buildings = [_building(f"B{i:02d}", DALLAS.latitude, DALLAS.longitude) for i in range(10)]

    result = generate_route_plan(buildings, 5, centroids=CENTROIDS)

    assert [cluster.day_number for cluster in result.clusters] == [1, 2]
    assert [len(cluster.stops) for cluster in result.clusters] == [5, 5]
    assert all(cluster.estimated_distance_miles == 0.0 for cluster in result.clusters)


def test_unresolvable_buildings_are_reported_and_spread_over_days():
    located = [
        _building("L1", 32.780, -96.800),
        _building("L2", 32.781, -96.801),
        _building("L3", 32.782, -96.799),
    ]
    unlocated = [
        _building("U1", zip_code="99901"),
        _building("U2", zip_code="99902"),
        _building("U3", zip_code="99903"),
        _building("U4", zip_code="99904"),
    ]

    result = generate_route_plan(located + unlocated, 4, centroids=CENTROIDS)

    assert len(result.clusters) == 2
    assert sorted(_all_ids(result)) == sorted(b.building_id for b in located + unlocated)
    assert result.unresolved_postal_codes == ["99901", "99902", "99903", "99904"]
    per_day = [cluster.unresolved_count for cluster in result.clusters]
    assert all(count > 0 for count in per_day)
    assert sum(per_day) == 4


def test_repeated_unresolved_codes_are_deduplicated():
    buildings = [_building("U1", zip_code="99901"), _building("U2", zip_code="99901"), _building("U3", zip_code="99902")]

    result = generate_route_plan(buildings, 3, centroids=CENTROIDS)

    assert result.unresolved_postal_codes == ["99901", "99902"]
    assert len(result.clusters) == 1


def test_start_location_orders_nearest_first_and_scales_distance():
    start = Coordinate(32.0, -97.0)
    buildings = [
        _building("ten", *_north_of(start, 10).as_pair()),
        _building("one", *_north_of(start, 1).as_pair()),
        _building("five", *_north_of(start, 5).as_pair()),
    ]

    result = generate_route_plan(buildings, 3, start=start, road_factor=1.3, centroids=CENTROIDS)

    assert len(result.clusters) == 1
    day = result.clusters[0]
    assert day.building_ids == ["one", "five", "ten"]
    assert day.estimated_distance_miles == pytest.approx((1 + 4 + 5) * 1.3, abs=0.05)


def test_totality_and_day_bound_on_mixed_input():
    buildings = []
    for i in range(20):
        row, col = divmod(i, 5)
        buildings.append(_building(f"G{i:02d}", 32.70 + row * 0.05, -96.90 + col * 0.05))
    buildings.append(_building("Z1", zip_code="75201"))
    buildings.append(_building("Z2", zip_code="99999"))
    buildings.append(_building("Z3", 0.0, 0.0, zip_code=""))

    result = generate_route_plan(buildings, 4, centroids=CENTROIDS)

    ids = _all_ids(result)
    assert len(ids) == len(set(ids)) == 23
    assert len(result.clusters) == math.ceil(23 / 4)
    assert [cluster.day_number for cluster in result.clusters] == list(range(1, 7))
    assert all(0 < len(cluster.stops) <= 4 for cluster in result.clusters)
    assert all(cluster.estimated_distance_miles >= 0 for cluster in result.clusters)
    assert result.unresolved_postal_codes == ["99999"]
    assert result.metadata["approximate_locations"] == 1
    assert result.metadata["unlocated_buildings"] == 2


def test_runs_are_deterministic():
    buildings = [_building(f"B{i}", 32.7 + (i * 37 % 11) * 0.01, -96.8 + (i * 17 % 7) * 0.01) for i in range(15)]
    buildings += [_building("U1", zip_code="99901"), _building("P1", zip_code="75201")]

    first = generate_route_plan(buildings, 4, start=DALLAS, centroids=CENTROIDS)
    second = generate_route_plan(buildings, 4, start=DALLAS, centroids=CENTROIDS)

    assert first.clusters == second.clusters
    assert first.unresolved_postal_codes == second.unresolved_postal_codes


def test_postal_centroid_stops_are_marked_approximate():
    result = generate_route_plan([_building("Z1", zip_code="75201-4400")], 3, centroids=CENTROIDS)

    stop = result.clusters[0].stops[0]
    assert stop.source is LocationSource.POSTAL_CENTROID
    assert stop.coordinate == CENTROIDS["75201"]
    assert result.unresolved_postal_codes == []


def test_raw_rows_are_accepted():
    rows = [
        {"id": "R1", "property_name": "Row One", "lat": "32.78", "lng": "-96.80", "zip_code": "75201"},
        {"id": "R2", "property_name": "Row Two", "zip_code": "75201"},
    ]

    result = generate_route_plan(rows, 3, centroids=CENTROIDS)

    assert sorted(_all_ids(result)) == ["R1", "R2"]


@pytest.mark.parametrize("size", [0, 2, 9])
def test_bucket_size_outside_bounds_is_rejected(size):
    with pytest.raises(PlanConfigurationError):
        generate_route_plan([_building("B1", 32.78, -96.80)], size, centroids=CENTROIDS)


def test_unresolved_start_string_is_rejected():
    with pytest.raises(PlanConfigurationError):
        generate_route_plan([_building("B1", 32.78, -96.80)], 3, start="75201", centroids=CENTROIDS)


def test_road_factor_below_one_is_rejected():
    with pytest.raises(PlanConfigurationError):
        generate_route_plan([_building("B1", 32.78, -96.80)], 3, road_factor=0.5, centroids=CENTROIDS)


def test_duplicate_ids_are_rejected():
    with pytest.raises(PlanConfigurationError):
        generate_route_plan([_building("B1", 32.78, -96.80), _building("B1", 32.79, -96.81)], 3)


def test_advance_notice_days_can_be_deferred():
    buildings = [_building(f"D{i}", DALLAS.latitude + i * 0.01, DALLAS.longitude) for i in range(3)]
    buildings += [_building(f"H{i}", HOUSTON.latitude + i * 0.01, HOUSTON.longitude) for i in range(3)]
    buildings.append(_building("N1", DALLAS.latitude + 0.005, DALLAS.longitude, advance_notice=True))
    buildings.append(_building("N2", HOUSTON.latitude + 0.005, HOUSTON.longitude))

    plain = generate_route_plan(buildings, 4, start=HOUSTON, centroids=CENTROIDS)
    deferred = generate_route_plan(buildings, 4, start=HOUSTON, centroids=CENTROIDS, defer_advance_notice_days=True)

    assert "N1" in plain.clusters[0].building_ids
    assert "N1" in deferred.clusters[-1].building_ids
    assert [cluster.day_number for cluster in deferred.clusters] == [1, 2]
    assert deferred.clusters[-1].advance_notice_count == 1


def test_cancelled_run_raises():
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled

    with pytest.raises(PlanCancelledError):
        generate_route_plan([_building("B1", 32.78, -96.80)], 3, centroids=CENTROIDS, cancellation=token)


def test_antipodal_buildings_are_planned():
    buildings = [_building("north", 82.0, 4.9), _building("south", -82.0, -175.1)]

    result = generate_route_plan(buildings, 3, road_factor=1.0, centroids=CENTROIDS)

    assert sorted(_all_ids(result)) == ["north", "south"]
    assert result.clusters[0].estimated_distance_miles == pytest.approx(round(math.pi * EARTH_RADIUS_MILES, 1))


def test_days_record_start_and_road_factor():
    start = Coordinate(32.0, -97.0)

    result = generate_route_plan([_building("B1", 32.78, -96.80)], 3, start=start, road_factor=1.2, centroids=CENTROIDS)

    assert result.clusters[0].start == start
    assert result.clusters[0].road_factor == 1.2
