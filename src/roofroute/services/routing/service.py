"""Route plan orchestration: resolve, partition, sequence and measure."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import (
    Building,
    Coordinate,
    DayCluster,
    PlanConfigurationError,
    PlannedStop,
    RoutePlanResult,
    RunConfiguration,
)
from ..clustering.partitioner import ClusterPartitioner, defer_advance_notice
from ..geospatial import round_miles, route_distance_miles
from ..locations.resolver import LocationResolver
from .models import CancellationToken
from .sequencer import sequence_stops

logger = logging.getLogger(__name__)


def _coerce_buildings(buildings: Sequence[Building | Mapping[str, Any]]) -> list[Building]:
    coerced: list[Building] = []
    for item in buildings:
        if isinstance(item, Building):
            coerced.append(item)
        elif isinstance(item, Mapping):
            try:
                coerced.append(Building.from_row(item))
            except ValueError as exc:
                raise PlanConfigurationError(f"Invalid building row: {exc}") from exc
        else:
            raise PlanConfigurationError(f"Unsupported building value of type {type(item).__name__}.")

    seen: set[str] = set()
    duplicates: list[str] = []
    for building in coerced:
        if building.building_id in seen and building.building_id not in duplicates:
            duplicates.append(building.building_id)
        seen.add(building.building_id)
    if duplicates:
        raise PlanConfigurationError(f"Duplicate building ids in input: {', '.join(duplicates)}")
    return coerced


def build_day_cluster(
    day_number: int,
    stops: Sequence[PlannedStop],
    *,
    start: Optional[Coordinate],
    road_factor: float,
) -> DayCluster:
    """Sequence a day's stops and attach its estimated distance."""

    ordered = sequence_stops(stops, start)
    distance = route_distance_miles([stop.coordinate for stop in ordered], start=start, road_factor=road_factor)
    return DayCluster(
        day_number=day_number,
        stops=tuple(ordered),
        estimated_distance_miles=round_miles(distance),
        start=start,
        road_factor=road_factor,
    )


def generate_route_plan(
    buildings: Sequence[Building | Mapping[str, Any]],
    buildings_per_day: int,
    *,
    start: Optional[Coordinate] = None,
    road_factor: float | None = None,
    centroids: Mapping[str, Coordinate] | None = None,
    defer_advance_notice_days: bool = False,
    cancellation: Optional[CancellationToken] = None,
) -> RoutePlanResult:
    """Group buildings into inspection days with visit order and mileage.

    Args:
        buildings: ``Building`` values or raw building rows.
        buildings_per_day: Target stops per day, bounded by settings.
        start: Already-resolved start coordinate for every day, if any.
        road_factor: Straight-line to road distance multiplier (settings default).
        centroids: Postal code to centroid table for buildings without coordinates.
        defer_advance_notice_days: Schedule days with advance-notice buildings last.
        cancellation: Token checked between day buckets.

    Returns:
        RoutePlanResult with days numbered 1..N and the unresolved postal codes.
    """

    config = RunConfiguration(
        buildings_per_day=buildings_per_day,
        start=start,
        road_factor=settings.road_factor if road_factor is None else road_factor,
        defer_advance_notice=defer_advance_notice_days,
    )
    config.validate(minimum=settings.min_buildings_per_day, maximum=settings.max_buildings_per_day)
    values = _coerce_buildings(buildings)

    if not values:
        return RoutePlanResult(clusters=[], unresolved_postal_codes=[], config=config)

    stops, unresolved = LocationResolver(centroids).resolve_all(values)
    buckets = ClusterPartitioner(config.buildings_per_day).partition(
        stops,
        start=config.start,
        cancellation=cancellation,
    )
    if config.defer_advance_notice:
        buckets = defer_advance_notice(buckets)

    clusters: list[DayCluster] = []
    for day_number, bucket in enumerate(buckets, start=1):
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        cluster = build_day_cluster(day_number, bucket, start=config.start, road_factor=config.road_factor)
        logger.debug(
            "Day %d: %d stops, %.1f mi",
            cluster.day_number,
            len(cluster.stops),
            cluster.estimated_distance_miles,
        )
        clusters.append(cluster)

    result = RoutePlanResult(
        clusters=clusters,
        unresolved_postal_codes=unresolved,
        config=config,
        metadata={
            "approximate_locations": sum(cluster.approximate_count for cluster in clusters),
            "unlocated_buildings": sum(cluster.unresolved_count for cluster in clusters),
        },
    )
    logger.info(
        "Planned %d buildings into %d days (%.1f mi total, %d unresolved postal codes)",
        result.total_buildings,
        len(clusters),
        result.total_distance_miles,
        len(unresolved),
    )
    return result
