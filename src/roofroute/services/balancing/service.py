"""Partial recomputation after a manual stop move."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate, DayCluster, PlanConfigurationError, PlannedStop
from ..routing.service import build_day_cluster

logger = logging.getLogger(__name__)


def _cluster_index(clusters: Sequence[DayCluster], day_number: int) -> int:
    for index, cluster in enumerate(clusters):
        if cluster.day_number == day_number:
            return index
    raise PlanConfigurationError(f"Day {day_number} is not part of the plan.")


def _find_stop(cluster: DayCluster, building_id: str) -> PlannedStop:
    for stop in cluster.stops:
        if stop.building_id == building_id:
            return stop
    raise PlanConfigurationError(f"Building {building_id} is not scheduled on day {cluster.day_number}.")


def _plan_start(clusters: Sequence[DayCluster]) -> Optional[Coordinate]:
    return next((cluster.start for cluster in clusters if cluster.start is not None), None)


def _plan_road_factor(clusters: Sequence[DayCluster]) -> float:
    return next(
        (cluster.road_factor for cluster in clusters if cluster.road_factor is not None),
        settings.road_factor,
    )


def recompute_after_move(
    clusters: Sequence[DayCluster],
    moved_building_id: str,
    from_day: Optional[int],
    to_day: Optional[int],
    *,
    stop: Optional[PlannedStop] = None,
    start: Optional[Coordinate] = None,
    road_factor: float | None = None,
) -> list[DayCluster]:
    """Apply one manual move and refresh only the days it touched.

    ``to_day=None`` removes the building from the plan. ``from_day=None``
    inserts ``stop`` from the caller's unassigned pool. Untouched days are
    returned as the same objects and no day is renumbered, so an emptied day
    stays in place with zero distance.

    Touched days are measured with the start and road factor the plan was
    generated with unless ``start`` or ``road_factor`` override them.
    """

    if from_day == to_day:
        return list(clusters)
    origin = start if start is not None else _plan_start(clusters)
    factor = road_factor if road_factor is not None else _plan_road_factor(clusters)
    if factor < 1.0:
        raise PlanConfigurationError(f"road_factor must be >= 1.0 (got {factor}).")

    updated = list(clusters)
    touched: dict[int, list[PlannedStop]] = {}

    if from_day is None:
        if stop is None or stop.building_id != moved_building_id:
            raise PlanConfigurationError("Inserting from the unassigned pool requires the matching stop.")
        if any(existing.building_id == moved_building_id for cluster in clusters for existing in cluster.stops):
            raise PlanConfigurationError(f"Building {moved_building_id} is already scheduled.")
        moved = stop
    else:
        source_index = _cluster_index(updated, from_day)
        moved = _find_stop(updated[source_index], moved_building_id)
        touched[source_index] = [
            existing for existing in updated[source_index].stops if existing.building_id != moved_building_id
        ]

    if to_day is not None:
        target_index = _cluster_index(updated, to_day)
        touched[target_index] = [*updated[target_index].stops, moved]

    for index, stops in touched.items():
        updated[index] = build_day_cluster(updated[index].day_number, stops, start=origin, road_factor=factor)

    logger.info(
        "Moved building %s from day %s to day %s; recomputed days %s",
        moved_building_id,
        from_day if from_day is not None else "pool",
        to_day if to_day is not None else "pool",
        sorted(updated[index].day_number for index in touched),
    )
    return updated
