"""Nearest-neighbour visit ordering for a single day."""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from ...models.domain import Coordinate, PlannedStop
from ..geospatial import DISTANCE_EPSILON, centroid_of, haversine_miles


def _select(
    candidates: Sequence[PlannedStop],
    distance: Callable[[PlannedStop], float],
    *,
    farthest: bool,
) -> PlannedStop:
    scored = [(distance(stop), stop) for stop in candidates]
    best = max(score for score, _ in scored) if farthest else min(score for score, _ in scored)
    tied = [stop for score, stop in scored if abs(score - best) <= DISTANCE_EPSILON]
    return min(tied, key=lambda stop: stop.tie_key)


def sequence_stops(stops: Sequence[PlannedStop], start: Optional[Coordinate] = None) -> list[PlannedStop]:
    """Order one day's stops into a short walk.

    The walk starts at ``start`` when given, otherwise at the stop farthest
    from the day's centroid, and always moves to the nearest unvisited stop.
    Stops without a coordinate go last in alphabetical order. The result
    depends only on the set of stops, not on the order they are passed in.
    """

    remaining = sorted((stop for stop in stops if stop.is_located), key=lambda stop: stop.tie_key)
    unlocated = sorted((stop for stop in stops if not stop.is_located), key=lambda stop: stop.building.sort_key)

    ordered: list[PlannedStop] = []
    current = start
    if remaining and current is None:
        center = centroid_of(stop.coordinate for stop in remaining)
        seed = _select(remaining, lambda stop: haversine_miles(center, stop.coordinate), farthest=True)
        ordered.append(seed)
        remaining.remove(seed)
        current = seed.coordinate

    while remaining:
        here = current
        nearest = _select(remaining, lambda stop: haversine_miles(here, stop.coordinate), farthest=False)
        ordered.append(nearest)
        remaining.remove(nearest)
        current = nearest.coordinate

    return ordered + unlocated
