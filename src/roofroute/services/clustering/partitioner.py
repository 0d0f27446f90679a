"""Greedy geographic partitioning of stops into day buckets."""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

from ...models.domain import Coordinate, PlanConfigurationError, PlannedStop
from ..geospatial import DISTANCE_EPSILON, centroid_of, haversine_miles_many
from ..routing.models import CancellationToken

logger = logging.getLogger(__name__)


class ClusterPartitioner:
    """Split stops into day buckets of a target size, keeping each bucket compact.

    Located stops are grouped greedily: a bucket is seeded from the stop
    farthest from the reference point (the start location, or the centroid of
    all located stops for the first bucket; the existing bucket centroids for
    the rest) and grown by the unassigned stop nearest to the bucket's
    running centroid. Stops without a coordinate are dealt round-robin over
    the buckets afterwards, so they never distort the geography.
    """

    def __init__(self, buildings_per_day: int) -> None:
        if buildings_per_day < 1:
            raise PlanConfigurationError("buildings_per_day must be >= 1")
        self.buildings_per_day = buildings_per_day

    def partition(
        self,
        stops: Sequence[PlannedStop],
        *,
        start: Optional[Coordinate] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> list[list[PlannedStop]]:
        if not stops:
            return []

        bucket_count = math.ceil(len(stops) / self.buildings_per_day)
        located = sorted((stop for stop in stops if stop.is_located), key=lambda stop: stop.tie_key)
        unlocated = sorted((stop for stop in stops if not stop.is_located), key=lambda stop: stop.building.sort_key)

        buckets: list[list[PlannedStop]] = [[] for _ in range(bucket_count)]
        if located:
            for index, bucket in enumerate(self._grow_buckets(located, start, cancellation)):
                buckets[index] = bucket
        self._deal_round_robin(buckets, unlocated)

        logger.debug(
            "Partitioned %d stops (%d without coordinates) into %d buckets",
            len(stops),
            len(unlocated),
            bucket_count,
        )
        return buckets

    def _grow_buckets(
        self,
        located: list[PlannedStop],
        start: Optional[Coordinate],
        cancellation: Optional[CancellationToken],
    ) -> list[list[PlannedStop]]:
        latitudes = np.array([stop.coordinate.latitude for stop in located], dtype=float)
        longitudes = np.array([stop.coordinate.longitude for stop in located], dtype=float)
        unassigned = np.ones(len(located), dtype=bool)
        anchor = start or centroid_of(stop.coordinate for stop in located)

        buckets: list[list[int]] = []
        bucket_centroids: list[Coordinate] = []
        while unassigned.any():
            if cancellation is not None:
                cancellation.raise_if_cancelled()

            candidates = np.flatnonzero(unassigned)
            if bucket_centroids:
                distances = np.min(
                    np.vstack(
                        [haversine_miles_many(center, latitudes[candidates], longitudes[candidates]) for center in bucket_centroids]
                    ),
                    axis=0,
                )
            else:
                distances = haversine_miles_many(anchor, latitudes[candidates], longitudes[candidates])
            seed = self._pick(located, candidates, distances, farthest=True)
            members = [seed]
            unassigned[seed] = False

            while len(members) < self.buildings_per_day and unassigned.any():
                center = Coordinate(float(latitudes[members].mean()), float(longitudes[members].mean()))
                candidates = np.flatnonzero(unassigned)
                distances = haversine_miles_many(center, latitudes[candidates], longitudes[candidates])
                nearest = self._pick(located, candidates, distances, farthest=False)
                members.append(nearest)
                unassigned[nearest] = False

            buckets.append(members)
            bucket_centroids.append(Coordinate(float(latitudes[members].mean()), float(longitudes[members].mean())))

        return [[located[index] for index in members] for members in buckets]

    @staticmethod
    def _pick(located: list[PlannedStop], candidates: np.ndarray, distances: np.ndarray, *, farthest: bool) -> int:
        best = distances.max() if farthest else distances.min()
        tied = [int(index) for index, distance in zip(candidates, distances) if abs(distance - best) <= DISTANCE_EPSILON]
        return min(tied, key=lambda index: located[index].tie_key)

    def _deal_round_robin(self, buckets: list[list[PlannedStop]], stops: Sequence[PlannedStop]) -> None:
        position = 0
        for stop in stops:
            for _ in range(len(buckets)):
                bucket = buckets[position % len(buckets)]
                position += 1
                if len(bucket) < self.buildings_per_day:
                    bucket.append(stop)
                    break
            else:
                raise RuntimeError(f"No bucket has room for building {stop.building_id}.")


def partition_stops(
    stops: Sequence[PlannedStop],
    buildings_per_day: int,
    *,
    start: Optional[Coordinate] = None,
    cancellation: Optional[CancellationToken] = None,
) -> list[list[PlannedStop]]:
    return ClusterPartitioner(buildings_per_day).partition(stops, start=start, cancellation=cancellation)


def defer_advance_notice(buckets: Sequence[list[PlannedStop]]) -> list[list[PlannedStop]]:
    """Move buckets holding advance-notice buildings behind the others, keeping relative order."""

    plain = [bucket for bucket in buckets if not any(stop.building.requires_advance_notice for stop in bucket)]
    notice = [bucket for bucket in buckets if any(stop.building.requires_advance_notice for stop in bucket)]
    return plain + notice
