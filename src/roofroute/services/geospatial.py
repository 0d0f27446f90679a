"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

import numpy as np

from ..models.domain import Coordinate

EARTH_RADIUS_MILES = 3958.8
DISTANCE_PRECISION = 1
# Candidates closer than this (miles) to the best distance are treated as tied.
DISTANCE_EPSILON = 1e-9


def haversine_miles(a: Coordinate, b: Coordinate) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    if a == b:
        return 0.0
    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push h just outside [0, 1] for near-antipodal points.
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_MILES * c


def haversine_miles_many(origin: Coordinate, latitudes: np.ndarray, longitudes: np.ndarray) -> np.ndarray:
    """Vectorised haversine distance from ``origin`` to every point given."""

    phi1 = np.radians(origin.latitude)
    phi2 = np.radians(latitudes)
    d_phi = phi2 - phi1
    d_lambda = np.radians(longitudes - origin.longitude)

    h = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    return EARTH_RADIUS_MILES * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def route_distance_miles(
    stops: Sequence[Optional[Coordinate]],
    start: Optional[Coordinate] = None,
    road_factor: float = 1.0,
) -> float:
    """Sum consecutive legs of an ordered stop list, scaled once by ``road_factor``.

    ``None`` entries are stops without a coordinate; they add no leg.
    """

    located = [stop for stop in stops if stop is not None]
    if start is not None:
        located.insert(0, start)
    total = 0.0
    for previous, current in zip(located, located[1:]):
        total += haversine_miles(previous, current)
    return total * road_factor


def centroid_of(coordinates: Iterable[Coordinate]) -> Optional[Coordinate]:
    """Arithmetic mean of the given coordinates, or ``None`` for an empty input."""

    points = list(coordinates)
    if not points:
        return None
    lat = sum(point.latitude for point in points) / len(points)
    lon = sum(point.longitude for point in points) / len(points)
    return Coordinate(lat, lon)


def round_miles(value: float) -> float:
    return round(value, DISTANCE_PRECISION)
