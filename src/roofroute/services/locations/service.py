"""Caller-side resolution of a user supplied start location."""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Protocol

import httpx

from ...models.domain import Coordinate, PlanConfigurationError
from .resolver import parse_start_location

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def search(self, query: str) -> Optional[Coordinate]:
        ...


def resolve_start_location(
    text: Optional[str],
    centroids: Mapping[str, Coordinate] | None,
    geocoder: Geocoder | None = None,
) -> Optional[Coordinate]:
    """Turn a start location string into a coordinate before planning.

    Postal codes and coordinate literals are resolved locally; free-form
    addresses go to ``geocoder``. Any failure is a configuration error so the
    caller can ask the user for a better start location.
    """

    if text is None or not text.strip():
        return None
    coordinate = parse_start_location(text, centroids)
    if coordinate is not None:
        return coordinate
    if geocoder is None:
        raise PlanConfigurationError(f"Cannot resolve start location '{text.strip()}': no geocoder configured.")
    try:
        coordinate = geocoder.search(text)
    except (ConnectionError, ValueError, httpx.HTTPError) as exc:
        logger.warning("Geocoding start location '%s' failed: %s", text, exc)
        raise PlanConfigurationError(f"Cannot resolve start location '{text.strip()}': {exc}") from exc
    if coordinate is None:
        raise PlanConfigurationError(f"Start location '{text.strip()}' was not found.")
    logger.info("Resolved start location '%s' to %s", text, coordinate.as_pair())
    return coordinate
