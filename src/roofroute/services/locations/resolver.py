"""Resolve buildings and start locations to coordinates."""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Sequence

from ...models.domain import Building, Coordinate, LocationSource, PlanConfigurationError, PlannedStop

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")
_BARE_POSTAL_CODE = re.compile(r"^\s*\d{5}(?:-\d{4})?\s*$")
_LAT_LNG_PAIR = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*[,;]\s*(-?\d+(?:\.\d+)?)\s*$")


def normalize_postal_code(raw: object) -> Optional[str]:
    """Return the 5-digit form of a US postal code, or ``None`` if there are no digits.

    ZIP+4 values keep their first five digits; short values are zero padded
    (spreadsheets drop the leading zero of New England codes).
    """

    if raw is None:
        return None
    digits = _NON_DIGITS.sub("", str(raw))
    if not digits:
        return None
    if len(digits) > 5:
        digits = digits[:5]
    return digits.zfill(5)


class ZipCentroidTable(Mapping[str, Coordinate]):
    """Read-only postal code to centroid lookup."""

    def __init__(self, entries: Mapping[str, Coordinate] | None = None) -> None:
        normalized: dict[str, Coordinate] = {}
        for code, coordinate in (entries or {}).items():
            key = normalize_postal_code(code)
            if key is not None:
                normalized[key] = coordinate
        self._entries = MappingProxyType(normalized)

    def __getitem__(self, code: str) -> Coordinate:
        return self._entries[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, raw_code: object) -> Optional[Coordinate]:
        code = normalize_postal_code(raw_code)
        if code is None:
            return None
        return self._entries.get(code)


class LocationResolver:
    """Produce a best-effort coordinate for every building."""

    def __init__(self, centroids: Mapping[str, Coordinate] | None = None) -> None:
        if isinstance(centroids, ZipCentroidTable):
            self.centroids = centroids
        else:
            self.centroids = ZipCentroidTable(centroids)

    def resolve_building(self, building: Building) -> PlannedStop:
        own = building.own_coordinate
        if own is not None:
            return PlannedStop(building=building, coordinate=own, source=LocationSource.EXACT)
        centroid = self.centroids.lookup(building.zip_code)
        if centroid is not None:
            return PlannedStop(building=building, coordinate=centroid, source=LocationSource.POSTAL_CENTROID)
        return PlannedStop(building=building, coordinate=None, source=LocationSource.UNRESOLVED)

    def resolve_all(self, buildings: Sequence[Building]) -> tuple[list[PlannedStop], list[str]]:
        """Resolve every building; return the stops and the unresolved postal codes.

        Codes are deduplicated and keep first-seen order. A building with a
        blank postal code is still unresolved but reports no code.
        """

        stops: list[PlannedStop] = []
        unresolved: list[str] = []
        for building in buildings:
            stop = self.resolve_building(building)
            stops.append(stop)
            if stop.source is not LocationSource.UNRESOLVED:
                continue
            code = normalize_postal_code(building.zip_code) or building.zip_code.strip()
            if code and code not in unresolved:
                unresolved.append(code)

        if unresolved:
            logger.warning(
                "%d postal code(s) not found in centroid table: %s", len(unresolved), ", ".join(unresolved)
            )
        return stops, unresolved


def parse_start_location(text: Optional[str], centroids: Mapping[str, Coordinate] | None = None) -> Optional[Coordinate]:
    """Resolve a start location string without any network call.

    A bare postal code resolves through the centroid table and an unknown
    code is a configuration error. A ``"lat, lng"`` literal becomes a
    coordinate. Anything else returns ``None`` and has to be geocoded by the
    caller.
    """

    if text is None or not text.strip():
        return None
    if _BARE_POSTAL_CODE.match(text):
        table = centroids if isinstance(centroids, ZipCentroidTable) else ZipCentroidTable(centroids)
        coordinate = table.lookup(text)
        if coordinate is None:
            raise PlanConfigurationError(f"Start postal code '{text.strip()}' not found in centroid table.")
        return coordinate
    pair = _LAT_LNG_PAIR.match(text)
    if pair:
        try:
            return Coordinate(float(pair.group(1)), float(pair.group(2)))
        except ValueError as exc:
            raise PlanConfigurationError(f"Invalid start coordinate '{text.strip()}': {exc}") from exc
    return None
