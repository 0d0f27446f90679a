"""Domain models for buildings, resolved stops and day clusters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class PlanConfigurationError(ValueError):
    """Raised when a planning call is rejected before any computation starts."""


@dataclass(frozen=True, slots=True)
class Coordinate:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    def as_pair(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


def _coerce_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text.replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "x"}
    return bool(value)


def _first(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


@dataclass(frozen=True, slots=True)
class Building:
    """The subset of a building record the planning engine needs."""

    building_id: str
    property_name: str
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_priority: bool = False
    requires_advance_notice: bool = False
    square_footage: Optional[float] = None
    roof_access_type: Optional[str] = None
    requires_escort: bool = False
    special_equipment: tuple[str, ...] = ()

    @property
    def own_coordinate(self) -> Optional[Coordinate]:
        """Coordinate carried on the record itself, if usable.

        Both values must be present and non-zero; a 0/0 pair is what blank
        spreadsheet cells usually turn into.
        """
        if self.latitude is None or self.longitude is None:
            return None
        if self.latitude == 0 or self.longitude == 0:
            return None
        return Coordinate(self.latitude, self.longitude)

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.property_name.casefold(), self.address.casefold(), self.building_id)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Building":
        """Build a value from a loosely typed building row."""

        building_id = _text(_first(row, "building_id", "id"))
        if not building_id:
            raise ValueError("building row is missing an id.")
        equipment = _first(row, "special_equipment") or ()
        if isinstance(equipment, str):
            equipment = [item.strip() for item in equipment.split(",")]
        square_footage = _coerce_float(_first(row, "square_footage"))
        return cls(
            building_id=building_id,
            property_name=_text(_first(row, "property_name", "name")),
            address=_text(_first(row, "address")),
            city=_text(_first(row, "city")),
            state=_text(_first(row, "state")),
            zip_code=_text(_first(row, "zip_code", "postal_code", "zip")),
            latitude=_coerce_float(_first(row, "latitude", "lat")),
            longitude=_coerce_float(_first(row, "longitude", "lng", "lon")),
            is_priority=_coerce_bool(_first(row, "is_priority")),
            requires_advance_notice=_coerce_bool(_first(row, "requires_advance_notice")),
            square_footage=square_footage,
            roof_access_type=_text(_first(row, "roof_access_type")) or None,
            requires_escort=_coerce_bool(_first(row, "requires_escort")),
            special_equipment=tuple(str(item).strip() for item in equipment if str(item).strip()),
        )


class LocationSource(str, Enum):
    EXACT = "exact"
    POSTAL_CENTROID = "postal_centroid"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True, slots=True)
class PlannedStop:
    """A building together with the coordinate the engine resolved for it."""

    building: Building
    coordinate: Optional[Coordinate]
    source: LocationSource

    @property
    def building_id(self) -> str:
        return self.building.building_id

    @property
    def is_located(self) -> bool:
        return self.coordinate is not None

    @property
    def is_approximate(self) -> bool:
        return self.source is LocationSource.POSTAL_CENTROID

    @property
    def tie_key(self) -> tuple:
        """Ordering among equidistant candidates: priority first, then alphabetical."""
        return (not self.building.is_priority, *self.building.sort_key)


@dataclass(frozen=True, slots=True)
class DayCluster:
    """One calendar day of inspection work, in visit order.

    ``start`` and ``road_factor`` are the values the distance was measured
    with, so a later recompute can measure touched days the same way.
    """

    day_number: int
    stops: tuple[PlannedStop, ...]
    estimated_distance_miles: float = 0.0
    start: Optional[Coordinate] = None
    road_factor: Optional[float] = None

    @property
    def building_ids(self) -> list[str]:
        return [stop.building_id for stop in self.stops]

    @property
    def priority_count(self) -> int:
        return sum(1 for stop in self.stops if stop.building.is_priority)

    @property
    def advance_notice_count(self) -> int:
        return sum(1 for stop in self.stops if stop.building.requires_advance_notice)

    @property
    def approximate_count(self) -> int:
        return sum(1 for stop in self.stops if stop.is_approximate)

    @property
    def unresolved_count(self) -> int:
        return sum(1 for stop in self.stops if not stop.is_located)

    @property
    def access_types(self) -> list[str]:
        return sorted({stop.building.roof_access_type for stop in self.stops if stop.building.roof_access_type})

    @property
    def requires_escort(self) -> bool:
        return any(stop.building.requires_escort for stop in self.stops)

    @property
    def special_equipment(self) -> list[str]:
        return sorted({item for stop in self.stops for item in stop.building.special_equipment})


@dataclass(frozen=True, slots=True)
class RunConfiguration:
    """Settings that stay fixed for the duration of one planning run."""

    buildings_per_day: int
    start: Optional[Coordinate] = None
    road_factor: float = 1.3
    defer_advance_notice: bool = False

    def validate(self, *, minimum: int, maximum: int) -> None:
        if isinstance(self.buildings_per_day, bool) or not isinstance(self.buildings_per_day, int):
            raise PlanConfigurationError("buildings_per_day must be an integer.")
        if not minimum <= self.buildings_per_day <= maximum:
            raise PlanConfigurationError(
                f"buildings_per_day must be between {minimum} and {maximum} (got {self.buildings_per_day})."
            )
        if self.start is not None and not isinstance(self.start, Coordinate):
            raise PlanConfigurationError(
                "start must be a resolved Coordinate; geocode free-form locations before planning."
            )
        if self.road_factor < 1.0:
            raise PlanConfigurationError(f"road_factor must be >= 1.0 (got {self.road_factor}).")


@dataclass(frozen=True, slots=True)
class RoutePlanResult:
    clusters: list[DayCluster]
    unresolved_postal_codes: list[str]
    config: RunConfiguration
    metadata: dict = field(default_factory=dict)

    @property
    def total_buildings(self) -> int:
        return sum(len(cluster.stops) for cluster in self.clusters)

    @property
    def total_distance_miles(self) -> float:
        return round(sum(cluster.estimated_distance_miles for cluster in self.clusters), 1)
