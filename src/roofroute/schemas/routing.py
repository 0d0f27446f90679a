"""Route plan request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..config import settings
from ..models.domain import Building, Coordinate, DayCluster, LocationSource, PlannedStop


class CoordinateModel(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    def to_domain(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @classmethod
    def from_domain(cls, coordinate: Coordinate) -> "CoordinateModel":
        return cls(latitude=coordinate.latitude, longitude=coordinate.longitude)


class BuildingModel(BaseModel):
    building_id: str = Field(..., min_length=1)
    property_name: str = ""
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
    special_equipment: List[str] = Field(default_factory=list)

    def to_domain(self) -> Building:
        return Building(
            building_id=self.building_id,
            property_name=self.property_name,
            address=self.address,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            latitude=self.latitude,
            longitude=self.longitude,
            is_priority=self.is_priority,
            requires_advance_notice=self.requires_advance_notice,
            square_footage=self.square_footage,
            roof_access_type=self.roof_access_type,
            requires_escort=self.requires_escort,
            special_equipment=tuple(self.special_equipment),
        )

    @classmethod
    def from_domain(cls, building: Building) -> "BuildingModel":
        return cls(
            building_id=building.building_id,
            property_name=building.property_name,
            address=building.address,
            city=building.city,
            state=building.state,
            zip_code=building.zip_code,
            latitude=building.latitude,
            longitude=building.longitude,
            is_priority=building.is_priority,
            requires_advance_notice=building.requires_advance_notice,
            square_footage=building.square_footage,
            roof_access_type=building.roof_access_type,
            requires_escort=building.requires_escort,
            special_equipment=list(building.special_equipment),
        )


class StopModel(BaseModel):
    building: BuildingModel
    coordinate: Optional[CoordinateModel] = None
    location_source: Literal["exact", "postal_centroid", "unresolved"] = "unresolved"

    def to_domain(self) -> PlannedStop:
        return PlannedStop(
            building=self.building.to_domain(),
            coordinate=self.coordinate.to_domain() if self.coordinate else None,
            source=LocationSource(self.location_source),
        )

    @classmethod
    def from_domain(cls, stop: PlannedStop) -> "StopModel":
        return cls(
            building=BuildingModel.from_domain(stop.building),
            coordinate=CoordinateModel.from_domain(stop.coordinate) if stop.coordinate else None,
            location_source=stop.source.value,
        )


class DayClusterModel(BaseModel):
    day_number: int = Field(..., ge=1)
    estimated_distance_miles: float = Field(0.0, ge=0.0)
    stops: List[StopModel]
    building_count: int = 0
    priority_count: int = 0
    advance_notice_count: int = 0
    approximate_count: int = 0
    unresolved_count: int = 0
    access_types: List[str] = Field(default_factory=list)
    requires_escort: bool = False
    special_equipment: List[str] = Field(default_factory=list)
    start: Optional[CoordinateModel] = Field(default=None, description="Start coordinate the distance was measured from.")
    road_factor: Optional[float] = Field(default=None, ge=1.0)

    def to_domain(self) -> DayCluster:
        return DayCluster(
            day_number=self.day_number,
            stops=tuple(stop.to_domain() for stop in self.stops),
            estimated_distance_miles=self.estimated_distance_miles,
            start=self.start.to_domain() if self.start else None,
            road_factor=self.road_factor,
        )

    @classmethod
    def from_domain(cls, cluster: DayCluster) -> "DayClusterModel":
        return cls(
            day_number=cluster.day_number,
            estimated_distance_miles=cluster.estimated_distance_miles,
            stops=[StopModel.from_domain(stop) for stop in cluster.stops],
            building_count=len(cluster.stops),
            priority_count=cluster.priority_count,
            advance_notice_count=cluster.advance_notice_count,
            approximate_count=cluster.approximate_count,
            unresolved_count=cluster.unresolved_count,
            access_types=cluster.access_types,
            requires_escort=cluster.requires_escort,
            special_equipment=cluster.special_equipment,
            start=CoordinateModel.from_domain(cluster.start) if cluster.start else None,
            road_factor=cluster.road_factor,
        )


class GenerateRoutePlanRequest(BaseModel):
    buildings: List[BuildingModel]
    buildings_per_day: int = Field(
        default_factory=lambda: settings.default_buildings_per_day,
        description="Target number of buildings per inspection day.",
    )
    start_location: Optional[str] = Field(
        default=None,
        description="Postal code, 'lat, lng' pair or free-form address where each day starts.",
    )
    start: Optional[CoordinateModel] = Field(default=None, description="Already resolved start coordinate.")
    road_factor: Optional[float] = Field(default=None, ge=1.0)
    defer_advance_notice: bool = Field(
        default=False,
        description="Schedule days containing advance-notice buildings after the others.",
    )


class RoutePlanResponse(BaseModel):
    clusters: List[DayClusterModel]
    unresolved_postal_codes: List[str]
    metadata: dict


class RecomputeRequest(BaseModel):
    clusters: List[DayClusterModel]
    moved_building_id: str
    from_day: Optional[int] = Field(default=None, description="Source day; null when re-adding from the unassigned pool.")
    to_day: Optional[int] = Field(default=None, description="Target day; null removes the building from the plan.")
    stop: Optional[StopModel] = Field(default=None, description="Stop being re-added from the unassigned pool.")
    start: Optional[CoordinateModel] = Field(default=None, description="Overrides the start the plan was generated with.")
    road_factor: Optional[float] = Field(default=None, ge=1.0)


class RecomputeResponse(BaseModel):
    clusters: List[DayClusterModel]
    touched_days: List[int]
    removed: Optional[StopModel] = None
