"""Route planning endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...data.centroids_repository import load_zip_centroids
from ...schemas.routing import (
    DayClusterModel,
    GenerateRoutePlanRequest,
    RecomputeRequest,
    RecomputeResponse,
    RoutePlanResponse,
    StopModel,
)
from ...services.balancing.service import recompute_after_move
from ...services.geocoding.client import NominatimClient
from ...services.locations.service import resolve_start_location
from ...services.outputs.overlays import build_map_overlays
from ...services.routing.service import generate_route_plan

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


def _geocoder() -> NominatimClient | None:
    try:
        return NominatimClient()
    except ValueError as exc:
        logger.warning("Geocoder unavailable: %s", exc)
        return None


@router.post("/generate", response_model=RoutePlanResponse, status_code=status.HTTP_200_OK)
def generate(payload: GenerateRoutePlanRequest) -> RoutePlanResponse:
    try:
        centroids = load_zip_centroids()
        if payload.start is not None:
            start = payload.start.to_domain()
        else:
            start = resolve_start_location(payload.start_location, centroids, _geocoder())
        result = generate_route_plan(
            [building.to_domain() for building in payload.buildings],
            payload.buildings_per_day,
            start=start,
            road_factor=payload.road_factor,
            centroids=centroids,
            defer_advance_notice_days=payload.defer_advance_notice,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error generating route plan: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate route plan: {exc}",
        ) from exc

    metadata = dict(result.metadata)
    metadata.update(
        {
            "total_buildings": result.total_buildings,
            "day_count": len(result.clusters),
            "total_distance_miles": result.total_distance_miles,
            "buildings_per_day": result.config.buildings_per_day,
            "road_factor": result.config.road_factor,
            "start": [start.latitude, start.longitude] if start else None,
            "map_overlays": build_map_overlays(result.clusters, start),
        }
    )
    if result.unresolved_postal_codes:
        metadata["warning"] = (
            f"{len(result.unresolved_postal_codes)} postal code(s) not found in dataset; "
            "buildings are still included but distance estimates may be less accurate."
        )

    return RoutePlanResponse(
        clusters=[DayClusterModel.from_domain(cluster) for cluster in result.clusters],
        unresolved_postal_codes=result.unresolved_postal_codes,
        metadata=metadata,
    )


@router.post("/recompute", response_model=RecomputeResponse, status_code=status.HTTP_200_OK)
def recompute(payload: RecomputeRequest) -> RecomputeResponse:
    """Refresh order and mileage of the days touched by a manual move."""
    clusters = [cluster.to_domain() for cluster in payload.clusters]
    removed = None
    if payload.to_day is None and payload.from_day is not None:
        for cluster in clusters:
            if cluster.day_number != payload.from_day:
                continue
            removed = next((stop for stop in cluster.stops if stop.building_id == payload.moved_building_id), None)

    try:
        updated = recompute_after_move(
            clusters,
            payload.moved_building_id,
            payload.from_day,
            payload.to_day,
            stop=payload.stop.to_domain() if payload.stop else None,
            start=payload.start.to_domain() if payload.start else None,
            road_factor=payload.road_factor,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error recomputing route plan: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to recompute route plan: {exc}",
        ) from exc

    touched = sorted(
        {day for day in (payload.from_day, payload.to_day) if day is not None}
        if payload.from_day != payload.to_day
        else set()
    )
    return RecomputeResponse(
        clusters=[DayClusterModel.from_domain(cluster) for cluster in updated],
        touched_days=touched,
        removed=StopModel.from_domain(removed) if removed else None,
    )
