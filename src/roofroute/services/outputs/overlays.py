"""Map overlays for planned days (route polylines and area hulls)."""

from __future__ import annotations

from typing import Optional, Sequence

from shapely.geometry import MultiPoint

from ...models.domain import Coordinate, DayCluster

# Degrees; roughly 300 m at mid latitudes so boundary stops sit inside the hull.
HULL_BUFFER_DEGREES = 0.003


def route_overlays(clusters: Sequence[DayCluster], start: Optional[Coordinate] = None) -> list[dict]:
    """Straight-line visit path per day, beginning at the start location when there is one."""

    overlays: list[dict] = []
    for cluster in clusters:
        waypoints = [stop.coordinate for stop in cluster.stops if stop.coordinate is not None]
        if start is not None:
            waypoints.insert(0, start)
        if not waypoints:
            continue
        overlays.append(
            {
                "day_number": cluster.day_number,
                "coordinates": [[point.latitude, point.longitude] for point in waypoints],
                "stop_ids": [stop.building_id for stop in cluster.stops if stop.coordinate is not None],
                "starts_at_origin": start is not None,
            }
        )
    return overlays


def day_area_overlays(clusters: Sequence[DayCluster]) -> list[dict]:
    """Buffered convex hull around each day's located stops."""

    overlays: list[dict] = []
    for cluster in clusters:
        points = [(stop.coordinate.longitude, stop.coordinate.latitude) for stop in cluster.stops if stop.coordinate is not None]
        if not points:
            continue
        hull = MultiPoint(points).convex_hull
        area = hull.buffer(HULL_BUFFER_DEGREES)
        if area.is_empty or area.geom_type != "Polygon":
            continue
        centroid = area.centroid
        overlays.append(
            {
                "day_number": cluster.day_number,
                "coordinates": [[lat, lon] for lon, lat in area.exterior.coords],
                "centroid": [centroid.y, centroid.x],
                "source": "convex_hull" if hull.geom_type == "Polygon" else "buffered_points",
                "stop_count": len(points),
            }
        )
    return overlays


def build_map_overlays(clusters: Sequence[DayCluster], start: Optional[Coordinate] = None) -> dict:
    return {
        "routes": route_overlays(clusters, start),
        "polygons": day_area_overlays(clusters),
    }
