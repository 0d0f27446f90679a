"""Data access helpers for loading the postal code centroid table."""

from __future__ import annotations

import csv
import functools
import json
import logging
from pathlib import Path
from typing import Optional

from ..config import settings
from ..models.domain import Coordinate
from ..services.locations.resolver import ZipCentroidTable, normalize_postal_code

logger = logging.getLogger(__name__)


def _entries_from_json(path: Path) -> dict[str, Coordinate]:
    with path.open(mode="r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Centroid file '{path}' must contain an object keyed by postal code.")

    entries: dict[str, Coordinate] = {}
    for raw_code, value in payload.items():
        code = normalize_postal_code(raw_code)
        if code is None:
            continue
        if isinstance(value, dict):
            lat, lon = value.get("lat", value.get("latitude")), value.get("lng", value.get("longitude"))
        else:
            lat, lon = value[0], value[1]
        entries[code] = Coordinate(float(lat), float(lon))
    return entries


def _entries_from_csv(path: Path) -> dict[str, Coordinate]:
    entries: dict[str, Coordinate] = {}
    with path.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Centroid file '{path}' is missing a header row.")
        for row in reader:
            code = normalize_postal_code(row.get("zip") or row.get("zip_code") or row.get("postal_code"))
            lat = row.get("lat") or row.get("latitude")
            lon = row.get("lng") or row.get("lon") or row.get("longitude")
            if code is None or not lat or not lon:
                continue
            entries[code] = Coordinate(float(lat), float(lon))
    return entries


@functools.lru_cache(maxsize=4)
def load_zip_centroids(source: Optional[Path] = None) -> ZipCentroidTable:
    """Load the postal code centroid table from the configured file."""

    path = source or settings.centroids_path
    if not path.exists():
        raise FileNotFoundError(f"Postal code centroid file not found: {path}")

    if path.suffix.lower() == ".csv":
        entries = _entries_from_csv(path)
    else:
        entries = _entries_from_json(path)
    logger.info("Loaded %d postal code centroids from %s", len(entries), path)
    return ZipCentroidTable(entries)
