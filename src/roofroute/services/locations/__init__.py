"""Location resolution helpers."""

from .resolver import LocationResolver, ZipCentroidTable, normalize_postal_code, parse_start_location
from .service import resolve_start_location

__all__ = [
    "LocationResolver",
    "ZipCentroidTable",
    "normalize_postal_code",
    "parse_start_location",
    "resolve_start_location",
]
