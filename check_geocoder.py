#!/usr/bin/env python3
"""Manual check that the configured geocoder and centroid table are usable."""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from roofroute.config import settings
from roofroute.data.centroids_repository import load_zip_centroids
from roofroute.services.geocoding.client import NominatimClient, check_health


def main(query: str) -> int:
    print("1. Checking centroid table...")
    try:
        table = load_zip_centroids()
    except (OSError, ValueError) as e:
        print(f"   [ERROR] {settings.centroids_path}: {e}")
        return 1
    print(f"   [OK] {len(table)} postal codes loaded from {settings.centroids_path}")

    print("2. Checking geocoder health...")
    if not check_health():
        print(f"   [ERROR] Geocoder at {settings.geocoder_base_url} is not responding")
        return 1
    print(f"   [OK] {settings.geocoder_base_url}")

    print(f"3. Geocoding '{query}'...")
    try:
        coordinate = NominatimClient().search(query)
    except (ConnectionError, ValueError) as e:
        print(f"   [ERROR] {e}")
        return 1
    if coordinate is None:
        print("   [WARN] No match")
        return 1
    print(f"   [OK] {coordinate.latitude:.5f}, {coordinate.longitude:.5f}")
    return 0


if __name__ == "__main__":
    sys.exit(main(" ".join(sys.argv[1:]) or "1600 Pennsylvania Ave NW, Washington, DC 20500"))
