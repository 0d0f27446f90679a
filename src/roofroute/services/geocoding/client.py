"""HTTP client for a Nominatim-compatible geocoding service.

Used only by the caller layer to turn a free-form start location into a
coordinate before a plan is generated; the planning engine never calls it.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import httpx

from ...config import settings
from ...models.domain import Coordinate

logger = logging.getLogger(__name__)


class NominatimClient:
    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        country_codes: tuple[str, ...] | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        min_interval_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.geocoder_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Geocoder base URL is not configured.")
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.country_codes = country_codes if country_codes is not None else settings.geocoder_country_codes
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.geocoder_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.geocoder_backoff_seconds
        self.min_interval_seconds = (
            min_interval_seconds if min_interval_seconds is not None else settings.geocoder_min_interval_seconds
        )
        self._transport = transport
        self._lock = threading.Lock()
        self._last_request_at: float | None = None

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    def _throttle(self) -> None:
        with self._lock:
            if self._last_request_at is not None:
                wait = self.min_interval_seconds - (time.monotonic() - self._last_request_at)
                if wait > 0:
                    time.sleep(wait)
            self._last_request_at = time.monotonic()

    def search(self, query: str) -> Optional[Coordinate]:
        """Return the best match for ``query`` or ``None`` when nothing matched."""

        if not query or not query.strip():
            raise ValueError("Geocoding query must not be empty.")

        params = {"q": query.strip(), "format": "json", "limit": 1}
        if self.country_codes:
            params["countrycodes"] = ",".join(self.country_codes)
        url = f"{self.base_url}/search"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                self._throttle()
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    results = response.json()
                    break
                except httpx.HTTPStatusError as exc:
                    # 4xx other than rate limiting will not improve on retry
                    if exc.response.status_code < 500 and exc.response.status_code != 429:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    logger.warning(
                        "Geocoder returned %s, retrying (attempt %d/%d)",
                        exc.response.status_code,
                        attempt,
                        self.max_retries,
                    )
                    time.sleep(self.backoff_seconds * attempt)
                except (httpx.TimeoutException, httpx.NetworkError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(f"Failed to reach geocoder at {self.base_url}: {exc}") from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.warning(
                        "Geocoder network error, retrying in %.1fs (attempt %d/%d): %s",
                        wait_time,
                        attempt,
                        self.max_retries,
                        exc,
                    )
                    time.sleep(wait_time)
        finally:
            client.close()

        if not isinstance(results, list) or not results:
            logger.info("Geocoder found no match for '%s'", query)
            return None
        best = results[0]
        try:
            return Coordinate(float(best["lat"]), float(best["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed geocoder result for '{query}': {best}") from exc

    def geocode_address(self, address: str, city: str, state: str, zip_code: str) -> Optional[Coordinate]:
        query = f"{address}, {city}, {state} {zip_code}".strip(" ,")
        return self.search(query)


def check_health(base_url: str | None = None) -> bool:
    """Check geocoder reachability with a cheap status request."""

    base = (base_url or settings.geocoder_base_url or "").rstrip("/")
    if not base:
        return False
    try:
        response = httpx.get(
            f"{base}/status",
            params={"format": "json"},
            headers={"User-Agent": settings.geocoder_user_agent},
            timeout=5.0,
        )
        response.raise_for_status()
        return True
    except httpx.HTTPError as exc:
        logger.warning("Geocoder health check failed: %s", exc)
        return False
