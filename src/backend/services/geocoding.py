# src/backend/services/geocoding.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import googlemaps
from googlemaps import exceptions as gmaps_errors

from src.backend.config import settings

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Provider failure: transport error, timeout, or a non-OK status."""


@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lng: float
    formatted_address: str = ""


def parse_results(results: List[Dict[str, Any]]) -> List[GeocodeResult]:
    """
    Ranked candidates from ``Client.geocode`` results. Entries without a usable
    geometry.location are skipped.
    """
    out: List[GeocodeResult] = []
    for item in results or []:
        if not isinstance(item, dict):
            continue
        loc = (item.get("geometry") or {}).get("location") or {}
        try:
            out.append(
                GeocodeResult(
                    lat=float(loc["lat"]),
                    lng=float(loc["lng"]),
                    formatted_address=str(item.get("formatted_address") or ""),
                )
            )
        except (KeyError, TypeError, ValueError):
            continue
    return out


class GoogleGeocoder:
    """Google Geocoding via ``googlemaps.Client``. ``geocode`` never blocks the event loop."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
        self.timeout = float(timeout if timeout is not None else settings.GEOCODE_TIMEOUT_SECONDS)
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            try:
                # single attempt: no retries on over-query-limit or transient errors
                self._client = googlemaps.Client(
                    key=self.api_key,
                    timeout=self.timeout,
                    retry_timeout=self.timeout,
                    retry_over_query_limit=False,
                )
            except ValueError as e:
                raise GeocodingError(f"Geocoding client unavailable: {e}") from e
        return self._client

    def geocode_sync(self, address: str) -> List[GeocodeResult]:
        try:
            results = self.client.geocode(address)
        except gmaps_errors.ApiError as e:
            raise GeocodingError(f"Geocoding status {e.status}: {e.message or ''}".strip()) from e
        except (gmaps_errors.TransportError, gmaps_errors.Timeout) as e:
            raise GeocodingError(f"Geocoding request failed: {e!r}") from e
        return parse_results(results)

    async def geocode(self, address: str) -> List[GeocodeResult]:
        return await asyncio.to_thread(self.geocode_sync, address)


_geocoder: Optional[GoogleGeocoder] = None


def get_geocoder() -> GoogleGeocoder:
    global _geocoder
    if _geocoder is None:
        if not settings.GOOGLE_MAPS_API_KEY:
            logger.warning("GOOGLE_MAPS_API_KEY is not set; geocoding requests will fail")
        _geocoder = GoogleGeocoder()
    return _geocoder
