# src/backend/triggers/geocode_address.py
from __future__ import annotations

import logging

from src.backend.schemas.document import WriteEvent
from src.backend.services import geocoding
from src.backend.services.geocoding import GeocodingError
from src.backend.utils.triggers import on_document_written

logger = logging.getLogger(__name__)


def has_location(data: dict | None) -> bool:
    data = data or {}
    return data.get("lat") is not None and data.get("lng") is not None


@on_document_written("businesses/{businessId}")
async def geocode_address(event: WriteEvent) -> None:
    snapshot = event.after
    if not snapshot.exists:
        return

    business = snapshot.data or {}
    if has_location(business):
        logger.info("Location already exists, skipping geocoding. business=%s", snapshot.id)
        return

    address = business.get("address")
    if not address:
        logger.info("No address provided, skipping geocoding. business=%s", snapshot.id)
        return

    try:
        results = await geocoding.get_geocoder().geocode(str(address))
    except GeocodingError as e:
        logger.error("Geocoding error for business %s: %s", snapshot.id, e)
        return

    if not results:
        logger.warning("Geocoding failed: No results found for address: %s", address)
        return

    top = results[0]
    await snapshot.ref.update({"lat": top.lat, "lng": top.lng})
    logger.info("Geocoded business %s -> (%s, %s)", snapshot.id, top.lat, top.lng)
