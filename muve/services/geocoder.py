"""Address -> coordinates via OpenStreetMap Nominatim."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from muve.errors import GeocodingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float


class NominatimGeocoder:
    def __init__(self, client: httpx.AsyncClient, search_url: str, user_agent: str):
        self.client = client
        self.search_url = search_url
        self.user_agent = user_agent

    async def resolve(self, text: str) -> Coordinates:
        params = {"q": text, "format": "json", "limit": 1}
        try:
            resp = await self.client.get(
                self.search_url, params=params, headers={"User-Agent": self.user_agent},
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GeocodingError(f"Geocoding request failed for {text!r}: {e}") from e

        if not data:
            raise GeocodingError(f"Could not geocode address: {text}")
        try:
            coords = Coordinates(lat=float(data[0]["lat"]), lon=float(data[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError(f"Malformed geocoding result for {text!r}") from e

        logger.info(f"Geocoded {text!r} -> ({coords.lat}, {coords.lon})")
        return coords
