"""HTTP clients for the raw data behind the geo-context checks.

Overpass (OpenStreetMap features), Open-Elevation (terrain samples) and
OpenAQ (air-quality stations). Each call raises GeoSourceError on transport
errors, non-2xx responses or payloads missing the expected keys.
"""

from __future__ import annotations

import logging

import httpx

from muve.config import GeoContextConfig
from muve.errors import GeoSourceError

logger = logging.getLogger(__name__)


class GeoDataSources:
    def __init__(self, client: httpx.AsyncClient, config: GeoContextConfig):
        self.client = client
        self.config = config

    async def _json(self, method: str, url: str, **kwargs) -> dict:
        headers = {"User-Agent": self.config.user_agent, **kwargs.pop("headers", {})}
        try:
            resp = await self.client.request(method, url, headers=headers, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GeoSourceError(f"{method} {url} failed: {e}") from e

    async def overpass(self, query: str) -> list[dict]:
        """Run an Overpass QL query, return its elements."""
        data = await self._json("POST", self.config.overpass_url, data={"data": query})
        elements = data.get("elements")
        if elements is None:
            raise GeoSourceError("Overpass response has no elements")
        return elements

    async def elevations(self, points: list[tuple[float, float]]) -> list[float]:
        """Look up terrain elevation in metres for each (lat, lon) point."""
        body = {"locations": [{"latitude": lat, "longitude": lon} for lat, lon in points]}
        data = await self._json("POST", self.config.open_elevation_url, json=body)
        try:
            values = [float(r["elevation"]) for r in data["results"]]
        except (KeyError, TypeError, ValueError) as e:
            raise GeoSourceError("Open-Elevation response is malformed") from e
        if not values:
            raise GeoSourceError("Open-Elevation returned no samples")
        return values

    async def air_quality(self, lat: float, lon: float, radius_m: int = 25000, limit: int = 5) -> list[dict]:
        """Latest readings from the nearest air-quality stations."""
        params = {
            "coordinates": f"{lat},{lon}",
            "radius": radius_m,
            "limit": limit,
            "order_by": "distance",
        }
        headers = {"Accept": "application/json"}
        if self.config.openaq_api_key:
            headers["X-API-Key"] = self.config.openaq_api_key
        data = await self._json("GET", self.config.openaq_url, params=params, headers=headers)
        return data.get("results") or []
