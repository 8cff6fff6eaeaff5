"""Geo-context checks: raw neighbourhood metrics -> short narrative finding.

Every check uses the same resolved coordinates, pulls its own data source,
condenses the numbers into a few text lines and asks the text model for a
1-2 sentence finding. A check raises on any failure; the fan-out decides
what a failure means.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from muve.agents.geo_context.kinds import CATEGORIES, CheckKind
from muve.agents.geo_context.prompts import CHECK_PROMPTS
from muve.agents.llm_provider import LLMProvider
from muve.errors import GeoSourceError
from muve.services.geo_sources import GeoDataSources
from muve.services.geocoder import Coordinates
from muve.services.settle import settle_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoFinding:
    category: str
    findings: str

    def to_record(self) -> dict:
        return {"category": self.category, "findings": self.findings}


# ── Overpass queries ─────────────────────────────────────

def _overpass(*clauses: str) -> str:
    body = "\n".join(f"  {c};" for c in clauses)
    return f"[out:json][timeout:15];\n(\n{body}\n);\nout tags;"


OVERPASS_QUERIES: dict[CheckKind, Callable[[float, float], str]] = {
    CheckKind.PROXIMITY: lambda lat, lon: _overpass(
        f'node["highway"="bus_stop"](around:1000,{lat},{lon})',
        f'node["railway"="station"](around:1000,{lat},{lon})',
        f'node["railway"="tram_stop"](around:1000,{lat},{lon})',
        f'nwr["amenity"="hospital"](around:1500,{lat},{lon})',
        f'node["amenity"="clinic"](around:1000,{lat},{lon})',
        f'node["amenity"="pharmacy"](around:1000,{lat},{lon})',
        f'node["shop"="supermarket"](around:1000,{lat},{lon})',
        f'node["shop"="convenience"](around:1000,{lat},{lon})',
    ),
    CheckKind.POLLUTION: lambda lat, lon: _overpass(
        f'way["highway"~"^(motorway|trunk)$"](around:1000,{lat},{lon})',
        f'way["highway"="primary"](around:800,{lat},{lon})',
        f'nwr["aeroway"="aerodrome"](around:3000,{lat},{lon})',
        f'way["railway"="rail"](around:500,{lat},{lon})',
        f'node["amenity"~"^(nightclub|bar)$"](around:500,{lat},{lon})',
        f'way["landuse"="commercial"](around:500,{lat},{lon})',
        f'way["landuse"="industrial"](around:800,{lat},{lon})',
    ),
    CheckKind.LIGHTING: lambda lat, lon: _overpass(
        f'node["highway"="street_lamp"](around:500,{lat},{lon})',
    ),
    CheckKind.SIDEWALK: lambda lat, lon: _overpass(
        f'way["highway"="footway"](around:500,{lat},{lon})',
        f'way["highway"="path"]["foot"="yes"](around:500,{lat},{lon})',
        f'node["footway"="crossing"](around:500,{lat},{lon})',
        f'node["highway"="crossing"](around:500,{lat},{lon})',
        f'node["kerb"~"^(lowered|flush)$"](around:500,{lat},{lon})',
        f'node["tactile_paving"="yes"](around:500,{lat},{lon})',
    ),
    CheckKind.EMERGENCY: lambda lat, lon: _overpass(
        f'nwr["amenity"="fire_station"](around:3000,{lat},{lon})',
        f'nwr["amenity"="hospital"](around:5000,{lat},{lon})',
        f'node["amenity"="ambulance_station"](around:3000,{lat},{lon})',
        f'node["emergency"="ambulance_station"](around:3000,{lat},{lon})',
        f'node["emergency"="defibrillator"](around:500,{lat},{lon})',
    ),
}

# (label, predicate on element) pairs; first match wins, in order.
Classifier = list[tuple[str, Callable[[dict], bool]]]


def _tag(key: str, *values: str) -> Callable[[dict], bool]:
    return lambda el: (el.get("tags") or {}).get(key) in values


OVERPASS_CLASSIFIERS: dict[CheckKind, Classifier] = {
    CheckKind.PROXIMITY: [
        ("Bus stops", _tag("highway", "bus_stop")),
        ("Train/tram stations", _tag("railway", "station", "tram_stop")),
        ("Hospitals", _tag("amenity", "hospital")),
        ("Clinics", _tag("amenity", "clinic")),
        ("Pharmacies", _tag("amenity", "pharmacy")),
        ("Supermarkets", _tag("shop", "supermarket")),
        ("Convenience stores", _tag("shop", "convenience")),
    ],
    CheckKind.POLLUTION: [
        ("Major roads nearby", _tag("highway", "motorway", "trunk", "primary")),
        ("Airports nearby", _tag("aeroway", "aerodrome")),
        ("Railway lines nearby", _tag("railway", "rail")),
        ("Bars/nightclubs nearby", _tag("amenity", "nightclub", "bar")),
        ("Commercial zones nearby", _tag("landuse", "commercial")),
        ("Industrial zones nearby", _tag("landuse", "industrial")),
    ],
    CheckKind.LIGHTING: [
        ("Street lamps within ~500m", _tag("highway", "street_lamp")),
    ],
    CheckKind.SIDEWALK: [
        ("Footway/path segments", lambda el: el.get("type") == "way" and _tag("highway", "footway", "path")(el)),
        ("Pedestrian crossings", lambda el: _tag("footway", "crossing")(el) or _tag("highway", "crossing")(el)),
        ("Lowered/flush kerbs (curb cuts)", _tag("kerb", "lowered", "flush")),
        ("Tactile paving strips", _tag("tactile_paving", "yes")),
    ],
    CheckKind.EMERGENCY: [
        ("Fire stations (within 3km)", _tag("amenity", "fire_station")),
        ("Hospitals (within 5km)", _tag("amenity", "hospital")),
        ("Ambulance stations (within 3km)",
         lambda el: _tag("amenity", "ambulance_station")(el) or _tag("emergency", "ambulance_station")(el)),
        ("Defibrillators (within 500m)", _tag("emergency", "defibrillator")),
    ],
}


def count_elements(elements: list[dict], classifier: Classifier) -> dict[str, int]:
    """Count elements per label; every label appears, unmatched elements are ignored."""
    counts = {label: 0 for label, _ in classifier}
    for el in elements:
        for label, matches in classifier:
            if matches(el):
                counts[label] += 1
                break
    return counts


def summarize_counts(counts: dict[str, int]) -> str:
    return "\n".join(f"{label}: {count}" for label, count in counts.items())


def sample_grid(coords: Coordinates, offset: float) -> list[tuple[float, float]]:
    """Centre plus the 8 compass points at +/- offset degrees."""
    return [
        (coords.lat + dlat * offset, coords.lon + dlon * offset)
        for dlat, dlon in [(0, 0), (1, 0), (-1, 0), (0, 1), (0, -1), (1, 1), (-1, -1), (1, -1), (-1, 1)]
    ]


def summarize_elevations(elevations: list[float]) -> str:
    lines = [f"Point {i}: {e:.1f}m" for i, e in enumerate(elevations, 1)]
    lines.append(f"Elevation difference across samples: {max(elevations) - min(elevations):.1f}m")
    return "\n".join(lines)


def summarize_air_quality(stations: list[dict]) -> str:
    if not stations:
        return "No air quality monitoring stations found within 25km."
    lines = []
    for station in stations:
        name = station.get("name") or station.get("location") or "Unknown station"
        distance = station.get("distance")
        where = f"{distance / 1000:.1f}km away" if isinstance(distance, (int, float)) else "distance unknown"
        for m in station.get("measurements") or []:
            lines.append(
                f"{name} ({where}) - {str(m.get('parameter', '?')).upper()}: "
                f"{m.get('value')} {m.get('unit', '')} (updated {m.get('lastUpdated', 'unknown')})"
            )
    return "\n".join(lines) or "Stations found but no measurements available."


class GeoContextChecker:
    """Runs the requested checks for one location; sources and model are injected."""

    def __init__(self, sources: GeoDataSources, llm: LLMProvider, sample_offset_deg: float = 0.002):
        self.sources = sources
        self.llm = llm
        self.sample_offset_deg = sample_offset_deg

    async def collect(self, kind: CheckKind, coords: Coordinates) -> str:
        """Fetch the raw metrics for one kind, condensed into prompt lines."""
        if kind is CheckKind.ELEVATION:
            points = sample_grid(coords, self.sample_offset_deg)
            return summarize_elevations(await self.sources.elevations(points))
        if kind is CheckKind.AIR_QUALITY:
            return summarize_air_quality(await self.sources.air_quality(coords.lat, coords.lon))
        if kind in OVERPASS_QUERIES:
            elements = await self.sources.overpass(OVERPASS_QUERIES[kind](coords.lat, coords.lon))
            return summarize_counts(count_elements(elements, OVERPASS_CLASSIFIERS[kind]))
        raise GeoSourceError(f"No data source for check kind {kind.value}")

    async def run(self, kind: CheckKind, address: str, coords: Coordinates) -> GeoFinding:
        logger.info(f"Running {kind.value} check for {address!r}")
        data = await self.collect(kind, coords)
        prompt = CHECK_PROMPTS[kind].format(address=address, lat=coords.lat, lon=coords.lon, data=data)
        findings = (await self.llm.chat(prompt)).strip()
        if not findings:
            raise GeoSourceError(f"Empty finding for {kind.value}")
        return GeoFinding(category=CATEGORIES[kind], findings=findings)

    async def run_all(self, kinds: list[CheckKind], address: str, coords: Coordinates) -> list[GeoFinding]:
        """Launch every requested check concurrently; keep the ones that succeed."""
        return await settle_all(
            [self.run(kind, address, coords) for kind in kinds],
            labels=[kind.value for kind in kinds],
            context="geo-context",
        )
