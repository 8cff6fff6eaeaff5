"""Geo-context check kinds and the checklist trailer that requests them."""

from __future__ import annotations

import re
from enum import Enum

from muve.agents.evaluation.prompts import CHECKS_MARKER


class CheckKind(str, Enum):
    ELEVATION = "elevation"
    PROXIMITY = "proximity"
    POLLUTION = "pollution"
    LIGHTING = "lighting"
    SIDEWALK = "sidewalk"
    AIR_QUALITY = "air_quality"
    EMERGENCY = "emergency"


CATEGORIES: dict[CheckKind, str] = {
    CheckKind.ELEVATION: "Elevation & Terrain",
    CheckKind.PROXIMITY: "Nearby Services & Transit",
    CheckKind.POLLUTION: "Noise & Light Pollution",
    CheckKind.LIGHTING: "Street Lighting",
    CheckKind.SIDEWALK: "Sidewalk & Pedestrian Infrastructure",
    CheckKind.AIR_QUALITY: "Air Quality",
    CheckKind.EMERGENCY: "Emergency Services Proximity",
}

# Exact tokens only: "streetlighting" is not "lighting".
TOKENS: dict[str, CheckKind] = {
    "elevation": CheckKind.ELEVATION,
    "terrain": CheckKind.ELEVATION,
    "proximity": CheckKind.PROXIMITY,
    "services": CheckKind.PROXIMITY,
    "pollution": CheckKind.POLLUTION,
    "noise": CheckKind.POLLUTION,
    "lighting": CheckKind.LIGHTING,
    "streetlight": CheckKind.LIGHTING,
    "street_lighting": CheckKind.LIGHTING,
    "sidewalk": CheckKind.SIDEWALK,
    "sidewalks": CheckKind.SIDEWALK,
    "air_quality": CheckKind.AIR_QUALITY,
    "airquality": CheckKind.AIR_QUALITY,
    "air": CheckKind.AIR_QUALITY,
    "emergency": CheckKind.EMERGENCY,
    "emergency_services": CheckKind.EMERGENCY,
}

_TRAILER_RE = re.compile(
    r"^[^\w\n]*" + re.escape(CHECKS_MARKER) + r"[ \t]*(.*)$", re.IGNORECASE | re.MULTILINE,
)


def _normalize_token(token: str) -> str:
    token = token.strip().strip("*`'\".").lower()
    return re.sub(r"[\s\-]+", "_", token)


def parse_check_kinds(checklist: str | None) -> list[CheckKind]:
    """Read the SPECIALTY_CHECKS trailer; unknown tokens and NONE are ignored."""
    if not checklist:
        return []
    matches = _TRAILER_RE.findall(checklist)
    if not matches:
        return []
    requested = {TOKENS[t] for t in map(_normalize_token, matches[-1].split(",")) if t in TOKENS}
    return [kind for kind in CheckKind if kind in requested]


def strip_check_trailer(checklist: str) -> str:
    """Checklist text without the SPECIALTY_CHECKS line (what the vision model needs)."""
    return _TRAILER_RE.sub("", checklist).strip()
