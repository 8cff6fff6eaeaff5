"""Evaluation pipeline tools: response normalization and parsing."""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass

from muve.agents.evaluation.prompts import NONE_TOKEN
from muve.errors import VisionResponseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)
_BLOCK_RE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*\n(.*?)\n[ \t]*```[ \t]*$", re.DOTALL | re.MULTILINE)


def unwrap_code_fence(text: str) -> str:
    """Remove one outer ``` fence (optionally language-tagged) around the whole text.

    When the reply puts prose around exactly one fenced block, that block's
    content is returned instead. Other text comes back stripped but otherwise
    unchanged; a doubly fenced text loses only the outer layer.
    """
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group(1).strip()
    blocks = _BLOCK_RE.findall(stripped)
    if len(blocks) == 1:
        return blocks[0].strip()
    return stripped


@dataclass(frozen=True)
class ImageFinding:
    image_url: str
    triggers: list[str] | None
    locator: tuple[float, float] | None = None

    def to_record(self) -> dict:
        return {
            "image_url": self.image_url,
            "triggers": list(self.triggers) if self.triggers else None,
            "locator": list(self.locator) if self.locator else None,
        }


def parse_triggers(value) -> list[str] | None:
    """NONE / empty -> None; otherwise comma-split, trimmed, non-empty names."""
    if value is None:
        return None
    if isinstance(value, list):
        value = ",".join(str(v) for v in value if v is not None)
    text = str(value).strip()
    if not text or text.upper() == NONE_TOKEN:
        return None
    names = [part.strip() for part in text.split(",")]
    names = [n for n in names if n and n.upper() != NONE_TOKEN]
    return names or None


def parse_locator(value) -> tuple[float, float] | None:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    try:
        x, y = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return (x, y)


def parse_batch_response(response: str, image_urls: list[str]) -> list[ImageFinding]:
    """Map a vision response onto the submitted images, one finding per image.

    Raises VisionResponseError when the response is not a JSON array with one
    entry per image.
    """
    text = unwrap_code_fence(response)
    try:
        entries = json.loads(text)
    except json.JSONDecodeError as e:
        raise VisionResponseError(f"Vision response is not JSON: {text[:200]!r}") from e
    if isinstance(entries, dict):
        entries = [entries]
    if not isinstance(entries, list) or len(entries) != len(image_urls):
        raise VisionResponseError(
            f"Expected {len(image_urls)} result(s), got "
            f"{len(entries) if isinstance(entries, list) else type(entries).__name__}"
        )

    findings = []
    for url, entry in zip(image_urls, entries):
        if not isinstance(entry, dict):
            entry = {"trigger_found": entry}
        findings.append(ImageFinding(
            image_url=url,
            triggers=parse_triggers(entry.get("trigger_found")),
            locator=parse_locator(entry.get("pixel_coordinates")),
        ))
    return findings


def flatten_triggers(image_results: list[dict]) -> list[str]:
    """All triggered items across images, in image order, duplicates kept."""
    flat: list[str] = []
    for result in image_results:
        flat.extend(result.get("triggers") or [])
    return flat


@dataclass(frozen=True)
class ScoreResult:
    score: int | None
    summary: str


def _coerce_score(value) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return max(0, min(100, int(round(number))))


def parse_score_response(raw: str) -> ScoreResult:
    """Parse {"score", "summary"}; anything unusable degrades to (None, raw text)."""
    try:
        data = json.loads(unwrap_code_fence(raw))
    except json.JSONDecodeError:
        logger.warning("Score response is not JSON, using raw text as summary")
        return ScoreResult(score=None, summary=raw)

    summary = data.get("summary") if isinstance(data, dict) else None
    if not isinstance(summary, str) or not summary.strip():
        logger.warning("Score response has no summary, using raw text as summary")
        return ScoreResult(score=None, summary=raw)
    return ScoreResult(score=_coerce_score(data.get("score")), summary=summary.strip())
