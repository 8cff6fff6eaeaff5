"""Photo source resolution shared by the pipeline and the preview endpoint."""

from __future__ import annotations

import logging

from muve.errors import EvaluationSetupError

logger = logging.getLogger(__name__)


async def resolve_source(image_source, address: str | None, listing_url: str | None) -> str:
    """Caller URL wins; otherwise search for a listing page for the address."""
    if listing_url:
        return listing_url
    if address:
        url = await image_source.find_listing_url(address)
        if url:
            return url
    raise EvaluationSetupError(f"No listing page found for {address or listing_url!r}")


async def collect_images(
    image_source, source_url: str, address: str | None, listing_url: str | None,
) -> tuple[str, list[str]]:
    """Extract photos from source_url, falling back to an address search when a caller URL is empty."""
    images = await image_source.extract_images(source_url)
    if not images and listing_url and address:
        logger.info(f"No photos on {source_url}, searching listings for {address!r}")
        fallback = await image_source.find_listing_url(address)
        if fallback and fallback != source_url:
            source_url = fallback
            images = await image_source.extract_images(fallback)
    if not images:
        raise EvaluationSetupError(f"No photos found on {source_url}")
    return source_url, images
