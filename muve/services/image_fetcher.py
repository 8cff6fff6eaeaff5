"""Download listing photos for the vision model."""

from __future__ import annotations

import logging

import httpx

from muve.agents.llm_provider import FetchedImage
from muve.errors import ImageFetchError

logger = logging.getLogger(__name__)

_ALLOWED_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


def normalize_media_type(content_type: str) -> str | None:
    """Map a Content-Type header onto a media type the vision APIs accept."""
    ct = content_type.split(";")[0].strip().lower()
    if not ct.startswith("image/"):
        return None
    if ct in ("image/svg+xml", "image/x-icon", "image/vnd.microsoft.icon"):
        return None
    if ct == "image/jpg":
        return "image/jpeg"
    return ct if ct in _ALLOWED_TYPES else "image/jpeg"


class ImageFetcher:
    def __init__(self, client: httpx.AsyncClient, max_bytes: int = 8 * 1024 * 1024):
        self.client = client
        self.max_bytes = max_bytes

    async def fetch(self, url: str) -> FetchedImage:
        """Download one image, refusing bodies over max_bytes without reading past the cap."""
        try:
            async with self.client.stream("GET", url, follow_redirects=True) as resp:
                if resp.status_code != 200:
                    raise ImageFetchError(f"{url}: HTTP {resp.status_code}")

                content_type = resp.headers.get("content-type", "image/jpeg")
                media_type = normalize_media_type(content_type)
                if media_type is None:
                    raise ImageFetchError(f"{url}: not an image ({content_type})")

                declared = resp.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > self.max_bytes:
                    raise ImageFetchError(f"{url}: too large ({int(declared) // 1024}KB)")

                chunks = []
                size = 0
                async for chunk in resp.aiter_bytes():
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise ImageFetchError(f"{url}: too large (over {self.max_bytes // 1024}KB)")
                    chunks.append(chunk)
        except httpx.HTTPError as e:
            raise ImageFetchError(f"{url}: {e}") from e

        data = b"".join(chunks)
        if not data:
            raise ImageFetchError(f"{url}: empty body")
        return FetchedImage(url=url, data=data, media_type=media_type)
