"""Listing photo sourcing: find a listing page for an address, then mine its photos.

Listing pages render their galleries client-side, so pages are loaded in a
headless browser and given a short settle delay before the HTML is parsed.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from urllib.parse import parse_qs, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from muve.config import ImageSourceConfig
from muve.errors import PageRenderError

logger = logging.getLogger(__name__)

JUNK_EXTENSIONS = {".svg", ".ico", ".gif"}
JUNK_URL_RE = re.compile(r"(logo|icon|sprite|favicon|avatar|badge|pixel|tracking|placeholder)")


class PlaywrightRenderer:
    """Render a page with headless Chromium and return its HTML."""

    def __init__(self, config: ImageSourceConfig):
        self.config = config

    async def render(self, url: str) -> str:
        from playwright.async_api import async_playwright, Error as PlaywrightError

        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(
                    headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"],
                )
                try:
                    page = await browser.new_page(user_agent=self.config.user_agent)
                    await page.goto(
                        url, wait_until="domcontentloaded",
                        timeout=self.config.navigation_timeout_ms,
                    )
                    await page.wait_for_timeout(self.config.settle_delay_ms)
                    return await page.content()
                finally:
                    await browser.close()
        except PlaywrightError as e:
            raise PageRenderError(f"Could not render {url}: {e}") from e


def is_junk_url(url: str) -> bool:
    """True for data URIs, vector/icon formats and obvious logo/icon assets."""
    if not url or url.startswith("data:"):
        return True
    ext = Path(urlparse(url).path).suffix.lower()
    if ext in JUNK_EXTENSIONS:
        return True
    return bool(JUNK_URL_RE.search(url.lower()))


def extract_image_urls(html: str, base_url: str) -> list[str]:
    """Return absolute candidate image URLs in document order (may contain duplicates)."""
    soup = BeautifulSoup(html, "html.parser")
    urls: list[str] = []

    for meta in soup.find_all("meta"):
        prop = (meta.get("property") or meta.get("name") or "").lower()
        if prop in ("og:image", "twitter:image"):
            content = (meta.get("content") or "").strip()
            if content:
                urls.append(urljoin(base_url, content))

    for tag in soup.find_all("img"):
        src = (tag.get("src") or tag.get("data-src") or "").strip()
        if src:
            urls.append(urljoin(base_url, src))
        for part in (tag.get("srcset") or "").split(","):
            tokens = part.strip().split()
            if tokens:
                urls.append(urljoin(base_url, tokens[0]))

    return [u for u in urls if u.startswith(("http://", "https://"))]


def dedupe_images(urls: list[str], limit: int) -> list[str]:
    """Drop junk and repeats, keep first-seen order, cap at limit."""
    result: list[str] = []
    seen: set[str] = set()
    for url in urls:
        if url in seen or is_junk_url(url):
            continue
        seen.add(url)
        result.append(url)
        if len(result) >= limit:
            break
    return result


def _unwrap_search_href(href: str) -> str:
    """Search result links are redirect URLs carrying the target in `uddg`."""
    parsed = urlparse(href)
    target = parse_qs(parsed.query).get("uddg")
    if target:
        return target[0]
    return urljoin("https://duckduckgo.com", href)


def _is_listing_domain(url: str, domains: list[str]) -> bool:
    host = urlparse(url).netloc.lower()
    return any(host == d or host.endswith("." + d) for d in domains)


class ListingImageSource:
    def __init__(self, client: httpx.AsyncClient, renderer, config: ImageSourceConfig, max_images: int = 20):
        self.client = client
        self.renderer = renderer
        self.config = config
        self.max_images = max_images

    async def find_listing_url(self, address: str) -> str | None:
        """Search for the address and return the first result on a known listing site."""
        try:
            resp = await self.client.post(
                self.config.search_url,
                data={"q": f"{address} home for sale"},
                headers={"User-Agent": self.config.user_agent},
                timeout=self.config.search_timeout_seconds,
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Listing search failed for {address!r}: {e}")
            return None

        soup = BeautifulSoup(resp.text, "html.parser")
        for a in soup.select("a.result__a, a[href]"):
            url = _unwrap_search_href(a.get("href", ""))
            if _is_listing_domain(url, self.config.listing_domains):
                logger.info(f"Resolved {address!r} -> {url}")
                return url
        logger.info(f"No listing page found for {address!r}")
        return None

    async def extract_images(self, url: str) -> list[str]:
        html = await self.renderer.render(url)
        images = dedupe_images(extract_image_urls(html, url), self.max_images)
        logger.info(f"Extracted {len(images)} candidate images from {url}")
        return images
