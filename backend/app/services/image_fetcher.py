"""
Image Fetcher Service - stock photos for generated sites.

Tries Pexels first and Unsplash second. Each provider call is capped by a
timeout; a slow or failing provider just means no image for that term.
"""

import asyncio
from html import escape
from typing import Optional

import httpx
import structlog

from app.config import settings
from app.models import ImageData

logger = structlog.get_logger()


PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"
UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"


class ImageFetcherService:
    """Looks up at most one landscape photo per search term."""

    def __init__(
        self,
        pexels_api_key: Optional[str] = None,
        unsplash_access_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.pexels_api_key = pexels_api_key if pexels_api_key is not None else settings.pexels_api_key
        self.unsplash_access_key = (
            unsplash_access_key if unsplash_access_key is not None else settings.unsplash_access_key
        )
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.image_timeout_seconds
        self.transport = transport

    async def fetch_images(self, search_terms: list[str], limit: int = 2) -> list[ImageData]:
        """Fetch images for up to ``limit`` terms concurrently, dropping misses."""
        results = await asyncio.gather(
            *(self.get_relevant_image(term) for term in search_terms[:limit]),
            return_exceptions=True,
        )

        images = []
        for term, result in zip(search_terms, results):
            if isinstance(result, Exception):
                logger.warning("Image lookup failed", term=term, error=str(result))
            elif result is not None:
                images.append(result)
        return images

    async def get_relevant_image(self, search_term: str) -> Optional[ImageData]:
        """Return the first image any provider finds in time, or None."""
        providers = []
        if self.pexels_api_key:
            providers.append(("pexels", self._fetch_pexels_image))
        if self.unsplash_access_key:
            providers.append(("unsplash", self._fetch_unsplash_image))

        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds), transport=self.transport) as client:
            for name, fetch in providers:
                try:
                    image = await asyncio.wait_for(fetch(client, search_term), timeout=self.timeout_seconds)
                except asyncio.TimeoutError:
                    logger.warning("Image provider timed out", provider=name, term=search_term)
                    continue
                except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
                    logger.warning("Image provider failed", provider=name, term=search_term, error=str(e))
                    continue
                if image:
                    return image

        return None

    async def _fetch_pexels_image(self, client: httpx.AsyncClient, search_term: str) -> Optional[ImageData]:
        response = await client.get(
            PEXELS_SEARCH_URL,
            params={"query": search_term, "per_page": 1, "orientation": "landscape"},
            headers={"Authorization": self.pexels_api_key},
        )
        if response.status_code != 200:
            return None

        photos = response.json().get("photos") or []
        if not photos:
            return None

        photo = photos[0]
        return ImageData(
            url=photo["src"].get("large") or photo["src"]["medium"],
            alt=f"{search_term} - {photo['photographer']}",
            photographer=photo["photographer"],
            photographer_url=photo.get("photographer_url"),
            source="pexels",
        )

    async def _fetch_unsplash_image(self, client: httpx.AsyncClient, search_term: str) -> Optional[ImageData]:
        response = await client.get(
            UNSPLASH_SEARCH_URL,
            params={"query": search_term, "per_page": 1, "orientation": "landscape"},
            headers={"Authorization": f"Client-ID {self.unsplash_access_key}"},
        )
        if response.status_code != 200:
            return None

        results = response.json().get("results") or []
        if not results:
            return None

        photo = results[0]
        return ImageData(
            url=photo["urls"].get("regular") or photo["urls"]["small"],
            alt=f"{search_term} - {photo['user']['name']}",
            photographer=photo["user"]["name"],
            photographer_url=photo["user"]["links"]["html"],
            source="unsplash",
        )


def image_attribution_html(images: list[ImageData]) -> str:
    """Credit lines for the photos used on a site."""
    sites = {
        "pexels": ("https://www.pexels.com", "Pexels"),
        "unsplash": ("https://unsplash.com", "Unsplash"),
    }
    lines = []
    for image in images:
        site_url, site_name = sites[image.source]
        lines.append(
            f'Photo by <a href="{escape(image.photographer_url or site_url)}" target="_blank" rel="noopener">'
            f'{escape(image.photographer or "Unknown")}</a> on '
            f'<a href="{site_url}" target="_blank" rel="noopener">{site_name}</a>'
        )
    return "<br>\n".join(lines)
