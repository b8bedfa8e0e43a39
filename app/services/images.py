"""Reachability checks for artwork URLs."""

from __future__ import annotations

import asyncio
import logging

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


class ImageProbe:
    """Issues ``HEAD`` requests to confirm an image URL still serves an image."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._client = http_client
        self._timeout = httpx.Timeout(settings.image_check_timeout_seconds)
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)

    async def is_usable(self, url: str | None) -> bool:
        """Return ``True`` when the URL answers ``200`` with an image type.

        Any failure, including timeouts, reports the image as unusable.
        """

        if not url or not url.startswith("http"):
            return False
        try:
            async with self._semaphore:
                response = await self._client.head(
                    url, timeout=self._timeout, follow_redirects=True
                )
        except httpx.HTTPError as exc:
            logger.debug("Image check failed for %s: %s", url, exc)
            return False

        content_type = response.headers.get("content-type", "")
        usable = response.status_code == 200 and content_type.startswith("image/")
        if not usable:
            logger.debug(
                "Image %s unusable (status %s, type %r)",
                url,
                response.status_code,
                content_type,
            )
        return usable
