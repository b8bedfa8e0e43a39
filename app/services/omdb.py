"""Client for plot, rating and poster lookups against OMDb."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings
from ..models import MediaId

logger = logging.getLogger(__name__)

MISSING_VALUE = "N/A"


@dataclass(slots=True)
class OMDbRecord:
    """The OMDb fields that take part in the metadata merge."""

    plot: str | None = None
    imdb_rating: str | None = None
    poster: str | None = None


def _clean(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value == MISSING_VALUE:
        return None
    return value


class OMDbClient:
    """Wrapper around the OMDb ``?i=`` lookup keyed by IMDb ids."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._base_url = str(settings.omdb_api_url).rstrip("/")
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)

    @property
    def enabled(self) -> bool:
        return bool(self._settings.omdb_api_key)

    async def lookup(self, media_id: MediaId) -> OMDbRecord | None:
        """Return OMDb data for an IMDb id.

        Ids from other families are skipped without a request. A ``404`` or a
        ``Response: False`` payload contributes nothing, same as any failure.
        """

        if not media_id.is_imdb or not self.enabled:
            return None

        params = {"i": media_id.value, "apikey": self._settings.omdb_api_key}
        try:
            async with self._semaphore:
                response = await self._client.get(f"{self._base_url}/", params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "OMDb lookup failed for %s: status %s",
                media_id.value,
                exc.response.status_code,
            )
            return None
        except httpx.HTTPError as exc:
            logger.warning("OMDb lookup failed for %s: %s", media_id.value, exc)
            return None
        except ValueError:
            logger.warning("OMDb returned invalid JSON for %s", media_id.value)
            return None

        if not isinstance(payload, dict):
            return None
        if str(payload.get("Response", "True")).lower() == "false":
            logger.info(
                "OMDb has no record for %s: %s", media_id.value, payload.get("Error")
            )
            return None

        return OMDbRecord(
            plot=_clean(payload.get("Plot")),
            imdb_rating=_clean(payload.get("imdbRating")),
            poster=_clean(payload.get("Poster")),
        )
