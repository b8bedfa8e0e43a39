"""Client for the RatingPosterDB (RPDB) enrichment provider."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings
from ..models import MediaId
from ..utils import mask_key
from .key_tracker import KeyValidityTracker

logger = logging.getLogger(__name__)

VALIDATION_PATH = "/ratings/movie/tt0848228"
AUTH_DENIED_STATUSES = frozenset({401, 403})


@dataclass(slots=True)
class RPDBResult:
    """Ratings and poster override returned for a title."""

    imdb_rating: str | None = None
    rotten_tomatoes_rating: str | None = None
    poster: str | None = None

    def is_empty(self) -> bool:
        return not (self.imdb_rating or self.rotten_tomatoes_rating or self.poster)


def _rating(payload: dict[str, Any], source: str) -> str | None:
    section = payload.get(source)
    if not isinstance(section, dict):
        return None
    value = section.get("rating")
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text or text == "N/A":
        return None
    return text


class RPDBClient:
    """Validates caller-supplied RPDB keys and fetches ratings and posters.

    A key is validated before any ratings or poster request is issued. Only an
    authorization denial marks a key invalid in the shared tracker; timeouts
    and server errors leave the key eligible for a later attempt.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        key_tracker: KeyValidityTracker,
    ) -> None:
        self._settings = settings
        self._client = http_client
        self._tracker = key_tracker
        self._base_url = str(settings.rpdb_api_url).rstrip("/")
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)
        self._pending_validations: dict[str, asyncio.Task[bool]] = {}

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": (
                f"Mozilla/5.0 (compatible; {self._settings.app_name}/"
                f"{self._settings.addon_version})"
            )
        }

    async def validate_key(self, key: str | None) -> bool:
        """Return whether RPDB accepts the key.

        Concurrent callers validating the same key share one request.
        """

        cleaned = (key or "").strip()
        if not cleaned or self._tracker.is_known_invalid(cleaned):
            logger.info(
                "RPDB key %s skipped (empty or cached as invalid)", mask_key(cleaned)
            )
            return False

        task = self._pending_validations.get(cleaned)
        if task is None:
            task = asyncio.create_task(self._validate_remote(cleaned))
            self._pending_validations[cleaned] = task
            task.add_done_callback(
                lambda _: self._pending_validations.pop(cleaned, None)
            )
        return await asyncio.shield(task)

    async def _validate_remote(self, key: str) -> bool:
        url = f"{self._base_url}{VALIDATION_PATH}"
        try:
            async with self._semaphore:
                response = await self._client.get(
                    url, params={"api_key": key}, headers=self._headers()
                )
        except httpx.HTTPError as exc:
            logger.warning("RPDB validation error for key %s: %s", mask_key(key), exc)
            return False

        if response.status_code == 200:
            logger.info("RPDB key validation successful for key %s", mask_key(key))
            return True
        if response.status_code in AUTH_DENIED_STATUSES:
            self._tracker.mark_invalid(key)
        else:
            logger.warning(
                "RPDB key validation failed for key %s (status %s)",
                mask_key(key),
                response.status_code,
            )
        return False

    async def fetch(
        self,
        media_id: MediaId,
        tmdb_id: str | None,
        content_type: str,
        key: str | None,
    ) -> RPDBResult:
        """Fetch ratings and the poster override for a title."""

        cleaned = (key or "").strip()
        if not cleaned or self._tracker.is_known_invalid(cleaned):
            logger.debug("Skipping RPDB lookup for %s (no valid key)", media_id.value)
            return RPDBResult()

        if not await self.validate_key(cleaned):
            logger.info(
                "RPDB key %s invalid, skipping ratings and posters", mask_key(cleaned)
            )
            return RPDBResult()

        if media_id.is_imdb:
            rpdb_id = media_id.value
        elif tmdb_id:
            rpdb_id = f"tmdb:{tmdb_id}"
        else:
            logger.warning("No IMDb or TMDB id available for RPDB query (%s)", media_id.value)
            return RPDBResult()

        ratings, poster_payload = await asyncio.gather(
            self._get_json(f"/ratings/{content_type}/{rpdb_id}", cleaned),
            self._get_json(f"/posters/{content_type}/{rpdb_id}", cleaned),
        )
        poster = (poster_payload or {}).get("poster")
        return RPDBResult(
            imdb_rating=_rating(ratings or {}, "imdb"),
            rotten_tomatoes_rating=_rating(ratings or {}, "rotten_tomatoes"),
            poster=poster if isinstance(poster, str) and poster.startswith("http") else None,
        )

    async def _get_json(self, path: str, key: str) -> dict[str, Any] | None:
        url = f"{self._base_url}{path}"
        try:
            async with self._semaphore:
                response = await self._client.get(
                    url, params={"api_key": key}, headers=self._headers()
                )
        except httpx.HTTPError as exc:
            logger.warning("RPDB request %s failed: %s", path, exc)
            return None

        if response.status_code == 403 and path.startswith("/posters/"):
            logger.info("RPDB poster access denied for %s (key tier lacks posters)", path)
            return None
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.warning("RPDB request %s failed with status %s", path, response.status_code)
            return None
        try:
            data = response.json()
        except ValueError:
            logger.warning("RPDB returned invalid JSON for %s", path)
            return None
        return data if isinstance(data, dict) else None
