"""Utilities for resolving metadata from The Movie Database (TMDB)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import Settings
from ..models import CatalogEntry, IdKind, MediaId
from ..utils import strip_season_suffix, year_from_date

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
LOGO_BASE_URL = "https://image.tmdb.org/t/p/original"


@dataclass(slots=True)
class TMDBDetails:
    """Normalized view of a TMDB movie or TV details payload."""

    tmdb_id: int
    overview: str | None = None
    poster_path: str | None = None
    release_year: str | None = None
    genres: list[str] = field(default_factory=list)

    @property
    def poster_url(self) -> str | None:
        return build_image_url(self.poster_path, POSTER_BASE_URL)


def build_image_url(path: str | None, base_url: str) -> str | None:
    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url}{path}"


class TMDBClient:
    """Client responsible for TMDB details, search and artwork lookups.

    Every public coroutine swallows upstream failures and reports them as
    ``None`` so callers can fall back to other sources.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._base_url = str(settings.tmdb_api_url).rstrip("/")
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)

    @property
    def enabled(self) -> bool:
        return bool(self._settings.tmdb_api_key)

    async def resolve(
        self, entry: CatalogEntry, lookup_id: MediaId
    ) -> TMDBDetails | None:
        """Resolve the canonical TMDB record for a catalog entry."""

        content_type = entry.type or "movie"
        tmdb_id = entry.known_tmdb_id
        if tmdb_id is None and lookup_id.kind is IdKind.TMDB:
            tmdb_id = lookup_id.value
        if tmdb_id is None:
            if not entry.title:
                return None
            title = entry.title
            if content_type == "series":
                title = strip_season_suffix(title) or title
            found = await self.search(
                title, content_type=content_type, year=entry.release_year
            )
            if found is None:
                return None
            tmdb_id = str(found)
        return await self.fetch_details(tmdb_id, content_type)

    async def fetch_details(
        self, tmdb_id: int | str, content_type: str
    ) -> TMDBDetails | None:
        """Fetch the details payload for a TMDB entity."""

        endpoint = f"/{self._media_path(content_type)}/{tmdb_id}"
        payload = await self._get_json(endpoint, {"language": "en-US"})
        if payload is None:
            return None
        try:
            resolved_id = int(payload.get("id") or tmdb_id)
        except (TypeError, ValueError):
            logger.debug("TMDB details for %s carried no usable id", tmdb_id)
            return None

        date_key = "release_date" if content_type == "movie" else "first_air_date"
        genres = [
            genre["name"]
            for genre in payload.get("genres") or []
            if isinstance(genre, dict) and genre.get("name")
        ]
        return TMDBDetails(
            tmdb_id=resolved_id,
            overview=(payload.get("overview") or "").strip() or None,
            poster_path=payload.get("poster_path") or None,
            release_year=year_from_date(
                payload.get(date_key) or payload.get("release_date")
            ),
            genres=genres,
        )

    async def search(
        self, title: str, *, content_type: str, year: str | None = None
    ) -> int | None:
        """Return the id of the first search hit for the supplied title.

        When a year is known the narrowed search runs first and an unfiltered
        search is used as the fallback.
        """

        params: dict[str, Any] = {
            "query": title,
            "include_adult": "false",
            "language": "en-US",
            "page": 1,
        }
        attempts: list[dict[str, Any]] = []
        if year and year.isdigit():
            year_key = "year" if content_type == "movie" else "first_air_date_year"
            attempts.append({**params, year_key: year})
        attempts.append(params)

        endpoint = f"/search/{self._media_path(content_type)}"
        for attempt_params in attempts:
            payload = await self._get_json(endpoint, attempt_params)
            if payload is None:
                return None
            results = payload.get("results") or []
            if results and isinstance(results[0], dict) and results[0].get("id"):
                try:
                    return int(results[0]["id"])
                except (TypeError, ValueError):
                    return None
        logger.info("TMDB search found nothing for %s (%s)", title, content_type)
        return None

    async def fetch_logo(self, tmdb_id: int | str, content_type: str) -> str | None:
        """Return the preferred logo artwork URL for a TMDB entity."""

        endpoint = f"/{self._media_path(content_type)}/{tmdb_id}/images"
        payload = await self._get_json(endpoint, {}, quiet_statuses={404})
        if payload is None:
            return None
        logos = [logo for logo in payload.get("logos") or [] if isinstance(logo, dict)]
        if not logos:
            return None
        best = next((logo for logo in logos if logo.get("iso_639_1") == "en"), logos[0])
        return build_image_url(best.get("file_path"), LOGO_BASE_URL)

    async def _get_json(
        self,
        endpoint: str,
        params: dict[str, Any],
        *,
        quiet_statuses: set[int] | None = None,
    ) -> dict[str, Any] | None:
        if not self.enabled:
            return None
        url = f"{self._base_url}{endpoint}"
        query = {**params, "api_key": self._settings.tmdb_api_key}
        try:
            async with self._semaphore:
                response = await self._client.get(url, params=query)
        except httpx.HTTPError as exc:
            logger.warning("TMDB request %s failed: %s", endpoint, exc)
            return None

        if response.status_code >= 400:
            if response.status_code not in (quiet_statuses or set()):
                logger.warning(
                    "TMDB request %s failed with status %s",
                    endpoint,
                    response.status_code,
                )
            return None
        try:
            data = response.json()
        except ValueError:
            logger.warning("TMDB returned invalid JSON for %s", endpoint)
            return None
        if not isinstance(data, dict):
            return None
        return data

    @staticmethod
    def _media_path(content_type: str) -> str:
        return "movie" if content_type == "movie" else "tv"
