"""Per-title metadata resolution across TMDB, OMDb and RPDB."""

from __future__ import annotations

import asyncio
import logging

from ..config import Settings
from ..models import DEFAULT_GENRES, CatalogEntry, MediaId, NormalizedMetadata
from ..utils import mask_key, strip_season_suffix
from .images import ImageProbe
from .omdb import OMDbClient, OMDbRecord
from .rpdb import RPDBClient, RPDBResult
from .tmdb import TMDBClient, TMDBDetails

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description available."
MISSING_KEYS_DESCRIPTION = "Metadata lookup unavailable (API key missing)."
NOT_AVAILABLE = "N/A"


class ItemResolver:
    """Builds one :class:`NormalizedMetadata` record per catalog entry.

    Sources are queried concurrently and merged field by field. Posters are
    taken from the first usable candidate in the order RPDB, catalog entry,
    TMDB, OMDb, with a fixed image as the last resort, so the poster and the
    description are always populated.
    """

    def __init__(
        self,
        settings: Settings,
        tmdb_client: TMDBClient,
        omdb_client: OMDbClient,
        rpdb_client: RPDBClient,
        image_probe: ImageProbe,
    ) -> None:
        self._settings = settings
        self._tmdb = tmdb_client
        self._omdb = omdb_client
        self._rpdb = rpdb_client
        self._images = image_probe
        self._missing_credentials_logged = False

    async def resolve(
        self, entry: CatalogEntry, rpdb_key: str | None = None
    ) -> NormalizedMetadata | None:
        """Return merged metadata for ``entry`` or ``None`` when it is incomplete."""

        if not entry.is_resolvable:
            logger.warning(
                "Skipping item due to missing essential data: %s",
                entry.model_dump(exclude_none=True),
            )
            return None

        lookup_id = entry.lookup_id
        if self._credentials_missing(lookup_id):
            self._log_missing_credentials()
            return self._local_metadata(entry, description=MISSING_KEYS_DESCRIPTION)

        try:
            return await self._resolve_remote(entry, lookup_id, rpdb_key)
        except Exception:
            logger.exception("Error processing %s (%s)", entry.title, entry.display_id)
            return self._local_metadata(entry, description=NO_DESCRIPTION)

    def _credentials_missing(self, lookup_id: MediaId) -> bool:
        if not self._settings.tmdb_api_key:
            return True
        return lookup_id.is_imdb and not self._settings.omdb_api_key

    def _log_missing_credentials(self) -> None:
        if self._missing_credentials_logged:
            return
        self._missing_credentials_logged = True
        logger.warning(
            "TMDB_API_KEY or OMDB_API_KEY is missing; serving catalog-local metadata only"
        )

    async def _resolve_remote(
        self, entry: CatalogEntry, lookup_id: MediaId, rpdb_key: str | None
    ) -> NormalizedMetadata:
        logger.debug("Fetching data for %s (%s)", entry.title, entry.display_id)
        secondary, (details, logo), enrichment = await asyncio.gather(
            self._omdb.lookup(lookup_id),
            self._resolve_primary(entry, lookup_id),
            self._enrich(entry, lookup_id, rpdb_key),
        )

        poster = await self._select_poster(entry, details, secondary, enrichment)
        content_type = entry.type or "movie"
        return NormalizedMetadata(
            id=entry.display_id,
            type=content_type,
            name=self._display_name(entry),
            logo=logo,
            poster=poster,
            description=(
                entry.overview
                or (details.overview if details else None)
                or (secondary.plot if secondary else None)
                or NO_DESCRIPTION
            ),
            release_info=(
                entry.release_year
                or (details.release_year if details else None)
                or NOT_AVAILABLE
            ),
            imdb_rating=(
                enrichment.imdb_rating
                or (secondary.imdb_rating if secondary else None)
                or NOT_AVAILABLE
            ),
            rotten_tomatoes_rating=enrichment.rotten_tomatoes_rating,
            genres=(
                list(details.genres if details else [])
                or list(entry.genres)
                or list(DEFAULT_GENRES)
            ),
        )

    async def _resolve_primary(
        self, entry: CatalogEntry, lookup_id: MediaId
    ) -> tuple[TMDBDetails | None, str | None]:
        # Phase one settles the canonical TMDB id, phase two fetches what hangs off it.
        details = await self._tmdb.resolve(entry, lookup_id)
        tmdb_id = str(details.tmdb_id) if details else entry.known_tmdb_id
        if not tmdb_id:
            return details, None
        logo = await self._tmdb.fetch_logo(tmdb_id, entry.type or "movie")
        return details, logo

    async def _enrich(
        self, entry: CatalogEntry, lookup_id: MediaId, rpdb_key: str | None
    ) -> RPDBResult:
        if not rpdb_key:
            return RPDBResult()
        logger.debug(
            "Requesting RPDB data for %s with key %s", entry.title, mask_key(rpdb_key)
        )
        return await self._rpdb.fetch(
            lookup_id, entry.known_tmdb_id, entry.type or "movie", rpdb_key
        )

    async def _select_poster(
        self,
        entry: CatalogEntry,
        details: TMDBDetails | None,
        secondary: OMDbRecord | None,
        enrichment: RPDBResult,
    ) -> str:
        candidates = (
            ("RPDB", enrichment.poster),
            ("catalog", entry.poster),
            ("TMDB", details.poster_url if details else None),
            ("OMDb", secondary.poster if secondary else None),
        )
        for source, url in candidates:
            if url and await self._image_usable(url):
                logger.debug("Using %s poster for %s: %s", source, entry.title, url)
                return url
        logger.warning(
            "No valid poster found for %s (%s), using fallback",
            entry.title,
            entry.display_id,
        )
        return self._settings.fallback_poster_url

    async def _image_usable(self, url: str) -> bool:
        try:
            return await self._images.is_usable(url)
        except Exception:
            logger.exception("Image check raised for %s", url)
            return False

    def _local_metadata(
        self, entry: CatalogEntry, *, description: str
    ) -> NormalizedMetadata:
        return NormalizedMetadata(
            id=entry.display_id,
            type=entry.type or "movie",
            name=self._display_name(entry),
            poster=entry.poster or self._settings.fallback_poster_url,
            description=entry.overview or description,
            release_info=entry.release_year or NOT_AVAILABLE,
            imdb_rating=NOT_AVAILABLE,
            genres=list(entry.genres) or list(DEFAULT_GENRES),
        )

    @staticmethod
    def _display_name(entry: CatalogEntry) -> str:
        title = entry.title or ""
        if entry.type == "series":
            return strip_season_suffix(title) or title
        return title
