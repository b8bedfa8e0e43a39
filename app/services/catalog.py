"""High level orchestration for catalog assembly and caching."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal, Sequence

from ..catalogs import CATALOG_MAP, CatalogDefinition
from ..datasets import DatasetError, DatasetProvider
from ..models import CatalogEntry, NormalizedMetadata
from ..utils import extract_year
from .cache import CacheKey, CatalogCache, build_cache_key
from .resolver import ItemResolver
from .rpdb import RPDBClient

logger = logging.getLogger(__name__)

SortOrder = Literal["asc", "desc"]

SORT_DIRECTIVES: dict[str, SortOrder] = {
    "new": "desc",
    "old": "asc",
}


def sort_by_release_date(
    entries: Sequence[CatalogEntry], order: SortOrder = "desc"
) -> list[CatalogEntry]:
    """Return entries ordered by release year.

    Entries whose year cannot be read are parked at the tail in their input
    order, whichever direction is requested. Ties keep their input order.
    """

    dated: list[tuple[int, CatalogEntry]] = []
    undated: list[CatalogEntry] = []
    for entry in entries:
        year = extract_year(entry.release_year)
        if year is None:
            undated.append(entry)
        else:
            dated.append((year, entry))
    dated.sort(key=lambda pair: pair[0], reverse=order == "desc")
    return [entry for _, entry in dated] + undated


def normalize_sort_directive(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip().lower()
    return cleaned or None


def resolve_sort_order(
    definition: CatalogDefinition, directive: str | None
) -> SortOrder | None:
    """Map a request directive onto a sort order, ``None`` keeping data order."""

    directive = normalize_sort_directive(directive)
    if directive is None:
        directive = definition.default_sort
        if directive is None:
            return None
    order = SORT_DIRECTIVES.get(directive)
    if order is None:
        logger.info(
            "Unrecognised sort directive %r for %s, using data order",
            directive,
            definition.key,
        )
    return order


class CatalogAssembler:
    """Turns a catalog dataset into an ordered list of resolved metadata."""

    def __init__(self, datasets: DatasetProvider, resolver: ItemResolver) -> None:
        self._datasets = datasets
        self._resolver = resolver

    async def assemble(
        self,
        catalog_id: str,
        sort: str | None = None,
        rpdb_key: str | None = None,
    ) -> list[NormalizedMetadata]:
        definition = CATALOG_MAP.get(catalog_id)
        if definition is None:
            logger.warning("Unrecognized catalog ID: %s", catalog_id)
            return []

        try:
            entries = self._datasets.load(catalog_id)
        except (KeyError, DatasetError) as exc:
            logger.error("Error loading data for catalog %s: %s", catalog_id, exc)
            return []
        logger.info("Loaded %s items for catalog: %s", len(entries), definition.title)

        order = resolve_sort_order(definition, sort)
        if order is not None:
            entries = sort_by_release_date(entries, order)
            logger.info("%s - applying sort: %s", definition.title, order)

        # gather keeps input order, so the sorted sequence survives any completion order.
        results = await asyncio.gather(
            *(self._resolver.resolve(entry, rpdb_key) for entry in entries),
            return_exceptions=True,
        )
        metas: list[NormalizedMetadata] = []
        for entry, result in zip(entries, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Metadata resolution failed for %s: %s", entry.display_id, result
                )
                continue
            if result is None:
                continue
            metas.append(result)

        logger.info("Catalog generated with %s items for ID: %s", len(metas), catalog_id)
        return metas


class CatalogService:
    """Entry point used by the HTTP layer to serve cached catalogs."""

    def __init__(
        self,
        assembler: CatalogAssembler,
        cache: CatalogCache,
        rpdb_client: RPDBClient,
    ) -> None:
        self._assembler = assembler
        self._cache = cache
        self._rpdb = rpdb_client
        self._locks: dict[CacheKey, asyncio.Lock] = {}

    async def resolve_catalog(
        self,
        catalog_id: str,
        sort: str | None = None,
        rpdb_key: str | None = None,
    ) -> list[NormalizedMetadata]:
        """Return the catalog, resolving it on the first request only.

        Concurrent identical requests wait for a single assembly. Empty results
        are not cached so unknown or broken catalogs never pin an entry.
        """

        sort = normalize_sort_directive(sort)
        rpdb_key = (rpdb_key or "").strip() or None

        cached = self._cache.get(catalog_id, sort, rpdb_key)
        if cached is not None:
            logger.info("Returning cached catalog for %s (sort=%s)", catalog_id, sort)
            return cached

        key = build_cache_key(catalog_id, sort, rpdb_key)
        lock = self._locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                cached = self._cache.get(catalog_id, sort, rpdb_key)
                if cached is not None:
                    return cached
                logger.info("Generating catalog for %s (sort=%s)", catalog_id, sort)
                metas = await self._assembler.assemble(catalog_id, sort, rpdb_key)
                if metas:
                    self._cache.put(catalog_id, sort, rpdb_key, metas)
                return metas
        finally:
            # Waiters already hold the lock object and re-read the cache.
            if self._locks.get(key) is lock:
                del self._locks[key]

    async def get_catalog_payload(
        self,
        catalog_id: str,
        sort: str | None = None,
        rpdb_key: str | None = None,
    ) -> dict[str, Any]:
        """Return the Stremio catalog payload."""

        metas = await self.resolve_catalog(catalog_id, sort, rpdb_key)
        return {"metas": [meta.to_meta() for meta in metas]}

    def clear_cache(self) -> None:
        """Drop cached catalogs and the invalid RPDB key memory."""

        self._cache.clear_all()
        logger.info("Cache and invalid RPDB keys cleared")

    async def validate_enrichment_key(self, key: str | None) -> bool:
        return await self._rpdb.validate_key(key)
