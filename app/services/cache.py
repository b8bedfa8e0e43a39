"""In-memory cache of resolved catalogs."""

from __future__ import annotations

import logging
import threading

from ..models import NormalizedMetadata
from .key_tracker import KeyValidityTracker

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str | None, str | None]


def build_cache_key(
    catalog_id: str, sort: str | None, rpdb_key: str | None = None
) -> CacheKey:
    """Return the composite key for a catalog request.

    An absent sort directive and an absent RPDB key are kept as ``None`` so
    they never collide with a value a caller can send.
    """

    cleaned_key = (rpdb_key or "").strip() or None
    return (catalog_id, sort, cleaned_key)


class CatalogCache:
    """Unbounded catalog cache invalidated only by :meth:`clear_all`."""

    def __init__(self, key_tracker: KeyValidityTracker) -> None:
        self._entries: dict[CacheKey, list[NormalizedMetadata]] = {}
        self._key_tracker = key_tracker
        self._lock = threading.Lock()

    def get(
        self, catalog_id: str, sort: str | None, rpdb_key: str | None = None
    ) -> list[NormalizedMetadata] | None:
        key = build_cache_key(catalog_id, sort, rpdb_key)
        with self._lock:
            metas = self._entries.get(key)
        if metas is None:
            return None
        return list(metas)

    def put(
        self,
        catalog_id: str,
        sort: str | None,
        rpdb_key: str | None,
        metas: list[NormalizedMetadata],
    ) -> None:
        key = build_cache_key(catalog_id, sort, rpdb_key)
        with self._lock:
            self._entries[key] = list(metas)

    def clear_all(self) -> None:
        """Drop every cached catalog along with the invalid key memory."""

        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self._key_tracker.clear()
        logger.info("Catalog cache cleared (%s entries)", count)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
