"""Process-wide memory of RPDB keys that the provider has rejected."""

from __future__ import annotations

import logging
import threading

from ..utils import mask_key

logger = logging.getLogger(__name__)


class KeyValidityTracker:
    """Set of enrichment keys known to be invalid.

    A key marked here is never validated again until :meth:`clear` runs, so a
    rejected key does not keep spending the provider's quota.
    """

    def __init__(self) -> None:
        self._invalid: set[str] = set()
        self._lock = threading.Lock()

    @staticmethod
    def _normalize(key: str | None) -> str:
        return (key or "").strip()

    def is_known_invalid(self, key: str | None) -> bool:
        normalized = self._normalize(key)
        if not normalized:
            return False
        with self._lock:
            return normalized in self._invalid

    def mark_invalid(self, key: str | None) -> None:
        normalized = self._normalize(key)
        if not normalized:
            return
        with self._lock:
            self._invalid.add(normalized)
        logger.warning("RPDB key %s marked as invalid", mask_key(normalized))

    def clear(self) -> None:
        with self._lock:
            self._invalid.clear()
        logger.info("Invalid RPDB key cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._invalid)
