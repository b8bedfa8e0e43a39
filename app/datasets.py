"""Loading of the static catalog datasets."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .catalogs import CATALOG_MAP
from .models import CatalogEntry

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"


class DatasetError(ValueError):
    """Raised when a dataset file does not hold an array of entries."""


class DatasetProvider:
    """Reads the ordered entries backing each catalog."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self._data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
        self._loaded: dict[str, tuple[CatalogEntry, ...]] = {}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def load(self, catalog_id: str) -> list[CatalogEntry]:
        """Return the entries for ``catalog_id`` in dataset order.

        Raises ``KeyError`` for unknown catalogs and ``DatasetError`` when the
        backing file is missing, unreadable or not a JSON array. Successful
        loads are kept for the lifetime of the provider.
        """

        definition = CATALOG_MAP.get(catalog_id)
        if definition is None:
            raise KeyError(f"Unknown catalog {catalog_id}")

        cached = self._loaded.get(catalog_id)
        if cached is not None:
            return list(cached)

        path = self._data_dir / definition.dataset
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise DatasetError(f"Dataset for {catalog_id} could not be read: {exc}") from exc
        entries = self.parse(catalog_id, payload)
        self._loaded[catalog_id] = tuple(entries)
        return entries

    @staticmethod
    def parse(catalog_id: str, payload: Any) -> list[CatalogEntry]:
        """Validate a raw dataset payload into catalog entries."""

        if not isinstance(payload, list):
            raise DatasetError(f"Data source for {catalog_id} is not a valid array")

        entries: list[CatalogEntry] = []
        for index, raw in enumerate(payload):
            if not isinstance(raw, dict):
                logger.warning(
                    "Skipping non-object entry %s in catalog %s", index, catalog_id
                )
                continue
            try:
                entries.append(CatalogEntry.model_validate(raw))
            except ValidationError as exc:
                logger.warning(
                    "Skipping invalid entry %s in catalog %s: %s", index, catalog_id, exc
                )
        return entries
