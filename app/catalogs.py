"""Static catalog definitions advertised in the manifest."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


SortDirective = Literal["new", "old"]

SORT_LABELS: dict[str, str] = {
    "new": "New to Old",
    "old": "Old to New",
}

MANIFEST_CATALOG_TYPE = "Marvel"


@dataclass(frozen=True)
class CatalogDefinition:
    """Describes a fixed catalog shown in Stremio."""

    key: str
    title: str
    category: str
    description: str
    icon: str
    dataset: str
    order_hint: int
    sort_options: tuple[SortDirective, ...] = field(default_factory=tuple)
    default_sort: SortDirective | None = None

    def to_manifest_entry(self) -> dict[str, Any]:
        """Return a manifest catalog entry."""

        entry: dict[str, Any] = {
            "type": MANIFEST_CATALOG_TYPE,
            "id": self.key,
            "name": self.title,
        }
        if self.sort_options:
            entry["extra"] = [
                {
                    "name": "genre",
                    "options": list(self.sort_options),
                    "isRequired": False,
                    "default": self.default_sort,
                    "optionLabels": {
                        option: SORT_LABELS[option] for option in self.sort_options
                    },
                }
            ]
        entry["behaviorHints"] = {"orderHint": self.order_hint}
        return entry

    def to_info(self) -> dict[str, str]:
        """Return the summary shown on the configuration page."""

        return {
            "id": self.key,
            "name": self.title,
            "category": self.category,
            "description": self.description,
            "icon": self.icon,
        }


CATALOGS: tuple[CatalogDefinition, ...] = (
    CatalogDefinition(
        key="marvel-mcu",
        title="MCU Chronologically Order",
        category="Timeline",
        description="Browse the Marvel Cinematic Universe in chronological story order",
        icon="calendar-alt",
        dataset="chronological.json",
        order_hint=1,
        sort_options=("new", "old"),
    ),
    CatalogDefinition(
        key="xmen",
        title="X-Men",
        category="Character",
        description="All X-Men movies and related content",
        icon="mask",
        dataset="xmen.json",
        order_hint=2,
    ),
    CatalogDefinition(
        key="movies",
        title="Movies",
        category="Content Type",
        description="All Marvel movies across different franchises",
        icon="film",
        dataset="movies.json",
        order_hint=3,
        sort_options=("new",),
    ),
    CatalogDefinition(
        key="series",
        title="Series",
        category="Content Type",
        description="All Marvel television series",
        icon="tv",
        dataset="series.json",
        order_hint=4,
        sort_options=("new",),
    ),
    CatalogDefinition(
        key="animations",
        title="Animations",
        category="Content Type",
        description="All Marvel animated features and series",
        icon="play-circle",
        dataset="animations.json",
        order_hint=5,
        sort_options=("new", "old"),
        default_sort="old",
    ),
)

CATALOG_MAP: dict[str, CatalogDefinition] = {
    definition.key: definition for definition in CATALOGS
}


def select_catalogs(keys: list[str] | tuple[str, ...]) -> list[CatalogDefinition]:
    """Return catalog definitions for the requested keys, all when empty."""

    if not keys:
        return list(CATALOGS)
    wanted = set(keys)
    return [definition for definition in CATALOGS if definition.key in wanted]
