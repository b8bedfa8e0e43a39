"""Pydantic models describing catalog entries and resolved metadata."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .utils import slugify

ContentType = Literal["movie", "series"]
CONTENT_TYPES: frozenset[str] = frozenset({"movie", "series"})

DEFAULT_GENRES: tuple[str, ...] = ("Action", "Adventure")
LOCAL_ID_PREFIX = "marvel_"

_IMDB_ID_RE = re.compile(r"^tt\d+$")
_TMDB_ID_RE = re.compile(r"^tmdb[_:](\d+)$")


class IdKind(str, Enum):
    """Identifier families understood by the metadata providers."""

    IMDB = "imdb"
    TMDB = "tmdb"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class MediaId:
    """Identifier tagged with the provider family it belongs to."""

    kind: IdKind
    value: str

    @classmethod
    def parse(cls, raw: str | None) -> "MediaId":
        """Classify a raw catalog identifier."""

        text = (raw or "").strip()
        if _IMDB_ID_RE.match(text):
            return cls(IdKind.IMDB, text)
        match = _TMDB_ID_RE.match(text)
        if match:
            return cls(IdKind.TMDB, match.group(1))
        return cls(IdKind.UNKNOWN, text)

    @property
    def is_imdb(self) -> bool:
        return self.kind is IdKind.IMDB


class CatalogEntry(BaseModel):
    """A single title from a static catalog dataset."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str | None = None
    imdb_id: str | None = Field(default=None, alias="imdbId")
    tmdb_id: str | None = Field(default=None, alias="tmdbId")
    type: str | None = None
    title: str | None = Field(
        default=None, validation_alias=AliasChoices("title", "name")
    )
    release_year: str | None = Field(default=None, alias="releaseYear")
    poster: str | None = None
    overview: str | None = Field(
        default=None, validation_alias=AliasChoices("overview", "description")
    )
    genres: tuple[str, ...] = ()

    @field_validator(
        "id", "imdb_id", "tmdb_id", "poster", "overview", "title", mode="before"
    )
    @classmethod
    def _clean_text(cls, value: object) -> object:
        """Coerce numbers to text and treat blank strings as missing."""

        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("release_year", mode="before")
    @classmethod
    def _clean_release_year(cls, value: object) -> str | None:
        """Keep whole years and strings; any other shape is an unknown year."""

        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            return value.strip() or None
        return None

    @field_validator("genres", mode="before")
    @classmethod
    def _flatten_genres(cls, value: object) -> tuple[str, ...]:
        """Accept plain genre names or TMDb-style ``{"name": ...}`` objects."""

        if not isinstance(value, (list, tuple)):
            return ()
        names: list[str] = []
        for genre in value:
            if isinstance(genre, dict):
                genre = genre.get("name")
            if isinstance(genre, str) and genre.strip():
                names.append(genre.strip())
        return tuple(names)

    @property
    def is_resolvable(self) -> bool:
        """Return whether the entry carries enough data to build metadata."""

        return bool(self.title) and self.type in CONTENT_TYPES

    @property
    def lookup_id(self) -> MediaId:
        """Return the tagged identifier, preferring the explicit IMDb id."""

        return MediaId.parse(self.imdb_id or self.id)

    @property
    def display_id(self) -> str:
        """Return the identifier exposed to Stremio for this entry."""

        raw = self.imdb_id or self.id
        if raw:
            return raw
        return f"{LOCAL_ID_PREFIX}{slugify(self.title or '')}"

    @property
    def known_tmdb_id(self) -> str | None:
        """Return a TMDb id available without searching, if any."""

        if self.tmdb_id:
            if self.tmdb_id.isdigit():
                return self.tmdb_id
            explicit = MediaId.parse(self.tmdb_id)
            if explicit.kind is IdKind.TMDB:
                return explicit.value
        lookup = self.lookup_id
        if lookup.kind is IdKind.TMDB:
            return lookup.value
        return None


class NormalizedMetadata(BaseModel):
    """Merged metadata for one catalog title, shaped for Stremio."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    type: ContentType
    name: str
    logo: str | None = None
    poster: str = Field(min_length=1)
    description: str = Field(min_length=1)
    release_info: str = Field(default="N/A", serialization_alias="releaseInfo")
    imdb_rating: str = Field(default="N/A", serialization_alias="imdbRating")
    rotten_tomatoes_rating: str | None = Field(
        default=None, serialization_alias="rottenTomatoesRating"
    )
    genres: list[str] = Field(min_length=1)

    def to_meta(self) -> dict[str, object]:
        """Return a Stremio-compatible meta object for catalog listings."""

        return self.model_dump(by_alias=True, exclude_none=True)
