"""Tests for the per-title metadata merge."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from app.config import DEFAULT_FALLBACK_POSTER, Settings
from app.models import DEFAULT_GENRES, CatalogEntry
from app.services.images import ImageProbe
from app.services.key_tracker import KeyValidityTracker
from app.services.omdb import OMDbClient
from app.services.resolver import (
    MISSING_KEYS_DESCRIPTION,
    NO_DESCRIPTION,
    ItemResolver,
)
from app.services.rpdb import RPDBClient
from app.services.tmdb import TMDBClient

TMDB_POSTER = "https://image.tmdb.org/t/p/w500/iron-man.jpg"
OMDB_POSTER = "https://m.media-amazon.com/images/iron-man.jpg"
RPDB_POSTER = "https://api.ratingposterdb.com/posters/iron-man.jpg"
CATALOG_POSTER = "https://posters.example.com/iron-man.jpg"


def build_settings(**overrides: Any) -> Settings:
    base = {"TMDB_API_KEY": "tmdb-key", "OMDB_API_KEY": "omdb-key"}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


def build_resolver(settings: Settings, http_client: httpx.AsyncClient) -> ItemResolver:
    return ItemResolver(
        settings,
        TMDBClient(settings, http_client),
        OMDbClient(settings, http_client),
        RPDBClient(settings, http_client, KeyValidityTracker()),
        ImageProbe(settings, http_client),
    )


def seed_iron_man(upstream) -> None:
    upstream.tmdb_search["Iron Man"] = 1726
    upstream.tmdb_details["1726"] = {
        "id": 1726,
        "overview": "TMDB overview.",
        "poster_path": "/iron-man.jpg",
        "release_date": "2008-04-30",
        "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
    }
    upstream.tmdb_logos["1726"] = [{"iso_639_1": "en", "file_path": "/logo.png"}]
    upstream.omdb["tt0371746"] = {
        "Plot": "OMDb plot.",
        "imdbRating": "7.9",
        "Poster": OMDB_POSTER,
    }
    upstream.rpdb_ratings["tt0371746"] = {
        "imdb": {"rating": "8.0"},
        "rotten_tomatoes": {"rating": "94%"},
    }
    upstream.rpdb_posters["tt0371746"] = RPDB_POSTER


IRON_MAN = CatalogEntry(
    id="tt0371746", type="movie", title="Iron Man", release_year="2008"
)


@pytest.mark.anyio("asyncio")
async def test_full_merge_prefers_enrichment_then_primary(upstream) -> None:
    seed_iron_man(upstream)
    upstream.images.update({RPDB_POSTER, TMDB_POSTER, OMDB_POSTER})

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        resolver = build_resolver(build_settings(), http_client)
        meta = await resolver.resolve(IRON_MAN, "rpdb-key")

    assert meta is not None
    assert meta.id == "tt0371746"
    assert meta.poster == RPDB_POSTER
    assert meta.description == "TMDB overview."
    assert meta.release_info == "2008"
    assert meta.imdb_rating == "8.0"
    assert meta.rotten_tomatoes_rating == "94%"
    assert meta.genres == ["Action", "Science Fiction"]
    assert meta.logo == "https://image.tmdb.org/t/p/original/logo.png"


@pytest.mark.anyio("asyncio")
async def test_without_rpdb_key_rating_comes_from_omdb(upstream) -> None:
    seed_iron_man(upstream)
    upstream.images.update({TMDB_POSTER})

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        resolver = build_resolver(build_settings(), http_client)
        meta = await resolver.resolve(IRON_MAN)

    assert meta is not None
    assert meta.imdb_rating == "7.9"
    assert meta.rotten_tomatoes_rating is None
    assert "rottenTomatoesRating" not in meta.to_meta()
    assert meta.poster == TMDB_POSTER
    assert upstream.count("api.ratingposterdb.com") == 0


@pytest.mark.anyio("asyncio")
async def test_poster_order_skips_dead_candidates(upstream) -> None:
    """A dead RPDB poster falls through to the catalog poster, then TMDB, then OMDb."""

    seed_iron_man(upstream)
    entry = IRON_MAN.model_copy(update={"poster": CATALOG_POSTER})

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        resolver = build_resolver(build_settings(), http_client)

        upstream.images = {CATALOG_POSTER, TMDB_POSTER, OMDB_POSTER}
        assert (await resolver.resolve(entry, "rpdb-key")).poster == CATALOG_POSTER

        upstream.images = {OMDB_POSTER}
        assert (await resolver.resolve(entry, "rpdb-key")).poster == OMDB_POSTER

        upstream.images = set()
        assert (await resolver.resolve(entry, "rpdb-key")).poster == DEFAULT_FALLBACK_POSTER


@pytest.mark.anyio("asyncio")
async def test_catalog_overview_wins_over_providers(upstream) -> None:
    seed_iron_man(upstream)
    entry = IRON_MAN.model_copy(update={"overview": "Curated description."})

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        meta = await build_resolver(build_settings(), http_client).resolve(entry)

    assert meta is not None
    assert meta.description == "Curated description."


@pytest.mark.anyio("asyncio")
async def test_unreachable_providers_yield_fallback_record(upstream) -> None:
    """An entry without an id still resolves when every provider is down."""

    upstream.unreachable.update(
        {"api.themoviedb.org", "www.omdbapi.com", "api.ratingposterdb.com"}
    )
    entry = CatalogEntry(type="movie", title="Iron Man", release_year="2008")

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        meta = await build_resolver(build_settings(), http_client).resolve(entry)

    assert meta is not None
    assert meta.id == "marvel_iron-man"
    assert meta.poster == DEFAULT_FALLBACK_POSTER
    assert meta.description == NO_DESCRIPTION
    assert meta.release_info == "2008"
    assert meta.imdb_rating == "N/A"
    assert meta.genres == list(DEFAULT_GENRES)


@pytest.mark.anyio("asyncio")
async def test_missing_credentials_serve_local_fields_only(upstream) -> None:
    entry = IRON_MAN.model_copy(update={"poster": CATALOG_POSTER})

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        meta = await build_resolver(
            build_settings(TMDB_API_KEY=""), http_client
        ).resolve(entry, "rpdb-key")

    assert meta is not None
    assert meta.description == MISSING_KEYS_DESCRIPTION
    assert meta.poster == CATALOG_POSTER
    assert meta.imdb_rating == "N/A"
    assert upstream.requests == []


@pytest.mark.anyio("asyncio")
async def test_series_titles_drop_season_suffix(upstream) -> None:
    entry = CatalogEntry.model_validate(
        {"id": "tt9140554", "type": "series", "title": "Loki Season 1", "releaseYear": "2021"}
    )
    upstream.tmdb_search["Loki"] = 84958
    upstream.tmdb_details["84958"] = {"id": 84958, "first_air_date": "2021-06-09"}

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        meta = await build_resolver(build_settings(), http_client).resolve(entry)

    assert meta is not None
    assert meta.name == "Loki"
    assert meta.type == "series"
    assert upstream.count("api.themoviedb.org", "/3/search/tv") >= 1


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize(
    "payload",
    [
        {"id": "tt0371746", "title": "Iron Man"},
        {"id": "tt0371746", "type": "movie"},
        {"type": "movie", "title": ""},
    ],
)
async def test_incomplete_entries_resolve_to_none(upstream, payload) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        resolver = build_resolver(build_settings(), http_client)
        assert await resolver.resolve(CatalogEntry.model_validate(payload)) is None

    assert upstream.requests == []


class ExplodingTMDBClient(TMDBClient):
    async def resolve(self, entry, lookup_id):  # type: ignore[override]
        raise RuntimeError("boom")


@pytest.mark.anyio("asyncio")
async def test_unexpected_errors_fall_back_to_local_record(upstream) -> None:
    settings = build_settings()

    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
        resolver = ItemResolver(
            settings,
            ExplodingTMDBClient(settings, http_client),
            OMDbClient(settings, http_client),
            RPDBClient(settings, http_client, KeyValidityTracker()),
            ImageProbe(settings, http_client),
        )
        meta = await resolver.resolve(IRON_MAN)

    assert meta is not None
    assert meta.description == NO_DESCRIPTION
    assert meta.poster == DEFAULT_FALLBACK_POSTER
