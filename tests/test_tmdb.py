"""Tests for the TMDB client."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from app.config import Settings
from app.models import CatalogEntry, MediaId
from app.services.tmdb import TMDBClient


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


def build_settings(**overrides: Any) -> Settings:
    base = {"TMDB_API_KEY": "tmdb-key", "OMDB_API_KEY": "omdb-key"}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


IRON_MAN_DETAILS = {
    "id": 1726,
    "overview": "After being held captive in an Afghan cave...",
    "poster_path": "/78lPtwv72eTNqFW9COBYI0dWDJa.jpg",
    "release_date": "2008-04-30",
    "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
}


@pytest.mark.anyio("asyncio")
async def test_resolve_searches_with_year_then_fetches_details() -> None:
    """Entries without a TMDB id are found through search first."""

    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        assert request.url.params["api_key"] == "tmdb-key"
        if request.url.path == "/3/search/movie":
            return httpx.Response(200, json={"results": [{"id": 1726}]})
        if request.url.path == "/3/movie/1726":
            return httpx.Response(200, json=IRON_MAN_DETAILS)
        return httpx.Response(404)

    entry = CatalogEntry(type="movie", title="Iron Man", release_year="2008")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = TMDBClient(build_settings(), http_client)
        details = await client.resolve(entry, entry.lookup_id)

    assert details is not None
    assert details.tmdb_id == 1726
    assert details.release_year == "2008"
    assert details.genres == ["Action", "Science Fiction"]
    assert details.poster_url == (
        "https://image.tmdb.org/t/p/w500/78lPtwv72eTNqFW9COBYI0dWDJa.jpg"
    )
    assert requests[0].url.params["query"] == "Iron Man"
    assert requests[0].url.params["year"] == "2008"


@pytest.mark.anyio("asyncio")
async def test_search_retries_without_year() -> None:
    """A miss on the year-filtered search falls back to an unfiltered search."""

    seen_params: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_params.append(dict(request.url.params))
        if "first_air_date_year" in request.url.params:
            return httpx.Response(200, json={"results": []})
        return httpx.Response(200, json={"results": [{"id": 84958}]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = TMDBClient(build_settings(), http_client)
        found = await client.search("Loki", content_type="series", year="2021")

    assert found == 84958
    assert len(seen_params) == 2
    assert seen_params[0]["first_air_date_year"] == "2021"
    assert "first_air_date_year" not in seen_params[1]


@pytest.mark.anyio("asyncio")
async def test_known_tmdb_id_skips_search() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(
            200,
            json={"id": 84958, "overview": "", "first_air_date": "2021-06-09"},
        )

    entry = CatalogEntry.model_validate(
        {"id": "tt9140554", "tmdbId": 84958, "type": "series", "title": "Loki Season 1"}
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = TMDBClient(build_settings(), http_client)
        details = await client.resolve(entry, entry.lookup_id)

    assert paths == ["/3/tv/84958"]
    assert details is not None
    assert details.overview is None
    assert details.release_year == "2021"


@pytest.mark.anyio("asyncio")
async def test_fetch_logo_prefers_english() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/3/movie/1726/images"
        return httpx.Response(
            200,
            json={
                "logos": [
                    {"iso_639_1": "pt", "file_path": "/pt.png"},
                    {"iso_639_1": "en", "file_path": "/en.png"},
                ]
            },
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = TMDBClient(build_settings(), http_client)
        logo = await client.fetch_logo(1726, "movie")

    assert logo == "https://image.tmdb.org/t/p/original/en.png"


@pytest.mark.anyio("asyncio")
async def test_failures_resolve_to_none() -> None:
    """Network errors and bad statuses never escape the client."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/images"):
            return httpx.Response(500)
        raise httpx.ConnectError("unreachable", request=request)

    entry = CatalogEntry(type="movie", title="Iron Man")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = TMDBClient(build_settings(), http_client)
        assert await client.resolve(entry, entry.lookup_id) is None
        assert await client.fetch_details(1726, "movie") is None
        assert await client.fetch_logo(1726, "movie") is None


@pytest.mark.anyio("asyncio")
async def test_missing_api_key_issues_no_requests() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not run
        calls.append(request)
        return httpx.Response(200, json={})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = TMDBClient(build_settings(TMDB_API_KEY=""), http_client)
        assert not client.enabled
        assert await client.fetch_details(1726, "movie") is None

    assert calls == []


@pytest.mark.anyio("asyncio")
async def test_resolve_uses_tmdb_lookup_id() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"id": 299534, "release_date": "2019-04-24"})

    entry = CatalogEntry(id="tmdb_299534", type="movie", title="Avengers: Endgame")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = TMDBClient(build_settings(), http_client)
        details = await client.resolve(entry, MediaId.parse(entry.id))

    assert paths == ["/3/movie/299534"]
    assert details is not None and details.tmdb_id == 299534
