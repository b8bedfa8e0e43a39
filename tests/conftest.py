"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.services.rpdb import VALIDATION_PATH  # noqa: E402

TMDB_HOST = "api.themoviedb.org"
OMDB_HOST = "www.omdbapi.com"
RPDB_HOST = "api.ratingposterdb.com"


class FakeUpstream:
    """Routes mocked requests for TMDB, OMDb, RPDB and image hosts.

    Every request is recorded so tests can assert on call counts per host.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.unreachable: set[str] = set()
        self.tmdb_search: dict[str, int] = {}
        self.tmdb_details: dict[str, dict[str, Any]] = {}
        self.tmdb_logos: dict[str, list[dict[str, Any]]] = {}
        self.omdb: dict[str, dict[str, Any]] = {}
        self.rpdb_validation_status = 200
        self.rpdb_ratings: dict[str, dict[str, Any]] = {}
        self.rpdb_posters: dict[str, str] = {}
        self.images: set[str] = set()

    def count(self, host: str, path_prefix: str = "") -> int:
        return sum(
            1
            for request in self.requests
            if request.url.host == host and request.url.path.startswith(path_prefix)
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.unreachable:
            raise httpx.ConnectError("unreachable", request=request)
        if request.method == "HEAD":
            if str(request.url) in self.images:
                return httpx.Response(200, headers={"content-type": "image/jpeg"})
            return httpx.Response(404)
        if host == TMDB_HOST:
            return self._tmdb(request)
        if host == OMDB_HOST:
            payload = self.omdb.get(request.url.params.get("i", ""))
            if payload is None:
                return httpx.Response(
                    200, json={"Response": "False", "Error": "Incorrect IMDb ID."}
                )
            return httpx.Response(200, json={"Response": "True", **payload})
        if host == RPDB_HOST:
            return self._rpdb(request)
        return httpx.Response(404)

    def _tmdb(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.removeprefix("/3/").split("/")
        if parts[0] == "search":
            found = self.tmdb_search.get(request.url.params.get("query", ""))
            results = [{"id": found}] if found is not None else []
            return httpx.Response(200, json={"results": results})
        if len(parts) == 3 and parts[2] == "images":
            return httpx.Response(200, json={"logos": self.tmdb_logos.get(parts[1], [])})
        if len(parts) == 2 and parts[1] in self.tmdb_details:
            return httpx.Response(200, json=self.tmdb_details[parts[1]])
        return httpx.Response(404, json={"status_message": "not found"})

    def _rpdb(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == VALIDATION_PATH:
            return httpx.Response(self.rpdb_validation_status, json={})
        media_id = path.rsplit("/", 1)[-1]
        if path.startswith("/ratings/") and media_id in self.rpdb_ratings:
            return httpx.Response(200, json=self.rpdb_ratings[media_id])
        if path.startswith("/posters/") and media_id in self.rpdb_posters:
            return httpx.Response(200, json={"poster": self.rpdb_posters[media_id]})
        return httpx.Response(404)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()
