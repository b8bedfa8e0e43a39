"""Entry point for the FastAPI-powered Stremio addon."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import (
    HTMLResponse,
    JSONResponse,
    PlainTextResponse,
    RedirectResponse,
)

from .catalogs import CATALOGS, CatalogDefinition, select_catalogs
from .config import Settings, settings
from .datasets import DatasetProvider
from .models import CONTENT_TYPES, LOCAL_ID_PREFIX
from .services.cache import CatalogCache
from .services.catalog import CatalogAssembler, CatalogService
from .services.images import ImageProbe
from .services.key_tracker import KeyValidityTracker
from .services.omdb import OMDbClient
from .services.resolver import ItemResolver
from .services.rpdb import RPDBClient
from .services.tmdb import TMDBClient
from .utils import mask_key
from .web import parse_catalog_selection, render_config_page

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

MANIFEST_ID = "com.marveladdon.python"
ADDON_LOGO = "https://raw.githubusercontent.com/joaogonp/addon-marvel/main/assets/icon.png"
ADDON_BACKGROUND = (
    "https://raw.githubusercontent.com/joaogonp/addon-marvel/main/assets/background.jpg"
)
MISSING_RPDB_KEY_ERROR = "No RPDB API Key provided."
INVALID_RPDB_KEY_ERROR = (
    "Invalid RPDB API Key. Copy the key exactly from ratingposterdb.com without "
    "spaces and check its status in your RPDB dashboard."
)

app: FastAPI


def build_catalog_service(
    config: Settings, http_client: httpx.AsyncClient
) -> CatalogService:
    """Wire the source clients, resolver and cache around one HTTP client."""

    key_tracker = KeyValidityTracker()
    rpdb = RPDBClient(config, http_client, key_tracker)
    resolver = ItemResolver(
        config,
        TMDBClient(config, http_client),
        OMDbClient(config, http_client),
        rpdb,
        ImageProbe(config, http_client),
    )
    assembler = CatalogAssembler(DatasetProvider(config.data_dir), resolver)
    return CatalogService(assembler, CatalogCache(key_tracker), rpdb)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout_seconds, connect=5.0),
        )
    )
    if not settings.has_metadata_credentials:
        logger.error(
            "API keys (TMDB_API_KEY, OMDB_API_KEY) are missing; "
            "catalogs will only carry local metadata"
        )

    fastapi_app.state.catalog_service = build_catalog_service(settings, http_client)
    logger.info(
        "%s ready at http://%s:%s/configure",
        settings.app_name,
        settings.server_host,
        settings.server_port,
    )

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Marvel catalogs for Stremio enriched with TMDB, OMDb and RPDB",
        version=settings.addon_version,
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(GZipMiddleware)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    install_cache_headers(fastapi_app, settings.response_cache_seconds)

    register_routes(fastapi_app)
    return fastapi_app


def install_cache_headers(fastapi_app: FastAPI, max_age: int) -> None:
    header_value = f"public, max-age={max_age}"

    @fastapi_app.middleware("http")
    async def cache_control(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Cache-Control", header_value)
        return response


def get_catalog_service(app: FastAPI) -> CatalogService:
    service = getattr(app.state, "catalog_service", None)
    if not isinstance(service, CatalogService):
        raise RuntimeError("Catalog service not initialised")
    return service


def extract_rpdb_key(catalogs_param: str | None) -> str | None:
    """Return the RPDB key carried in a ``{catalogs}`` segment, if any."""

    _, rpdb_key = parse_catalog_selection(catalogs_param)
    return rpdb_key


def build_manifest(
    definitions: list[CatalogDefinition], *, custom: bool = False
) -> dict[str, Any]:
    manifest_id = f"{MANIFEST_ID}.custom" if custom else MANIFEST_ID
    name = f"{settings.app_name} Custom" if custom else settings.app_name
    description = (
        "Your personalized Marvel catalog! " if custom else "Watch the entire Marvel catalog! "
    ) + "MCU and X-Men (chronologically organized), Movies, Series, and Animations!"
    return {
        "id": manifest_id,
        "version": settings.addon_version,
        "name": name,
        "description": description,
        "logo": ADDON_LOGO,
        "background": ADDON_BACKGROUND,
        "catalogs": [definition.to_manifest_entry() for definition in definitions],
        "resources": ["catalog"],
        "types": sorted(CONTENT_TYPES),
        "idPrefixes": [LOCAL_ID_PREFIX],
        "behaviorHints": {"configurable": True},
    }


def register_routes(fastapi_app: FastAPI) -> None:
    async def _catalog_endpoint(
        content_type: str,
        catalog_id: str,
        genre: str | None,
        *,
        rpdb_key: str | None = None,
    ) -> JSONResponse:
        service = get_catalog_service(fastapi_app)
        logger.info(
            "Catalog requested - type: %s, id: %s, genre: %s, rpdb key: %s",
            content_type,
            catalog_id,
            genre or "default",
            mask_key(rpdb_key),
        )
        try:
            payload = await service.get_catalog_payload(catalog_id, genre, rpdb_key)
        except Exception:
            logger.exception("Catalog %s failed", catalog_id)
            payload = {"metas": []}
        return JSONResponse(payload)

    @fastapi_app.get("/health", response_class=PlainTextResponse)
    async def healthcheck() -> str:
        return "OK"

    @fastapi_app.get("/")
    async def root() -> RedirectResponse:
        return RedirectResponse(url="/configure")

    @fastapi_app.get("/configure", response_class=HTMLResponse)
    async def config_page() -> HTMLResponse:
        return HTMLResponse(render_config_page(settings))

    @fastapi_app.get("/catalog/{catalogs}/configure", response_class=HTMLResponse)
    async def config_page_with_selection(catalogs: str) -> HTMLResponse:
        return HTMLResponse(render_config_page(settings, catalogs_param=catalogs))

    @fastapi_app.get("/manifest.json")
    async def manifest() -> dict[str, Any]:
        logger.info("Default manifest requested")
        return build_manifest(list(CATALOGS))

    @fastapi_app.get("/catalog/{catalogs}/manifest.json")
    async def manifest_with_selection(catalogs: str) -> dict[str, Any]:
        selected, _ = parse_catalog_selection(catalogs)
        logger.info("Custom manifest requested - catalogs: %s", ", ".join(selected))
        return build_manifest(select_catalogs(selected), custom=True)

    @fastapi_app.get("/api/catalogs")
    async def catalog_info() -> list[dict[str, str]]:
        return [definition.to_info() for definition in CATALOGS]

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}.json")
    async def catalog(
        content_type: str, catalog_id: str, genre: str | None = None
    ) -> JSONResponse:
        return await _catalog_endpoint(content_type, catalog_id, genre)

    @fastapi_app.get("/catalog/{catalogs}/catalog/{content_type}/{catalog_id}.json")
    async def catalog_with_selection(
        catalogs: str, content_type: str, catalog_id: str, genre: str | None = None
    ) -> JSONResponse:
        return await _catalog_endpoint(
            content_type, catalog_id, genre, rpdb_key=extract_rpdb_key(catalogs)
        )

    @fastapi_app.get("/api/clear-cache")
    async def clear_cache() -> dict[str, str]:
        get_catalog_service(fastapi_app).clear_cache()
        return {"message": "Cache cleared successfully."}

    @fastapi_app.get("/api/validate-rpdb")
    async def validate_rpdb(key: str | None = None) -> JSONResponse:
        key = (key or "").strip()
        if not key:
            return JSONResponse(
                {"valid": False, "error": MISSING_RPDB_KEY_ERROR}, status_code=400
            )
        service = get_catalog_service(fastapi_app)
        if await service.validate_enrichment_key(key):
            return JSONResponse({"valid": True})
        return JSONResponse(
            {"valid": False, "error": INVALID_RPDB_KEY_ERROR}, status_code=400
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
