"""FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.responses import JSONResponse

from stac_fastapi.api.errors import DEFAULT_STATUS_CODES, add_exception_handlers
from stac_fastapi.api.models import GeoJSONResponse
from stac_fastapi.cmr.base_database_logic import BaseDatabaseLogic
from stac_fastapi.cmr.config import CmrSettings
from stac_fastapi.cmr.core import CoreClient
from stac_fastapi.cmr.database_logic import DatabaseLogic
from stac_fastapi.cmr.exceptions import (
    CollectionConflictError,
    InvalidSortPropertyError,
    NotFoundError,
    ResolverExhaustionError,
    TranslationError,
    UpstreamFault,
)
from stac_fastapi.cmr.extensions.browse import BrowseExtension

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

STATUS_CODES = {
    **DEFAULT_STATUS_CODES,
    TranslationError: 400,
    InvalidSortPropertyError: 422,
    CollectionConflictError: 404,
    NotFoundError: 404,
    UpstreamFault: 502,
    ResolverExhaustionError: 500,
}


def create_router(client: CoreClient) -> APIRouter:
    """Create the core CMR-STAC routes.

    Args:
        client: The core client answering every route.
    """
    router = APIRouter()

    async def landing_page(request: Request):
        return await client.landing_page(request=request)

    async def conformance(request: Request):
        return await client.conformance(request=request)

    async def provider_catalog(provider_id: str, request: Request):
        return await client.provider_catalog(provider_id, request=request)

    async def all_collections(provider_id: str, request: Request):
        return await client.all_collections(provider_id, request=request)

    async def get_collection(provider_id: str, collection_id: str, request: Request):
        return await client.get_collection(provider_id, collection_id, request=request)

    async def item_collection(provider_id: str, collection_id: str, request: Request):
        return await client.item_collection(provider_id, collection_id, request=request)

    async def get_item(
        provider_id: str, collection_id: str, item_id: str, request: Request
    ):
        return await client.get_item(provider_id, collection_id, item_id, request=request)

    async def get_search(provider_id: str, request: Request):
        return await client.get_search(provider_id, request=request)

    async def post_search(
        provider_id: str,
        request: Request,
        search_request: Optional[Dict[str, Any]] = Body(default=None),
    ):
        return await client.post_search(
            provider_id, search_request or {}, request=request
        )

    routes = [
        ("/", landing_page, ["GET"], JSONResponse, "Landing Page"),
        ("/conformance", conformance, ["GET"], JSONResponse, "Conformance Classes"),
        ("/{provider_id}", provider_catalog, ["GET"], JSONResponse, "Provider Catalog"),
        (
            "/{provider_id}/collections",
            all_collections,
            ["GET"],
            JSONResponse,
            "Get Collections",
        ),
        (
            "/{provider_id}/collections/{collection_id}",
            get_collection,
            ["GET"],
            JSONResponse,
            "Get Collection",
        ),
        (
            "/{provider_id}/collections/{collection_id}/items",
            item_collection,
            ["GET"],
            GeoJSONResponse,
            "Get ItemCollection",
        ),
        (
            "/{provider_id}/collections/{collection_id}/items/{item_id}",
            get_item,
            ["GET"],
            GeoJSONResponse,
            "Get Item",
        ),
        ("/{provider_id}/search", get_search, ["GET"], GeoJSONResponse, "Search"),
        ("/{provider_id}/search", post_search, ["POST"], GeoJSONResponse, "Search"),
    ]
    for path, endpoint, methods, response_class, summary in routes:
        router.add_api_route(
            path=path,
            endpoint=endpoint,
            methods=methods,
            response_class=response_class,
            summary=summary,
        )
    return router


def create_app(
    settings: Optional[CmrSettings] = None,
    database: Optional[BaseDatabaseLogic] = None,
) -> FastAPI:
    """Create the CMR-STAC application.

    Args:
        settings: API settings, read from the environment when not given.
        database: CMR search client, an httpx backed `DatabaseLogic` when not given.
    """
    settings = settings or CmrSettings()
    database = database or DatabaseLogic(settings=settings)
    client = CoreClient(database=database, settings=settings)
    prefix = settings.cmr_stac_relative_root_url.rstrip("/")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Close the CMR client on shutdown."""
        yield
        if isinstance(database, DatabaseLogic):
            await database.close()

    app = FastAPI(
        title=settings.root_name,
        description="STAC API over NASA's Common Metadata Repository",
        openapi_url=settings.openapi_url,
        docs_url=settings.docs_url,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.client = client

    app.include_router(create_router(client), prefix=prefix)

    if settings.browse_template:
        logger.info(f"Browse catalogs enabled for [{settings.browse_path}]")
        BrowseExtension(client=client, prefix=prefix).register(app)

    add_exception_handlers(app, STATUS_CODES)
    return app


app = create_app()


def run() -> None:
    """Run app from command line using uvicorn if available."""
    try:
        import uvicorn

        settings = app.state.settings
        uvicorn.run(
            "stac_fastapi.cmr.app:app",
            host=settings.app_host,
            port=settings.app_port,
            log_level="info",
            reload=settings.reload,
        )
    except ImportError:
        raise RuntimeError("Uvicorn must be installed in order to use command")


if __name__ == "__main__":
    run()
