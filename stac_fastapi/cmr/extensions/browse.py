"""Browse extension."""

import logging
from typing import List, Type

import attr
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from stac_fastapi.cmr.core import CoreClient
from stac_fastapi.types.extension import ApiExtension

logger = logging.getLogger(__name__)


@attr.s
class BrowseExtension(ApiExtension):
    """Browse Extension.

    Adds a date partitioned catalog hierarchy below each collection, e.g.
    `/{provider_id}/collections/{collection_id}/2001/05/17`. Must be
    registered after the item routes so that `items` is never read as a date.
    """

    client: CoreClient = attr.ib(default=None)
    prefix: str = attr.ib(default="")
    conformance_classes: List[str] = attr.ib(default=attr.Factory(list))
    router: APIRouter = attr.ib(default=attr.Factory(APIRouter))
    response_class: Type[Response] = attr.ib(default=JSONResponse)

    def register(self, app: FastAPI) -> None:
        """Register the extension with a FastAPI application.

        Args:
            app: target FastAPI application.
        """
        self.router.add_api_route(
            path="/{provider_id}/collections/{collection_id}/{date_path:path}",
            endpoint=self.browse_catalog,
            methods=["GET"],
            response_class=self.response_class,
            summary="Browse Catalog",
            description="Year, month or day catalog of a collection.",
            tags=["Browse"],
        )
        app.include_router(self.router, prefix=self.prefix, tags=["Browse"])

    async def browse_catalog(
        self, provider_id: str, collection_id: str, date_path: str, request: Request
    ):
        """Get a browse catalog."""
        return await self.client.browse_catalog(
            provider_id, collection_id, date_path, request=request
        )
