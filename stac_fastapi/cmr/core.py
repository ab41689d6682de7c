"""Core client."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import attr
from fastapi import Request
from stac_pydantic.links import Relations
from stac_pydantic.shared import MimeTypes

from stac_fastapi.cmr.base_database_logic import BaseDatabaseLogic
from stac_fastapi.cmr.browse import BrowseCatalogBuilder
from stac_fastapi.cmr.cloud import CloudHoldingResolver
from stac_fastapi.cmr.config import CLOUD_HOLDINGS_TAG, CmrSettings
from stac_fastapi.cmr.exceptions import NotFoundError
from stac_fastapi.cmr.extensions.context import apply_context
from stac_fastapi.cmr.extensions.fields import filter_documents
from stac_fastapi.cmr.models.links import PageContext, build_links, create_link
from stac_fastapi.cmr.models.native import CmrParam, GranuleSearchResult, NativeQuery
from stac_fastapi.cmr.models.search import SearchParams
from stac_fastapi.cmr.serializers import CollectionSerializer, ItemSerializer
from stac_fastapi.cmr.translation import ParameterTranslator
from stac_fastapi.extensions.core.fields import FieldsConformanceClasses
from stac_fastapi.extensions.core.query import QueryConformanceClasses
from stac_fastapi.extensions.core.sort import SortConformanceClasses
from stac_fastapi.types import stac as stac_types
from stac_fastapi.types.conformance import BASE_CONFORMANCE_CLASSES

logger = logging.getLogger(__name__)

CONTEXT_CONFORMANCE_CLASS = "https://api.stacspec.org/v1.0.0-rc.1/item-search#context"

# Concept ids per collection lookup, keeping the GET query string short.
CONCEPT_ID_CHUNK_SIZE = 100


def _conformance_classes() -> List[str]:
    return [
        *BASE_CONFORMANCE_CLASSES,
        FieldsConformanceClasses.ITEMS.value,
        SortConformanceClasses.ITEMS.value,
        QueryConformanceClasses.ITEMS.value,
        CONTEXT_CONFORMANCE_CLASS,
    ]


def query_params(request: Request) -> Dict[str, Any]:
    """Request query parameters, repeated names collapse into lists."""
    collected: Dict[str, List[str]] = {}
    for key, value in request.query_params.multi_items():
        collected.setdefault(key, []).append(value)
    return {k: v[0] if len(v) == 1 else v for k, v in collected.items()}


@attr.s
class CoreClient:
    """Client for the CMR-STAC endpoints.

    It uses a `BaseDatabaseLogic` implementation to talk to CMR, a
    `ParameterTranslator` to build CMR queries, and `ItemSerializer` and
    `CollectionSerializer` to turn CMR records into STAC documents.

    Attributes:
        database (BaseDatabaseLogic): The CMR search client.
        settings (CmrSettings): API settings.
        conformance_classes (List[str]): Conformance classes advertised by the API.
    """

    database: BaseDatabaseLogic = attr.ib()
    settings: CmrSettings = attr.ib(factory=CmrSettings)
    conformance_classes: List[str] = attr.ib(factory=_conformance_classes)

    translator: ParameterTranslator = attr.ib(init=False)
    resolver: CloudHoldingResolver = attr.ib(init=False)
    collection_serializer: CollectionSerializer = attr.ib(init=False)
    item_serializer: ItemSerializer = attr.ib(init=False)
    browse_builder: Optional[BrowseCatalogBuilder] = attr.ib(init=False)

    def __attrs_post_init__(self):
        """Wire the request helpers to the database and settings."""
        self.translator = ParameterTranslator(self.database)
        self.resolver = CloudHoldingResolver(self.database)
        self.collection_serializer = CollectionSerializer(self.settings)
        self.item_serializer = ItemSerializer(self.settings)
        template = self.settings.browse_template
        self.browse_builder = (
            BrowseCatalogBuilder(template, self.settings.stac_version)
            if template
            else None
        )

    def _context(
        self, request: Request, body: Optional[Dict[str, Any]] = None
    ) -> PageContext:
        logger.info(f"{request.method} {request.url.path}")
        return PageContext.from_request(
            request,
            relative_root=self.settings.cmr_stac_relative_root_url,
            body=body,
            default_limit=self.settings.stac_item_limit,
        )

    def _catalog(
        self, id: str, title: str, description: str, links: List[Dict[str, Any]]
    ) -> stac_types.Catalog:
        return stac_types.Catalog(
            type="Catalog",
            stac_version=self.settings.stac_version,
            id=id,
            title=title,
            description=description,
            links=links,
        )

    async def landing_page(self, request: Request) -> stac_types.Catalog:
        """Root catalog, linking one child catalog per CMR provider.

        Called with `GET /`.
        """
        context = self._context(request)
        providers = await self.database.get_providers()
        links = [
            create_link(Relations.self.value, context.app_url(), self.settings.root_name),
            create_link(Relations.root.value, context.app_url(), self.settings.root_name),
            create_link(
                Relations.conformance.value,
                context.app_url("conformance"),
                "STAC/WFS3 conformance classes implemented by this server",
            ),
        ]
        for provider in providers:
            provider_id = provider.get("provider-id") or provider.get("short-name")
            if not provider_id:
                continue
            links.append(
                create_link(
                    Relations.child.value,
                    context.app_url(provider_id),
                    provider.get("short-name", provider_id),
                )
            )

        return self._catalog(
            id="cloudstac" if self.settings.cloud_only else "stac",
            title=self.settings.root_name,
            description=(
                "This is the landing page for CMR-STAC. "
                "Each provider link contains a STAC endpoint."
            ),
            links=links,
        )

    async def conformance(self, request: Request) -> stac_types.Conformance:
        """Conformance classes.

        Called with `GET /conformance`.
        """
        return stac_types.Conformance(conformsTo=self.conformance_classes)

    async def provider_catalog(
        self, provider_id: str, request: Request
    ) -> stac_types.Catalog:
        """Catalog of one provider.

        Called with `GET /{provider_id}`.
        """
        context = self._context(request)
        base = f"/{provider_id}"
        links = [
            create_link(Relations.self.value, context.app_url(base), "Provider catalog"),
            create_link(Relations.root.value, context.app_url(), self.settings.root_name),
            create_link("collections", context.app_url(f"{base}/collections"), "Provider Collections"),
            create_link(
                Relations.search.value,
                context.app_url(f"{base}/search"),
                "Provider Item Search",
                MimeTypes.geojson.value,
            ),
            create_link(
                Relations.conformance.value,
                context.app_url("conformance"),
                "STAC/WFS3 conformance classes implemented by this server",
            ),
        ]
        return self._catalog(
            id=provider_id,
            title=provider_id,
            description=f"Root catalog for {provider_id}",
            links=links,
        )

    async def all_collections(
        self, provider_id: str, request: Request
    ) -> Dict[str, Any]:
        """Collections of one provider.

        Called with `GET /{provider_id}/collections`. Cloud mode only lists
        collections hosted on cloud storage.
        """
        context = self._context(request)
        params = self.translator.prepare(query_params(request))
        query = await self.database.convert_params(provider_id, params)
        query = query.replace(CmrParam.PAGE_SIZE, context.limit)

        if self.settings.cloud_only:
            query = query.replace(CmrParam.TAG_KEY, CLOUD_HOLDINGS_TAG)
            description = f"All cloud holding collections provided by {provider_id}"
        else:
            description = f"All collections provided by {provider_id}"

        records = await self.database.find_collections(query)
        collections = [
            self.collection_serializer.cmr_to_stac(record, context, provider_id)
            for record in records
        ]
        return {
            "id": provider_id,
            "type": "Catalog",
            "stac_version": self.settings.stac_version,
            "description": description,
            "license": "not-provided",
            "links": build_links(
                context,
                result_count=len(collections),
                page_size=context.limit,
                self_title=description,
                root_title=self.settings.root_name,
            ),
            "collections": collections,
        }

    async def get_collection(
        self, provider_id: str, collection_id: str, request: Request
    ) -> stac_types.Collection:
        """One collection, with a browse child link per year when browsing is on.

        Called with `GET /{provider_id}/collections/{collection_id}`.

        Raises:
            NotFoundError: If CMR has no such collection.
        """
        context = self._context(request)
        params = self.database.stac_collection_to_cmr_params(provider_id, collection_id)
        records = await self.database.find_collections(params)
        if not records:
            raise NotFoundError.collection(provider_id, collection_id)

        collection = self.collection_serializer.cmr_to_stac(
            records[0], context, provider_id
        )
        if self.browse_builder:
            facets = await self.database.get_granule_temporal_facets(
                NativeQuery().with_param(CmrParam.COLLECTION_CONCEPT_ID, records[0]["id"])
            )
            path = f"/{provider_id}/collections/{collection_id}"
            collection["links"] = collection["links"] + [
                create_link(
                    Relations.child.value,
                    context.app_url(f"{path}/{year}"),
                    f"{year} catalog",
                )
                for year in facets.years
            ]
        return collection

    async def _find_granules(
        self,
        provider_id: str,
        params: SearchParams,
        query: NativeQuery,
        collection_id: Optional[str],
    ) -> GranuleSearchResult:
        collections_requested = collection_id is not None or params.collections is not None
        if collections_requested and CmrParam.COLLECTION_CONCEPT_ID not in query:
            logger.info("None of the requested collections exist, skipping granule search")
            return GranuleSearchResult()

        if self.settings.cloud_only:
            requested = query.get_all(CmrParam.COLLECTION_CONCEPT_ID)
            cloud_ids = await self.resolver.resolve(provider_id, requested or None)
            if requested and not cloud_ids:
                logger.info("None of the requested collections are cloud holdings")
                return GranuleSearchResult()
            query = query.without(CmrParam.COLLECTION_CONCEPT_ID).extend(
                CmrParam.COLLECTION_CONCEPT_ID, cloud_ids
            )

        return await self.database.find_granules(query)

    async def _stac_collection_ids(self, granules: List[Dict[str, Any]]) -> Dict[str, str]:
        concept_ids = list(
            dict.fromkeys(
                g["collection_concept_id"] for g in granules if g.get("collection_concept_id")
            )
        )
        chunks = [
            concept_ids[i : i + CONCEPT_ID_CHUNK_SIZE]
            for i in range(0, len(concept_ids), CONCEPT_ID_CHUNK_SIZE)
        ]
        pages = await asyncio.gather(
            *(
                self.database.find_collections(
                    NativeQuery()
                    .extend(CmrParam.CONCEPT_ID, chunk)
                    .with_param(CmrParam.PAGE_SIZE, len(chunk))
                )
                for chunk in chunks
            )
        )
        return {
            record["id"]: self.collection_serializer.stac_id(record)
            for records in pages
            for record in records
        }

    async def _search(
        self,
        provider_id: str,
        raw: Dict[str, Any],
        request: Request,
        collection_id: Optional[str] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> stac_types.ItemCollection:
        context = self._context(request, body)
        params = self.translator.prepare(raw)
        query = await self.translator.translate(provider_id, params, collection_id)
        query = query.replace(CmrParam.PAGE_SIZE, context.limit)

        result = await self._find_granules(provider_id, params, query, collection_id)

        if collection_id is not None:
            collection_ids: Dict[str, str] = {}
        else:
            collection_ids = await self._stac_collection_ids(result.granules)

        features = [
            self.item_serializer.cmr_to_stac(
                granule,
                context,
                provider_id,
                collection_id=collection_id
                or collection_ids.get(granule.get("collection_concept_id")),
            )
            for granule in result.granules
        ]
        feature_collection = {
            "type": "FeatureCollection",
            "stac_version": self.settings.stac_version,
            "features": features,
            "links": build_links(
                context,
                result_count=len(features),
                page_size=context.limit,
                media_type=MimeTypes.geojson.value,
                root_title=self.settings.root_name,
            ),
        }

        echo = params.echo()
        echo.pop("fields", None)
        feature_collection = apply_context(
            feature_collection, context.page, context.limit, result.hits, echo
        )
        feature_collection["features"] = filter_documents(
            features, params.fields.model_dump() if params.fields else None
        )
        return feature_collection

    async def item_collection(
        self, provider_id: str, collection_id: str, request: Request
    ) -> stac_types.ItemCollection:
        """Items of one collection.

        Called with `GET /{provider_id}/collections/{collection_id}/items`.
        """
        return await self._search(
            provider_id, query_params(request), request, collection_id=collection_id
        )

    async def get_search(
        self, provider_id: str, request: Request
    ) -> stac_types.ItemCollection:
        """Item search with query parameters.

        Called with `GET /{provider_id}/search`.
        """
        return await self._search(provider_id, query_params(request), request)

    async def post_search(
        self, provider_id: str, search_request: Dict[str, Any], request: Request
    ) -> stac_types.ItemCollection:
        """Item search with a JSON body.

        Called with `POST /{provider_id}/search`.
        """
        return await self._search(
            provider_id, search_request, request, body=search_request
        )

    async def get_item(
        self, provider_id: str, collection_id: str, item_id: str, request: Request
    ) -> stac_types.Item:
        """One granule of a collection.

        Called with `GET /{provider_id}/collections/{collection_id}/items/{item_id}`.

        Raises:
            NotFoundError: If the collection or the granule does not exist.
        """
        context = self._context(request)
        concept_id = await self.database.stac_id_to_cmr_collection_id(
            provider_id, collection_id
        )
        if not concept_id:
            raise NotFoundError.collection(provider_id, collection_id)

        result = await self.database.find_granules(
            NativeQuery.from_params(
                {
                    CmrParam.CONCEPT_ID: item_id,
                    CmrParam.COLLECTION_CONCEPT_ID: concept_id,
                }
            )
        )
        if not result.granules:
            raise NotFoundError.item(provider_id, collection_id, item_id)
        return self.item_serializer.cmr_to_stac(
            result.granules[0], context, provider_id, collection_id=collection_id
        )

    async def browse_catalog(
        self, provider_id: str, collection_id: str, date_path: str, request: Request
    ) -> Dict[str, Any]:
        """Year, month or day catalog of a collection.

        Called with `GET /{provider_id}/collections/{collection_id}/{date_path}`.

        Raises:
            NotFoundError: If browsing is off or the collection does not exist.
            TranslationError: If the date path does not fit the browse template.
        """
        if self.browse_builder is None:
            raise NotFoundError("Browse catalogs are not enabled")

        context = self._context(request)
        segments = date_path.strip("/").split("/")
        browse = self.browse_builder.browse_params(segments)

        concept_id = await self.database.stac_id_to_cmr_collection_id(
            provider_id, collection_id
        )
        if not concept_id:
            raise NotFoundError.collection(provider_id, collection_id)

        facets = await self.database.get_granule_temporal_facets(
            NativeQuery().with_param(CmrParam.COLLECTION_CONCEPT_ID, concept_id),
            year=browse.get("year"),
            month=browse.get("month"),
            day=browse.get("day"),
        )
        catalog = self.browse_builder.build_catalog(
            provider_id, collection_id, segments, facets, context
        )
        return catalog.model_dump(exclude_none=True)
