"""Database logic."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import attr
import httpx
import orjson
from geojson_pydantic.geometries import parse_geometry_obj
from overrides import overrides
from pydantic import ValidationError

from stac_fastapi.cmr.base_database_logic import BaseDatabaseLogic
from stac_fastapi.cmr.config import CLOUD_HOLDINGS_TAG, CmrSettings
from stac_fastapi.cmr.datetime_utils import day_range, format_temporal_range
from stac_fastapi.cmr.exceptions import TranslationError, UpstreamFault
from stac_fastapi.cmr.extensions.query import cloud_cover_range
from stac_fastapi.cmr.models.native import (
    CmrParam,
    GranuleSearchResult,
    NativeQuery,
    TemporalFacets,
    format_number,
)
from stac_fastapi.cmr.models.search import SearchParams

logger = logging.getLogger(__name__)

VERSION_SEPARATOR = ".v"
FACET_PAGE_SIZE = 2000
FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def cmr_collection_to_stac_id(short_name: str, version: Optional[str]) -> str:
    """Build the STAC collection id, `<short_name>.v<version>`."""
    if not version:
        return short_name
    return f"{short_name}{VERSION_SEPARATOR}{version}"


def stac_id_to_short_name_version(collection_id: str) -> Tuple[str, Optional[str]]:
    """Split a STAC collection id back into CMR short name and version."""
    if VERSION_SEPARATOR not in collection_id:
        return collection_id, None
    short_name, version = collection_id.rsplit(VERSION_SEPARATOR, 1)
    return short_name, version


def _positions(coordinates) -> str:
    return ",".join(format_number(c) for position in coordinates for c in position[:2])


def intersects_to_cmr(intersects: Dict[str, Any]) -> NativeQuery:
    """Convert a GeoJSON geometry into CMR spatial parameters.

    CMR expects `lon,lat` sequences. Multi geometries repeat the parameter and
    ask CMR to OR the shapes together.

    Raises:
        TranslationError: If the geometry is invalid or of an unsupported type.
    """
    try:
        geometry = parse_geometry_obj(intersects)
    except (ValidationError, ValueError) as e:
        raise TranslationError(f"Invalid intersects geometry: {e}")

    query = NativeQuery()
    kind = geometry.type
    if kind == "Point":
        return query.with_param(CmrParam.POINT, _positions([geometry.coordinates]))
    if kind == "LineString":
        return query.with_param(CmrParam.LINE, _positions(geometry.coordinates))
    if kind == "Polygon":
        return query.with_param(CmrParam.POLYGON, _positions(geometry.coordinates[0]))
    if kind == "MultiPoint":
        param = CmrParam.POINT
        values = [_positions([point]) for point in geometry.coordinates]
    elif kind == "MultiLineString":
        param = CmrParam.LINE
        values = [_positions(line) for line in geometry.coordinates]
    elif kind == "MultiPolygon":
        param = CmrParam.POLYGON
        values = [_positions(polygon[0]) for polygon in geometry.coordinates]
    else:
        raise TranslationError(f"Unsupported intersects geometry type [{kind}]")

    return query.extend(f"{param.value}[]", values).with_param(
        f"options[{param.value}][or]", True
    )


def _facet_children(node: Optional[Dict[str, Any]], title: str) -> List[Dict[str, Any]]:
    """Children of the facet group named `title` directly below `node`."""
    for child in (node or {}).get("children", []) or []:
        if child.get("title") == title:
            return child.get("children", []) or []
    return []


def _find_facet(nodes: List[Dict[str, Any]], title: str) -> Optional[Dict[str, Any]]:
    for node in nodes:
        if node.get("title") == title:
            return node
    return None


def _cmr_errors(response: httpx.Response) -> str:
    try:
        errors = orjson.loads(response.content).get("errors")
    except (orjson.JSONDecodeError, AttributeError):
        errors = None
    return "; ".join(map(str, errors)) if errors else response.reason_phrase


@attr.s
class DatabaseLogic(BaseDatabaseLogic):
    """CMR search client.

    Attributes:
        settings (CmrSettings): Where CMR lives and how the API is mounted.
        client (httpx.AsyncClient): HTTP client for CMR, created from the settings when not given.
    """

    settings: CmrSettings = attr.ib(factory=CmrSettings)
    client: Optional[httpx.AsyncClient] = attr.ib(default=None)

    def __attrs_post_init__(self):
        """Create the CMR client."""
        if self.client is None:
            self.client = self.settings.create_client

    async def close(self) -> None:
        """Close the CMR client."""
        await self.client.aclose()

    async def _request(
        self, method: str, path: str, params: Optional[NativeQuery] = None
    ) -> httpx.Response:
        pairs = params.to_params() if params is not None else []
        try:
            if method == "POST":
                response = await self.client.post(
                    path, content=urlencode(pairs), headers=FORM_HEADERS
                )
            else:
                response = await self.client.get(path, params=pairs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            msg = f"CMR request failed: {_cmr_errors(e.response)}"
            logger.error(f"{msg} ({method} {e.request.url})")
            raise UpstreamFault(
                msg, url=str(e.request.url), status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"CMR request failed: {e} ({method} {path})")
            raise UpstreamFault(f"CMR request failed: {e}", url=path) from e
        return response

    @staticmethod
    def _load(response: httpx.Response) -> Any:
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise UpstreamFault(
                f"CMR returned a malformed response: {e}", url=str(response.url)
            ) from e

    def _entries(self, response: httpx.Response) -> List[Dict[str, Any]]:
        data = self._load(response)
        try:
            entries = data["feed"]["entry"]
        except (KeyError, TypeError) as e:
            raise UpstreamFault(
                f"CMR response has no feed entries: {e}", url=str(response.url)
            ) from e
        if not isinstance(entries, list):
            raise UpstreamFault("CMR feed entries are not a list", url=str(response.url))
        return entries

    @overrides
    async def find_collections(self, params: NativeQuery) -> List[Dict[str, Any]]:
        """Search CMR collections with `GET search/collections.json`."""
        response = await self._request("GET", "/search/collections.json", params)
        return self._entries(response)

    @overrides
    async def find_granules(self, params: NativeQuery) -> GranuleSearchResult:
        """Search CMR granules.

        Granule searches are POSTed form encoded so that long lists of
        collection concept ids do not overflow the url.
        """
        response = await self._request("POST", "/search/granules.json", params)
        granules = self._entries(response)
        try:
            hits = int(response.headers.get("CMR-Hits", len(granules)))
        except ValueError:
            raise UpstreamFault(
                "CMR returned a malformed hit count", url=str(response.url)
            )
        return GranuleSearchResult(granules=granules, hits=hits)

    @overrides
    def stac_collection_to_cmr_params(
        self, provider_id: str, collection_id: str
    ) -> NativeQuery:
        """Native parameters selecting `<short_name>.v<version>` for a provider."""
        short_name, version = stac_id_to_short_name_version(collection_id)
        query = NativeQuery.from_params(
            {
                CmrParam.PROVIDER_SHORT_NAME: provider_id,
                CmrParam.SHORT_NAME: short_name,
                CmrParam.VERSION: version,
            }
        )
        if self.settings.cloud_only:
            query = query.with_param(CmrParam.TAG_KEY, CLOUD_HOLDINGS_TAG)
        return query

    @overrides
    async def stac_id_to_cmr_collection_id(
        self, provider_id: str, collection_id: str
    ) -> Optional[str]:
        """Look up the concept id of a STAC collection id."""
        params = self.stac_collection_to_cmr_params(provider_id, collection_id)
        collections = await self.find_collections(params)
        if not collections:
            return None
        return collections[0].get("id")

    @overrides
    async def get_granule_temporal_facets(
        self,
        params: NativeQuery,
        year: Optional[str] = None,
        month: Optional[str] = None,
        day: Optional[str] = None,
    ) -> TemporalFacets:
        """Read the v2 temporal facets of a granule search.

        Each given level of the date scope narrows the facets with a
        `temporal_facet[0][...]` parameter. When a day is given, the granule
        ids of that day are listed as well.
        """
        query = params.replace(CmrParam.INCLUDE_FACETS, "v2").replace(
            CmrParam.PAGE_SIZE, 0
        )
        for level, value in (("year", year), ("month", month), ("day", day)):
            if value:
                query = query.replace(f"temporal_facet[0][{level}]", value)

        response = await self._request("GET", "/search/granules.json", query)
        data = self._load(response)
        root = (data.get("feed") or {}).get("facets") or {}
        temporal = _find_facet(root.get("children", []) or [], "Temporal")

        year_nodes = _facet_children(temporal, "Year")
        years = [node["title"] for node in year_nodes]
        months: List[str] = []
        days: List[str] = []
        itemids: List[str] = []

        if year:
            month_nodes = _facet_children(_find_facet(year_nodes, year), "Month")
            months = [node["title"] for node in month_nodes]
            if month:
                day_nodes = _facet_children(_find_facet(month_nodes, month), "Day")
                days = [node["title"] for node in day_nodes]

        if year and month and day:
            granule_query = params.replace(
                CmrParam.TEMPORAL, day_range(year, month, day)
            ).replace(CmrParam.PAGE_SIZE, FACET_PAGE_SIZE)
            result = await self.find_granules(granule_query)
            itemids = [granule["id"] for granule in result.granules]

        return TemporalFacets(years=years, months=months, days=days, itemids=itemids)

    @overrides
    async def convert_params(
        self, provider_id: str, params: SearchParams
    ) -> NativeQuery:
        """Map STAC search parameters onto CMR parameters.

        Unknown collection ids are dropped, so a caller can tell that every
        requested collection was filtered out by the absence of
        `collection_concept_id`.
        """
        query = NativeQuery().with_param(CmrParam.PROVIDER, provider_id)

        if params.bbox:
            bbox = params.bbox
            if len(bbox) == 6:
                bbox = [bbox[0], bbox[1], bbox[3], bbox[4]]
            query = query.with_param(
                CmrParam.BOUNDING_BOX, ",".join(format_number(v) for v in bbox)
            )

        if params.datetime:
            query = query.with_param(
                CmrParam.TEMPORAL, format_temporal_range(params.datetime)
            )

        if params.intersects:
            query = query.merge(intersects_to_cmr(params.intersects))

        if params.collections is not None:
            concept_ids = await asyncio.gather(
                *(
                    self.stac_id_to_cmr_collection_id(provider_id, collection_id)
                    for collection_id in params.collections
                )
            )
            for collection_id, concept_id in zip(params.collections, concept_ids):
                if concept_id is None:
                    logger.info(
                        f"Dropping unknown collection [{collection_id}] for provider [{provider_id}]"
                    )
            query = query.extend(
                CmrParam.COLLECTION_CONCEPT_ID,
                [concept_id for concept_id in concept_ids if concept_id],
            )

        if params.ids:
            query = query.extend(CmrParam.CONCEPT_ID, params.ids)

        if params.limit:
            query = query.with_param(CmrParam.PAGE_SIZE, params.limit)

        if params.page:
            query = query.with_param(CmrParam.PAGE_NUM, params.page)

        cloud_cover = cloud_cover_range(params.query)
        if cloud_cover:
            query = query.with_param(CmrParam.CLOUD_COVER, cloud_cover)

        for name, value in params.extension_params.items():
            if CmrParam.is_known(name) and name not in query:
                query = query.with_param(name, value)
            else:
                logger.debug("Not forwarding parameter %s to CMR", name)

        return query

    @overrides
    async def get_providers(self) -> List[Dict[str, Any]]:
        """List CMR providers with `GET ingest/providers`."""
        response = await self._request("GET", "/ingest/providers")
        providers = self._load(response)
        if not isinstance(providers, list):
            raise UpstreamFault(
                "CMR provider listing is not a list", url=str(response.url)
            )
        return providers
