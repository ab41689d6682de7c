from urllib.parse import parse_qsl

import httpx
import orjson
import pytest

from stac_fastapi.cmr.config import CLOUD_HOLDINGS_TAG, CmrSettings
from stac_fastapi.cmr.database_logic import (
    DatabaseLogic,
    cmr_collection_to_stac_id,
    stac_id_to_short_name_version,
)
from stac_fastapi.cmr.exceptions import TranslationError, UpstreamFault
from stac_fastapi.cmr.models.native import CmrParam, NativeQuery
from stac_fastapi.cmr.models.search import SearchParams


class Recorder:
    """httpx MockTransport handler answering with canned CMR responses."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes[request.url.path](request)


def _feed(entries, hits=None):
    def respond(request):
        headers = {"CMR-Hits": str(len(entries) if hits is None else hits)}
        return httpx.Response(200, json={"feed": {"entry": entries}}, headers=headers)

    return respond


def _database(routes, **settings) -> DatabaseLogic:
    settings = CmrSettings(cmr_url="https://cmr.test", **settings)
    recorder = Recorder(routes)
    client = httpx.AsyncClient(
        base_url=settings.cmr_url, transport=httpx.MockTransport(recorder)
    )
    database = DatabaseLogic(settings=settings, client=client)
    database.recorder = recorder
    return database


def test_stac_ids():
    assert cmr_collection_to_stac_id("MOD09GA", "061") == "MOD09GA.v061"
    assert cmr_collection_to_stac_id("MOD09GA", None) == "MOD09GA"
    assert stac_id_to_short_name_version("lislip.v4") == ("lislip", "4")
    assert stac_id_to_short_name_version("a.very.v1.v2") == ("a.very.v1", "2")
    assert stac_id_to_short_name_version("plain") == ("plain", None)


@pytest.mark.asyncio
async def test_find_collections(collection_record):
    database = _database({"/search/collections.json": _feed([collection_record])})

    records = await database.find_collections(
        NativeQuery.from_params({CmrParam.PROVIDER: "PROV1", CmrParam.PAGE_SIZE: 10})
    )

    assert records == [collection_record]
    request = database.recorder.requests[0]
    assert request.method == "GET"
    assert request.url.params["provider"] == "PROV1"
    assert request.url.params["page_size"] == "10"
    assert request.headers["Client-Id"] == "cmr-stac-api-proxy"


@pytest.mark.asyncio
async def test_find_granules_posts_form(granule_record):
    database = _database({"/search/granules.json": _feed([granule_record], hits=42)})

    result = await database.find_granules(
        NativeQuery().extend(CmrParam.COLLECTION_CONCEPT_ID, ["C1-PROV1", "C2-PROV1"])
    )

    assert result.granules == [granule_record]
    assert result.hits == 42
    request = database.recorder.requests[0]
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert parse_qsl(request.content.decode()) == [
        ("collection_concept_id", "C1-PROV1"),
        ("collection_concept_id", "C2-PROV1"),
    ]


@pytest.mark.asyncio
async def test_upstream_error_status():
    def fail(request):
        return httpx.Response(400, json={"errors": ["Parameter [foo] was not recognized."]})

    database = _database({"/search/collections.json": fail})

    with pytest.raises(UpstreamFault) as excinfo:
        await database.find_collections(NativeQuery())

    assert excinfo.value.status_code == 400
    assert "Parameter [foo] was not recognized." in str(excinfo.value)


@pytest.mark.asyncio
async def test_upstream_transport_error():
    def broken(request):
        raise httpx.ConnectError("connection refused", request=request)

    database = _database({"/search/granules.json": broken})

    with pytest.raises(UpstreamFault):
        await database.find_granules(NativeQuery())


@pytest.mark.asyncio
async def test_upstream_malformed_payload():
    database = _database(
        {"/search/collections.json": lambda request: httpx.Response(200, content=b"<html>")}
    )

    with pytest.raises(UpstreamFault):
        await database.find_collections(NativeQuery())


@pytest.mark.asyncio
async def test_stac_id_to_cmr_collection_id(collection_record):
    database = _database({"/search/collections.json": _feed([collection_record])})

    assert (
        await database.stac_id_to_cmr_collection_id("PROV1", "MOD09GA.v061")
        == "C1000000001-PROV1"
    )
    params = database.recorder.requests[0].url.params
    assert params["provider_short_name"] == "PROV1"
    assert params["short_name"] == "MOD09GA"
    assert params["version"] == "061"
    assert "tag_key" not in params


@pytest.mark.asyncio
async def test_stac_id_to_cmr_collection_id_missing():
    database = _database({"/search/collections.json": _feed([])})

    assert await database.stac_id_to_cmr_collection_id("PROV1", "MISSING.v1") is None


def test_cloud_collection_params():
    database = _database({}, cmr_stac_relative_root_url="/cloudstac")

    params = database.stac_collection_to_cmr_params("PROV1", "HLSL30.v2.0")

    assert params.get(CmrParam.TAG_KEY) == CLOUD_HOLDINGS_TAG
    assert params.get(CmrParam.VERSION) == "2.0"


@pytest.mark.asyncio
async def test_temporal_facets(load_test_data, granule_record):
    facets_payload = load_test_data("cmr_facets.json")

    def granules(request):
        if request.method == "GET":
            return httpx.Response(200, content=orjson.dumps(facets_payload))
        return _feed([granule_record])(request)

    database = _database({"/search/granules.json": granules})
    params = NativeQuery().with_param(CmrParam.COLLECTION_CONCEPT_ID, "C1000000001-PROV1")

    facets = await database.get_granule_temporal_facets(params)
    assert facets.years == ["2019", "2020"]
    assert facets.months == []

    facets = await database.get_granule_temporal_facets(params, "2020")
    assert facets.months == ["01", "02"]

    facets = await database.get_granule_temporal_facets(params, "2020", "01")
    assert facets.days == ["01", "02"]
    request = database.recorder.requests[-1]
    assert request.url.params["include_facets"] == "v2"
    assert request.url.params["temporal_facet[0][year]"] == "2020"
    assert request.url.params["temporal_facet[0][month]"] == "01"

    facets = await database.get_granule_temporal_facets(params, "2020", "01", "01")
    assert facets.itemids == ["G1000000001-PROV1"]
    granule_request = dict(parse_qsl(database.recorder.requests[-1].content.decode()))
    assert granule_request["temporal"] == "2020-01-01T00:00:00Z,2020-01-01T23:59:59Z"
    assert granule_request["page_size"] == "2000"


@pytest.mark.asyncio
async def test_temporal_facets_without_granules():
    database = _database(
        {
            "/search/granules.json": lambda request: httpx.Response(
                200, json={"feed": {"entry": [], "facets": {"title": "Browse Granules"}}}
            )
        }
    )

    facets = await database.get_granule_temporal_facets(NativeQuery(), "2020")

    assert facets.years == []
    assert facets.months == []


@pytest.mark.asyncio
async def test_get_providers(load_test_data):
    providers = load_test_data("cmr_providers.json")
    database = _database(
        {"/ingest/providers": lambda request: httpx.Response(200, json=providers)}
    )

    assert await database.get_providers() == providers


@pytest.mark.asyncio
async def test_convert_params_drops_bbox_elevation():
    database = _database({})
    params = SearchParams.parse({"bbox": [-10, -20, 0, 30, 40, 100]})

    query = await database.convert_params("PROV1", params)

    assert query.get(CmrParam.BOUNDING_BOX) == "-10,-20,30,40"


@pytest.mark.asyncio
async def test_convert_params_rejects_geometry_collection():
    database = _database({})
    params = SearchParams.parse(
        {
            "intersects": {
                "type": "GeometryCollection",
                "geometries": [{"type": "Point", "coordinates": [0, 0]}],
            }
        }
    )

    with pytest.raises(TranslationError):
        await database.convert_params("PROV1", params)
