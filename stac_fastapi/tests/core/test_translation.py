import pytest

from stac_fastapi.cmr.exceptions import (
    CollectionConflictError,
    InvalidSortPropertyError,
    NotFoundError,
    TranslationError,
)
from stac_fastapi.cmr.models.native import CmrParam
from stac_fastapi.cmr.translation import ParameterTranslator


@pytest.fixture
def translator(database):
    return ParameterTranslator(database)


@pytest.mark.asyncio
async def test_translate_core_parameters(translator):
    params = translator.prepare(
        {
            "bbox": "-10,-20,30,40",
            "datetime": "2020-01-01T00:00:00Z/2020-02-01T00:00:00Z",
            "ids": "G1,G2",
            "limit": "25",
            "page": "3",
        }
    )
    query = await translator.translate("PROV1", params)

    assert query.get(CmrParam.PROVIDER) == "PROV1"
    assert query.get(CmrParam.BOUNDING_BOX) == "-10,-20,30,40"
    assert query.get(CmrParam.TEMPORAL) == "2020-01-01T00:00:00Z,2020-02-01T00:00:00Z"
    assert query.get_all(CmrParam.CONCEPT_ID) == ["G1", "G2"]
    assert query.get(CmrParam.PAGE_SIZE) == 25
    assert query.get(CmrParam.PAGE_NUM) == 3


@pytest.mark.asyncio
async def test_translate_resolves_collections(translator):
    params = translator.prepare({"collections": ["MOD09GA.v061", "UNKNOWN.v1"]})
    query = await translator.translate("PROV1", params)

    assert query.get_all(CmrParam.COLLECTION_CONCEPT_ID) == ["C1000000001-PROV1"]


@pytest.mark.asyncio
async def test_translate_all_collections_unknown(translator):
    params = translator.prepare({"collections": "UNKNOWN.v1"})
    query = await translator.translate("PROV1", params)

    assert CmrParam.COLLECTION_CONCEPT_ID not in query


@pytest.mark.asyncio
async def test_translate_path_collection(translator):
    params = translator.prepare({})
    query = await translator.translate("PROV1", params, "MOD09GA.v061")

    assert query.get_all(CmrParam.COLLECTION_CONCEPT_ID) == ["C1000000001-PROV1"]
    # the prepared parameters are left untouched
    assert params.collections is None


@pytest.mark.asyncio
async def test_translate_path_collection_conflict(translator):
    params = translator.prepare({"collections": "MOD09GA.v061"})
    with pytest.raises(CollectionConflictError) as excinfo:
        await translator.translate("PROV1", params, "MOD09GA.v061")

    assert "Can not have collections param" in str(excinfo.value)


@pytest.mark.asyncio
async def test_translate_path_collection_not_found(translator):
    params = translator.prepare({})
    with pytest.raises(NotFoundError):
        await translator.translate("PROV1", params, "UNKNOWN.v1")


@pytest.mark.asyncio
async def test_translate_sortby(translator):
    params = translator.prepare({"sortby": "-properties.datetime,+id"})
    query = await translator.translate("PROV1", params)

    assert query.get_all(CmrParam.SORT_KEY) == ["-start_date", "readable_granule_name"]


@pytest.mark.asyncio
async def test_translate_invalid_sort_property(translator):
    params = translator.prepare({"sortby": [{"field": "properties.platform"}]})
    with pytest.raises(InvalidSortPropertyError):
        await translator.translate("PROV1", params)


@pytest.mark.asyncio
async def test_translate_cloud_cover_query(translator):
    params = translator.prepare({"query": '{"eo:cloud_cover": {"gte": 5, "lt": 50}}'})
    query = await translator.translate("PROV1", params)

    assert query.get(CmrParam.CLOUD_COVER) == "5,50"


@pytest.mark.asyncio
async def test_translate_intersects_polygon(translator):
    params = translator.prepare(
        {
            "intersects": {
                "type": "Polygon",
                "coordinates": [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]],
            }
        }
    )
    query = await translator.translate("PROV1", params)

    assert query.get(CmrParam.POLYGON) == "0,0,10,0,10,10,0,10,0,0"


@pytest.mark.asyncio
async def test_translate_intersects_multipoint(translator):
    params = translator.prepare(
        {"intersects": {"type": "MultiPoint", "coordinates": [[1, 2], [3, 4]]}}
    )
    query = await translator.translate("PROV1", params)

    assert query.get_all("point[]") == ["1,2", "3,4"]
    assert query.get("options[point][or]") is True


@pytest.mark.asyncio
async def test_translate_passes_known_cmr_parameters(translator):
    params = translator.prepare({"day_night_flag": "DAY", "not_a_cmr_param": "x"})
    query = await translator.translate("PROV1", params)

    assert query.get(CmrParam.DAY_NIGHT_FLAG) == "DAY"
    assert "not_a_cmr_param" not in query


@pytest.mark.asyncio
async def test_translate_rejects_invalid_datetime(translator):
    params = translator.prepare({"datetime": "not-a-date"})
    with pytest.raises(TranslationError):
        await translator.translate("PROV1", params)


def test_prepare_rejects_invalid_bbox(translator):
    with pytest.raises(TranslationError):
        translator.prepare({"bbox": "1,2,3"})


@pytest.mark.asyncio
async def test_translate_keeps_coordinate_precision(translator):
    params = translator.prepare({"bbox": "-122.4194155,37.7749295,-122.3,37.81234567"})
    query = await translator.translate("PROV1", params)

    assert query.get(CmrParam.BOUNDING_BOX) == "-122.4194155,37.7749295,-122.3,37.81234567"


@pytest.mark.asyncio
async def test_translate_intersects_keeps_coordinate_precision(translator):
    params = translator.prepare(
        {"intersects": {"type": "Point", "coordinates": [-122.4194155, 37.7749295]}}
    )
    query = await translator.translate("PROV1", params)

    assert query.get(CmrParam.POINT) == "-122.4194155,37.7749295"
