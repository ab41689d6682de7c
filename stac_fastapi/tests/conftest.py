import copy
import json
import os
from typing import Any, Callable, Dict, List, Optional, Tuple

import attr
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from stac_fastapi.cmr.app import create_app
from stac_fastapi.cmr.config import CmrSettings
from stac_fastapi.cmr.database_logic import DatabaseLogic
from stac_fastapi.cmr.models.links import PageContext
from stac_fastapi.cmr.models.native import (
    CmrParam,
    GranuleSearchResult,
    NativeQuery,
    TemporalFacets,
)

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")
BASE_URL = "http://test-server"


def _load_file(filename: str) -> Any:
    with open(os.path.join(DATA_DIR, filename)) as file:
        return json.load(file)


_collection_prototype = _load_file("cmr_collection.json")
_cloud_collection_prototype = _load_file("cmr_cloud_collection.json")
_granule_prototype = _load_file("cmr_granule.json")
_providers_prototype = _load_file("cmr_providers.json")


@attr.s
class StubDatabase(DatabaseLogic):
    """CMR stand in serving canned records.

    Keeps the real parameter mapping of `DatabaseLogic` and records every
    query it receives in `calls`.
    """

    collections: List[Dict[str, Any]] = attr.ib(factory=list)
    granules: List[Dict[str, Any]] = attr.ib(factory=list)
    hits: Optional[int] = attr.ib(default=None)
    facets: TemporalFacets = attr.ib(factory=TemporalFacets)
    providers: List[Dict[str, Any]] = attr.ib(factory=list)
    calls: List[Tuple[str, Any]] = attr.ib(factory=list)

    def _page(self, records: List[Dict[str, Any]], params: NativeQuery):
        size = int(params.get(CmrParam.PAGE_SIZE, 10))
        page = int(params.get(CmrParam.PAGE_NUM, 1))
        return records[(page - 1) * size : page * size]

    async def find_collections(self, params: NativeQuery) -> List[Dict[str, Any]]:
        self.calls.append(("collections", params))
        records = self.collections
        if CmrParam.TAG_KEY in params:
            records = [r for r in records if r.get("cloud_hosted")]
        if CmrParam.CONCEPT_ID in params:
            ids = params.get_all(CmrParam.CONCEPT_ID)
            records = [r for r in records if r["id"] in ids]
        if CmrParam.SHORT_NAME in params:
            records = [
                r
                for r in records
                if r["short_name"] == params.get(CmrParam.SHORT_NAME)
                and r["version_id"] == params.get(CmrParam.VERSION)
            ]
        return self._page(records, params)

    async def find_granules(self, params: NativeQuery) -> GranuleSearchResult:
        self.calls.append(("granules", params))
        records = self.granules
        if CmrParam.CONCEPT_ID in params:
            ids = params.get_all(CmrParam.CONCEPT_ID)
            records = [r for r in records if r["id"] in ids]
        hits = self.hits if self.hits is not None else len(records)
        return GranuleSearchResult(granules=self._page(records, params), hits=hits)

    async def get_granule_temporal_facets(
        self, params, year=None, month=None, day=None
    ) -> TemporalFacets:
        self.calls.append(("facets", (params, year, month, day)))
        return self.facets

    async def get_providers(self) -> List[Dict[str, Any]]:
        self.calls.append(("providers", None))
        return self.providers

    def queries(self, kind: str) -> List[Any]:
        return [params for name, params in self.calls if name == kind]


@pytest.fixture
def load_test_data() -> Callable[[str], Any]:
    return _load_file


@pytest.fixture
def collection_record() -> Dict:
    return copy.deepcopy(_collection_prototype)


@pytest.fixture
def cloud_collection_record() -> Dict:
    return copy.deepcopy(_cloud_collection_prototype)


@pytest.fixture
def granule_record() -> Dict:
    return copy.deepcopy(_granule_prototype)


@pytest.fixture
def settings() -> CmrSettings:
    return CmrSettings(cmr_url="https://cmr.test")


@pytest.fixture
def cloud_settings() -> CmrSettings:
    return CmrSettings(cmr_url="https://cmr.test", cmr_stac_relative_root_url="/cloudstac")


@pytest.fixture
def browse_settings() -> CmrSettings:
    return CmrSettings(cmr_url="https://cmr.test", browse_path="year/month/day")


@pytest.fixture
def database(settings, collection_record, cloud_collection_record, granule_record):
    return StubDatabase(
        settings=settings,
        collections=[collection_record, cloud_collection_record],
        granules=[granule_record],
        providers=copy.deepcopy(_providers_prototype),
    )


@pytest.fixture
def page_context() -> PageContext:
    return PageContext(
        root_url=f"{BASE_URL}/stac",
        url=f"{BASE_URL}/stac/PROV1/search?limit=10",
        query_params=[("limit", "10")],
        page=1,
        limit=10,
    )


async def _app_client(settings: CmrSettings, database: StubDatabase):
    database.settings = settings
    app = create_app(settings=settings, database=database)
    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as c:
        yield c


@pytest_asyncio.fixture
async def app_client(settings, database):
    async for c in _app_client(settings, database):
        yield c


@pytest_asyncio.fixture
async def cloud_app_client(cloud_settings, database):
    async for c in _app_client(cloud_settings, database):
        yield c


@pytest_asyncio.fixture
async def browse_app_client(browse_settings, database):
    async for c in _app_client(browse_settings, database):
        yield c
