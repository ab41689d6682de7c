"""Cloud holding collection discovery."""

import logging
from typing import List, Optional, Sequence

import attr

from stac_fastapi.cmr.base_database_logic import BaseDatabaseLogic
from stac_fastapi.cmr.config import CLOUD_HOLDINGS_TAG
from stac_fastapi.cmr.exceptions import ResolverExhaustionError
from stac_fastapi.cmr.models.native import CmrParam, NativeQuery

logger = logging.getLogger(__name__)

PAGE_SIZE = 2000
MAX_PAGES = 9999


@attr.s
class CloudHoldingResolver:
    """List the concept ids of a provider's collections hosted on cloud storage.

    CMR pages are fetched one after the other until a page comes back short.
    """

    database: BaseDatabaseLogic = attr.ib()
    page_size: int = attr.ib(default=PAGE_SIZE)
    max_pages: int = attr.ib(default=MAX_PAGES)
    tag_key: str = attr.ib(default=CLOUD_HOLDINGS_TAG)

    def _page_query(
        self, provider_id: str, scope: Optional[Sequence[str]], page: int
    ) -> NativeQuery:
        query = NativeQuery.from_params(
            {
                CmrParam.TAG_KEY: self.tag_key,
                CmrParam.PROVIDER_SHORT_NAME: provider_id,
                CmrParam.PAGE_SIZE: self.page_size,
                CmrParam.PAGE_NUM: page,
            }
        )
        if scope:
            query = query.extend(CmrParam.CONCEPT_ID, scope)
        return query

    async def resolve(
        self,
        provider_id: str,
        collection_concept_ids: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """Return the cloud holding collection concept ids of a provider.

        Args:
            provider_id (str): The provider to list.
            collection_concept_ids (Optional[Sequence[str]]): Only consider these collections.

        Returns:
            List[str]: Concept ids in CMR order, without duplicates.

        Raises:
            ResolverExhaustionError: If the last allowed page is still full.
        """
        found: List[str] = []
        for page in range(1, self.max_pages + 1):
            entries = await self.database.find_collections(
                self._page_query(provider_id, collection_concept_ids, page)
            )
            found.extend(entry["id"] for entry in entries if entry.get("id"))
            if len(entries) < self.page_size:
                break
        else:
            raise ResolverExhaustionError(provider_id, self.max_pages, len(found))

        concept_ids = list(dict.fromkeys(found))
        logger.info(
            f"Found {len(concept_ids)} cloud holding collections for provider [{provider_id}]"
        )
        return concept_ids
