"""Parameter translation."""

import logging
from typing import Any, Dict, Optional

import attr

from stac_fastapi.cmr.base_database_logic import BaseDatabaseLogic
from stac_fastapi.cmr.exceptions import CollectionConflictError, NotFoundError
from stac_fastapi.cmr.extensions.sort import to_cmr_sort_keys
from stac_fastapi.cmr.models.native import CmrParam, NativeQuery
from stac_fastapi.cmr.models.search import SearchParams

logger = logging.getLogger(__name__)


@attr.s
class ParameterTranslator:
    """Translate STAC search parameters into a CMR query.

    Attributes:
        database (BaseDatabaseLogic): Catalog used to resolve collection ids and map the core parameters.
    """

    database: BaseDatabaseLogic = attr.ib()

    @staticmethod
    def prepare(raw: Optional[Dict[str, Any]]) -> SearchParams:
        """Normalize raw GET or POST parameters, extensions included."""
        return SearchParams.parse(raw or {})

    async def translate(
        self,
        provider_id: str,
        params: SearchParams,
        collection_id: Optional[str] = None,
    ) -> NativeQuery:
        """Build the CMR query for a STAC search.

        Args:
            provider_id (str): The provider the search is scoped to.
            params (SearchParams): The prepared search parameters.
            collection_id (Optional[str]): A STAC collection id taken from the request path.

        Returns:
            NativeQuery: The CMR granule query.

        Raises:
            NotFoundError: If the path collection does not exist.
            CollectionConflictError: If `collections` is sent together with a path collection.
            InvalidSortPropertyError: If a sort field has no CMR counterpart.
        """
        sort_keys = to_cmr_sort_keys(params.sortby or [])

        if collection_id is not None:
            if params.collections:
                raise CollectionConflictError(collection_id)
            concept_id = await self.database.stac_id_to_cmr_collection_id(
                provider_id, collection_id
            )
            if not concept_id:
                raise NotFoundError.collection(provider_id, collection_id)
            params = params.model_copy(update={"collections": [collection_id]})

        query = await self.database.convert_params(provider_id, params)
        query = query.extend(CmrParam.SORT_KEY, sort_keys)
        logger.debug("Translated search for provider %s: %s", provider_id, query.to_dict())
        return query
