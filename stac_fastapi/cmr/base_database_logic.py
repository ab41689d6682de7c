"""Base database logic."""

import abc
from typing import Any, Dict, List, Optional

from stac_fastapi.cmr.models.native import (
    GranuleSearchResult,
    NativeQuery,
    TemporalFacets,
)
from stac_fastapi.cmr.models.search import SearchParams


class BaseDatabaseLogic(abc.ABC):
    """
    Abstract base class for the metadata catalog backing the API.

    This class defines the queries the translation engine sends to the catalog.
    Subclasses must provide implementations for these methods.
    """

    @abc.abstractmethod
    async def find_collections(self, params: NativeQuery) -> List[Dict[str, Any]]:
        """Search collections.

        Args:
            params (NativeQuery): Native collection search parameters.

        Returns:
            List[Dict[str, Any]]: Native collection records, in catalog order.
        """
        pass

    @abc.abstractmethod
    async def find_granules(self, params: NativeQuery) -> GranuleSearchResult:
        """Search granules.

        Args:
            params (NativeQuery): Native granule search parameters.

        Returns:
            GranuleSearchResult: The page of native granule records and the total hit count.
        """
        pass

    @abc.abstractmethod
    def stac_collection_to_cmr_params(
        self, provider_id: str, collection_id: str
    ) -> NativeQuery:
        """Native parameters selecting a STAC collection id."""
        pass

    @abc.abstractmethod
    async def stac_id_to_cmr_collection_id(
        self, provider_id: str, collection_id: str
    ) -> Optional[str]:
        """Resolve a STAC collection id to a native concept id, None when absent."""
        pass

    @abc.abstractmethod
    async def get_granule_temporal_facets(
        self,
        params: NativeQuery,
        year: Optional[str] = None,
        month: Optional[str] = None,
        day: Optional[str] = None,
    ) -> TemporalFacets:
        """List the years, months, days and granule ids available below a date scope."""
        pass

    @abc.abstractmethod
    async def convert_params(
        self, provider_id: str, params: SearchParams
    ) -> NativeQuery:
        """Map the core STAC search parameters onto native parameters.

        Extension parameters (fields, sortby) are handled by the caller.
        """
        pass

    @abc.abstractmethod
    async def get_providers(self) -> List[Dict[str, Any]]:
        """List the providers holding collections."""
        pass
