"""CMR-STAC exceptions module.

This module contains the error taxonomy raised while translating STAC requests
into CMR queries and assembling CMR responses into STAC documents.
"""

from stac_fastapi.types.errors import NotFoundError as StacNotFoundError
from stac_fastapi.types.errors import StacApiError


class TranslationError(StacApiError):
    """Raised when a query parameter is malformed or conflicts with another."""


class InvalidSortPropertyError(TranslationError):
    """Raised when a sort extension property has no CMR sort key.

    Kept apart from `TranslationError` so that it can be mapped to a stricter
    response status.
    """

    def __init__(self, field: str):
        """Initialize with the offending sort property.

        Args:
            field (str): The STAC property the client asked to sort by.
        """
        super().__init__(f"Invalid sort property [{field}]")
        self.field = field


class CollectionConflictError(TranslationError):
    """Raised when a `collections` parameter is sent on a collection-scoped path."""

    def __init__(self, collection_id: str):
        """Initialize with the collection id taken from the path."""
        super().__init__(
            f"Can not have collections param when there is collectionId [{collection_id}] specified."
        )
        self.collection_id = collection_id


class NotFoundError(StacNotFoundError):
    """Raised when a collection or granule does not exist for a provider."""

    @classmethod
    def collection(cls, provider_id: str, collection_id: str) -> "NotFoundError":
        """Build the not found error for a collection."""
        return cls(
            f"Collection [{collection_id}] not found for provider [{provider_id}]"
        )

    @classmethod
    def item(
        cls, provider_id: str, collection_id: str, item_id: str
    ) -> "NotFoundError":
        """Build the not found error for a granule."""
        return cls(
            f"Item [{item_id}] not found in collection [{collection_id}] for provider [{provider_id}]"
        )


class UpstreamFault(StacApiError):
    """Raised when a CMR call fails or returns a malformed payload.

    Attributes:
        url (str): The CMR url that was requested.
        status_code (Optional[int]): The CMR response status, if there was one.
    """

    def __init__(self, message, url=None, status_code=None):
        """Initialize UpstreamFault with the failed request details.

        Args:
            message (str): Human-readable error description
            url (Optional[str]): The CMR url that was requested
            status_code (Optional[int]): HTTP status returned by CMR
        """
        super().__init__(message)
        self.url = url
        self.status_code = status_code

    def __str__(self) -> str:
        """Return the message with the CMR status when known."""
        if self.status_code is None:
            return super().__str__()
        return f"{super().__str__()} (CMR status: {self.status_code})"


class ResolverExhaustionError(StacApiError):
    """Raised when cloud holding collection paging reaches its page cap.

    The cap is never reached with real data, so reaching it is treated as an
    upstream anomaly instead of a truncated result.
    """

    def __init__(self, provider_id: str, pages: int, collected: int):
        """Initialize with the paging state at the time the cap was hit."""
        super().__init__(
            f"Stopped listing cloud holding collections for provider [{provider_id}] "
            f"after {pages} pages ({collected} collections) without reaching the last page"
        )
        self.provider_id = provider_id
        self.pages = pages
        self.collected = collected
