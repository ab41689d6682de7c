"""Context extension."""

from typing import Any, Dict, Optional


def apply_context(
    feature_collection: Dict[str, Any],
    page: int,
    limit: int,
    matched: int,
    query: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Attach search context to an item collection.

    Args:
        feature_collection: The assembled FeatureCollection.
        page: The current page number.
        limit: The requested page size.
        matched: Total number of granules CMR reported for the search.
        query: The effective STAC search parameters, echoed back when given.

    Returns:
        A new FeatureCollection carrying `context`, `numberMatched` and `numberReturned`.
    """
    returned = len(feature_collection.get("features", []))
    context: Dict[str, Any] = {
        "page": page,
        "limit": limit,
        "matched": matched,
        "returned": returned,
    }
    if query:
        context["query"] = query

    return {
        **feature_collection,
        "numberMatched": matched,
        "numberReturned": returned,
        "context": context,
    }
