"""Query extension.

Only `eo:cloud_cover` has a CMR counterpart, the `cloud_cover` range.
"""

import logging
from typing import Any, Dict, Optional

from stac_fastapi.cmr.exceptions import TranslationError
from stac_fastapi.cmr.models.native import format_number

logger = logging.getLogger(__name__)

CLOUD_COVER_PROPERTIES = ("eo:cloud_cover", "properties.eo:cloud_cover")


def _number(op: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise TranslationError(f"Invalid value [{value}] for query operator [{op}]")


def _bound(value: Optional[float]) -> str:
    return "" if value is None else format_number(value)


def cloud_cover_range(query: Optional[Dict[str, Dict[str, Any]]]) -> Optional[str]:
    """Convert the query extension's cloud cover filter into a CMR `min,max` range.

    Args:
        query: e.g. `{"eo:cloud_cover": {"gte": 10, "lt": 50}}`

    Returns:
        The `cloud_cover` range with an empty side for an open end, or None when
        no cloud cover filter was given.
    """
    if not query:
        return None

    low: Optional[float] = None
    high: Optional[float] = None
    for name, expr in query.items():
        if name not in CLOUD_COVER_PROPERTIES:
            logger.debug("Ignoring unsupported query property %s", name)
            continue
        if not isinstance(expr, dict):
            raise TranslationError(f"Invalid query expression for [{name}]")
        for op, value in expr.items():
            if op in ("gt", "gte"):
                low = _number(op, value)
            elif op in ("lt", "lte"):
                high = _number(op, value)
            elif op == "eq":
                low = high = _number(op, value)
            else:
                raise TranslationError(
                    f"Unsupported query operator [{op}] for [{name}]"
                )

    if low is None and high is None:
        return None
    return f"{_bound(low)},{_bound(high)}"
