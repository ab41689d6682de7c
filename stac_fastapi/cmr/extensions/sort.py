"""Sort extension."""

from typing import Any, Dict, Iterable, List

from stac_fastapi.cmr.exceptions import InvalidSortPropertyError, TranslationError

# STAC sortable properties and the CMR granule sort key they map onto.
SORT_KEYS: Dict[str, str] = {
    "id": "readable_granule_name",
    "collection": "short_name",
    "datetime": "start_date",
    "properties.datetime": "start_date",
    "properties.start_datetime": "start_date",
    "properties.end_datetime": "end_date",
    "eo:cloud_cover": "cloud_cover",
    "properties.eo:cloud_cover": "cloud_cover",
}

DIRECTIONS = ("asc", "desc")


def parse_sortby(value: Any) -> List[Dict[str, str]]:
    """Normalize a sort extension value into an ordered list of `{field, direction}`.

    GET requests send `sortby=+properties.datetime,-id` (a bare field sorts
    ascending), POST requests send `[{"field": ..., "direction": ...}]`. The
    `property` key is accepted as an alias of `field`.
    """
    if isinstance(value, str):
        value = [value]

    parsed: List[Dict[str, str]] = []
    for raw in value or []:
        if isinstance(raw, dict):
            field = raw.get("field", raw.get("property"))
            direction = str(raw.get("direction", "asc")).lower()
            if not field or direction not in DIRECTIONS:
                raise TranslationError(f"Invalid sortby value [{raw}]")
            parsed.append({"field": field, "direction": direction})
            continue

        for s in str(raw).split(","):
            s = s.strip()
            if not s:
                continue
            direction = "desc" if s[0] == "-" else "asc"
            field = s[1:] if s[0] in "+-" else s
            parsed.append({"field": field, "direction": direction})
    return parsed


def to_cmr_sort_keys(sortby: Iterable[Any]) -> List[str]:
    """Map parsed sort specifications onto CMR `sort_key` values.

    Raises:
        InvalidSortPropertyError: If a field has no CMR counterpart.
    """
    keys = []
    for spec in sortby:
        field = spec["field"] if isinstance(spec, dict) else spec.field
        direction = spec["direction"] if isinstance(spec, dict) else spec.direction
        if field not in SORT_KEYS:
            raise InvalidSortPropertyError(field)
        prefix = "-" if direction == "desc" else ""
        keys.append(f"{prefix}{SORT_KEYS[field]}")
    return keys
