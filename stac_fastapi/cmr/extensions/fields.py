"""Fields extension.

Parses the fields extension syntax of GET (`fields=id,-geometry`) and POST
(`{"include": [...], "exclude": [...]}`) requests into include/exclude sets,
and projects assembled documents with them.
"""

from copy import deepcopy
from typing import Any, Dict, Iterable, List, Optional, Set

# Never removed from a document, whatever the client asked for.
REQUIRED_FIELDS = frozenset({"id", "type", "stac_version", "links"})


def _split(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    parts: List[str] = []
    for raw in value or []:
        parts.extend(p for p in str(raw).split(",") if p.strip())
    return parts


def parse_fields(value: Any) -> Dict[str, Set[str]]:
    """Normalize a fields extension value into `{"include": set, "exclude": set}`.

    Args:
        value: A comma separated string or list of strings where a leading `-`
            marks an exclusion and a leading `+` (or none) an inclusion, or a
            mapping with `include` and `exclude` sequences.

    Returns:
        Dict[str, Set[str]]: The include and exclude attribute paths.
    """
    if isinstance(value, dict):
        return {
            "include": set(_split(value.get("include"))),
            "exclude": set(_split(value.get("exclude"))),
        }

    includes, excludes = set(), set()
    for field in _split(value):
        field = field.strip()
        if field[0] == "-":
            excludes.add(field[1:])
        else:
            includes.add(field[1:] if field[0] in "+ " else field)
    return {"include": includes, "exclude": excludes}


def _copy_path(source: Dict[str, Any], target: Dict[str, Any], parts: List[str]):
    key = parts[0]
    if not isinstance(source, dict) or key not in source:
        return
    if len(parts) == 1:
        target[key] = deepcopy(source[key])
        return
    if not isinstance(source[key], dict):
        return
    nested = target.setdefault(key, {})
    if isinstance(nested, dict):
        _copy_path(source[key], nested, parts[1:])


def _remove_path(target: Dict[str, Any], parts: List[str]) -> None:
    *path, final = parts
    current: Any = target
    for part in path:
        current = current.get(part) if isinstance(current, dict) else None
        if current is None:
            return
    if isinstance(current, dict):
        current.pop(final, None)


def filter_fields(
    document: Dict[str, Any],
    include: Optional[Iterable[str]] = None,
    exclude: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Preserve and remove attributes as indicated by the fields extension include/exclude sets.

    Attribute paths use dots to reach nested attributes, e.g.
    `properties.datetime`. An exclusion is ignored for a path that is also
    explicitly included and for the attributes in `REQUIRED_FIELDS`. Emptied
    parent objects are kept.

    Returns a new document; the input is left untouched.
    """
    include = set(include or ())
    exclude = set(exclude or ())
    if not include and not exclude:
        return document

    if include:
        clean: Dict[str, Any] = {}
        for path in include | REQUIRED_FIELDS:
            _copy_path(document, clean, path.split("."))
    else:
        clean = deepcopy(document)

    for path in exclude:
        if path in include or path in REQUIRED_FIELDS:
            continue
        _remove_path(clean, path.split("."))

    return clean


def filter_documents(
    documents: List[Dict[str, Any]], fields: Optional[Dict[str, Set[str]]]
) -> List[Dict[str, Any]]:
    """Apply `filter_fields` to each document when fields were requested."""
    if not fields:
        return documents
    return [
        filter_fields(doc, fields.get("include"), fields.get("exclude"))
        for doc in documents
    ]
