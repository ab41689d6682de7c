"""CMR native query models."""

from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple, Union

import attr


class CmrParam(str, Enum):
    """CMR search parameters produced or understood by the translator.

    Keys outside this set are still accepted by `NativeQuery` so that
    structured CMR parameters such as `options[polygon][or]` or
    `temporal_facet[0][year]` can be expressed.
    """

    PROVIDER = "provider"
    PROVIDER_SHORT_NAME = "provider_short_name"
    SHORT_NAME = "short_name"
    VERSION = "version"
    CONCEPT_ID = "concept_id"
    COLLECTION_CONCEPT_ID = "collection_concept_id"
    BOUNDING_BOX = "bounding_box"
    TEMPORAL = "temporal"
    POLYGON = "polygon"
    POINT = "point"
    LINE = "line"
    PAGE_SIZE = "page_size"
    PAGE_NUM = "page_num"
    SORT_KEY = "sort_key"
    TAG_KEY = "tag_key"
    CLOUD_COVER = "cloud_cover"
    CLOUD_HOSTED = "cloud_hosted"
    INCLUDE_FACETS = "include_facets"
    READABLE_GRANULE_NAME = "readable_granule_name"
    ENTRY_TITLE = "entry_title"
    KEYWORD = "keyword"
    PLATFORM = "platform"
    INSTRUMENT = "instrument"
    DAY_NIGHT_FLAG = "day_night_flag"
    ONLINE_ONLY = "online_only"
    DOWNLOADABLE = "downloadable"

    @classmethod
    def is_known(cls, name: str) -> bool:
        """Return whether `name` is one of the recognized CMR parameters."""
        return name in cls._value2member_map_


ParamKey = Union[CmrParam, str]


def _key(key: ParamKey) -> str:
    return key.value if isinstance(key, CmrParam) else str(key)


def _pairs(pairs: Iterable[Tuple[ParamKey, Any]]) -> Tuple[Tuple[str, Any], ...]:
    return tuple((_key(k), v) for k, v in pairs)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_number(value: Any) -> str:
    """Format a coordinate or bound for CMR without losing precision.

    Whole numbers drop their fraction, `10.0` becomes `10`; anything else keeps
    the shortest repr that round-trips, `-122.4194155` stays as it is.
    """
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


@attr.s(frozen=True)
class NativeQuery:
    """An immutable, ordered CMR query.

    Multi-valued parameters are kept as repeated pairs in insertion order so
    that the request sent to CMR is deterministic. Every modifier returns a
    new query.
    """

    pairs: Tuple[Tuple[str, Any], ...] = attr.ib(default=(), converter=_pairs)

    @classmethod
    def from_params(cls, params: Mapping[ParamKey, Any]) -> "NativeQuery":
        """Build a query from a mapping, expanding list values into repeated pairs."""
        query = cls()
        for key, value in params.items():
            query = query.with_param(key, value)
        return query

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (str, CmrParam)):
            return False
        name = _key(key)
        return any(k == name for k, _ in self.pairs)

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def keys(self) -> List[str]:
        """Distinct parameter names in first-seen order."""
        return list(dict.fromkeys(k for k, _ in self.pairs))

    def get(self, key: ParamKey, default: Any = None) -> Any:
        """Return the first value for `key`."""
        name = _key(key)
        for k, v in self.pairs:
            if k == name:
                return v
        return default

    def get_all(self, key: ParamKey) -> List[Any]:
        """Return every value for `key`, in insertion order."""
        name = _key(key)
        return [v for k, v in self.pairs if k == name]

    def without(self, *keys: ParamKey) -> "NativeQuery":
        """Return a copy without any of `keys`."""
        names = {_key(key) for key in keys}
        return NativeQuery(pairs=[(k, v) for k, v in self.pairs if k not in names])

    def with_param(self, key: ParamKey, value: Any) -> "NativeQuery":
        """Return a copy with `value` appended; list and tuple values are expanded."""
        if isinstance(value, (list, tuple)):
            return self.extend(key, value)
        if value is None:
            return self
        return NativeQuery(pairs=self.pairs + ((_key(key), value),))

    def extend(self, key: ParamKey, values: Iterable[Any]) -> "NativeQuery":
        """Return a copy with every value in `values` appended under `key`."""
        name = _key(key)
        added = tuple((name, v) for v in values if v is not None)
        return NativeQuery(pairs=self.pairs + added)

    def replace(self, key: ParamKey, value: Any) -> "NativeQuery":
        """Return a copy where `key` only holds `value`."""
        return self.without(key).with_param(key, value)

    def merge(self, other: "NativeQuery") -> "NativeQuery":
        """Return a copy with the pairs of `other` appended."""
        return NativeQuery(pairs=self.pairs + other.pairs)

    def to_params(self) -> List[Tuple[str, str]]:
        """Pairs ready to be url encoded for a CMR request."""
        return [(k, _stringify(v)) for k, v in self.pairs]

    def to_dict(self) -> Dict[str, Any]:
        """Mapping view, repeated parameters collapse into lists."""
        result: Dict[str, Any] = {}
        for k, v in self.pairs:
            if k in result:
                if not isinstance(result[k], list):
                    result[k] = [result[k]]
                result[k].append(v)
            else:
                result[k] = v
        return result


@attr.s(frozen=True)
class GranuleSearchResult:
    """CMR granule search response."""

    granules: List[Dict[str, Any]] = attr.ib(factory=list)
    hits: int = attr.ib(default=0)


@attr.s(frozen=True)
class TemporalFacets:
    """Years, months, days and granule ids available for a collection."""

    years: List[str] = attr.ib(factory=list)
    months: List[str] = attr.ib(factory=list)
    days: List[str] = attr.ib(factory=list)
    itemids: List[str] = attr.ib(factory=list)
