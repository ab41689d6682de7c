import pytest

from stac_fastapi.cmr.exceptions import InvalidSortPropertyError, TranslationError
from stac_fastapi.cmr.extensions.sort import parse_sortby, to_cmr_sort_keys


def test_parse_get_syntax():
    assert parse_sortby("-properties.datetime, id") == [
        {"field": "properties.datetime", "direction": "desc"},
        {"field": "id", "direction": "asc"},
    ]


def test_parse_post_syntax_with_property_alias():
    assert parse_sortby([{"property": "id", "direction": "DESC"}]) == [
        {"field": "id", "direction": "desc"}
    ]


def test_parse_invalid_direction():
    with pytest.raises(TranslationError):
        parse_sortby([{"field": "id", "direction": "sideways"}])


@pytest.mark.parametrize(
    "field,direction,key",
    [
        ("properties.datetime", "asc", "start_date"),
        ("datetime", "desc", "-start_date"),
        ("properties.end_datetime", "asc", "end_date"),
        ("properties.eo:cloud_cover", "desc", "-cloud_cover"),
        ("id", "asc", "readable_granule_name"),
        ("collection", "asc", "short_name"),
    ],
)
def test_sort_keys(field, direction, key):
    assert to_cmr_sort_keys([{"field": field, "direction": direction}]) == [key]


def test_unknown_sort_field():
    with pytest.raises(InvalidSortPropertyError) as excinfo:
        to_cmr_sort_keys([{"field": "properties.platform", "direction": "asc"}])

    assert excinfo.value.field == "properties.platform"
