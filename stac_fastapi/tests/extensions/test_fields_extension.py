from stac_fastapi.cmr.extensions.fields import (
    REQUIRED_FIELDS,
    filter_documents,
    filter_fields,
    parse_fields,
)

ITEM = {
    "type": "Feature",
    "stac_version": "1.0.0",
    "id": "G1-PROV1",
    "collection": "MOD09GA.v061",
    "geometry": {"type": "Point", "coordinates": [1, 2]},
    "bbox": [1, 2, 1, 2],
    "properties": {"datetime": "2020-01-01T00:00:00Z", "eo:cloud_cover": 12.0},
    "links": [{"rel": "self", "href": "http://test-server/stac"}],
    "assets": {"data": {"href": "https://data.example.com/x.hdf"}},
}


def test_parse_get_syntax():
    assert parse_fields("id,-geometry,+properties.datetime") == {
        "include": {"id", "properties.datetime"},
        "exclude": {"geometry"},
    }


def test_parse_post_syntax():
    assert parse_fields({"include": ["properties"], "exclude": ["assets"]}) == {
        "include": {"properties"},
        "exclude": {"assets"},
    }


def test_exclude_removes_only_excluded():
    result = filter_fields(ITEM, exclude={"geometry", "properties.eo:cloud_cover"})

    assert "geometry" not in result
    assert "eo:cloud_cover" not in result["properties"]
    assert set(result) == set(ITEM) - {"geometry"}
    assert result["properties"]["datetime"] == ITEM["properties"]["datetime"]


def test_exclude_keeps_required_fields():
    result = filter_fields(ITEM, exclude={"id", "type", "links", "stac_version"})

    assert REQUIRED_FIELDS <= set(result)


def test_include_keeps_required_fields():
    result = filter_fields(ITEM, include={"properties.datetime"})

    assert set(result) == REQUIRED_FIELDS | {"properties"}
    assert result["properties"] == {"datetime": "2020-01-01T00:00:00Z"}


def test_include_wins_over_exclude():
    result = filter_fields(ITEM, include={"assets"}, exclude={"assets"})

    assert result["assets"] == ITEM["assets"]


def test_input_not_modified():
    filter_fields(ITEM, exclude={"geometry"})

    assert "geometry" in ITEM


def test_filter_documents_without_fields():
    documents = [ITEM]

    assert filter_documents(documents, None) is documents
