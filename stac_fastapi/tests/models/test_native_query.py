import pytest

from stac_fastapi.cmr.models.native import CmrParam, NativeQuery, format_number


def test_repeated_parameters_keep_order():
    query = NativeQuery().extend(CmrParam.CONCEPT_ID, ["G2", "G1"]).with_param(
        CmrParam.CONCEPT_ID, "G3"
    )

    assert query.get_all(CmrParam.CONCEPT_ID) == ["G2", "G1", "G3"]
    assert query.get("concept_id") == "G2"


def test_modifiers_return_new_queries():
    query = NativeQuery.from_params({CmrParam.PROVIDER: "PROV1"})
    changed = query.with_param(CmrParam.PAGE_SIZE, 10).without(CmrParam.PROVIDER)

    assert query.to_dict() == {"provider": "PROV1"}
    assert changed.to_dict() == {"page_size": 10}


def test_from_params_expands_lists_and_skips_none():
    query = NativeQuery.from_params(
        {CmrParam.CONCEPT_ID: ["G1", "G2"], CmrParam.VERSION: None}
    )

    assert query.to_params() == [("concept_id", "G1"), ("concept_id", "G2")]
    assert CmrParam.VERSION not in query


def test_replace():
    query = NativeQuery().extend(CmrParam.SORT_KEY, ["a", "b"]).replace(
        CmrParam.SORT_KEY, "c"
    )

    assert query.get_all(CmrParam.SORT_KEY) == ["c"]


def test_to_params_stringifies_values():
    query = NativeQuery.from_params({"options[point][or]": True, CmrParam.PAGE_NUM: 2})

    assert query.to_params() == [("options[point][or]", "true"), ("page_num", "2")]


def test_empty_query_is_falsy():
    assert len(NativeQuery()) == 0
    assert not NativeQuery()


def test_is_known():
    assert CmrParam.is_known("cloud_cover")
    assert not CmrParam.is_known("fields")


@pytest.mark.parametrize(
    "value, expected",
    [(10, "10"), (10.0, "10"), (-180.0, "-180"), (0.5, "0.5"), (-122.4194155, "-122.4194155")],
)
def test_format_number(value, expected):
    assert format_number(value) == expected
