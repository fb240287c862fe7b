"""Tests for path resolution."""

from tour_schema_exporter.accessors import MISSING, get_value_by_path, resolve_path

TOUR = {
    "TourID": "T1",
    "Meta": {"Region": "Asia", "Empty": None},
    "Tags": ["x", "y"],
    "DailyList": [
        {"Day": 1, "AttractionsList": [{"Name": "A"}]},
        {"Day": 2, "AttractionsList": [{"Name": "B"}, {"Name": "C"}]},
        {"Day": 3},
    ],
}


def test_resolve_plain_keys():
    assert resolve_path(TOUR, "TourID") == "T1"
    assert resolve_path(TOUR, "Meta.Region") == "Asia"


def test_null_is_not_missing():
    assert resolve_path(TOUR, "Meta.Empty") is None
    assert resolve_path(TOUR, "Meta.Nope") is MISSING


def test_trailing_array_segment_returns_array():
    assert resolve_path(TOUR, "Tags[]") == ["x", "y"]


def test_nested_arrays_concatenate_in_order():
    assert resolve_path(TOUR, "DailyList[].AttractionsList[].Name") == ["A", "B", "C"]


def test_missing_elements_are_dropped():
    assert resolve_path(TOUR, "DailyList[].Day") == [1, 2, 3]
    assert resolve_path(TOUR, "DailyList[].Missing") == []


def test_array_segment_on_non_array_fails():
    assert resolve_path(TOUR, "TourID[]") is MISSING
    assert resolve_path(TOUR, "Meta[].Region") is MISSING


def test_descending_into_scalar_fails():
    assert resolve_path(TOUR, "TourID.length") is MISSING


def test_bare_array_segment_at_root():
    docs = [{"a": 1}, {"a": 2}, {"b": 3}]
    assert resolve_path(docs, "[].a") == [1, 2]
    assert resolve_path(docs, "[]") == docs
    assert resolve_path({"a": 1}, "[]") is MISSING


def test_array_of_arrays():
    doc = {"Matrix": [[1, 2], [3]]}
    assert resolve_path(doc, "Matrix[].[]") == [1, 2, 3]


def test_dotted_key_fallback():
    doc = {"responses": {"gpt-3.5-turbo": {"response": "ok"}}}
    assert resolve_path(doc, "responses.gpt-3.5-turbo.response") == "ok"


def test_numeric_segment_indexes_list():
    assert resolve_path(TOUR, "DailyList.1.Day") == 2
    assert resolve_path(TOUR, "DailyList.9.Day") is MISSING


def test_never_raises_on_odd_input():
    assert resolve_path(None, "a.b") is MISSING
    assert resolve_path(42, "[]") is MISSING
    assert resolve_path(TOUR, "") is MISSING
    assert resolve_path("text", "a[].b[]") is MISSING


def test_get_value_by_path_default():
    assert get_value_by_path(TOUR, "Meta.Nope", default="n/a") == "n/a"
    assert get_value_by_path(TOUR, "Meta.Empty", default="n/a") is None


def test_key_ending_in_array_suffix_is_read_literally():
    assert resolve_path({"x[]": 5}, "x[]") == 5
    assert resolve_path({"x[]": {"y": 1}}, "x[].y") == 1
    assert resolve_path({"x": [1, 2], "x[]": 5}, "x[]") == [1, 2]
    assert resolve_path({"x": 3, "x[]": 5}, "x[]") == 5
