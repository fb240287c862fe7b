"""Tests for path string helpers."""

import pytest

from tour_schema_exporter.paths import is_array_path, join_path, leaf_name, parse_segment, split_path


def test_split_path_keeps_array_suffix():
    assert split_path("DailyList[].AttractionsList[].Name") == ["DailyList[]", "AttractionsList[]", "Name"]


def test_split_path_drops_empty_segments():
    assert split_path("a..b.") == ["a", "b"]
    assert split_path("") == []
    assert split_path(None) == []


@pytest.mark.parametrize(
    "segment, expected",
    [
        ("Name", ("Name", False)),
        ("Tags[]", ("Tags", True)),
        ("[]", ("", True)),
    ],
)
def test_parse_segment(segment, expected):
    assert parse_segment(segment) == expected


def test_join_path():
    assert join_path("", "TourID") == "TourID"
    assert join_path("", "DailyList", is_array=True) == "DailyList[]"
    assert join_path("DailyList[]", "Day") == "DailyList[].Day"
    assert join_path("", "", is_array=True) == "[]"
    assert join_path("Matrix[]", "", is_array=True) == "Matrix[].[]"


def test_is_array_path():
    assert is_array_path("Tags[]")
    assert is_array_path("DailyList[].Day")
    assert not is_array_path("Meta.TourID")


def test_leaf_name():
    assert leaf_name("DailyList[].AttractionsList[].Name") == "Name"
    assert leaf_name("Tags[]") == "Tags"
    assert leaf_name("TourID") == "TourID"
