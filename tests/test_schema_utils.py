"""Tests for schema inference and merging."""

from tour_schema_exporter.accessors import MISSING, resolve_path
from tour_schema_exporter.schema_utils import (
    ARRAY,
    OBJECT,
    SCALAR,
    build_tree_from_schema,
    collect_all_paths,
    collect_leaf_paths,
    filter_valid_paths,
    find_node,
    find_type_conflicts,
    infer_corpus,
    infer_schema,
    merge_all,
    merge_schema_trees,
    sample_documents,
    sort_paths,
)

TOUR = {
    "TourID": "T1",
    "Tags": ["x", "y"],
    "Meta": {"Region": "Asia", "Price": 10.5},
    "DailyList": [
        {"Day": 1, "AttractionsList": [{"Name": "A"}]},
        {"Day": 2, "AttractionsList": [{"Name": "B"}, {"Name": "C", "Ticket": None}]},
    ],
}


def test_infer_root_object():
    tree = infer_schema(TOUR)
    assert tree.name == "root"
    assert tree.path == ""
    assert tree.type == OBJECT
    assert set(tree.children) == {"TourID", "Tags", "Meta", "DailyList"}


def test_infer_paths_and_types():
    tree = infer_schema(TOUR)
    daily = tree.children["DailyList"]
    assert daily.type == ARRAY
    assert daily.path == "DailyList[]"
    attractions = daily.children["AttractionsList"]
    assert attractions.path == "DailyList[].AttractionsList[]"
    assert attractions.children["Name"].path == "DailyList[].AttractionsList[].Name"
    assert attractions.children["Name"].type == SCALAR
    assert tree.children["Meta"].children["Price"].path == "Meta.Price"


def test_collect_leaf_paths_preorder():
    assert collect_leaf_paths(infer_schema(TOUR)) == [
        "TourID",
        "Tags[]",
        "Meta.Region",
        "Meta.Price",
        "DailyList[].Day",
        "DailyList[].AttractionsList[].Name",
        "DailyList[].AttractionsList[].Ticket",
    ]


def test_every_leaf_path_resolves():
    for path in collect_leaf_paths(infer_schema(TOUR)):
        value = resolve_path(TOUR, path)
        assert value is not MISSING
        assert not isinstance(value, dict)


def test_sparse_array_fields_are_kept():
    tree = infer_schema({"Items": [{"a": 1, "b": 2}, {"a": 3}]})
    assert set(tree.children["Items"].children) == {"a", "b"}


def test_empty_nested_object_in_later_element_keeps_fields():
    doc = {"Items": [{"a": 1, "nested": {"x": 1}}, {"a": 2, "nested": {}}]}
    assert "Items[].nested.x" in collect_leaf_paths(infer_schema(doc))


def test_composite_strategy_loses_fields_behind_empty_object():
    doc = {"Items": [{"a": 1, "nested": {"x": 1}}, {"a": 2, "nested": {}}]}
    leaves = collect_leaf_paths(infer_schema(doc, strategy="composite"))
    assert "Items[].a" in leaves
    assert "Items[].nested.x" not in leaves


def test_root_array_and_array_of_arrays():
    tree = infer_schema([{"id": 1}, {"id": 2, "grid": [[1], [2, 3]]}])
    assert tree.path == "[]"
    leaves = collect_leaf_paths(tree)
    assert leaves == ["[].id", "[].grid[].[]"]
    assert resolve_path([{"id": 1}, {"id": 2, "grid": [[1], [2, 3]]}], "[].grid[].[]") == [1, 2, 3]


def test_merge_unions_fields():
    a = infer_schema({"A": 1, "Shared": {"x": 1}})
    b = infer_schema({"B": 2, "Shared": {"y": 2}})
    c = infer_schema({"C": [{"z": 1}]})
    merged = merge_schema_trees(merge_schema_trees(a, b), c)
    assert set(collect_leaf_paths(merged)) == {"A", "B", "Shared.x", "Shared.y", "C[].z"}

    reordered = merge_schema_trees(c, merge_schema_trees(b, a))
    assert set(collect_leaf_paths(reordered)) == set(collect_leaf_paths(merged))


def test_merge_does_not_mutate_inputs():
    a = infer_schema({"A": 1})
    b = infer_schema({"B": 2})
    merge_schema_trees(a, b)
    assert set(a.children) == {"A"}
    assert set(b.children) == {"B"}


def test_merge_prefers_structured_type_and_records_conflict():
    scalar_first = infer_schema({"Guide": "Ann"})
    structured = infer_schema({"Guide": {"Name": "Ann", "Phone": "1"}})
    merged = merge_schema_trees(scalar_first, structured)
    guide = merged.children["Guide"]
    assert guide.type == OBJECT
    assert set(guide.children) == {"Name", "Phone"}
    conflicts = find_type_conflicts(merged)
    assert len(conflicts) == 1
    assert conflicts[0][0] == "Guide"

    reverse = merge_schema_trees(structured, scalar_first)
    assert reverse.children["Guide"].type == OBJECT


def test_merge_array_beats_scalar():
    merged = merge_schema_trees(infer_schema({"Tags": "x"}), infer_schema({"Tags": ["x"]}))
    assert merged.children["Tags"].type == ARRAY
    assert collect_leaf_paths(merged) == ["Tags[]"]


def test_merge_all_handles_empty_input():
    assert merge_all([]) is None


def test_sample_documents_spreads_evenly():
    docs = list(range(100))
    assert sample_documents(docs, 4) == [0, 25, 50, 75]
    assert sample_documents(docs[:3], 10) == [0, 1, 2]


def test_infer_corpus_sees_late_document_subtypes():
    docs = [{"Kind": "bus"} for _ in range(50)] + [{"Kind": "ship", "Cabin": "A1"} for _ in range(50)]
    tree = infer_corpus(docs, sample_limit=4)
    assert "Cabin" in collect_leaf_paths(tree)


def test_sort_paths_uses_schema_order():
    tree = infer_schema(TOUR)
    assert sort_paths(["DailyList[].Day", "unknown", "TourID"], tree) == ["TourID", "DailyList[].Day", "unknown"]


def test_filter_valid_paths():
    tree = infer_schema(TOUR)
    assert filter_valid_paths(["Meta", "Meta.Region", "gone"], tree) == ["Meta.Region"]


def test_collect_all_paths_and_find_node():
    tree = infer_schema(TOUR)
    daily = find_node(tree, "DailyList[]")
    assert collect_all_paths(daily) == [
        "DailyList[]",
        "DailyList[].Day",
        "DailyList[].AttractionsList[]",
        "DailyList[].AttractionsList[].Name",
        "DailyList[].AttractionsList[].Ticket",
    ]
    assert find_node(tree, "nope") is None


def test_build_tree_from_schema():
    nested = build_tree_from_schema(infer_schema({"a": 1, "b": {"c": [1]}}))
    assert nested == {"a": "a", "b": {"c": "b.c[]"}}


def test_depth_guard(monkeypatch):
    from tour_schema_exporter import schema_utils

    monkeypatch.setattr(schema_utils, "MAX_DEPTH", 3)
    tree = infer_schema({"a": {"b": {"c": {"d": 1}}}})
    assert collect_leaf_paths(tree) == ["a.b.c"]


def _nested_dict(depth):
    doc = 1
    for _ in range(depth):
        doc = {"a": doc}
    return doc


def _nested_list(depth):
    doc = 1
    for _ in range(depth):
        doc = [doc]
    return doc


def test_infer_corpus_near_depth_limit():
    from tour_schema_exporter.schema_utils import MAX_DEPTH

    depth = MAX_DEPTH - 1
    docs = [_nested_dict(depth), _nested_dict(depth)]
    tree = infer_corpus(docs)
    paths = collect_leaf_paths(tree)
    assert paths == [".".join(["a"] * depth)]
    assert resolve_path(docs[0], paths[0]) == 1


def test_infer_corpus_deep_nested_lists():
    from tour_schema_exporter.schema_utils import MAX_DEPTH

    depth = MAX_DEPTH - 1
    tree = infer_corpus([_nested_list(depth), _nested_list(depth)])
    paths = collect_leaf_paths(tree)
    assert len(paths) == 1
    assert paths[0].count("[]") == depth


def test_deeper_than_limit_becomes_scalar_leaf():
    from tour_schema_exporter.schema_utils import MAX_DEPTH

    tree = infer_corpus([_nested_dict(MAX_DEPTH + 20)])
    paths = collect_leaf_paths(tree)
    assert paths == [".".join(["a"] * MAX_DEPTH)]


def test_merge_copies_deep_trees():
    tree = infer_schema(_nested_dict(200))
    merged = merge_schema_trees(tree, None)
    assert merged is not tree
    assert collect_leaf_paths(merged) == collect_leaf_paths(tree)


def test_key_ending_in_array_suffix_round_trips():
    doc = {"x[]": 5, "y": {"z[]": "v"}}
    for path in collect_leaf_paths(infer_schema(doc)):
        assert resolve_path(doc, path) is not MISSING
