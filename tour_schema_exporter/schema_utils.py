from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .paths import join_path

logger = logging.getLogger(__name__)

SCALAR = 'scalar'
ARRAY = 'array'
OBJECT = 'object'

ROOT_NAME = 'root'

# Nesting deeper than this is summarised as a scalar leaf.
MAX_DEPTH = 256

# Upper bound on documents read when building a representative schema.
DEFAULT_SAMPLE_LIMIT = 20

# object vs scalar: object wins; array vs anything: array wins.
_TYPE_RANK = {SCALAR: 0, OBJECT: 1, ARRAY: 2}


@dataclass
class SchemaNode:
    """One structural position observed across a corpus of documents."""

    name: str
    path: str
    type: str
    children: Dict[str, 'SchemaNode'] = field(default_factory=dict)
    conflicts: List[str] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return self.type == SCALAR or (self.type == ARRAY and not self.children)


def infer_schema(
    data: Any,
    name: str = ROOT_NAME,
    path: str = '',
    strategy: str = 'structural',
    _depth: int = 0,
) -> SchemaNode:
    """Build a schema tree for a single JSON document.

    Array elements are each inferred on their own and the candidate subtrees
    are merged (`strategy='structural'`), so a field seen in any element is
    kept even if later elements have it empty or absent.

    `strategy='composite'` is the older behaviour: element values are first
    deep-merged into one representative value that is inferred once. It loses
    fields when an element carries an empty object where another has content.
    """
    if _depth >= MAX_DEPTH:
        logger.warning("Schema depth limit (%d) reached at %r; treating as scalar.", MAX_DEPTH, path)
        return SchemaNode(name=name, path=path, type=SCALAR)

    if isinstance(data, dict):
        node = SchemaNode(name=name, path=path, type=OBJECT)
        for key, value in data.items():
            key = str(key)
            child_path = join_path(path, key, is_array=isinstance(value, list))
            node.children[key] = infer_schema(value, key, child_path, strategy, _depth + 1)
        return node

    if isinstance(data, list):
        # Array paths carry the '[]' suffix already (see join_path callers),
        # except for a root array.
        array_path = path if path.endswith('[]') else join_path(path, '', is_array=True)
        node = SchemaNode(name=name, path=array_path, type=ARRAY)
        if not data:
            return node

        if strategy == 'composite':
            composite = composite_merge_values(data)
            node.children = _element_children(composite, array_path, strategy, _depth)
            return node

        for item in data:
            element = SchemaNode(name=name, path=array_path, type=ARRAY)
            element.children = _element_children(item, array_path, strategy, _depth)
            node = merge_schema_trees(node, element)
        return node

    return SchemaNode(name=name, path=path, type=SCALAR)


def _element_children(item: Any, array_path: str, strategy: str, depth: int) -> Dict[str, SchemaNode]:
    """Children an array element contributes to its array node."""
    if isinstance(item, dict):
        return infer_schema(item, ROOT_NAME, array_path, strategy, depth + 1).children
    if isinstance(item, list):
        nested_path = join_path(array_path, '', is_array=True)
        return {'[]': infer_schema(item, '[]', nested_path, strategy, depth + 1)}
    return {}


def composite_merge_values(items: Sequence[Any]) -> Any:
    """Deep-merge raw array elements into one representative value.

    Objects merge key by key and arrays at every level are concatenated, but
    any other later value (an empty object, a null, a scalar) replaces what
    came before, which is how sub-fields get lost.
    """
    composite: Any = None
    for item in items:
        composite = _composite_pair(composite, item)
    return composite


def _composite_pair(left: Any, right: Any) -> Any:
    if isinstance(left, dict) and isinstance(right, dict) and right:
        merged = dict(left)
        for key, value in right.items():
            merged[key] = _composite_pair(merged[key], value) if key in merged else value
        return merged
    if isinstance(left, list) and isinstance(right, list):
        return left + right
    return right


def copy_schema_tree(node: SchemaNode) -> SchemaNode:
    """Copy a schema tree without recursing, so depth is bounded only by memory."""
    root = _copy_node(node)
    stack = [(node, root)]
    while stack:
        source, target = stack.pop()
        for key, child in source.children.items():
            target.children[key] = _copy_node(child)
            stack.append((child, target.children[key]))
    return root


def _copy_node(node: SchemaNode) -> SchemaNode:
    return SchemaNode(name=node.name, path=node.path, type=node.type, conflicts=list(node.conflicts))


def _merge_header(a: SchemaNode, b: SchemaNode) -> SchemaNode:
    """Childless merged node for `a` and `b`, carrying their conflicts."""
    if a.type == b.type or _TYPE_RANK[a.type] > _TYPE_RANK[b.type]:
        winner, loser = a, b
    else:
        winner, loser = b, a

    merged = _copy_node(winner)
    merged.conflicts = _unique(a.conflicts + b.conflicts)
    if a.type != b.type:
        message = f"{loser.path or ROOT_NAME}: {loser.type} observed, kept {winner.type}"
        logger.debug("Schema type conflict %s", message)
        merged.conflicts = _unique(merged.conflicts + [message])
    return merged


def merge_schema_trees(a: Optional[SchemaNode], b: Optional[SchemaNode]) -> Optional[SchemaNode]:
    """Merge two schema trees rooted at the same position.

    Inputs are left untouched. Children are unioned by name; on a type
    disagreement the more structured side wins and the disagreement is
    recorded in `conflicts`.
    """
    if a is None:
        return copy_schema_tree(b) if b is not None else None
    if b is None:
        return copy_schema_tree(a)

    root = _merge_header(a, b)
    stack = [(a, b, root)]
    while stack:
        left, right, merged = stack.pop()
        if left.type != right.type:
            winner = left if merged.type == left.type else right
            for key, child in winner.children.items():
                merged.children[key] = copy_schema_tree(child)
            continue

        for key, child in left.children.items():
            other = right.children.get(key)
            if other is None:
                merged.children[key] = copy_schema_tree(child)
            else:
                merged.children[key] = _merge_header(child, other)
                stack.append((child, other, merged.children[key]))
        for key, child in right.children.items():
            if key not in merged.children:
                merged.children[key] = copy_schema_tree(child)
    return root


def _unique(items: List[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def merge_all(trees: Iterable[SchemaNode]) -> Optional[SchemaNode]:
    merged: Optional[SchemaNode] = None
    for tree in trees:
        merged = merge_schema_trees(merged, tree)
    return merged


def sample_documents(documents: Sequence[Any], limit: int = DEFAULT_SAMPLE_LIMIT) -> List[Any]:
    """Pick at most `limit` documents at an even stride across the input, in order."""
    total = len(documents)
    limit = max(1, int(limit))
    if total <= limit:
        return list(documents)
    return [documents[(i * total) // limit] for i in range(limit)]


def infer_corpus(
    documents: Sequence[Any],
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
    strategy: str = 'structural',
) -> Optional[SchemaNode]:
    """Infer one merged schema tree from a bounded sample of documents."""
    sample = sample_documents(documents, sample_limit) if documents else []
    tree = merge_all(infer_schema(doc, strategy=strategy) for doc in sample)
    if tree is not None:
        logger.info("Inferred schema from %d of %d documents.", len(sample), len(documents))
    return tree


def _iter_preorder(tree: SchemaNode):
    stack = [tree]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(list(node.children.values())))


def collect_leaf_paths(tree: Optional[SchemaNode]) -> List[str]:
    """Pre-order list of selectable leaf paths.

    Scalars are leaves, and so are arrays without observed sub-structure
    (arrays of scalars such as `Tags[]`). This order is the canonical column
    order for saved selections.
    """
    if tree is None:
        return []
    return [node.path for node in _iter_preorder(tree) if node.path and node.is_leaf]


def collect_all_paths(node: SchemaNode) -> List[str]:
    """Every non-root path at or below `node`, in pre-order."""
    return [n.path for n in _iter_preorder(node) if n.name != ROOT_NAME and n.path]


def find_node(tree: Optional[SchemaNode], path: str) -> Optional[SchemaNode]:
    if tree is None:
        return None
    for node in _iter_preorder(tree):
        if node.path == path:
            return node
    return None


def find_type_conflicts(tree: Optional[SchemaNode]) -> List[Tuple[str, str]]:
    if tree is None:
        return []
    return [(node.path, message) for node in _iter_preorder(tree) for message in node.conflicts]


def sort_paths(paths: Iterable[str], tree: Optional[SchemaNode]) -> List[str]:
    """Re-order `paths` by schema pre-order; unknown paths go last as given."""
    paths = list(paths)
    if tree is None:
        return paths
    order = {p: i for i, p in enumerate(collect_leaf_paths(tree))}
    ranked = sorted(enumerate(paths), key=lambda pair: (order.get(pair[1], len(order)), pair[0]))
    return [p for _, p in ranked]


def filter_valid_paths(paths: Iterable[str], tree: Optional[SchemaNode]) -> List[str]:
    valid = set(collect_leaf_paths(tree))
    return [p for p in paths if p in valid]


def build_tree_from_schema(tree: SchemaNode) -> Dict[str, Any]:
    """Convert a schema tree into the nested dict used to render checkboxes.

    Leaf nodes are strings (the full path), branch nodes are dictionaries.
    """
    out: Dict[str, Any] = {}
    for key, child in tree.children.items():
        out[key] = child.path if child.is_leaf else build_tree_from_schema(child)
    return out
