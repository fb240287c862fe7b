"""Hierarchical code filters built from `{code, name}` chains inside documents.

A breadcrumb is an ordered list such as
`[{"code": "ASIA", "name": "Asia"}, {"code": "JP", "name": "Japan"}]`.
Documents may carry several of them, typically wrapped in query results:
`{"queries": {"getCommBreadcrumb": [{"data": [...chain...]}, ...]}}`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .accessors import resolve_path

DEFAULT_SOURCE_PATH = 'queries.getCommBreadcrumb'

# Source paths naming this query always use the wrapper shape.
_QUERY_WRAPPER_HINT = 'getCommBreadcrumb'


@dataclass
class BreadcrumbOption:
    code: str
    name: str
    children: Dict[str, 'BreadcrumbOption'] = field(default_factory=dict)


BreadcrumbTree = Dict[str, BreadcrumbOption]


def _is_query_wrapper(value: Any) -> bool:
    return (
        isinstance(value, list)
        and bool(value)
        and all(isinstance(item, dict) and 'data' in item for item in value)
    )


def extract_chains(document: Any, source_path: str = DEFAULT_SOURCE_PATH) -> List[List[Any]]:
    """Return every breadcrumb chain found at `source_path` in a document.

    A list of `{data: [...]}` wrappers yields one chain per wrapper; any other
    list is taken as a single chain.
    """
    target = resolve_path(document, source_path or DEFAULT_SOURCE_PATH)
    if not isinstance(target, list):
        return []

    if _QUERY_WRAPPER_HINT in (source_path or '') or _is_query_wrapper(target):
        return [
            item['data']
            for item in target
            if isinstance(item, dict) and isinstance(item.get('data'), list)
        ]
    return [target]


def _add_chain(tree: BreadcrumbTree, chain: Sequence[Any]) -> None:
    level = tree
    for node in chain:
        if not isinstance(node, dict) or not node.get('code'):
            continue
        code = str(node['code'])
        if code not in level:
            name = node.get('name') or code
            level[code] = BreadcrumbOption(code=code, name=str(name))
        level = level[code].children


def build_breadcrumb_tree(documents: Iterable[Any], source_path: str = DEFAULT_SOURCE_PATH) -> BreadcrumbTree:
    """Insert every chain of every document into one prefix tree.

    Codes are deduplicated per level; a code keeps the name it was first seen with.
    """
    tree: BreadcrumbTree = {}
    for document in documents:
        for chain in extract_chains(document, source_path):
            _add_chain(tree, chain)
    return tree


def _chain_matches(chain: Sequence[Any], selected_codes: Sequence[str]) -> bool:
    for i, code in enumerate(selected_codes):
        if not code:
            continue
        node = chain[i] if i < len(chain) else None
        if not isinstance(node, dict) or not node:
            return False
        if str(node.get('code')) != str(code):
            return False
    return True


def match_breadcrumb(document: Any, source_path: str, selected_codes: Sequence[Optional[str]]) -> bool:
    """True when any chain in the document agrees with the selected codes.

    Empty slots are "don't care"; selecting nothing matches every document.
    """
    if not selected_codes or not any(selected_codes):
        return True
    return any(_chain_matches(chain, selected_codes) for chain in extract_chains(document, source_path))


def breadcrumb_level_options(
    tree: BreadcrumbTree,
    selected_codes: Sequence[Optional[str]],
    level: int,
) -> List[BreadcrumbOption]:
    """Options offered at drill-down `level` given the codes chosen above it.

    An unselected parent leaves the level empty.
    """
    options = tree
    for code in list(selected_codes)[:level]:
        if not code or code not in options:
            return []
        options = options[code].children
    return list(options.values())
