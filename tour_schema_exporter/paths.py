from __future__ import annotations

from typing import List, Tuple

ARRAY_SUFFIX = '[]'
SEPARATOR = '.'


def split_path(path: str) -> List[str]:
    """Split a dot path into its segments.

    Segments keep their `[]` suffix; empty segments are dropped so that
    `'a..b'` and `'a.b'` resolve the same way.
    """
    if path is None:
        return []
    if not isinstance(path, str):
        path = str(path)
    return [p for p in path.split(SEPARATOR) if p != '']


def parse_segment(segment: str) -> Tuple[str, bool]:
    """Return `(key, is_array)` for one path segment.

    `'DailyList[]'` -> `('DailyList', True)`, a bare `'[]'` -> `('', True)`.
    """
    if segment.endswith(ARRAY_SUFFIX):
        return segment[:-len(ARRAY_SUFFIX)], True
    return segment, False


def join_path(parent: str, key: str, is_array: bool = False) -> str:
    """Extend `parent` by one segment.

    At the root the key stands alone; an array with no key (the root array or
    an array nested directly in another array) becomes a bare `[]` segment.
    """
    segment = f"{key}{ARRAY_SUFFIX}" if is_array else key
    if not parent:
        return segment
    return f"{parent}{SEPARATOR}{segment}"


def is_array_path(path: str) -> bool:
    return any(parse_segment(seg)[1] for seg in split_path(path))


def leaf_name(path: str) -> str:
    """Default column label for a path: its last key without the array suffix."""
    parts = split_path(path)
    if not parts:
        return path or ''
    key, _ = parse_segment(parts[-1])
    return key or parts[-1]
