from __future__ import annotations

from typing import Any, List, Tuple

from .paths import ARRAY_SUFFIX, SEPARATOR, parse_segment, split_path


class _Missing:
    """Marker for "no value at this path", distinct from a JSON null."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return 'MISSING'


MISSING = _Missing()


def _lookup(container: Any, keys: List[str], i: int) -> Tuple[Any, bool, int]:
    """Look up `keys[i]` in `container`.

    Returns `(value, is_array_segment, next_index)`. An array segment whose
    stripped key holds no list is read as a literal key when the container
    has one (`'x[]'`). Falls back to unescaped
    dotted dict keys (e.g. `'gpt-3.5-turbo'`) by joining the following
    segments back together when the plain key is absent.
    """
    key, is_array = parse_segment(keys[i])

    if isinstance(container, dict):
        if is_array and keys[i] in container and not isinstance(container.get(key), list):
            # A key that literally ends in '[]', e.g. {"x[]": 5}.
            return container[keys[i]], False, i + 1
        if key in container:
            return container[key], is_array, i + 1
        candidate = keys[i]
        for j in range(i + 1, len(keys)):
            candidate = candidate + SEPARATOR + keys[j]
            cand_key, cand_array = parse_segment(candidate)
            if cand_key in container:
                return container[cand_key], cand_array, j + 1
        return MISSING, is_array, i + 1

    if isinstance(container, list) and key.isdigit():
        index = int(key)
        if index < len(container):
            return container[index], is_array, i + 1

    return MISSING, is_array, i + 1


def _resolve(data: Any, keys: List[str]) -> Any:
    current = data
    i = 0
    while i < len(keys):
        if keys[i] == ARRAY_SUFFIX:
            # Bare '[]': the current value itself is the array.
            target, is_array, next_i = current, True, i + 1
        else:
            if not isinstance(current, (dict, list)):
                return MISSING
            target, is_array, next_i = _lookup(current, keys, i)
            if target is MISSING:
                return MISSING

        if not is_array:
            current = target
            i = next_i
            continue

        if not isinstance(target, list):
            return MISSING

        rest = keys[next_i:]
        if not rest:
            return target

        # Each element resolves the remaining suffix; sub-sequences produced by
        # deeper array segments are concatenated in element order.
        nested = any(parse_segment(seg)[1] for seg in rest)
        results: List[Any] = []
        for item in target:
            value = _resolve(item, rest)
            if value is MISSING:
                continue
            if nested and isinstance(value, list):
                results.extend(value)
            else:
                results.append(value)
        return results

    return current


def resolve_path(data: Any, path: str) -> Any:
    """Resolve a dot/array path against a JSON document.

    Returns the value, a flat list of values when the path crosses array
    segments, or `MISSING` when any segment cannot be followed. Never raises.
    """
    keys = split_path(path)
    if not keys:
        return MISSING
    try:
        return _resolve(data, keys)
    except Exception:
        return MISSING


def get_value_by_path(data: Any, path: str, default: Any = None) -> Any:
    """Retrieve value from nested data using a dot-notation path."""
    value = resolve_path(data, path)
    return default if value is MISSING else value
