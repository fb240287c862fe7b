"""Export settings and the key-value store that remembers them between runs."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .breadcrumbs import DEFAULT_SOURCE_PATH
from .filters import ALL_COLUMNS, KeywordFilter, MatchMode
from .flattening import DEFAULT_SEPARATOR, ArrayRule
from .schema_utils import DEFAULT_SAMPLE_LIMIT, SchemaNode, collect_leaf_paths, filter_valid_paths, sort_paths

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('csv', 'json')
FILTER_TYPES = ('keyword', 'breadcrumb')

ARRAY_RULE_KEY = 'arrayRule'
EXPORT_FORMAT_KEY = 'exportFormat'
SELECTED_PATHS_KEY = 'selectedPaths'

DEFAULT_STORE_PATH = os.path.join(os.path.expanduser('~'), '.tour_schema_exporter', 'settings.json')


@dataclass(frozen=True)
class ExportSettings:
    """Everything that shapes one export run."""

    array_rule: ArrayRule = ArrayRule.JOIN
    separator: str = DEFAULT_SEPARATOR
    export_format: str = 'csv'
    filter_type: str = 'keyword'
    keyword_filter: KeywordFilter = field(default_factory=KeywordFilter)
    breadcrumb_source_path: str = DEFAULT_SOURCE_PATH
    breadcrumb_codes: Tuple[str, ...] = ()
    sample_limit: int = DEFAULT_SAMPLE_LIMIT
    chunk_size: int = 50
    id_field: str = 'TourID'

    @property
    def breadcrumb_active(self) -> bool:
        return self.filter_type == 'breadcrumb' and any(self.breadcrumb_codes)

    @property
    def keyword_active(self) -> bool:
        return self.filter_type == 'keyword' and self.keyword_filter.active


def build_settings(
    array_rule: Any = ArrayRule.JOIN,
    separator: Optional[str] = None,
    export_format: Optional[str] = None,
    filter_type: Optional[str] = None,
    keyword: str = '',
    column: Optional[str] = None,
    mode: Any = MatchMode.CONTAINS,
    case_sensitive: bool = False,
    breadcrumb_source_path: Optional[str] = None,
    breadcrumb_codes: Iterable[Optional[str]] = (),
    **extra: Any,
) -> ExportSettings:
    """Normalise raw UI values into `ExportSettings`; unknown values fall back to defaults."""
    export_format = (export_format or 'csv').strip().lower()
    filter_type = (filter_type or 'keyword').strip().lower()
    return ExportSettings(
        array_rule=ArrayRule.coerce(array_rule),
        separator=DEFAULT_SEPARATOR if separator is None or separator == '' else separator,
        export_format=export_format if export_format in EXPORT_FORMATS else 'csv',
        filter_type=filter_type if filter_type in FILTER_TYPES else 'keyword',
        keyword_filter=KeywordFilter(
            keyword=keyword or '',
            column=column or ALL_COLUMNS,
            mode=MatchMode.coerce(mode),
            case_sensitive=bool(case_sensitive),
        ),
        breadcrumb_source_path=(breadcrumb_source_path or '').strip() or DEFAULT_SOURCE_PATH,
        breadcrumb_codes=tuple(c or '' for c in breadcrumb_codes),
        **extra,
    )


class SettingsStore(Protocol):
    def load(self, key: str) -> Optional[Any]:
        ...

    def save(self, key: str, value: Any) -> None:
        ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def load(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def save(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore:
    """Key-value store persisted as a single JSON object on disk."""

    def __init__(self, path: str = DEFAULT_STORE_PATH):
        self.path = path

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def save(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)


def load_settings(store: SettingsStore, base: Optional[ExportSettings] = None) -> ExportSettings:
    """Apply the persisted array rule and export format on top of `base`."""
    settings = base or ExportSettings()
    rule = store.load(ARRAY_RULE_KEY)
    export_format = store.load(EXPORT_FORMAT_KEY)
    if rule:
        settings = replace(settings, array_rule=ArrayRule.coerce(rule))
    if export_format in EXPORT_FORMATS:
        settings = replace(settings, export_format=export_format)
    return settings


def save_settings(store: SettingsStore, settings: ExportSettings) -> None:
    store.save(ARRAY_RULE_KEY, settings.array_rule.value)
    store.save(EXPORT_FORMAT_KEY, settings.export_format)


def restore_selection(store: SettingsStore, tree: Optional[SchemaNode]) -> List[str]:
    """Saved selection still valid for `tree`, in schema order.

    Falls back to every leaf path when nothing saved survives.
    """
    all_paths = collect_leaf_paths(tree)
    saved = store.load(SELECTED_PATHS_KEY)
    if isinstance(saved, list):
        valid = filter_valid_paths([p for p in saved if isinstance(p, str)], tree)
        if valid:
            return sort_paths(valid, tree)
    return all_paths


def save_selection(store: SettingsStore, paths: List[str]) -> None:
    if paths:
        store.save(SELECTED_PATHS_KEY, list(paths))


def toggle_path(selected: List[str], path: str, included: bool, tree: Optional[SchemaNode]) -> List[str]:
    return toggle_paths(selected, [path], included, tree)


def toggle_paths(selected: List[str], paths: List[str], included: bool, tree: Optional[SchemaNode]) -> List[str]:
    """Add or remove `paths` and return the selection re-sorted in schema order."""
    remaining = [p for p in selected if p not in paths]
    if included:
        remaining.extend(paths)
    return sort_paths(remaining, tree)
