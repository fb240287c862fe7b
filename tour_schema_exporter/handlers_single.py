from __future__ import annotations

import logging
import os
import tempfile
from typing import Any, Dict, List, Optional, Sequence

import gradio as gr

from .breadcrumbs import BreadcrumbTree, breadcrumb_level_options, build_breadcrumb_tree, match_breadcrumb
from .exporting import export_documents, write_export, write_failures
from .filters import ALL_COLUMNS
from .flattening import flatten_record
from .records import SourceDocument, available_contents, load_documents
from .schema_utils import SchemaNode, find_type_conflicts, infer_corpus, sample_documents
from .settings import (
    ExportSettings,
    SettingsStore,
    build_settings,
    restore_selection,
    save_selection,
    save_settings,
    toggle_path,
)

logger = logging.getLogger(__name__)

BREADCRUMB_LEVELS = 3
ANY_CODE_LABEL = "(any)"
PREVIEW_LIMIT = 3


def _settings_from_inputs(
    array_rule,
    separator,
    output_format,
    filter_type,
    keyword,
    column,
    mode,
    case_sensitive,
    source_path,
    codes: Sequence[Optional[str]],
) -> ExportSettings:
    return build_settings(
        array_rule=array_rule,
        separator=separator,
        export_format=output_format,
        filter_type=filter_type,
        keyword=keyword,
        column=column,
        mode=mode,
        case_sensitive=case_sensitive,
        breadcrumb_source_path=source_path,
        breadcrumb_codes=codes,
    )


def column_choices_update(selected_paths, current=None):
    choices = [ALL_COLUMNS] + list(selected_paths or [])
    value = current if current in choices else ALL_COLUMNS
    return gr.update(choices=choices, value=value)


def load_documents_handler(file_objs, store: SettingsStore, sample_limit: Optional[int] = None):
    """Parse uploads, infer the schema and restore the saved field selection."""
    if not file_objs:
        return None, None, [], "No file uploaded.", "", column_choices_update([]), None

    if not isinstance(file_objs, (list, tuple)):
        file_objs = [file_objs]

    documents = load_documents(file_objs)
    contents = available_contents(documents)
    failed = len(documents) - len(contents)
    if not contents:
        return documents, None, [], f"No valid JSON documents ({failed} failed to parse).", "", column_choices_update([]), None

    limit = sample_limit or ExportSettings().sample_limit
    tree = infer_corpus(contents, sample_limit=limit)
    selected = restore_selection(store, tree)

    message = f"Successfully loaded {len(contents)} documents."
    if failed:
        message += f" {failed} file(s) could not be parsed."
    conflicts = find_type_conflicts(tree)
    if conflicts:
        message += f" {len(conflicts)} field(s) changed type between documents; kept the structured shape."

    count_text = f"Documents: {len(contents)} (schema sample: {min(len(contents), limit)})"
    return documents, tree, selected, message, count_text, column_choices_update(selected), None


def toggle_field_handler(path: str, is_selected: bool, selected_paths, tree: Optional[SchemaNode], store: SettingsStore):
    selected = toggle_path(list(selected_paths or []), path, bool(is_selected), tree)
    save_selection(store, selected)
    return selected


def persist_settings_handler(array_rule, output_format, store: SettingsStore):
    save_settings(store, build_settings(array_rule=array_rule, export_format=output_format))


def _level_update(tree: Optional[BreadcrumbTree], codes: Sequence[Optional[str]], level: int):
    options = breadcrumb_level_options(tree or {}, codes, level)
    choices = [(ANY_CODE_LABEL, "")] + [(f"{o.name} ({o.code})", o.code) for o in options]
    current = codes[level] if level < len(codes) else ""
    value = current if current in {o.code for o in options} else ""
    return gr.update(choices=choices, value=value, interactive=bool(options))


def breadcrumb_source_handler(documents: Optional[List[SourceDocument]], source_path: str):
    """Rebuild the breadcrumb tree for a new source path and reset the drill-down."""
    tree = build_breadcrumb_tree(available_contents(documents or []), source_path)
    codes: List[str] = [""] * BREADCRUMB_LEVELS
    return (tree,) + tuple(_level_update(tree, codes, level) for level in range(BREADCRUMB_LEVELS))


def breadcrumb_level_handler(tree: Optional[BreadcrumbTree], *codes):
    """Refresh every level below the first so it lists children of the chosen parents."""
    codes = list(codes) + [""] * (BREADCRUMB_LEVELS - len(codes))
    # Clear selections under a parent that no longer offers them.
    for level in range(1, BREADCRUMB_LEVELS):
        options = {o.code for o in breadcrumb_level_options(tree or {}, codes, level)}
        if codes[level] not in options:
            codes[level] = ""
    return tuple(_level_update(tree, codes, level) for level in range(1, BREADCRUMB_LEVELS))


def preview_rows(documents: Sequence[SourceDocument], selected_paths: Sequence[str], settings: ExportSettings, limit: int = PREVIEW_LIMIT) -> List[Dict[str, Any]]:
    """First matching rows from an evenly spread sample of the documents."""
    rows: List[Dict[str, Any]] = []
    for content in sample_documents(available_contents(documents), settings.sample_limit):
        if settings.breadcrumb_active and not match_breadcrumb(
            content, settings.breadcrumb_source_path, settings.breadcrumb_codes
        ):
            continue
        row = flatten_record(content, selected_paths, settings.array_rule, settings.separator)
        if settings.keyword_active and not settings.keyword_filter.matches(row):
            continue
        rows.append(row)
        if len(rows) >= limit:
            break
    return rows


def preview_handler(documents, selected_paths, array_rule, separator, filter_type, keyword, column, mode, case_sensitive, source_path, *codes):
    if not documents or not selected_paths:
        return None
    settings = _settings_from_inputs(
        array_rule, separator, "csv", filter_type, keyword, column, mode, case_sensitive, source_path, codes
    )
    rows = preview_rows(documents, selected_paths, settings)
    return rows if rows else None


def export_data_handler(
    documents,
    selected_paths,
    array_rule,
    separator,
    output_format,
    file_name,
    filter_type,
    keyword,
    column,
    mode,
    case_sensitive,
    source_path,
    *codes,
    store: Optional[SettingsStore] = None,
):
    if not documents:
        return None, None, "No data loaded."

    if not selected_paths:
        return None, None, "No fields selected."

    settings = _settings_from_inputs(
        array_rule, separator, output_format, filter_type, keyword, column, mode, case_sensitive, source_path, codes
    )
    if store is not None:
        save_settings(store, settings)

    result = export_documents(documents, selected_paths, settings)

    if not file_name or not file_name.strip():
        file_name = "tour_export"
    file_name = file_name.strip()

    ext = f".{settings.export_format}"
    if not file_name.lower().endswith(ext):
        file_name += ext

    temp_dir = tempfile.gettempdir()
    path = os.path.join(temp_dir, file_name)
    failure_path = None

    try:
        write_export(result, selected_paths, path, settings.export_format)
        if result.failures:
            failure_path = os.path.join(temp_dir, "export_failures.json")
            write_failures(result.failures, failure_path)
    except OSError as e:
        logger.exception("Writing export to %s failed", path)
        return None, None, f"Error during export: {str(e)}"

    summary = (
        f"Export successful! Rows: {result.success_count} | "
        f"Processed: {result.processed} | Failures: {result.failure_count}. Saved to {path}"
    )
    return path, failure_path, summary
