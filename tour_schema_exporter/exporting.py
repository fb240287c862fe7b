from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .breadcrumbs import match_breadcrumb
from .flattening import flatten_record
from .io_utils import write_csv, write_json
from .records import (
    ErrorCode,
    ExportFailure,
    ExportResult,
    SourceDocument,
    document_identifier,
    parse_failures,
)
from .settings import ExportSettings

logger = logging.getLogger(__name__)

# Columns appended after the selected paths.
ID_COLUMN = 'TourID_Meta'
SOURCE_COLUMN = 'SourceFile'

ProgressCallback = Callable[[int, int, int], None]


def _reserved_column(name: str, row: Dict[str, Any]) -> str:
    while name in row:
        name = f"_{name}"
    return name


def build_export_row(document: SourceDocument, selected_paths: Sequence[str], settings: ExportSettings) -> Dict[str, Any]:
    row = flatten_record(document.content, selected_paths, settings.array_rule, settings.separator)
    row[_reserved_column(ID_COLUMN, row)] = document_identifier(document.content, settings.id_field)
    row[_reserved_column(SOURCE_COLUMN, row)] = document.name
    return row


def _export_one(document: SourceDocument, selected_paths: Sequence[str], settings: ExportSettings) -> Optional[Dict[str, Any]]:
    """Flatten one document, or return None when a filter rejects it."""
    if settings.breadcrumb_active and not match_breadcrumb(
        document.content, settings.breadcrumb_source_path, settings.breadcrumb_codes
    ):
        return None

    row = build_export_row(document, selected_paths, settings)

    if settings.keyword_active and not settings.keyword_filter.matches(row):
        return None
    return row


def export_documents(
    documents: Sequence[SourceDocument],
    selected_paths: Sequence[str],
    settings: Optional[ExportSettings] = None,
    progress: Optional[ProgressCallback] = None,
) -> ExportResult:
    """Flatten a batch of documents into export rows.

    Documents are handled in chunks of `settings.chunk_size`; a failure in one
    document becomes an `ExportFailure` and the rest of the batch continues.
    Row order follows input order.
    """
    settings = settings or ExportSettings()
    result = ExportResult(failures=parse_failures(documents))
    parsable = [d for d in documents if d.available]
    total = len(parsable)
    chunk_size = max(1, int(settings.chunk_size))

    for start in range(0, total, chunk_size):
        chunk = parsable[start:start + chunk_size]
        for document in chunk:
            try:
                row = _export_one(document, selected_paths, settings)
            except Exception as exc:
                logger.warning("Export failed for %s: %s", document.name, exc)
                result.failures.append(
                    ExportFailure(
                        tour_id=document_identifier(document.content, settings.id_field),
                        source_file=document.name,
                        error_code=ErrorCode.EXPORT_FAILED.value,
                        message=str(exc) or 'Unknown error during flattening',
                    )
                )
                continue
            if row is not None:
                result.rows.append(row)
        result.processed += len(chunk)
        if progress is not None:
            progress(result.processed, total, len(result.rows))

    logger.info(
        "Exported %d of %d documents (%d failures).",
        result.success_count,
        len(documents),
        result.failure_count,
    )
    return result


def export_headers(selected_paths: Sequence[str], rows: List[Dict[str, Any]]) -> List[str]:
    """Selected paths first, then any other columns the rows carry."""
    headers = list(dict.fromkeys(selected_paths))
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)
    return headers


def write_export(result: ExportResult, selected_paths: Sequence[str], path: str, export_format: str = 'csv') -> str:
    if export_format == 'json':
        return write_json(result.rows, path)
    return write_csv(result.rows, path, export_headers(selected_paths, result.rows))


def write_failures(failures: Sequence[ExportFailure], path: str) -> str:
    return write_json([f.to_dict() for f in failures], path)
