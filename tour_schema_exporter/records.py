from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .accessors import get_value_by_path
from .io_utils import file_display_name, read_json_content

logger = logging.getLogger(__name__)

DEFAULT_ID_FIELD = 'TourID'
UNKNOWN_ID = 'UNKNOWN'


class ErrorCode(str, Enum):
    PARSE = 'E_PARSE'
    EXPORT_FAILED = 'E_EXPORT_FAILED'


@dataclass
class SourceDocument:
    """One uploaded file and, when it parsed, its JSON content."""

    name: str
    content: Any = None
    available: bool = True
    error: Optional[str] = None


@dataclass
class ExportFailure:
    tour_id: str
    source_file: str
    error_code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class ExportResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    failures: List[ExportFailure] = field(default_factory=list)
    processed: int = 0

    @property
    def success_count(self) -> int:
        return len(self.rows)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


def document_identifier(content: Any, id_field: str = DEFAULT_ID_FIELD) -> str:
    value = get_value_by_path(content, id_field) if isinstance(content, dict) else None
    if value is None or value == '' or isinstance(value, (dict, list)):
        return UNKNOWN_ID
    return str(value)


def load_document(file_obj) -> SourceDocument:
    name = file_display_name(file_obj)
    try:
        content = read_json_content(file_obj)
    except (ValueError, OSError) as exc:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors.
        logger.warning("Could not parse %s: %s", name, exc)
        return SourceDocument(name=name, available=False, error=str(exc))
    return SourceDocument(name=name, content=content)


def load_documents(file_objs: Optional[Iterable[Any]]) -> List[SourceDocument]:
    """Parse every file independently; bad files are kept as unavailable entries."""
    documents = [load_document(f) for f in (file_objs or [])]
    failed = sum(1 for d in documents if not d.available)
    logger.info("Loaded %d documents (%d failed to parse).", len(documents) - failed, failed)
    return documents


def available_contents(documents: Iterable[SourceDocument]) -> List[Any]:
    return [d.content for d in documents if d.available]


def parse_failures(documents: Iterable[SourceDocument]) -> List[ExportFailure]:
    return [
        ExportFailure(
            tour_id=UNKNOWN_ID,
            source_file=d.name,
            error_code=ErrorCode.PARSE.value,
            message=d.error or 'Invalid JSON',
        )
        for d in documents
        if not d.available
    ]
