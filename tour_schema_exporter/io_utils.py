from __future__ import annotations

import csv
import json
import os
from typing import Any, Dict, Iterable, List, Optional


def read_json_content(file_obj):
    """Read JSON content from an uploaded file or file path."""
    if file_obj is None:
        raise ValueError("No file uploaded.")

    if hasattr(file_obj, 'read'):
        if hasattr(file_obj, 'seek'):
            file_obj.seek(0)
        content = file_obj.read()
        if isinstance(content, bytes):
            content = content.decode('utf-8-sig')
        return json.loads(content)

    path = file_obj.name if hasattr(file_obj, 'name') else file_obj
    with open(path, 'r', encoding='utf-8-sig') as f:
        return json.load(f)


def file_display_name(file_obj) -> str:
    if isinstance(file_obj, (str, os.PathLike)):
        return os.path.basename(os.fspath(file_obj))
    name = getattr(file_obj, 'orig_name', None) or getattr(file_obj, 'name', None)
    return os.path.basename(str(name)) if name else 'unnamed.json'


def collect_headers(rows: Iterable[Dict[str, Any]]) -> List[str]:
    """Union of row keys in first-seen order."""
    headers: Dict[str, None] = {}
    for row in rows:
        for key in row:
            headers.setdefault(key, None)
    return list(headers)


def write_csv(rows: List[Dict[str, Any]], path: str, headers: Optional[List[str]] = None) -> str:
    headers = headers or collect_headers(rows)
    with open(path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=headers, extrasaction='ignore')
        writer.writeheader()
        if rows:
            writer.writerows(rows)
    return path


def write_json(rows: Any, path: str) -> str:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(rows, f, indent=2, ensure_ascii=False)
    return path
