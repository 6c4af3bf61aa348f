"""JSON import/export documents.

Exports always use the ``{"records": [...], "settings": {...}}`` shape. Imports
also accept a bare record array, in which case settings stay as they are.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import ImportFormatError, PersistenceError, ValidationError
from .models import Record, Settings
from .validators import coerce_settings, parse_amount

__all__ = [
    "DEFAULT_EXPORT_NAME",
    "ImportedData",
    "build_document",
    "parse_import",
    "read_import",
    "write_export",
]

DEFAULT_EXPORT_NAME = "student-finance-records.json"
_REQUIRED_TEXT_FIELDS = ("id", "description", "category", "date")
_TIMESTAMP_FIELDS = ("createdAt", "updatedAt")


@dataclass(frozen=True)
class ImportedData:
    records: List[Record]
    settings: Optional[Settings] = None


def build_document(records: Iterable[Record], settings: Settings) -> Dict[str, Any]:
    return {
        "records": [record.to_dict() for record in records],
        "settings": settings.to_dict(),
    }


def write_export(document: Dict[str, Any], path: Path) -> Path:
    path = Path(path)
    try:
        with path.open("w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2)
    except OSError as exc:
        raise PersistenceError(f"Unable to write export to {path}") from exc
    return path


def _check_record(index: int, raw: object) -> Record:
    if not isinstance(raw, dict):
        raise ImportFormatError(f"Record #{index} is not an object")
    for name in _REQUIRED_TEXT_FIELDS:
        value = raw.get(name)
        if not isinstance(value, str) or not value:
            raise ImportFormatError(f"Record #{index} is missing '{name}'")
    for name in _TIMESTAMP_FIELDS:
        if raw.get(name) is not None and not isinstance(raw[name], str):
            raise ImportFormatError(f"Record #{index} has a non-text '{name}'")
    amount = raw.get("amount")
    # bool is an int subclass but never a valid amount.
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ImportFormatError(f"Record #{index} has a non-numeric 'amount'")
    try:
        amount = parse_amount(amount, "amount")
    except ValidationError as exc:
        raise ImportFormatError(f"Record #{index} has an invalid 'amount': {exc}") from exc
    try:
        return Record.from_dict({**raw, "amount": amount})
    except (TypeError, ValueError) as exc:
        raise ImportFormatError(f"Record #{index} is malformed: {exc}") from exc


def _parse_records(raw_records: List[object]) -> List[Record]:
    records = [_check_record(index, raw) for index, raw in enumerate(raw_records)]
    seen = set()
    for record in records:
        if record.id in seen:
            raise ImportFormatError(f"Duplicate record id {record.id}")
        seen.add(record.id)
    return records


def parse_import(text: str) -> ImportedData:
    """Parse and validate a whole import document before anything is applied."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ImportFormatError("Import file is not valid JSON") from exc

    if isinstance(payload, list):
        return ImportedData(_parse_records(payload))

    if isinstance(payload, dict):
        raw_records = payload.get("records")
        raw_settings = payload.get("settings")
        if not isinstance(raw_records, list) or not isinstance(raw_settings, dict):
            raise ImportFormatError("Import document needs a 'records' array and a 'settings' object")
        try:
            settings = coerce_settings(raw_settings)
        except ValidationError as exc:
            raise ImportFormatError(f"Invalid settings: {exc}", exc.errors) from exc
        return ImportedData(_parse_records(raw_records), settings)

    raise ImportFormatError("Import document must be a record array or an object")


def read_import(path: Path) -> ImportedData:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ImportFormatError(f"Unable to read {path}") from exc
    return parse_import(text)
