"""Framework-agnostic business services for the student finance tracker."""

from __future__ import annotations

import unicodedata
from dataclasses import replace
from datetime import date
from decimal import InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .aggregation import Summary, compute_summary
from .exceptions import PersistenceError, RecordNotFoundError, ValidationError
from .logging_setup import get_logger
from .models import Record, Settings, generate_id, utcnow
from .search import SearchHit, amount_text, filter_records
from .storage import RECORDS_KEY, SETTINGS_KEY, JSONStorage
from .transfer import ImportedData, build_document, parse_import
from .validators import (
    coerce_settings,
    parse_amount,
    validate_category_name,
    validate_record_form,
)

logger = get_logger(__name__)

Listener = Callable[[str], None]


def _collation_key(text: str) -> Tuple[str, str]:
    # Accent- and case-insensitive primary key, raw text as tie-break.
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return base.casefold(), text


SORT_KEYS: Dict[str, Tuple[Callable[[Record], Any], bool]] = {
    "date": (lambda record: record.date, True),
    "description": (lambda record: _collation_key(record.description), False),
    "amount": (lambda record: record.amount, True),
}


class _Observable:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(event)``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event)


class RecordService(_Observable):
    """Owns the ordered record sequence and writes it through to storage."""

    def __init__(self, storage: JSONStorage, resource: str = RECORDS_KEY) -> None:
        super().__init__()
        self._storage = storage
        self._resource = resource
        self._records: List[Record] = []
        self.load()  # Hydrate in-memory list from persistence on construction.

    # Public API -----------------------------------------------------------
    def add(self, payload: Mapping[str, object]) -> Record:
        """Validate a submitted form and create the record."""
        fields = validate_record_form(payload)
        return self.create(**fields)

    def create(self, description: str, amount: object, category: str, date: str) -> Record:
        """Append a new record. Callers are expected to have validated the fields."""
        now = utcnow()
        record = Record(
            id=generate_id(),
            description=description.strip(),
            amount=parse_amount(amount, "amount"),
            category=category,
            date=date,
            created_at=now,
            updated_at=now,
        )
        self._records.append(record)
        self._commit("created")
        logger.info("Created record %s", record.id)
        return record

    def update(
        self, record_id: str, description: str, amount: object, category: str, date: str
    ) -> Record:
        """Replace every field but ``id``/``created_at`` in place."""
        index = self._index_or_raise(record_id)
        updated = replace(
            self._records[index],
            description=description.strip(),
            amount=parse_amount(amount, "amount"),
            category=category,
            date=date,
            updated_at=utcnow(),
        )
        self._records[index] = updated
        self._commit("updated")
        return updated

    def edit(self, record_id: str, changes: Mapping[str, object]) -> Record:
        """Validated partial update: unspecified fields keep their current value."""
        existing = self.get(record_id)
        merged: Dict[str, object] = {
            "description": existing.description,
            "amount": amount_text(existing.amount),
            "category": existing.category,
            "date": existing.date,
        }
        merged.update({key: value for key, value in changes.items() if value is not None})
        fields = validate_record_form(merged)
        return self.update(record_id, **fields)

    def delete(self, record_id: str) -> None:
        index = self._index_or_raise(record_id)
        del self._records[index]
        self._commit("deleted")
        logger.info("Deleted record %s", record_id)

    def get(self, record_id: str) -> Record:
        """Return a record or raise if it does not exist."""
        return self._records[self._index_or_raise(record_id)]

    def find(self, record_id: str) -> Optional[Record]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def list(self) -> List[Record]:
        return list(self._records)

    def sort_by(self, key: str) -> List[Record]:
        """Re-order the whole sequence in place and persist the new order."""
        try:
            sort_key, reverse = SORT_KEYS[key]
        except KeyError as exc:
            allowed = ", ".join(SORT_KEYS)
            raise ValidationError(
                f"sort key must be one of: {allowed}", {"sort": f"must be one of: {allowed}"}
            ) from exc
        # list.sort is stable, also with reverse=True.
        self._records.sort(key=sort_key, reverse=reverse)
        self._commit("sorted")
        return self.list()

    def replace_all(self, records: List[Record]) -> None:
        self._records = list(records)
        self._commit("replaced")

    def load(self) -> None:
        """Load existing records from persistence."""
        raw_records = self._storage.load(self._resource, default=[])
        if not isinstance(raw_records, list):
            raise PersistenceError(f"Expected list payload in {self._resource}")
        try:
            self._records = [Record.from_dict(payload) for payload in raw_records]
        except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as exc:
            raise PersistenceError(f"Malformed record in {self._resource}") from exc

    def __len__(self) -> int:
        return len(self._records)

    # Internal helpers -----------------------------------------------------
    def _commit(self, event: str) -> None:
        self._storage.save(self._resource, [record.to_dict() for record in self._records])
        self._notify(event)

    def _index_or_raise(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise RecordNotFoundError(f"Record {record_id} not found")


class SettingsService(_Observable):
    """Holds the single Settings instance and persists every change."""

    def __init__(self, storage: JSONStorage, resource: str = SETTINGS_KEY) -> None:
        super().__init__()
        self._storage = storage
        self._resource = resource
        self._settings = Settings()
        self.load()

    @property
    def current(self) -> Settings:
        return self._settings

    def load(self) -> None:
        """Load settings, falling back to defaults when absent or malformed."""
        try:
            raw = self._storage.load(self._resource)
        except PersistenceError as exc:
            logger.warning("Using default settings: %s", exc)
            self._settings = Settings()
            return
        if raw is None:
            self._settings = Settings()
            return
        try:
            self._settings = coerce_settings(raw)
        except ValidationError as exc:
            logger.warning("Using default settings, stored settings are invalid: %s", exc)
            self._settings = Settings()

    def update(self, changes: Mapping[str, object]) -> Settings:
        """Apply changes to ``spendingCap``, ``baseCurrency``, ``exchangeRate`` or ``categories``."""
        merged = {**self._settings.to_dict()}
        merged.update({key: value for key, value in changes.items() if value is not None})
        return self.replace(coerce_settings(merged))

    def add_category(self, name: object) -> Settings:
        category = validate_category_name(name)
        if category in self._settings.categories:
            raise ValidationError(
                f"Category {category} already exists", {"category": "already exists"}
            )
        return self.replace(
            replace(self._settings, categories=self._settings.categories + (category,))
        )

    def remove_category(self, name: str) -> Settings:
        if name not in self._settings.categories:
            raise RecordNotFoundError(f"Category {name} not found")
        if len(self._settings.categories) == 1:
            raise ValidationError(
                "Cannot delete the last category", {"category": "at least one category is required"}
            )
        remaining = tuple(category for category in self._settings.categories if category != name)
        return self.replace(replace(self._settings, categories=remaining))

    def replace(self, settings: Settings) -> Settings:
        self._settings = settings
        self._storage.save(self._resource, settings.to_dict())
        self._notify("settings")
        return settings


class LedgerService:
    """Application controller owning the record store and the settings."""

    def __init__(self, records: RecordService, settings: SettingsService) -> None:
        self.records = records
        self.settings = settings

    @classmethod
    def open(cls, data_dir: Path) -> "LedgerService":
        storage = JSONStorage(Path(data_dir))
        return cls(RecordService(storage), SettingsService(storage))

    def search(self, term: str = "", case_sensitive: bool = False) -> List[SearchHit]:
        return filter_records(self.records.list(), term, case_sensitive)

    def summary(self, today: Optional[date] = None) -> Summary:
        """Aggregate the whole store, independent of any active search."""
        return compute_summary(self.records.list(), self.settings.current, today)

    def export_document(self) -> Dict[str, Any]:
        return build_document(self.records.list(), self.settings.current)

    def import_document(self, text: str) -> int:
        """Replace records (and settings, when present) from an import document.

        Nothing changes unless the whole document is valid. Returns the number
        of imported records.
        """
        return self.apply_import(parse_import(text))

    def apply_import(self, imported: ImportedData) -> int:
        self.records.replace_all(imported.records)
        if imported.settings is not None:
            self.settings.replace(imported.settings)
        logger.info("Imported %d records", len(imported.records))
        return len(imported.records)

    def refresh(self) -> None:
        """Reload data from persistence for both services."""
        self.records.load()
        self.settings.load()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        unsubscribers = [self.records.subscribe(listener), self.settings.subscribe(listener)]

        def unsubscribe() -> None:
            for undo in unsubscribers:
                undo()

        return unsubscribe
