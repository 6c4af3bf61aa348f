"""Core business logic package for the student finance tracker."""

from .aggregation import BudgetStatus, Summary, TrendDay, compute_summary
from .exceptions import ImportFormatError, PersistenceError, RecordNotFoundError, ValidationError
from .models import Record, Settings
from .search import SearchHit, filter_records, highlight
from .services import LedgerService, RecordService, SettingsService
from .storage import JSONStorage
from .validators import validate_field, validate_form, validate_record_form

__all__ = [
    "BudgetStatus",
    "Summary",
    "TrendDay",
    "compute_summary",
    "Record",
    "Settings",
    "SearchHit",
    "filter_records",
    "highlight",
    "LedgerService",
    "RecordService",
    "SettingsService",
    "JSONStorage",
    "validate_field",
    "validate_form",
    "validate_record_form",
    "ImportFormatError",
    "PersistenceError",
    "ValidationError",
    "RecordNotFoundError",
]
