"""Domain-specific exceptions for the student finance core services."""

from typing import Dict, Optional


class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.errors: Dict[str, str] = dict(errors or {})


class RecordNotFoundError(LookupError):
    """Raised when a record or category cannot be located."""


class PersistenceError(IOError):
    """Raised when the persistence layer encounters unrecoverable issues."""


class ImportFormatError(ValidationError):
    """Raised when an import document cannot be parsed or has the wrong shape."""
