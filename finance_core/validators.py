"""Validation helpers shared across the student finance services."""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .exceptions import ValidationError
from .models import Settings

DESCRIPTION_PATTERN = re.compile(r"\S(?:.*\S)?")
DUPLICATE_WORD_PATTERN = re.compile(r"\b(\w+)\s+\1\b", re.IGNORECASE)
AMOUNT_PATTERN = re.compile(r"(0|[1-9][0-9]*)(\.[0-9]{1,2})?")
DATE_PATTERN = re.compile(r"[0-9]{4}-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])")
CATEGORY_PATTERN = re.compile(r"[A-Za-z]+(?:[ -][A-Za-z]+)*")

RECORD_FIELDS: Tuple[str, ...] = ("description", "amount", "category", "date")

# Field -> ordered (pattern, must_match_whole, message) rules. A rule with
# must_match_whole=False fails when the pattern is found anywhere.
_FIELD_RULES: Dict[str, List[Tuple["re.Pattern[str]", bool, str]]] = {
    "description": [
        (DESCRIPTION_PATTERN, True, "Description cannot have leading/trailing spaces"),
        (DUPLICATE_WORD_PATTERN, False, "Description contains duplicate words"),
    ],
    "amount": [
        (AMOUNT_PATTERN, True, "Amount must be a valid number with up to 2 decimal places"),
    ],
    "date": [
        (DATE_PATTERN, True, "Date must be in YYYY-MM-DD format"),
    ],
    "category": [
        (CATEGORY_PATTERN, True, "Category can only contain letters, spaces, and hyphens"),
    ],
}


def validate_field(field: str, raw: Optional[object]) -> Optional[str]:
    """Check one field value; return ``None`` when valid or the failure message.

    Empty values pass here: whether a field is required is decided by the form.
    """
    if raw is None:
        return None
    # bool is an int subclass; lists and objects have no text form worth matching.
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        return f"{field.capitalize()} must be text or a number"
    value = raw if isinstance(raw, str) else str(raw)
    if not value:
        return None
    for pattern, must_match_whole, message in _FIELD_RULES.get(field, []):
        if must_match_whole:
            failed = pattern.fullmatch(value) is None
        else:
            failed = pattern.search(value) is not None
        if failed:
            return message
    return None


def validate_form(payload: Mapping[str, Any]) -> Dict[str, str]:
    """Apply every field rule and collect all failures at once."""
    errors: Dict[str, str] = {}
    for field in RECORD_FIELDS:
        message = validate_field(field, payload.get(field))
        if message:
            errors[field] = message
    return errors


def validate_record_form(payload: Mapping[str, Any]) -> Dict[str, str]:
    """Validate a submitted record form, raising with every field's message.

    Returns the four fields as strings ready for ``RecordService.create``.
    """
    errors: Dict[str, str] = {}
    for field in RECORD_FIELDS:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[field] = f"{field.capitalize()} is required"
    for field, message in validate_form(payload).items():
        errors.setdefault(field, message)
    if errors:
        summary = "; ".join(f"{field}: {message}" for field, message in errors.items())
        raise ValidationError(summary, errors)
    return {field: str(payload[field]) for field in RECORD_FIELDS}


def _quantize_two_decimals(amount: Decimal) -> Decimal:
    """Round the amount to two decimal places using HALF_UP rounding."""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_amount(raw: object, field: str) -> Decimal:
    """Convert raw input to a non-negative Decimal rounded to cents.

    The result is the value a JSON number round-trip yields, so ``12.50`` comes
    back as ``Decimal("12.5")``; compare numerically, format with ``:.2f``.
    """
    if isinstance(raw, bool):
        raise ValidationError(f"{field} must be a numeric value", {field: "must be a numeric value"})
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValidationError(
            f"{field} must be a numeric value", {field: "must be a numeric value"}
        ) from exc

    if not amount.is_finite() or amount < 0:
        raise ValidationError(
            f"{field} must be a non-negative amount", {field: "must be a non-negative amount"}
        )

    try:
        amount = _quantize_two_decimals(amount)
    except InvalidOperation as exc:
        raise ValidationError(f"{field} is too large", {field: "is too large"}) from exc
    # Amounts are stored as JSON numbers; keep the in-memory value equal to what
    # a reload from disk produces.
    as_float = float(amount)
    if not math.isfinite(as_float):
        raise ValidationError(f"{field} is too large", {field: "is too large"})
    return Decimal(repr(as_float))


def parse_exchange_rate(raw: object, field: str = "exchangeRate") -> Decimal:
    if isinstance(raw, bool):
        raise ValidationError(f"{field} must be a numeric value", {field: "must be a numeric value"})
    try:
        rate = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValidationError(
            f"{field} must be a numeric value", {field: "must be a numeric value"}
        ) from exc
    if not rate.is_finite() or rate <= 0:
        raise ValidationError(
            f"{field} must be greater than zero", {field: "must be greater than zero"}
        )
    return rate


def validate_required_str(value: object, field: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", {field: "must be a string"})
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be empty", {field: "cannot be empty"})
    if len(trimmed) > max_length:
        message = f"must be at most {max_length} characters"
        raise ValidationError(f"{field} {message}", {field: message})
    return trimmed


def validate_category_name(value: object) -> str:
    name = validate_required_str(value, "category", 50)
    message = validate_field("category", name)
    if message:
        raise ValidationError(message, {"category": message})
    return name


def normalize_categories(raw: Iterable[object]) -> Tuple[str, ...]:
    """Validate a category list, dropping exact duplicates while keeping order."""
    seen = set()
    categories: List[str] = []
    for item in raw:
        name = validate_category_name(item)
        if name in seen:
            continue
        seen.add(name)
        categories.append(name)
    if not categories:
        raise ValidationError(
            "At least one category is required", {"categories": "at least one category is required"}
        )
    return tuple(categories)


def coerce_settings(data: object) -> Settings:
    """Build a Settings instance from a JSON object, validating every key."""
    if not isinstance(data, Mapping):
        raise ValidationError("settings must be an object", {"settings": "must be an object"})
    categories = data.get("categories")
    if not isinstance(categories, list):
        raise ValidationError(
            "categories must be a list", {"categories": "must be a list"}
        )
    return Settings(
        spending_cap=parse_amount(data.get("spendingCap", 0), "spendingCap"),
        base_currency=validate_required_str(data.get("baseCurrency", "USD"), "baseCurrency", 10),
        exchange_rate=parse_exchange_rate(data.get("exchangeRate", 1)),
        categories=normalize_categories(categories),
    )
