"""Data models for the student finance domain."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

__all__ = [
    "DEFAULT_CATEGORIES",
    "Record",
    "Settings",
    "generate_id",
    "isoformat_utc",
    "parse_datetime",
    "utcnow",
]

DEFAULT_CATEGORIES: Tuple[str, ...] = (
    "Food",
    "Books",
    "Transport",
    "Entertainment",
    "Fees",
    "Other",
)

_BASE36 = string.digits + string.ascii_lowercase


def isoformat_utc(dt: datetime) -> str:
    """Return an ISO 8601 string with trailing Z for UTC-aware datetimes."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    iso = dt.isoformat(timespec="seconds")
    # datetime.isoformat renders +00:00 for UTC; replace with the shorter Z form.
    return iso.replace("+00:00", "Z")


def parse_datetime(value: str) -> datetime:
    """Parse ISO 8601 datetime strings with optional trailing Z into UTC-aware datetime."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        # Treat naive datetimes as UTC to avoid accidental timezone drift.
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Current UTC time truncated to the precision stored on disk."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Timestamp-derived prefix plus a random suffix, e.g. ``rec_lq3k9x2a7f0pz``."""
    suffix = "".join(random.choices(_BASE36, k=5))
    return f"rec_{_base36(int(time.time() * 1000))}{suffix}"


@dataclass(frozen=True)
class Record:
    id: str
    description: str
    amount: Decimal
    category: str
    date: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the record to JSON-friendly natives."""
        return {
            "id": self.id,
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category,
            "date": self.date,
            "createdAt": isoformat_utc(self.created_at),
            "updatedAt": isoformat_utc(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Hydrate a Record from JSON-native data."""
        created_at = _optional_datetime(data.get("createdAt"))
        updated_at = _optional_datetime(data.get("updatedAt"))
        now = utcnow()
        return cls(
            id=data["id"],
            description=data["description"],
            amount=Decimal(str(data["amount"])),
            category=data["category"],
            date=data["date"],
            created_at=created_at or now,
            updated_at=updated_at or created_at or now,
        )


@dataclass(frozen=True)
class Settings:
    spending_cap: Decimal = Decimal("0")
    base_currency: str = "USD"
    exchange_rate: Decimal = Decimal("1")
    categories: Tuple[str, ...] = field(default=DEFAULT_CATEGORIES)

    @property
    def has_cap(self) -> bool:
        return self.spending_cap > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spendingCap": float(self.spending_cap),
            "baseCurrency": self.base_currency,
            "exchangeRate": float(self.exchange_rate),
            "categories": list(self.categories),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        return cls(
            spending_cap=Decimal(str(data["spendingCap"])),
            base_currency=data["baseCurrency"],
            exchange_rate=Decimal(str(data["exchangeRate"])),
            categories=tuple(data["categories"]),
        )


def _optional_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return parse_datetime(value)
