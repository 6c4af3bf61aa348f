"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable

import pytest

from finance_core.models import Record
from finance_core.services import LedgerService
from finance_core.storage import JSONStorage

FIXED_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Return an isolated data directory."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def storage(data_dir: Path) -> JSONStorage:
    return JSONStorage(data_dir)


@pytest.fixture
def ledger(data_dir: Path) -> LedgerService:
    """Return a ledger backed by an empty data directory."""
    return LedgerService.open(data_dir)


@pytest.fixture
def make_record() -> Callable[..., Record]:
    """Build a Record without going through the store."""
    counter = {"n": 0}

    def _make(
        category: str = "Food",
        amount: str = "10.00",
        date: str = "2024-03-01",
        description: str = "Lunch",
        record_id: str = "",
    ) -> Record:
        counter["n"] += 1
        return Record(
            id=record_id or f"rec_test{counter['n']}",
            description=description,
            amount=Decimal(amount),
            category=category,
            date=date,
            created_at=FIXED_TIME,
            updated_at=FIXED_TIME,
        )

    return _make
