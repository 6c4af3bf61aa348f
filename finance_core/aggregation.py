"""Dashboard statistics computed fresh from the record list."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .models import Record, Settings

__all__ = [
    "BUDGET_NO_CAP",
    "BUDGET_OVER",
    "BUDGET_REMAINING",
    "BudgetStatus",
    "Summary",
    "TrendDay",
    "budget_status",
    "category_totals",
    "compute_summary",
    "top_category",
    "trend_series",
]

BUDGET_REMAINING = "remaining"
BUDGET_OVER = "over_budget"
BUDGET_NO_CAP = "no_cap"

TREND_DAYS = 7
ZERO = Decimal("0.00")


@dataclass(frozen=True)
class BudgetStatus:
    state: str
    cap: Decimal
    amount: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state, "cap": f"{self.cap:.2f}", "amount": f"{self.amount:.2f}"}


@dataclass(frozen=True)
class TrendDay:
    date: str
    label: str
    total: Decimal
    ratio: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "label": self.label,
            "total": f"{self.total:.2f}",
            "ratio": self.ratio,
        }


@dataclass(frozen=True)
class Summary:
    total_count: int
    total_spent: Decimal
    top_category: Optional[str]
    budget: BudgetStatus
    trend: List[TrendDay]
    converted_total: Decimal
    base_currency: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCount": self.total_count,
            "totalSpent": f"{self.total_spent:.2f}",
            "topCategory": self.top_category,
            "budget": self.budget.to_dict(),
            "trend": [day.to_dict() for day in self.trend],
            "convertedTotal": f"{self.converted_total:.2f}",
            "baseCurrency": self.base_currency,
        }


def category_totals(records: Iterable[Record]) -> Dict[str, Decimal]:
    """Sum amounts per category; keys keep first-encounter order."""
    totals: Dict[str, Decimal] = {}
    for record in records:
        totals[record.category] = totals.get(record.category, ZERO) + record.amount
    return totals


def top_category(records: Iterable[Record]) -> Optional[str]:
    """The first category, in insertion order, that reaches the highest total."""
    best: Optional[str] = None
    best_total = ZERO
    for category, total in category_totals(records).items():
        if best is None or total > best_total:
            best, best_total = category, total
    return best


def budget_status(cap: Decimal, spent: Decimal) -> BudgetStatus:
    if cap <= 0:
        return BudgetStatus(BUDGET_NO_CAP, cap)
    remaining = cap - spent
    if remaining >= 0:
        return BudgetStatus(BUDGET_REMAINING, cap, remaining)
    return BudgetStatus(BUDGET_OVER, cap, abs(remaining))


def trend_series(records: Iterable[Record], today: Optional[date] = None) -> List[TrendDay]:
    """Per-day totals for the seven days ending ``today``, oldest first.

    Records are matched on their ``YYYY-MM-DD`` string, not a parsed date.
    """
    today = today or date.today()
    days = [today - timedelta(days=offset) for offset in range(TREND_DAYS - 1, -1, -1)]
    totals: Dict[str, Decimal] = {day.isoformat(): ZERO for day in days}
    for record in records:
        if record.date in totals:
            totals[record.date] += record.amount

    peak = max(totals.values())
    series: List[TrendDay] = []
    for day in days:
        key = day.isoformat()
        total = totals[key]
        ratio = float(total / peak) if peak > 0 else 0.0
        series.append(TrendDay(key, day.strftime("%a"), total, ratio))
    return series


def compute_summary(
    records: Iterable[Record], settings: Settings, today: Optional[date] = None
) -> Summary:
    records = list(records)
    total_spent = sum((record.amount for record in records), start=ZERO)
    return Summary(
        total_count=len(records),
        total_spent=total_spent,
        top_category=top_category(records),
        budget=budget_status(settings.spending_cap, total_spent),
        trend=trend_series(records, today),
        converted_total=total_spent * settings.exchange_rate,
        base_currency=settings.base_currency,
    )
