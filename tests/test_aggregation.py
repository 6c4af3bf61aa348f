"""Tests for dashboard aggregation."""

from datetime import date
from decimal import Decimal

from finance_core.aggregation import (
    BUDGET_NO_CAP,
    BUDGET_OVER,
    BUDGET_REMAINING,
    budget_status,
    category_totals,
    compute_summary,
    top_category,
    trend_series,
)
from finance_core.models import Settings

TODAY = date(2024, 3, 10)


def test_top_category_by_amount(make_record) -> None:
    records = [make_record(category="Food", amount="10"), make_record(category="Books", amount="15")]

    assert top_category(records) == "Books"


def test_top_category_tie_keeps_first_seen(make_record) -> None:
    records = [
        make_record(category="Food", amount="10"),
        make_record(category="Books", amount="4"),
        make_record(category="Books", amount="6"),
    ]

    assert category_totals(records) == {"Food": Decimal("10"), "Books": Decimal("10")}
    assert top_category(records) == "Food"


def test_empty_store() -> None:
    summary = compute_summary([], Settings(), TODAY)

    assert summary.total_count == 0
    assert summary.total_spent == Decimal("0")
    assert summary.top_category is None
    assert summary.budget.state == BUDGET_NO_CAP
    assert [day.ratio for day in summary.trend] == [0.0] * 7


def test_budget_states() -> None:
    over = budget_status(Decimal("100"), Decimal("120"))
    remaining = budget_status(Decimal("100"), Decimal("40"))
    exact = budget_status(Decimal("100"), Decimal("100"))

    assert (over.state, over.amount) == (BUDGET_OVER, Decimal("20"))
    assert (remaining.state, remaining.amount) == (BUDGET_REMAINING, Decimal("60"))
    assert (exact.state, exact.amount) == (BUDGET_REMAINING, Decimal("0"))
    assert budget_status(Decimal("0"), Decimal("120")).state == BUDGET_NO_CAP


def test_trend_window(make_record) -> None:
    records = [
        make_record(date="2024-03-10", amount="5"),
        make_record(date="2024-03-04", amount="6"),
        make_record(date="2024-03-04", amount="4"),
        make_record(date="2024-03-03", amount="99"),
        make_record(date="2024-03-11", amount="99"),
    ]

    series = trend_series(records, TODAY)

    assert [day.date for day in series] == [
        "2024-03-04",
        "2024-03-05",
        "2024-03-06",
        "2024-03-07",
        "2024-03-08",
        "2024-03-09",
        "2024-03-10",
    ]
    assert series[0].total == Decimal("10")
    assert series[0].ratio == 1.0
    assert series[-1].ratio == 0.5
    assert series[1].total == Decimal("0")
    assert series[0].label == date(2024, 3, 4).strftime("%a")


def test_summary_includes_converted_total(make_record) -> None:
    settings = Settings(spending_cap=Decimal("100"), exchange_rate=Decimal("2"), base_currency="EUR")
    records = [make_record(amount="70"), make_record(amount="50", category="Books")]

    summary = compute_summary(records, settings, TODAY)
    payload = summary.to_dict()

    assert summary.total_spent == Decimal("120")
    assert summary.budget.state == BUDGET_OVER
    assert summary.budget.amount == Decimal("20")
    assert summary.converted_total == Decimal("240")
    assert payload["totalSpent"] == "120.00"
    assert payload["budget"] == {"state": "over_budget", "cap": "100.00", "amount": "20.00"}
    assert payload["topCategory"] == "Food"
    assert len(payload["trend"]) == 7
