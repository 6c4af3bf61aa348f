"""Tests for search filtering and highlighting."""

from decimal import Decimal

from finance_core.search import amount_text, filter_records, highlight


def test_empty_term_returns_everything(make_record) -> None:
    records = [make_record(), make_record(category="Books")]

    hits = filter_records(records, "")

    assert [hit.record for hit in hits] == records
    assert all(hit.spans == {} for hit in hits)


def test_case_sensitivity_flag(make_record) -> None:
    records = [make_record(category="Food", description="Lunch")]

    assert len(filter_records(records, "food")) == 1
    assert filter_records(records, "food", case_sensitive=True) == []
    assert len(filter_records(records, "Food", case_sensitive=True)) == 1


def test_matches_amount_and_date_text(make_record) -> None:
    records = [
        make_record(amount="12.50", date="2024-03-01", description="Bus"),
        make_record(amount="7.00", date="2023-11-20", description="Tea"),
    ]

    assert [hit.record.description for hit in filter_records(records, "12.5")] == ["Bus"]
    assert [hit.record.description for hit in filter_records(records, "^7$")] == ["Tea"]
    assert [hit.record.description for hit in filter_records(records, "2023-11")] == ["Tea"]


def test_malformed_pattern_returns_everything(make_record) -> None:
    records = [make_record(), make_record(category="Books")]

    hits = filter_records(records, "(unclosed")

    assert [hit.record for hit in hits] == records


def test_pattern_syntax_is_honoured(make_record) -> None:
    records = [make_record(description="Coffee"), make_record(description="Tea")]

    hits = filter_records(records, "^(coffee|juice)$")

    assert [hit.record.description for hit in hits] == ["Coffee"]


def test_spans_mark_every_match(make_record) -> None:
    record = make_record(description="coffee and Coffee beans", category="Food")

    (hit,) = filter_records([record], "coffee")

    assert hit.spans["description"] == [(0, 6), (11, 17)]
    assert hit.spans["category"] == []
    assert highlight(record.description, hit.spans["description"]) == (
        "<mark>coffee</mark> and <mark>Coffee</mark> beans"
    )


def test_zero_width_matches_are_not_marked(make_record) -> None:
    (hit,) = filter_records([make_record(description="Tea")], "x*")

    assert hit.spans["description"] == []


def test_highlight_custom_markers() -> None:
    assert highlight("Side Hustle", [(5, 11)], "[", "]") == "Side [Hustle]"
    assert highlight("plain", []) == "plain"


def test_amount_text() -> None:
    assert amount_text(Decimal("12.50")) == "12.5"
    assert amount_text(Decimal("100.00")) == "100"
    assert amount_text(Decimal("0.00")) == "0"
