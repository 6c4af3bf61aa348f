"""Console interface for the student finance tracker."""

from __future__ import annotations

import argparse
import os
import sys
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from finance_core.aggregation import BUDGET_NO_CAP, BUDGET_OVER, Summary
from finance_core.exceptions import (
    ImportFormatError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from finance_core.logging_setup import configure_logging
from finance_core.models import Record, Settings
from finance_core.search import SearchHit, highlight
from finance_core.services import SORT_KEYS, LedgerService
from finance_core.transfer import DEFAULT_EXPORT_NAME, read_import, write_export

DATE_FORMAT = "%Y-%m-%d"
BAR_WIDTH = 20


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Expected format YYYY-MM-DD."
        ) from exc


def _default_data_dir() -> Path:
    return Path(os.getenv("STUDENT_FINANCE_DATA_DIR", "data"))


def _format_record(record: Record, hit: Optional[SearchHit] = None) -> str:
    description = record.description
    category = record.category
    if hit is not None and hit.spans:
        description = highlight(description, hit.spans.get("description", []), "[", "]")
        category = highlight(category, hit.spans.get("category", []), "[", "]")
    return (
        f"[{record.id}] {record.date} ${record.amount:.2f}\n"
        f"  Category: {category}\n"
        f"  Description: {description}\n"
    )


def _format_settings(settings: Settings) -> str:
    cap = f"${settings.spending_cap:.2f}" if settings.has_cap else "not set"
    return (
        f"Spending cap: {cap}\n"
        f"Base currency: {settings.base_currency} (rate {settings.exchange_rate})\n"
        f"Categories: {', '.join(settings.categories)}"
    )


def _format_summary(summary: Summary) -> str:
    lines = [
        f"Total records: {summary.total_count}",
        f"Total spent: ${summary.total_spent:.2f}",
        f"Top category: {summary.top_category or '-'}",
    ]
    budget = summary.budget
    if budget.state == BUDGET_NO_CAP:
        lines.append("Budget: No cap set")
    elif budget.state == BUDGET_OVER:
        lines.append(f"Budget: Over budget by: ${budget.amount:.2f} (cap ${budget.cap:.2f})")
    else:
        lines.append(f"Budget: Remaining: ${budget.amount:.2f} (cap ${budget.cap:.2f})")
    if summary.converted_total != summary.total_spent:
        lines.append(f"In {summary.base_currency}: {summary.converted_total:.2f}")
    lines.append("Last 7 days:")
    for day in summary.trend:
        bar = "#" * round(day.ratio * BAR_WIDTH)
        lines.append(f"  {day.label} {day.date} {bar:<{BAR_WIDTH}} ${day.total:.0f}")
    return "\n".join(lines)


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def handle_records(args: argparse.Namespace, ledger: LedgerService) -> None:
    records = ledger.records
    if args.command == "add":
        record = records.add(
            {
                "description": args.description,
                "amount": args.amount,
                "category": args.category,
                "date": args.date,
            }
        )
        print("Record added:\n" + _format_record(record))
    elif args.command == "edit":
        changes = {
            "description": args.description,
            "amount": args.amount,
            "category": args.category,
            "date": args.date,
        }
        record = records.edit(args.id, changes)
        print("Record updated:\n" + _format_record(record))
    elif args.command == "delete":
        records.get(args.id)
        if not args.yes and not _confirm(f"Delete record {args.id}?"):
            print("Delete cancelled.")
            return
        records.delete(args.id)
        print(f"Record {args.id} deleted.")
    elif args.command == "show":
        print(_format_record(records.get(args.id)))
    elif args.command == "sort":
        records.sort_by(args.key)
        print(f"Records sorted by {args.key}.")
    elif args.command == "list":
        if args.sort:
            records.sort_by(args.sort)
        hits = ledger.search(args.search or "", args.case_sensitive)
        if not hits:
            print("No records found.")
            return
        print(f"Found {len(hits)} records:")
        for hit in hits:
            print(_format_record(hit.record, hit))


def handle_summary(args: argparse.Namespace, ledger: LedgerService) -> None:
    print(_format_summary(ledger.summary(today=args.today)))


def handle_settings(args: argparse.Namespace, ledger: LedgerService) -> None:
    if args.command == "set":
        changes = {
            "spendingCap": args.cap,
            "baseCurrency": args.currency,
            "exchangeRate": args.rate,
        }
        ledger.settings.update(changes)
        print("Settings updated.")
    print(_format_settings(ledger.settings.current))


def handle_category(args: argparse.Namespace, ledger: LedgerService) -> None:
    settings = ledger.settings
    if args.command == "add":
        settings.add_category(args.name)
        print(f"Category {args.name.strip()} added.")
    elif args.command == "remove":
        settings.remove_category(args.name)
        print(f"Category {args.name} removed.")
    else:
        for category in settings.current.categories:
            print(category)


def handle_transfer(args: argparse.Namespace, ledger: LedgerService) -> None:
    if args.entity == "export":
        path = write_export(ledger.export_document(), args.path)
        print(f"Exported {len(ledger.records)} records to {path}.")
    else:
        count = ledger.apply_import(read_import(args.path))
        print(f"Data imported successfully! ({count} records)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Student Finance Tracker CLI")
    parser.add_argument(
        "--data-dir",
        default=_default_data_dir(),
        type=Path,
        help="Directory to store JSON data (default: $STUDENT_FINANCE_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $STUDENT_FINANCE_LOG_LEVEL or WARNING)",
    )

    subparsers = parser.add_subparsers(dest="entity", required=True)

    record_parser = subparsers.add_parser("record", help="Manage spending records")
    record_sub = record_parser.add_subparsers(dest="command", required=True)

    record_add = record_sub.add_parser("add", help="Add a new record")
    record_add.add_argument("description")
    record_add.add_argument("amount")
    record_add.add_argument("category")
    record_add.add_argument("date", help="YYYY-MM-DD")

    record_edit = record_sub.add_parser("edit", help="Edit an existing record")
    record_edit.add_argument("id")
    record_edit.add_argument("--description")
    record_edit.add_argument("--amount")
    record_edit.add_argument("--category")
    record_edit.add_argument("--date")

    record_delete = record_sub.add_parser("delete", help="Delete a record")
    record_delete.add_argument("id")
    record_delete.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    record_show = record_sub.add_parser("show", help="Show one record")
    record_show.add_argument("id")

    record_sort = record_sub.add_parser("sort", help="Re-order stored records")
    record_sort.add_argument("key", choices=list(SORT_KEYS))

    record_list = record_sub.add_parser("list", help="List and search records")
    record_list.add_argument("--search", help="Regular expression matched against records")
    record_list.add_argument("--case-sensitive", action="store_true")
    record_list.add_argument("--sort", choices=list(SORT_KEYS))

    summary_parser = subparsers.add_parser("summary", help="Dashboard statistics")
    summary_parser.add_argument("--today", type=_parse_date, help="Last day of the trend window")

    settings_parser = subparsers.add_parser("settings", help="Show or change settings")
    settings_sub = settings_parser.add_subparsers(dest="command", required=True)
    settings_sub.add_parser("show", help="Show settings")
    settings_set = settings_sub.add_parser("set", help="Change settings")
    settings_set.add_argument("--cap", help="Monthly spending cap, 0 for none")
    settings_set.add_argument("--currency", help="Base currency code")
    settings_set.add_argument("--rate", help="Exchange rate multiplier")

    category_parser = subparsers.add_parser("category", help="Manage categories")
    category_sub = category_parser.add_subparsers(dest="command", required=True)
    category_sub.add_parser("list", help="List categories")
    category_add = category_sub.add_parser("add", help="Add a category")
    category_add.add_argument("name")
    category_remove = category_sub.add_parser("remove", help="Remove a category")
    category_remove.add_argument("name")

    export_parser = subparsers.add_parser("export", help="Export records and settings")
    export_parser.add_argument("path", nargs="?", default=DEFAULT_EXPORT_NAME, type=Path)

    import_parser = subparsers.add_parser("import", help="Replace data from an export file")
    import_parser.add_argument("path", type=Path)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        ledger = LedgerService.open(args.data_dir)
        if args.entity == "record":
            handle_records(args, ledger)
        elif args.entity == "summary":
            handle_summary(args, ledger)
        elif args.entity == "settings":
            handle_settings(args, ledger)
        elif args.entity == "category":
            handle_category(args, ledger)
        elif args.entity in {"export", "import"}:
            handle_transfer(args, ledger)
        else:  # pragma: no cover - argparse should prevent this
            parser.error(f"Unknown entity: {args.entity}")
            return 2
    except ImportFormatError as exc:
        print(f"Error importing data. Please check the file format. ({exc})", file=sys.stderr)
        return 1
    except ValidationError as exc:
        if exc.errors:
            for field, message in exc.errors.items():
                print(f"Validation error ({field}): {message}", file=sys.stderr)
        else:
            print(f"Validation error: {exc}", file=sys.stderr)
        return 1
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except PersistenceError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
