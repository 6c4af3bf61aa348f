"""Search and highlight over the in-memory record list."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from .logging_setup import get_logger
from .models import Record

__all__ = ["SearchHit", "amount_text", "compile_term", "filter_records", "highlight"]

logger = get_logger(__name__)

Span = Tuple[int, int]
HIGHLIGHT_FIELDS = ("description", "category")


@dataclass(frozen=True)
class SearchHit:
    record: Record
    spans: Dict[str, List[Span]] = field(default_factory=dict)


def amount_text(amount: Decimal) -> str:
    """Render an amount in its shortest decimal form: ``12.50`` -> ``12.5``, ``100.00`` -> ``100``."""
    return format(amount.normalize(), "f")


def compile_term(term: str, case_sensitive: bool = False) -> Optional[Pattern[str]]:
    """Compile a user-supplied search pattern; ``None`` when it is malformed."""
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        return re.compile(term, flags)
    except re.error as exc:
        logger.debug("Ignoring malformed search pattern %r: %s", term, exc)
        return None


def _spans(pattern: Pattern[str], text: str) -> List[Span]:
    # Zero-width matches (e.g. "a*" against "xyz") carry nothing to mark.
    return [match.span() for match in pattern.finditer(text) if match.end() > match.start()]


def _matches(pattern: Pattern[str], record: Record) -> bool:
    haystacks = (record.description, record.category, amount_text(record.amount), record.date)
    return any(pattern.search(text) for text in haystacks)


def filter_records(
    records: Iterable[Record], term: str, case_sensitive: bool = False
) -> List[SearchHit]:
    """Keep records whose description, category, amount or date match ``term``.

    An empty term or one that fails to compile returns every record, unmarked.
    """
    records = list(records)
    if not term:
        return [SearchHit(record) for record in records]
    pattern = compile_term(term, case_sensitive)
    if pattern is None:
        return [SearchHit(record) for record in records]

    hits: List[SearchHit] = []
    for record in records:
        if not _matches(pattern, record):
            continue
        spans = {name: _spans(pattern, getattr(record, name)) for name in HIGHLIGHT_FIELDS}
        hits.append(SearchHit(record, spans))
    return hits


def highlight(
    text: str, spans: Iterable[Span], before: str = "<mark>", after: str = "</mark>"
) -> str:
    pieces: List[str] = []
    cursor = 0
    for start, end in sorted(spans):
        if start < cursor:
            continue
        pieces.append(text[cursor:start])
        pieces.append(f"{before}{text[start:end]}{after}")
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces)
