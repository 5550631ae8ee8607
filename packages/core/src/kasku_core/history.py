"""Normalization of persisted monthly summaries into forecast history.

Stored summary rows carry a free-text month name ("Oktober", "oct", ...),
a year string and numeric-as-string totals. Several rows may exist for the
same month. This module turns them into a deduplicated, chronologically
sorted list of HistoryPoint.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import structlog

from kasku_core.formatting import to_decimal
from kasku_core.models import HistoryPoint
from kasku_core.results import Invalid, Parsed, ParseResult

logger = structlog.get_logger()


MONTH_INDEX_BY_NAME: dict[str, int] = {
    "januari": 0,
    "jan": 0,
    "january": 0,
    "februari": 1,
    "feb": 1,
    "february": 1,
    "maret": 2,
    "mar": 2,
    "march": 2,
    "april": 3,
    "apr": 3,
    "mei": 4,
    "may": 4,
    "juni": 5,
    "jun": 5,
    "june": 5,
    "juli": 6,
    "jul": 6,
    "july": 6,
    "agustus": 7,
    "agu": 7,
    "august": 7,
    "september": 8,
    "sep": 8,
    "oktober": 9,
    "okt": 9,
    "october": 9,
    "november": 10,
    "nov": 10,
    "desember": 11,
    "des": 11,
    "december": 11,
}


def resolve_month_index(label: Any) -> Optional[int]:
    """Resolve an Indonesian or English month name to a 0-based index."""
    if not isinstance(label, str):
        return None
    return MONTH_INDEX_BY_NAME.get(label.strip().lower())


def _row_value(row: Any, key: str) -> Any:
    """Read a field from a mapping or an attribute object."""
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def _to_epoch_ms(value: Any) -> int:
    """Convert a timestamp-ish value to epoch milliseconds, 0 when unknown."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return int(moment.timestamp() * 1000)
    if isinstance(value, date):
        return _to_epoch_ms(datetime(value.year, value.month, value.day))
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return _to_epoch_ms(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return 0
    return 0


def _to_year(value: Any) -> Optional[int]:
    year = to_decimal(value, default=Decimal("NaN"))
    if year.is_nan() or year != year.to_integral_value():
        return None
    return int(year)


def parse_summary_row(row: Any) -> ParseResult[HistoryPoint]:
    """Parse one stored summary row into a HistoryPoint.

    Returns:
        Parsed(HistoryPoint) or Invalid with the rejection reason.
    """
    if row is None:
        return Invalid("row is empty")

    month_index = resolve_month_index(_row_value(row, "month"))
    if month_index is None:
        return Invalid(f"unresolvable month {_row_value(row, 'month')!r}")

    year = _to_year(_row_value(row, "year"))
    if year is None:
        return Invalid(f"invalid year {_row_value(row, 'year')!r}")

    created_at = _row_value(row, "created_at") or _row_value(row, "updated_at")

    return Parsed(
        HistoryPoint(
            year=year,
            month_index=month_index,
            income=to_decimal(_row_value(row, "total_income")),
            expense=to_decimal(_row_value(row, "total_expense")),
            balance=to_decimal(_row_value(row, "balance")),
            created_at_epoch=_to_epoch_ms(created_at),
        )
    )


def normalize_summary_history(rows: Optional[Iterable[Any]]) -> list[HistoryPoint]:
    """Build sorted, deduplicated history from stored summary rows.

    Rows are expected in creation order. When several rows describe the same
    month, the one with the greatest timestamp wins; equal timestamps keep
    the row seen last. Unparsable rows are skipped.

    Returns:
        HistoryPoint list sorted by (year, month). Empty when nothing parses.
    """
    if rows is None:
        return []

    latest: dict[str, HistoryPoint] = {}
    skipped = 0

    for row in rows:
        outcome = parse_summary_row(row)
        if isinstance(outcome, Invalid):
            skipped += 1
            continue

        point = outcome.value
        existing = latest.get(point.month_key)
        if existing is None or point.created_at_epoch >= existing.created_at_epoch:
            latest[point.month_key] = point

    if skipped:
        logger.debug("summary_rows_skipped", skipped=skipped, kept=len(latest))

    return sorted(latest.values(), key=lambda p: p.sort_key)


__all__ = [
    "MONTH_INDEX_BY_NAME",
    "resolve_month_index",
    "parse_summary_row",
    "normalize_summary_history",
]
