"""In-memory reference implementation of SummaryStoreProtocol.

Useful for tests and local runs. Monthly summaries are upserted on
``(user_id, month, year)``; the last write wins and ``updated_at`` moves
forward while ``created_at`` is kept.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from kasku_core.models import MonthlySummaryRecord, Transaction

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySummaryStore:
    """Dict-backed store of transactions and monthly summary rows."""

    def __init__(
        self,
        transactions: Optional[dict[Any, Iterable[Transaction]]] = None,
        history: Optional[dict[Any, Iterable[dict[str, Any]]]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._clock = clock
        self._transactions: dict[str, list[Transaction]] = {
            str(user_id): list(items) for user_id, items in (transactions or {}).items()
        }
        self._history: dict[str, list[dict[str, Any]]] = {
            str(user_id): [dict(row) for row in rows] for user_id, rows in (history or {}).items()
        }

    def add_transaction(self, user_id: Any, transaction: Transaction) -> None:
        self._transactions.setdefault(str(user_id), []).append(transaction)

    def find_transactions(
        self, user_id: Any, start: datetime, end: datetime
    ) -> Sequence[Transaction]:
        """Transactions dated within ``[start, end]``, oldest first."""

        def _moment(tx: Transaction) -> datetime:
            # match the window's awareness so mixed rows compare
            moment = tx.date
            if moment.tzinfo is None and start.tzinfo is not None:
                return moment.replace(tzinfo=start.tzinfo)
            if moment.tzinfo is not None and start.tzinfo is None:
                return moment.replace(tzinfo=None)
            return moment

        matching = []
        for tx in self._transactions.get(str(user_id), []):
            if tx.date is None:
                continue
            moment = _moment(tx)
            if start <= moment <= end:
                matching.append((moment, tx))
        matching.sort(key=lambda pair: pair[0])
        return [tx for _, tx in matching]

    def find_monthly_history(self, user_id: Any) -> Sequence[dict[str, Any]]:
        """Summary rows in creation order."""
        return list(self._history.get(str(user_id), []))

    def upsert_monthly_summary(self, record: MonthlySummaryRecord) -> dict[str, Any]:
        """Insert or replace the row for ``(user_id, month, year)``."""
        now = self._clock()
        rows = self._history.setdefault(str(record.user_id), [])
        data = record.model_dump()

        for row in rows:
            if row["month"] == record.month and str(row["year"]) == record.year:
                row.update(data)
                row["updated_at"] = now
                logger.debug("monthly_summary_updated", user_id=record.user_id, month=record.month)
                return row

        row = {**data, "created_at": now, "updated_at": now}
        rows.append(row)
        logger.debug("monthly_summary_created", user_id=record.user_id, month=record.month)
        return row

    def get_monthly_summary(self, user_id: Any, month: str, year: str) -> Optional[dict[str, Any]]:
        for row in self._history.get(str(user_id), []):
            if row["month"] == month and str(row["year"]) == year:
                return row
        return None
