"""Alert ledger query surface.

Lists a recipient's alerts newest first with budget and group names resolved
in the same query, and lets the recipient acknowledge their own alerts.
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from spendwatch.core.errors import NotFoundError
from spendwatch.db.dal import Database
from spendwatch.models import AlertFilters, AlertMetadata, AlertOut
from spendwatch.services.money import to_major
from spendwatch.services.period import parse_sql_ts, to_sql_ts, utc_now

DEFAULT_PAGE_SIZE = 50


def alert_from_row(row: Dict[str, Any]) -> AlertOut:
    return AlertOut(
        id=row["id"],
        user_id=row["user_id"],
        budget_id=row["budget_id"],
        budget_name=row.get("budget_name"),
        budget_scope=row.get("budget_scope"),
        group_id=row.get("group_id"),
        group_name=row.get("group_name"),
        channel=row["channel"],
        threshold=row["threshold"],
        status=row["status"],
        sent_at=parse_sql_ts(row["sent_at"]) if row.get("sent_at") else None,
        error_message=row.get("error_message"),
        metadata=AlertMetadata(
            current_spending=to_major(row["spent"]),
            budget_limit=to_major(row["budget_limit"]),
            percentage_used=row["percentage_used"],
        ),
        acknowledged=bool(row.get("acknowledged")),
        created_at=parse_sql_ts(row["created_at"]),
    )


class AlertLedger:
    def __init__(
        self,
        db: Database,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._db = db
        self._page_size = page_size
        self._max_page_size = max_page_size
        self._clock = clock

    def list_alerts(
        self, recipient_id: int, filters: Optional[AlertFilters] = None
    ) -> List[AlertOut]:
        filters = filters or AlertFilters()
        limit = filters.limit or self._page_size
        if self._max_page_size:
            limit = min(limit, self._max_page_size)
        rows = self._db.list_alerts(
            recipient_id,
            limit=limit,
            budget_id=filters.budget_id,
            status=filters.status,
            threshold=filters.threshold,
        )
        return [alert_from_row(r) for r in rows]

    def acknowledge(self, alert_id: int, recipient_id: int) -> AlertOut:
        if not self._db.acknowledge_alert(alert_id, recipient_id, to_sql_ts(self._clock())):
            raise NotFoundError("Alert not found")
        row = self._db.get_alert_for_user(alert_id, recipient_id)
        if row is None:  # pragma: no cover
            raise NotFoundError("Alert not found")
        return alert_from_row(row)
