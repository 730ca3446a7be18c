"""Accounting period helpers.

A period is the calendar month (UTC) containing a given instant, from its
first millisecond to its last. Timestamps are persisted as
`YYYY-MM-DDTHH:MM:SS.mmmZ` strings so text comparison in SQLite matches
chronological order.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

SQL_TS_FORMAT = "%Y-%m-%dT%H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_sql_ts(dt: datetime) -> str:
    dt = _as_utc(dt)
    return f"{dt.strftime(SQL_TS_FORMAT)}.{dt.microsecond // 1000:03d}Z"


def parse_sql_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class Period:
    start: datetime
    end: datetime  # inclusive, last millisecond of the month

    @property
    def key(self) -> str:
        return self.start.strftime("%Y-%m")

    @property
    def start_ts(self) -> str:
        return to_sql_ts(self.start)

    @property
    def end_ts(self) -> str:
        return to_sql_ts(self.end)


def period_for(moment: datetime) -> Period:
    moment = _as_utc(moment)
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = start + relativedelta(months=+1) - timedelta(milliseconds=1)
    return Period(start=start, end=end)
