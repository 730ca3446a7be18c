"""Spend aggregation and status calculation.

`calculate_status` is the display contract for a budget: percentage_used is
clamped to [0, 100] while remaining and over_budget are computed on the raw
figures, so an overspent budget reads 100% used, over_budget=True and a
negative remaining.

Alert evaluation uses `AlertSnapshot`, which keeps the unclamped percentage so
messages can say "124.00% used".
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol

from spendwatch.models import Budget, ScopeFilter, SpendStatusOut, scope_filter_for
from spendwatch.services.money import round2, to_major
from spendwatch.services.period import Period


class SpendLedger(Protocol):
    def sum_completed_expenses(
        self, scope: ScopeFilter, period_start: str, period_end: str
    ) -> int: ...


@dataclass(frozen=True)
class SpendStatus:
    total_spent_this_period: int
    budget_limit: int
    remaining: int
    over_budget: bool
    percentage_used: float

    def to_out(self) -> SpendStatusOut:
        return SpendStatusOut(
            total_spent_this_period=to_major(self.total_spent_this_period),
            budget_limit=to_major(self.budget_limit),
            remaining=to_major(self.remaining),
            over_budget=self.over_budget,
            percentage_used=self.percentage_used,
        )


@dataclass(frozen=True)
class AlertSnapshot:
    """Spend figures captured at evaluation time and stored on every alert."""

    spent: int
    limit: int
    percentage_used: float  # unclamped

    @property
    def remaining(self) -> int:
        return self.limit - self.spent

    def has_reached(self, threshold: int) -> bool:
        # exact integer comparison; percentage_used is rounded for display only
        return self.limit > 0 and self.spent * 100 >= threshold * self.limit


def raw_percentage(spent: int, limit: int) -> float:
    if limit <= 0:
        return 0.0
    return round2(spent / limit * 100)


def calculate_status(spent: int, limit: int) -> SpendStatus:
    percentage = min(spent / limit * 100, 100) if limit > 0 else 0
    return SpendStatus(
        total_spent_this_period=spent,
        budget_limit=limit,
        remaining=limit - spent,
        over_budget=spent > limit,
        percentage_used=round2(max(percentage, 0)),
    )


def take_snapshot(spent: int, limit: int) -> AlertSnapshot:
    return AlertSnapshot(spent=spent, limit=limit, percentage_used=raw_percentage(spent, limit))


class SpendAggregator:
    def __init__(self, ledger: SpendLedger):
        self._ledger = ledger

    def spent_for_scope(self, scope: ScopeFilter, period: Period) -> int:
        return self._ledger.sum_completed_expenses(scope, period.start_ts, period.end_ts)

    def spent_this_period(self, budget: Budget, period: Period) -> int:
        if not budget.is_active:
            return 0
        return self.spent_for_scope(scope_filter_for(budget), period)
