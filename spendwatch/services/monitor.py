"""Budget monitoring facade.

Wires the spend aggregator, threshold evaluator, dispatcher and alert ledger
around one Database and exposes the operations the API and scheduler call:
get_status, check_thresholds, check_all_active, list_alerts and
acknowledge_alert. Every call reads the ledger fresh; nothing is cached
between checks.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from spendwatch.core.config import Settings
from spendwatch.core.errors import NotFoundError
from spendwatch.db.dal import Database
from spendwatch.models import AlertFilters, AlertOut, Budget
from spendwatch.services.alert_ledger import AlertLedger
from spendwatch.services.notifications import (
    DispatchResult,
    EmailSender,
    MessageRenderer,
    NotificationDispatcher,
    SmsSender,
    make_email_sender,
    make_sms_sender,
)
from spendwatch.services.period import period_for, utc_now
from spendwatch.services.spend import (
    SpendAggregator,
    SpendStatus,
    calculate_status,
    take_snapshot,
)
from spendwatch.services.thresholds import RecipientResolver, ThresholdEvaluator

logger = logging.getLogger("spendwatch.monitor")


class BudgetMonitor:
    def __init__(
        self,
        db: Database,
        aggregator: SpendAggregator,
        evaluator: ThresholdEvaluator,
        ledger: AlertLedger,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._db = db
        self._aggregator = aggregator
        self._evaluator = evaluator
        self._ledger = ledger
        self._clock = clock

    def _require_budget(self, budget_id: int) -> Budget:
        budget = self._db.get_budget(budget_id)
        if budget is None:
            raise NotFoundError("Budget not found")
        return budget

    def get_status(self, budget_id: int) -> SpendStatus:
        budget = self._require_budget(budget_id)
        period = period_for(self._clock())
        spent = self._aggregator.spent_this_period(budget, period)
        return calculate_status(spent, budget.monthly_limit)

    def check_thresholds(self, budget_id: int) -> List[DispatchResult]:
        budget = self._require_budget(budget_id)
        if not budget.is_active:
            return []
        period = period_for(self._clock())
        spent = self._aggregator.spent_this_period(budget, period)
        snapshot = take_snapshot(spent, budget.monthly_limit)
        return self._evaluator.evaluate(budget, snapshot, period)

    def check_all_active(self) -> int:
        """Check every active budget; returns the number of alert rows written."""
        written = 0
        for budget_id in self._db.list_active_budget_ids():
            try:
                written += len(self.check_thresholds(budget_id))
            except Exception:
                logger.exception("threshold check failed", extra={"budget_id": budget_id})
        return written

    def list_alerts(
        self, recipient_id: int, filters: Optional[AlertFilters] = None
    ) -> List[AlertOut]:
        return self._ledger.list_alerts(recipient_id, filters)

    def acknowledge_alert(self, alert_id: int, recipient_id: int) -> AlertOut:
        return self._ledger.acknowledge(alert_id, recipient_id)


def build_monitor(
    db: Database,
    settings: Settings,
    email_sender: Optional[EmailSender] = None,
    sms_sender: Optional[SmsSender] = None,
    recipients: Optional[RecipientResolver] = None,
    clock: Callable[[], datetime] = utc_now,
) -> BudgetMonitor:
    dispatcher = NotificationDispatcher(
        db,
        email_sender or make_email_sender(settings),
        sms_sender or make_sms_sender(settings),
        renderer=MessageRenderer(currency_symbol=settings.currency_symbol),
        clock=clock,
        max_workers=settings.dispatch_workers,
    )
    evaluator = ThresholdEvaluator(db, recipients or db, dispatcher)
    ledger = AlertLedger(
        db,
        page_size=settings.alert_page_size,
        max_page_size=settings.alert_page_size_max,
        clock=clock,
    )
    return BudgetMonitor(db, SpendAggregator(db), evaluator, ledger, clock=clock)
