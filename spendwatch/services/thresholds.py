"""Threshold evaluation: which of 70/90/100 are newly crossed this period.

A threshold is newly crossed when spent * 100 >= threshold * limit and
no SENT alert exists for (budget, threshold) created since the period start.
All qualifying thresholds fire in the same check, lowest first.

The SENT-alert lookup and the following inserts are not atomic, so each
dispatch is preceded by a (budget, threshold, period) claim row whose primary
key makes a concurrent second check back off. The claim is dropped again when
a dispatch produces no SENT alert so the next check can retry.
"""

from __future__ import annotations

import logging
from typing import List, Protocol

from spendwatch.db.dal import Database
from spendwatch.models import THRESHOLDS, AlertStatus, Budget, Recipient, Threshold
from spendwatch.services.notifications import DispatchResult, NotificationDispatcher
from spendwatch.services.period import Period
from spendwatch.services.spend import AlertSnapshot

logger = logging.getLogger("spendwatch.thresholds")


class RecipientResolver(Protocol):
    def recipients_for(self, budget: Budget) -> List[Recipient]: ...


class ThresholdEvaluator:
    def __init__(
        self,
        db: Database,
        recipients: RecipientResolver,
        dispatcher: NotificationDispatcher,
    ):
        self._db = db
        self._recipients = recipients
        self._dispatcher = dispatcher

    def pending_thresholds(
        self, budget_id: int, snapshot: AlertSnapshot, period: Period
    ) -> List[Threshold]:
        pending = []
        for threshold in THRESHOLDS:
            if not snapshot.has_reached(threshold):
                continue
            if self._db.has_sent_alert(budget_id, threshold, period.start_ts):
                logger.debug(
                    "threshold already notified",
                    extra={"budget_id": budget_id, "threshold": int(threshold), "period": period.key},
                )
                continue
            pending.append(threshold)
        return pending

    def evaluate(
        self, budget: Budget, snapshot: AlertSnapshot, period: Period
    ) -> List[DispatchResult]:
        pending = self.pending_thresholds(budget.id, snapshot, period)
        if not pending:
            return []
        # membership is read fresh on every check
        recipients = self._recipients.recipients_for(budget)
        results: List[DispatchResult] = []
        for threshold in pending:
            log_ctx = {"budget_id": budget.id, "threshold": int(threshold), "period": period.key}
            if not self._db.claim_threshold(budget.id, threshold, period.key):
                logger.debug("threshold claimed by a concurrent check", extra=log_ctx)
                continue
            try:
                sent = self._dispatcher.dispatch(budget, recipients, threshold, snapshot, period)
            except Exception:
                self._db.release_threshold_claim(budget.id, threshold, period.key)
                raise
            if not any(r.status is AlertStatus.SENT for r in sent):
                self._db.release_threshold_claim(budget.id, threshold, period.key)
                logger.warning(
                    "no alert delivered for crossed threshold (%d attempts)", len(sent), extra=log_ctx
                )
            results.extend(sent)
        return results
