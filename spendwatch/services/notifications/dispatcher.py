"""Notification dispatch: one attempt per (recipient, channel), one alert row per attempt.

Channels are independent. A failed send is recorded as a FAILED alert with the
failure text and the loop moves on; it never aborts sibling attempts or undoes
a recorded success. Recipients without an address for a channel are skipped on
that channel without a row.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from spendwatch.core.errors import ChannelDeliveryError
from spendwatch.db.dal import Database
from spendwatch.models import AlertStatus, Budget, Channel, Recipient
from spendwatch.services.period import Period, to_sql_ts, utc_now
from spendwatch.services.spend import AlertSnapshot
from .base import EmailSender, SmsSender
from .messages import AlertMessage, MessageRenderer

logger = logging.getLogger("spendwatch.dispatch")


@dataclass(frozen=True)
class DispatchResult:
    alert_id: int
    user_id: int
    channel: Channel
    threshold: int
    status: AlertStatus
    error: Optional[str] = None


class NotificationDispatcher:
    def __init__(
        self,
        db: Database,
        email_sender: EmailSender,
        sms_sender: SmsSender,
        renderer: Optional[MessageRenderer] = None,
        clock: Callable[[], datetime] = utc_now,
        max_workers: int = 1,
    ):
        self._db = db
        self._email = email_sender
        self._sms = sms_sender
        self._renderer = renderer or MessageRenderer()
        self._clock = clock
        self._max_workers = max(1, max_workers)

    def dispatch(
        self,
        budget: Budget,
        recipients: Sequence[Recipient],
        threshold: int,
        snapshot: AlertSnapshot,
        period: Period,
    ) -> List[DispatchResult]:
        attempts: List[Tuple[Recipient, Channel, AlertMessage]] = []
        for recipient in recipients:
            message = self._renderer.render(budget.name, recipient.name, threshold, snapshot)
            if recipient.email:
                attempts.append((recipient, Channel.EMAIL, message))
            if recipient.phone_number:
                attempts.append((recipient, Channel.SMS, message))

        def run(attempt: Tuple[Recipient, Channel, AlertMessage]) -> DispatchResult:
            recipient, channel, message = attempt
            return self._attempt(budget, recipient, channel, message, threshold, snapshot, period)

        if self._max_workers == 1 or len(attempts) <= 1:
            return [run(a) for a in attempts]
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            return list(pool.map(run, attempts))

    def _send(self, recipient: Recipient, channel: Channel, message: AlertMessage) -> None:
        if channel is Channel.EMAIL:
            self._email.send_email(recipient.email, message.subject, message.text, html=message.html)  # type: ignore[arg-type]
        else:
            self._sms.send_sms(recipient.phone_number, message.sms)  # type: ignore[arg-type]

    def _attempt(
        self,
        budget: Budget,
        recipient: Recipient,
        channel: Channel,
        message: AlertMessage,
        threshold: int,
        snapshot: AlertSnapshot,
        period: Period,
    ) -> DispatchResult:
        log_ctx = {
            "budget_id": budget.id,
            "threshold": int(threshold),
            "channel": channel.value,
            "recipient_id": recipient.user_id,
        }
        error: Optional[str] = None
        try:
            self._send(recipient, channel, message)
        except ChannelDeliveryError as e:
            error = e.message
        except Exception as e:
            logger.exception("channel sender raised unexpectedly", extra=log_ctx)
            error = str(e) or e.__class__.__name__

        now = to_sql_ts(self._clock())
        status = AlertStatus.FAILED if error is not None else AlertStatus.SENT
        alert_id = self._db.insert_alert(
            user_id=recipient.user_id,
            budget_id=budget.id,
            group_id=budget.group_id,
            channel=channel,
            threshold=int(threshold),
            status=status,
            spent=snapshot.spent,
            budget_limit=snapshot.limit,
            percentage_used=snapshot.percentage_used,
            period_key=period.key,
            created_at=now,
            sent_at=now if status is AlertStatus.SENT else None,
            error_message=error,
        )
        if error is not None:
            logger.warning("alert delivery failed: %s", error, extra={**log_ctx, "alert_id": alert_id})
        else:
            logger.info("alert sent", extra={**log_ctx, "alert_id": alert_id})
        return DispatchResult(
            alert_id=alert_id,
            user_id=recipient.user_id,
            channel=channel,
            threshold=int(threshold),
            status=status,
            error=error,
        )
