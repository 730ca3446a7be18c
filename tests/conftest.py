from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from spendwatch.core.config import Settings
from spendwatch.core.errors import ChannelDeliveryError
from spendwatch.db.dal import Database
from spendwatch.db.schema import init_db
from spendwatch.models import BudgetScope, MemberRole
from spendwatch.services.monitor import build_monitor
from spendwatch.services.notifications import EmailSender, SmsSender
from spendwatch.services.period import period_for

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
PERIOD = period_for(NOW)


def fixed_clock() -> datetime:
    return NOW


def in_period(days: int = 1) -> datetime:
    return PERIOD.start + timedelta(days=days)


class RecordingEmailSender(EmailSender):
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent: List[Tuple[str, str, str]] = []

    def send_email(self, address, subject, body, html=None):
        if address in self.fail_for:
            raise ChannelDeliveryError(f"mailbox unavailable: {address}")
        self.sent.append((address, subject, body))


class RecordingSmsSender(SmsSender):
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent: List[Tuple[str, str]] = []

    def send_sms(self, phone_number, message):
        if phone_number in self.fail_for:
            raise ChannelDeliveryError(f"unreachable number {phone_number}")
        self.sent.append((phone_number, message))


@pytest.fixture()
def settings(tmp_path) -> Settings:
    s = Settings(db_path=tmp_path / "test.sqlite3")
    s.init_post_load()
    return s


@pytest.fixture()
def db(settings) -> Database:
    init_db(settings.db_path)
    return Database(settings.db_path)


@pytest.fixture()
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture()
def sms_sender() -> RecordingSmsSender:
    return RecordingSmsSender()


@pytest.fixture()
def monitor(db, settings, email_sender, sms_sender):
    return build_monitor(
        db, settings, email_sender=email_sender, sms_sender=sms_sender, clock=fixed_clock
    )


@pytest.fixture()
def alice(db) -> int:
    return db.create_user("Alice", email="alice@example.com", phone_number="+15550100")


def make_individual_budget(db: Database, owner_id: int, limit: int = 50000, name: str = "Personal") -> int:
    return db.create_budget(BudgetScope.INDIVIDUAL, name, limit, owner_id=owner_id)


def make_group(db: Database, owner_id: int, *members: int, limit: int = 0) -> int:
    group_id = db.create_group("Household", owner_id=owner_id, monthly_limit=limit)
    for m in members:
        db.add_group_member(group_id, m, MemberRole.MEMBER)
    return group_id


def spend(
    db: Database,
    amount: int,
    user_id: Optional[int] = None,
    group_id: Optional[int] = None,
    when: Optional[datetime] = None,
    **kwargs,
) -> int:
    return db.insert_transaction(
        amount, when or in_period(), user_id=user_id, group_id=group_id, **kwargs
    )
