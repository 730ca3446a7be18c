"""Demo data for local runs.

`seed_demo` creates three users, a shared group, one individual and one group
budget, and a handful of transactions in the current month so a threshold
check has something to fire on. Safe to run against a fresh database only.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Dict, Optional

from spendwatch.models import BudgetScope, MemberRole
from spendwatch.services.period import period_for, utc_now
from .dal import Database


def seed_demo(db: Database, now: Optional[datetime] = None) -> Dict[str, int]:
    now = now or utc_now()
    period = period_for(now)
    day = lambda n: period.start + timedelta(days=n, hours=12)  # noqa: E731

    alice = db.create_user("Alice", email="alice@example.com", phone_number="+15550100")
    bob = db.create_user("Bob", email="bob@example.com")
    carol = db.create_user("Carol", phone_number="+15550102")

    household = db.create_group("Household", owner_id=alice, monthly_limit=150000)
    db.add_group_member(household, bob, MemberRole.MEMBER)
    db.add_group_member(household, carol, MemberRole.VIEWER)

    personal = db.create_budget(
        BudgetScope.INDIVIDUAL, "Alice personal", 50000, owner_id=alice
    )
    shared = db.create_budget(
        BudgetScope.GROUP, "Groceries", 80000, group_id=household
    )

    # 95% of the personal budget, 75% of the shared one
    db.insert_transaction(30000, day(0), user_id=alice, description="Rent share")
    db.insert_transaction(17500, day(1), user_id=alice, description="Utilities")
    db.insert_transaction(4000, day(1), user_id=alice, status="PENDING", description="Pending refund")
    db.insert_transaction(60000, day(2), group_id=household, description="Weekly shop")

    return {
        "alice": alice,
        "bob": bob,
        "carol": carol,
        "household": household,
        "personal_budget": personal,
        "shared_budget": shared,
    }
