"""Budget and group access rules.

Budget creation, edits and deletion, access checks and the legacy group-limit status.
Amounts arrive in major units from the API and are stored in minor units.
"""

from __future__ import annotations
from datetime import datetime
from typing import Callable, List, Optional

from spendwatch.core.errors import BadRequestError, NotFoundError
from spendwatch.db.dal import Database
from spendwatch.models import (
    Budget,
    BudgetCreateIn,
    BudgetOut,
    BudgetScope,
    BudgetUpdateIn,
    ByGroup,
    Group,
    MemberRole,
)
from spendwatch.services.money import to_major, to_minor
from spendwatch.services.period import period_for, utc_now
from spendwatch.services.spend import SpendAggregator, SpendStatus, calculate_status

_EDIT_ROLES = {MemberRole.OWNER, MemberRole.MEMBER}


def budget_out(budget: Budget) -> BudgetOut:
    return BudgetOut(
        id=budget.id,
        scope=budget.scope,
        owner_id=budget.owner_id,
        group_id=budget.group_id,
        monthly_limit=to_major(budget.monthly_limit),
        name=budget.name,
        is_active=budget.is_active,
    )


def _require_group(db: Database, group_id: int) -> Group:
    row = db.get_group(group_id)
    if row is None:
        raise NotFoundError("Group not found")
    return Group(**row)


def _require_budget(db: Database, budget_id: int) -> Budget:
    budget = db.get_budget(budget_id)
    if budget is None:
        raise NotFoundError("Budget not found")
    return budget


def create_budget(db: Database, requester_id: int, payload: BudgetCreateIn) -> Budget:
    if payload.scope is BudgetScope.GROUP:
        if payload.group_id is None:
            raise BadRequestError("group_id is required for GROUP budget")
        group = _require_group(db, payload.group_id)
        if group.member(requester_id) is None:
            raise BadRequestError("You are not a member of this group")
        budget_id = db.create_budget(
            BudgetScope.GROUP,
            payload.name.strip(),
            to_minor(payload.monthly_limit),
            group_id=group.id,
        )
    else:
        if payload.group_id is not None:
            raise BadRequestError("group_id is not allowed for INDIVIDUAL budget")
        budget_id = db.create_budget(
            BudgetScope.INDIVIDUAL,
            payload.name.strip(),
            to_minor(payload.monthly_limit),
            owner_id=requester_id,
        )
    return _require_budget(db, budget_id)


def get_budget_for(db: Database, budget_id: int, requester_id: int) -> Budget:
    budget = _require_budget(db, budget_id)
    if budget.scope is BudgetScope.INDIVIDUAL:
        if budget.owner_id != requester_id:
            raise BadRequestError("You don't have access to this budget")
    else:
        group = _require_group(db, budget.group_id)  # type: ignore[arg-type]
        if group.member(requester_id) is None:
            raise BadRequestError("You don't have access to this budget")
    return budget


def update_budget(
    db: Database, budget_id: int, requester_id: int, payload: BudgetUpdateIn
) -> Budget:
    budget = _require_budget(db, budget_id)
    if budget.scope is BudgetScope.INDIVIDUAL:
        if budget.owner_id != requester_id:
            raise BadRequestError("You can only update your own budgets")
    else:
        group = _require_group(db, budget.group_id)  # type: ignore[arg-type]
        member = group.member(requester_id)
        if member is None or member.role not in _EDIT_ROLES:
            raise BadRequestError("You don't have permission to update this budget")

    changes = {}
    if payload.monthly_limit is not None:
        changes["monthly_limit"] = to_minor(payload.monthly_limit)
    if payload.name is not None:
        changes["name"] = payload.name.strip()
    if payload.is_active is not None:
        changes["is_active"] = payload.is_active
    db.update_budget(budget_id, **changes)
    return _require_budget(db, budget_id)


def delete_budget(db: Database, budget_id: int, requester_id: int) -> None:
    budget = _require_budget(db, budget_id)
    if budget.scope is BudgetScope.INDIVIDUAL:
        if budget.owner_id != requester_id:
            raise BadRequestError("You can only delete your own budgets")
    else:
        group = _require_group(db, budget.group_id)  # type: ignore[arg-type]
        member = group.member(requester_id)
        if member is None or member.role is not MemberRole.OWNER:
            raise BadRequestError("Only owners can delete group budgets")
    db.delete_budget(budget_id)


def list_budgets_for(db: Database, requester_id: int) -> List[Budget]:
    return db.list_budgets_for_user(requester_id)


def get_group_status(
    db: Database,
    group_id: int,
    clock: Callable[[], datetime] = utc_now,
    aggregator: Optional[SpendAggregator] = None,
) -> SpendStatus:
    """Spend against the group's legacy monthly limit (pre per-budget limits)."""
    group = _require_group(db, group_id)
    period = period_for(clock())
    spent = (aggregator or SpendAggregator(db)).spent_for_scope(ByGroup(group.id), period)
    return calculate_status(spent, group.monthly_limit)
