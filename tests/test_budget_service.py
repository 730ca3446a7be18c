import pytest
from conftest import fixed_clock, make_group, spend

from spendwatch.core.errors import BadRequestError, NotFoundError
from spendwatch.models import BudgetCreateIn, BudgetScope, BudgetUpdateIn, MemberRole
from spendwatch.services import budgets


def test_create_individual_budget_converts_to_minor_units(db, alice):
    budget = budgets.create_budget(
        db, alice, BudgetCreateIn(scope=BudgetScope.INDIVIDUAL, monthly_limit=500, name=" Food ")
    )
    assert budget.owner_id == alice
    assert budget.group_id is None
    assert budget.monthly_limit == 50000
    assert budget.name == "Food"
    assert budgets.budget_out(budget).monthly_limit == 500.0


def test_create_group_budget_requires_membership(db, alice):
    outsider = db.create_user("Eve")
    group_id = make_group(db, alice)
    payload = BudgetCreateIn(scope=BudgetScope.GROUP, monthly_limit=800, name="Groceries", group_id=group_id)

    with pytest.raises(BadRequestError):
        budgets.create_budget(db, outsider, payload)
    budget = budgets.create_budget(db, alice, payload)
    assert budget.group_id == group_id
    assert budget.owner_id is None


def test_create_group_budget_validation(db, alice):
    with pytest.raises(BadRequestError):
        budgets.create_budget(db, alice, BudgetCreateIn(scope=BudgetScope.GROUP, monthly_limit=1, name="x"))
    with pytest.raises(NotFoundError):
        budgets.create_budget(
            db, alice, BudgetCreateIn(scope=BudgetScope.GROUP, monthly_limit=1, name="x", group_id=42)
        )
    with pytest.raises(BadRequestError):
        budgets.create_budget(
            db, alice, BudgetCreateIn(scope=BudgetScope.INDIVIDUAL, monthly_limit=1, name="x", group_id=42)
        )


def test_viewer_cannot_update_group_budget(db, alice):
    viewer = db.create_user("Vic")
    group_id = make_group(db, alice)
    db.add_group_member(group_id, viewer, MemberRole.VIEWER)
    budget_id = db.create_budget("GROUP", "Shared", 10000, group_id=group_id)

    with pytest.raises(BadRequestError):
        budgets.update_budget(db, budget_id, viewer, BudgetUpdateIn(monthly_limit=1))
    updated = budgets.update_budget(db, budget_id, alice, BudgetUpdateIn(monthly_limit=250.5, is_active=False))
    assert updated.monthly_limit == 25050
    assert updated.is_active is False


def test_only_owner_updates_individual_budget(db, alice):
    bob = db.create_user("Bob")
    budget_id = db.create_budget("INDIVIDUAL", "Mine", 10000, owner_id=alice)
    with pytest.raises(BadRequestError):
        budgets.update_budget(db, budget_id, bob, BudgetUpdateIn(name="Ours"))
    with pytest.raises(NotFoundError):
        budgets.update_budget(db, 999, alice, BudgetUpdateIn(name="Ours"))
    assert budgets.update_budget(db, budget_id, alice, BudgetUpdateIn(name="Ours")).name == "Ours"


def test_access_check_and_listing(db, alice):
    bob = db.create_user("Bob")
    group_id = make_group(db, alice, bob)
    mine = db.create_budget("INDIVIDUAL", "Mine", 10000, owner_id=alice)
    shared = db.create_budget("GROUP", "Shared", 10000, group_id=group_id)
    inactive = db.create_budget("INDIVIDUAL", "Old", 10000, owner_id=bob, is_active=False)

    assert budgets.get_budget_for(db, shared, bob).id == shared
    with pytest.raises(BadRequestError):
        budgets.get_budget_for(db, mine, bob)
    assert [b.id for b in budgets.list_budgets_for(db, alice)] == [mine, shared]
    assert [b.id for b in budgets.list_budgets_for(db, bob)] == [shared]
    assert inactive not in [b.id for b in budgets.list_budgets_for(db, bob)]


def test_legacy_group_status_uses_group_limit(db, alice):
    group_id = make_group(db, alice, limit=20000)
    spend(db, 25000, group_id=group_id)

    status = budgets.get_group_status(db, group_id, clock=fixed_clock)

    assert status.percentage_used == 100.0
    assert status.over_budget is True
    assert status.remaining == -5000
    with pytest.raises(NotFoundError):
        budgets.get_group_status(db, 404, clock=fixed_clock)


def test_delete_budget_permissions_and_alert_history(db, monitor, alice):
    bob = db.create_user("Bob", email="bob@example.com")
    group_id = make_group(db, alice, bob)
    budget_id = db.create_budget(BudgetScope.GROUP, "Shared", 10000, group_id=group_id)
    spend(db, 8000, group_id=group_id)
    monitor.check_thresholds(budget_id)
    assert db.list_alerts(bob, limit=10)

    with pytest.raises(BadRequestError):
        budgets.delete_budget(db, budget_id, bob)
    budgets.delete_budget(db, budget_id, alice)

    assert db.get_budget(budget_id) is None
    assert db.list_alerts(alice, limit=10) == []
    assert db.list_alerts(bob, limit=10) == []
    with pytest.raises(NotFoundError):
        budgets.delete_budget(db, budget_id, alice)


def test_delete_individual_budget_is_owner_only(db, alice):
    bob = db.create_user("Bob")
    budget_id = db.create_budget(BudgetScope.INDIVIDUAL, "Mine", 5000, owner_id=alice)

    with pytest.raises(BadRequestError):
        budgets.delete_budget(db, budget_id, bob)
    budgets.delete_budget(db, budget_id, alice)
    assert db.get_budget(budget_id) is None
