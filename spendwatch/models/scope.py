"""Scope filter: which slice of the transaction ledger a budget covers."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from .budget import Budget
from .constants import BudgetScope


@dataclass(frozen=True)
class ByIndividual:
    user_id: int


@dataclass(frozen=True)
class ByGroup:
    group_id: int


ScopeFilter = Union[ByIndividual, ByGroup]


def scope_filter_for(budget: Budget) -> ScopeFilter:
    if budget.scope is BudgetScope.INDIVIDUAL:
        return ByIndividual(budget.owner_id)  # type: ignore[arg-type]
    return ByGroup(budget.group_id)  # type: ignore[arg-type]
