"""Pydantic domain models for the budget alert service."""

from .constants import (
    THRESHOLDS,
    AlertStatus,
    BudgetScope,
    Channel,
    MemberRole,
    Threshold,
)  # re-export
from .budget import Budget, BudgetCreateIn, BudgetOut, BudgetUpdateIn, SpendStatusOut
from .group import Group, GroupMember, Recipient
from .alert import AlertFilters, AlertMetadata, AlertOut
from .scope import ByGroup, ByIndividual, ScopeFilter, scope_filter_for

__all__ = [
    "THRESHOLDS",
    "AlertStatus",
    "BudgetScope",
    "Channel",
    "MemberRole",
    "Threshold",
    "Budget",
    "BudgetCreateIn",
    "BudgetOut",
    "BudgetUpdateIn",
    "SpendStatusOut",
    "Group",
    "GroupMember",
    "Recipient",
    "AlertFilters",
    "AlertMetadata",
    "AlertOut",
    "ByGroup",
    "ByIndividual",
    "ScopeFilter",
    "scope_filter_for",
]
