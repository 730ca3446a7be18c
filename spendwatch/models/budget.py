from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .constants import BudgetScope


class Budget(BaseModel):
    id: int
    scope: BudgetScope
    owner_id: Optional[int] = None
    group_id: Optional[int] = None
    monthly_limit: int = Field(..., ge=0, description="Minor currency units")
    name: str
    is_active: bool = True

    @model_validator(mode="after")
    def exactly_one_owner(self) -> "Budget":
        if self.scope is BudgetScope.INDIVIDUAL:
            if self.owner_id is None or self.group_id is not None:
                raise ValueError("INDIVIDUAL budget requires owner_id and forbids group_id")
        elif self.group_id is None or self.owner_id is not None:
            raise ValueError("GROUP budget requires group_id and forbids owner_id")
        return self

    @classmethod
    def from_row(cls, row: dict) -> "Budget":
        return cls(
            id=row["id"],
            scope=row["scope"],
            owner_id=row.get("owner_id"),
            group_id=row.get("group_id"),
            monthly_limit=row["monthly_limit"],
            name=row["name"],
            is_active=bool(row["is_active"]),
        )


class BudgetCreateIn(BaseModel):
    scope: BudgetScope
    monthly_limit: float = Field(..., ge=0, description="Major currency units")
    name: str = Field(..., min_length=1)
    group_id: Optional[int] = None


class BudgetUpdateIn(BaseModel):
    monthly_limit: Optional[float] = Field(None, ge=0)
    name: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def at_least_one(self) -> "BudgetUpdateIn":
        if self.monthly_limit is None and self.name is None and self.is_active is None:
            raise ValueError("at least one field must be provided for update")
        return self


class BudgetOut(BaseModel):
    id: int
    scope: BudgetScope
    owner_id: Optional[int] = None
    group_id: Optional[int] = None
    monthly_limit: float
    name: str
    is_active: bool


class SpendStatusOut(BaseModel):
    """SpendStatus converted to major currency units for callers."""

    total_spent_this_period: float
    budget_limit: float
    remaining: float
    over_budget: bool
    percentage_used: float
