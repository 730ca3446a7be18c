from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .constants import AlertStatus, BudgetScope, Channel, Threshold


class AlertMetadata(BaseModel):
    current_spending: float
    budget_limit: float
    percentage_used: float


class AlertOut(BaseModel):
    id: int
    user_id: int
    budget_id: int
    budget_name: Optional[str] = None
    budget_scope: Optional[BudgetScope] = None
    group_id: Optional[int] = None
    group_name: Optional[str] = None
    channel: Channel
    threshold: Threshold
    status: AlertStatus
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    metadata: AlertMetadata
    acknowledged: bool = False
    created_at: datetime


class AlertFilters(BaseModel):
    budget_id: Optional[int] = None
    status: Optional[AlertStatus] = None
    threshold: Optional[Threshold] = None
    limit: Optional[int] = Field(None, gt=0)
