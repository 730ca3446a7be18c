from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from spendwatch.core.errors import BadRequestError
from spendwatch.models import THRESHOLDS, AlertFilters, AlertOut, AlertStatus
from spendwatch.services.monitor import BudgetMonitor
from .deps import get_current_user_id, get_monitor

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("/", response_model=List[AlertOut], summary="List the user's alerts, newest first")
def list_alerts(
    budget_id: Optional[int] = Query(None, ge=1),
    status: Optional[AlertStatus] = Query(None),
    threshold: Optional[int] = Query(None, description="70, 90 or 100"),
    limit: Optional[int] = Query(None, gt=0),
    user_id: int = Depends(get_current_user_id),
    monitor: BudgetMonitor = Depends(get_monitor),
):
    if threshold is not None and threshold not in THRESHOLDS:
        raise BadRequestError(f"threshold must be one of {[int(t) for t in THRESHOLDS]}")
    filters = AlertFilters(budget_id=budget_id, status=status, threshold=threshold, limit=limit)
    return monitor.list_alerts(user_id, filters)


@router.post(
    "/{alert_id}/acknowledge", response_model=AlertOut, summary="Mark an alert as read"
)
def acknowledge_alert(
    alert_id: int = Path(..., ge=1),
    user_id: int = Depends(get_current_user_id),
    monitor: BudgetMonitor = Depends(get_monitor),
):
    return monitor.acknowledge_alert(alert_id, user_id)
