from typing import List

from fastapi import APIRouter, Depends, Path

from spendwatch.db.dal import Database
from spendwatch.models import AlertStatus, BudgetCreateIn, BudgetOut, BudgetUpdateIn, SpendStatusOut
from spendwatch.services import budgets as budget_service
from spendwatch.services.monitor import BudgetMonitor
from .deps import get_current_user_id, get_db, get_monitor

router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.get("/", response_model=List[BudgetOut], summary="List budgets visible to the user")
async def list_budgets(
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    return [budget_service.budget_out(b) for b in budget_service.list_budgets_for(db, user_id)]


@router.post("/", response_model=BudgetOut, status_code=201, summary="Create a budget")
async def create_budget(
    payload: BudgetCreateIn,
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    return budget_service.budget_out(budget_service.create_budget(db, user_id, payload))


@router.get("/{budget_id}", response_model=BudgetOut, summary="Get a budget")
async def get_budget(
    budget_id: int = Path(..., ge=1),
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    return budget_service.budget_out(budget_service.get_budget_for(db, budget_id, user_id))


@router.patch("/{budget_id}", response_model=BudgetOut, summary="Update limit, name or active flag")
async def update_budget(
    payload: BudgetUpdateIn,
    budget_id: int = Path(..., ge=1),
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    return budget_service.budget_out(
        budget_service.update_budget(db, budget_id, user_id, payload)
    )


@router.get(
    "/{budget_id}/status",
    response_model=SpendStatusOut,
    summary="Spend against limit for the current month",
)
async def get_status(
    budget_id: int = Path(..., ge=1),
    user_id: int = Depends(get_current_user_id),
    monitor: BudgetMonitor = Depends(get_monitor),
):
    return monitor.get_status(budget_id).to_out()


# plain def: channel sends block, FastAPI runs this in its threadpool
@router.post("/{budget_id}/check", summary="Run a threshold check now")
def check_thresholds(
    budget_id: int = Path(..., ge=1),
    user_id: int = Depends(get_current_user_id),
    monitor: BudgetMonitor = Depends(get_monitor),
):
    results = monitor.check_thresholds(budget_id)
    return {
        "message": "Budget threshold check completed",
        "alerts_written": len(results),
        "sent": sum(1 for r in results if r.status is AlertStatus.SENT),
        "failed": sum(1 for r in results if r.status is AlertStatus.FAILED),
    }


@router.delete("/{budget_id}", summary="Delete a budget and its alert history")
async def delete_budget(
    budget_id: int = Path(..., ge=1),
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    budget_service.delete_budget(db, budget_id, user_id)
    return {"message": "Budget deleted successfully"}
