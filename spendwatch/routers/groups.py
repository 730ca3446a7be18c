from fastapi import APIRouter, Depends, Path, Request

from spendwatch.db.dal import Database
from spendwatch.models import SpendStatusOut
from spendwatch.services.budgets import get_group_status
from .deps import get_current_user_id, get_db

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get(
    "/{group_id}/status",
    response_model=SpendStatusOut,
    summary="Spend against the group's legacy monthly limit",
)
async def group_status(
    request: Request,
    group_id: int = Path(..., ge=1),
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_db),
):
    return get_group_status(db, group_id, clock=request.app.state.clock).to_out()
