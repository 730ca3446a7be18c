"""Shared FastAPI dependencies.

Settings and channel senders live on `app.state` (set by create_app) so tests
can swap them per application instance.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from spendwatch.core.config import Settings
from spendwatch.core.errors import BadRequestError
from spendwatch.db.dal import Database
from spendwatch.services.monitor import BudgetMonitor, build_monitor


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(settings: Settings = Depends(get_app_settings)) -> Database:
    return Database(settings.db_path)  # type: ignore[arg-type]


def get_monitor(
    request: Request,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> BudgetMonitor:
    state = request.app.state
    return build_monitor(
        db,
        settings,
        email_sender=state.email_sender,
        sms_sender=state.sms_sender,
        clock=state.clock,
    )


def get_current_user_id(x_user_id: Optional[int] = Header(None)) -> int:
    """Identity is resolved upstream; the gateway forwards it as X-User-Id."""
    if x_user_id is None:
        raise BadRequestError("User not authenticated")
    return x_user_id
