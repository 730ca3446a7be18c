import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .db.dal import Database
from .db.schema import init_db
from .routers import alerts, budgets, groups, health
from .services.monitor import build_monitor
from .services.notifications import make_email_sender, make_sms_sender
from .services.period import utc_now
from .services.scheduler import start_scheduler


def create_app(
    settings_override: Settings | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    clock: source of "now" for period boundaries and alert timestamps.
    """
    settings = settings_override or get_settings()
    settings.init_post_load()
    init_logging(debug=settings.debug)

    try:
        init_db(settings.db_path)  # type: ignore[arg-type]
    except Exception:
        logging.getLogger("spendwatch").exception("failed to initialise database on startup")
        raise

    def monitor_factory():
        return build_monitor(
            Database(settings.db_path),  # type: ignore[arg-type]
            settings,
            email_sender=app.state.email_sender,
            sms_sender=app.state.sms_sender,
            clock=app.state.clock,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if settings.threshold_check_interval_minutes > 0:
            scheduler = start_scheduler(monitor_factory, settings.threshold_check_interval_minutes)
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.clock = clock
    app.state.email_sender = make_email_sender(settings)
    app.state.sms_sender = make_sms_sender(settings)

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(errors.AppError, errors.app_error_handler)
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(budgets.router)
    app.include_router(groups.router)
    app.include_router(alerts.router)

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} API", "version": settings.version}

    return app
