from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .models.constants import UnsupportedCurrencyError
from .routers import health, rates
from .services.rate_service import RateController
from .services.rates.rollback import BaseChangeInProgressError


def create_app(
    settings_override: Settings | None = None,
    controller: RateController | None = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment. Falls back to cached get_settings().
    controller: pre-built controller (e.g. with a fake provider); built from
    settings when omitted.
    """
    settings = settings_override or get_settings()
    if settings_override is not None:
        settings.init_post_load()
    # Initialize logging early
    init_logging(debug=settings.debug)
    ctl = controller or RateController(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.getLogger("ratewatch").info(
            "starting rate controller (base %s, provider %s)",
            ctl.active_base.value,
            settings.rate_provider,
        )
        await ctl.start()
        try:
            yield
        finally:
            await ctl.teardown()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.controller = ctl

    # Middleware (trigger id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(
        UnsupportedCurrencyError, errors.unsupported_currency_handler
    )
    app.add_exception_handler(
        BaseChangeInProgressError, errors.change_in_progress_handler
    )
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(rates.router)

    @app.get("/")
    async def root():
        return {"message": "ratewatch FX rate API", "version": settings.version}

    return app


def run() -> None:
    import uvicorn

    uvicorn.run("ratewatch.main:create_app", factory=True, host="127.0.0.1", port=8000)
