from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskhub.db.init_db import init_db
from taskhub.logging_config import configure_app_logging
from taskhub.routers import health, projects, tasks, users
from taskhub.schemas.envelope import failure
from taskhub.security.config import SecurityConfig, load_security_config
from taskhub.security.dependencies import enforce_security
from taskhub.security.errors import AccessError, InternalError
from taskhub.settings import get_settings

logger = logging.getLogger(__name__)


ROUTERS = (health.router, users.router, projects.router, tasks.router)


def route_templates(app: FastAPI) -> set[str]:
    """
    Path templates the app serves.

    Read from the routers themselves: depending on the FastAPI release, `app.routes` holds
    either the copied routes or one opaque entry per included router.
    """

    templates = {route.path for route in app.routes if isinstance(getattr(route, "path", None), str)}
    for router in getattr(app.state, "routers", ()):
        templates.update(route.path for route in router.routes)
    return templates


def install_security_config(app: FastAPI, config: SecurityConfig) -> None:
    """
    Attach the route security config, refusing rules that point at no registered route.
    """

    unknown = config.unknown_paths(route_templates(app))
    if unknown:
        raise ValueError(f"Security rules reference unknown routes: {unknown}")
    app.state.security_config = config


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccessError)
    async def _access_error(_request: Request, exc: AccessError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=failure(exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=failure("Validation failed", errors=jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(SQLAlchemyError)
    async def _store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Store failure path=%s method=%s", request.url.path, request.method, exc_info=exc)
        return JSONResponse(status_code=InternalError.status_code, content=failure(InternalError.message))


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        if getattr(app.state, "security_config", None) is None:
            install_security_config(app, load_security_config(settings.resolved_security_config_path()))
            logger.info("Loaded security config: %s", settings.resolved_security_config_path())
        init_db()
        logger.info("Database initialized (tables ensured + seed if needed)")

        yield

    # Global dependency: every route is authenticated/authorized per its configured rule.
    app = FastAPI(title="taskhub", dependencies=[Depends(enforce_security)], lifespan=lifespan)

    app.state.routers = ROUTERS
    for router in ROUTERS:
        app.include_router(router)

    register_exception_handlers(app)
    return app


app = create_app()
