"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backoffice.core.config import Settings, settings as default_settings
from backoffice.core.middleware import setup_middleware
from backoffice.core.exceptions import BackOfficeError, InternalError
from backoffice.db.session import build_engine, build_session_factory
from backoffice.services.authorization_service import RequestAuthorizer
from backoffice.services.role_resolution import RoleResolver

from backoffice.api.auth import router as auth_router
from backoffice.api.menus import router as menus_router
from backoffice.api.buttons import router as buttons_router
from backoffice.api.roles import router as roles_router
from backoffice.api.users import router as users_router
from backoffice.api.audit_logs import router as audit_logs_router
from backoffice.api.scan import router as scan_router
from backoffice.api.navigation import router as navigation_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if default_settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("backoffice")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s", app.state.settings.APP_NAME)
    yield
    logger.info("Shutting down %s", app.state.settings.APP_NAME)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with its own engine, resolver and authorizer."""
    settings = settings or default_settings

    app = FastAPI(
        title=settings.APP_NAME,
        description="Sales back office: menus, roles and permissions",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.resolver = RoleResolver()
    app.state.authorizer = RequestAuthorizer(app.state.resolver, settings.PUBLIC_ROUTES)

    # Middleware
    setup_middleware(app, settings)

    # Exception handler for back-office errors
    @app.exception_handler(BackOfficeError)
    async def backoffice_exception_handler(request: Request, exc: BackOfficeError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = InternalError("Internal server error")
        return JSONResponse(
            status_code=error.status_code,
            content={"detail": error.message, "code": error.code},
        )

    # Register routers
    for router in (
        auth_router,
        menus_router,
        buttons_router,
        roles_router,
        users_router,
        audit_logs_router,
        scan_router,
        navigation_router,
    ):
        app.include_router(router, prefix=settings.API_PREFIX)

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": "0.1.0",
            "docs": "/docs",
        }

    @app.get(f"{settings.API_PREFIX}/health")
    async def health():
        """Quick health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
