"""CORS, request-id, logging, and authorization middleware."""

import uuid
import time
import logging
from urllib.parse import urlencode

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from backoffice.core.config import Settings
from backoffice.core.exceptions import AuthenticationRequired
from backoffice.core.security import token_from_request
from backoffice.services.authorization_service import AuthDecision
from backoffice.services.identity_service import IdentityService

logger = logging.getLogger("backoffice")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Add a unique request ID to every request/response."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        response: Response = await call_next(request)

        duration = round((time.time() - start_time) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration)

        logger.info(
            "%s %s %s %sms",
            request.method,
            request.url.path,
            response.status_code,
            duration,
        )
        return response


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """Gate every request through the authorization state machine.

    Browser navigations are redirected (login with ``callbackUrl``, or the
    auth-error page with ``error=<reason>``); API calls get 401/403 JSON with
    the same reason code.
    """

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    def _is_api(self, path: str) -> bool:
        prefix = self.settings.API_PREFIX
        return path == prefix or path.startswith(prefix + "/")

    def _decide(self, request: Request) -> AuthDecision:
        authorizer = request.app.state.authorizer
        token = token_from_request(request, self.settings.SESSION_COOKIE_NAME)
        db = None

        def load_identity():
            nonlocal db
            db = request.app.state.session_factory()
            return IdentityService.resolve_token(db, token, config=self.settings)

        try:
            return authorizer.authorize(request.url.path, load_identity)
        finally:
            if db is not None:
                db.close()

    def _deny(self, request: Request, decision: AuthDecision) -> Response:
        path = request.url.path
        error = decision.error()
        if self._is_api(path):
            return JSONResponse(
                status_code=error.status_code,
                content={"detail": error.message, "code": error.code},
            )
        if decision.reason == AuthenticationRequired.code:
            query = urlencode({"callbackUrl": path})
            return RedirectResponse(f"{self.settings.LOGIN_PATH}?{query}", status_code=302)
        query = urlencode({"error": decision.reason})
        return RedirectResponse(f"{self.settings.AUTH_ERROR_PATH}?{query}", status_code=302)

    async def dispatch(self, request: Request, call_next):
        decision = await run_in_threadpool(self._decide, request)
        if not decision.allowed:
            logger.info(
                "Denied %s %s: %s (user=%s)",
                request.method,
                request.url.path,
                decision.reason,
                decision.identity.user_id if decision.identity else None,
            )
            return self._deny(request, decision)

        request.state.identity = decision.identity
        return await call_next(request)


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure all middleware for the application."""
    # Authorization (innermost)
    app.add_middleware(AuthorizationMiddleware, settings=settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID + timing
    app.add_middleware(RequestIdMiddleware)
