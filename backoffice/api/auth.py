"""Auth API router: login and me."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.schemas.schemas import LoginRequest, TokenResponse
from backoffice.services.identity_service import identity_service
from backoffice.core.security import get_current_identity

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Authenticate, return a JWT and set it as the session cookie."""
    settings = request.app.state.settings
    result = identity_service.authenticate(db, body.email, body.password, config=settings)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        result["access_token"],
        max_age=settings.JWT_EXPIRY_MINUTES * 60,
        httponly=True,
        samesite="lax",
    )
    return result


@router.get("/me")
async def me(request: Request, identity=Depends(get_current_identity)):
    """Current identity with the route patterns its role may reach."""
    resolver = request.app.state.resolver
    return {
        "user_id": identity.user_id,
        "email": identity.email,
        "full_name": identity.full_name,
        "role": identity.role,
        "is_active": identity.is_active,
        "project_ids": identity.project_ids,
        "routes": resolver.route_patterns(identity.role),
    }
