"""User permission API router: roles, status and project scopes."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.models.user import User
from backoffice.schemas.schemas import (
    UserPermissionOut, UserPermissionUpdate, UserBatchUpdate, ProjectOut, MessageResponse,
)
from backoffice.services.audit_service import AuditContext
from backoffice.services.user_service import user_service
from backoffice.core.security import require_super_admin

router = APIRouter(prefix="/admin/permissions/users", tags=["users"])


def _user_out(user: User) -> UserPermissionOut:
    return UserPermissionOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role.name if user.role else None,
        is_active=user.is_active,
        project_ids=user.project_ids,
        last_login_at=user.last_login_at,
        created_at=user.created_at,
    )


@router.get("")
async def list_users(
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """List users with their role and project scope."""
    result = user_service.list_users(db, search, role, is_active, page, page_size)
    return {
        "users": [_user_out(u) for u in result["users"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.put("", response_model=MessageResponse)
async def batch_update_users(
    body: UserBatchUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Apply one role/status/scope change to several users."""
    ctx = AuditContext.from_request(request, identity.user_id)
    count = user_service.batch_update(
        db, ctx, body.user_ids,
        role=body.role, is_active=body.is_active, project_ids=body.project_ids,
    )
    return MessageResponse(message=f"Updated {count} user(s)")


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """A user with the projects in scope and their effective permissions."""
    user = user_service.get(db, user_id)
    resolver = request.app.state.resolver
    role_name = user.role.name if user.role else None
    return {
        "user": _user_out(user),
        "projects": [ProjectOut.model_validate(p) for p in user_service.projects_in_scope(db, user)],
        "permissions": sorted(resolver.effective_permissions(db, role_name)) if role_name else [],
    }


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UserPermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    user = user_service.update(
        db, ctx, user_id,
        role=body.role, is_active=body.is_active,
        project_ids=body.project_ids, full_name=body.full_name,
    )
    return _user_out(user)
