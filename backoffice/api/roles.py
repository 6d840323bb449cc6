"""Role API router: role labels and their menu/button grants."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.models.role import Role
from backoffice.schemas.schemas import (
    RoleOut, RoleUpdate, RoleMenusUpdate, MenuOut, ButtonOut, MessageResponse,
)
from backoffice.services.audit_service import AuditContext
from backoffice.services.grant_service import grant_service
from backoffice.services.menu_service import menu_service
from backoffice.services.menu_tree import build_menu_tree, with_ancestors
from backoffice.core.security import require_super_admin

router = APIRouter(prefix="/admin/roles", tags=["roles"])


def _role_out(db: Session, role: Role) -> RoleOut:
    return RoleOut(
        id=role.id,
        name=role.name,
        display_name=role.display_name,
        description=role.description,
        is_active=role.is_active,
        created_at=role.created_at,
        **grant_service.grant_counts(db, role.id),
    )


@router.get("")
async def list_roles(
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """List roles with their grant counts."""
    result = grant_service.list_roles(db, search, is_active, page, page_size)
    return {
        "roles": [_role_out(db, r) for r in result["roles"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.get("/{role_id}")
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """A role with the menus and buttons granted to it directly."""
    role = grant_service.get_role(db, role_id)
    return {
        "role": _role_out(db, role),
        "menus": [MenuOut.model_validate(m) for m in grant_service.menus_visible_to(db, role.name)],
        "buttons": [ButtonOut.model_validate(b) for b in grant_service.buttons_permitted_to(db, role.name)],
    }


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    role = grant_service.update_role(db, ctx, role_id, **body.model_dump(exclude_unset=True))
    return _role_out(db, role)


@router.get("/{role_id}/effective")
async def effective_grants(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Grants after inheritance, as the middleware and navigation see them."""
    resolver = request.app.state.resolver
    role = grant_service.get_role(db, role_id)
    menus = with_ancestors(
        resolver.effective_menus(db, role.name), menu_service.list_all(db, active_only=True),
    )
    return {
        "role": role.name,
        "inherits": sorted(r.value for r in resolver.roles_for(role.name)),
        "routes": resolver.route_patterns(role.name),
        "menus": [node.to_dict() for node in build_menu_tree(menus)],
        "permissions": sorted(resolver.effective_permissions(db, role.name)),
    }


@router.put("/{role_id}/menus")
async def set_role_menus(
    role_id: int,
    body: RoleMenusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Replace the role's menu grants."""
    ctx = AuditContext.from_request(request, identity.user_id)
    menu_ids = grant_service.set_role_menus(db, ctx, role_id, body.menu_ids)
    return {"role_id": role_id, "menu_ids": menu_ids}


@router.post("/{role_id}/menus/{menu_id}", response_model=MessageResponse)
async def grant_menu(
    role_id: int,
    menu_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    changed = grant_service.grant_menu(db, ctx, role_id, menu_id)
    return MessageResponse(message="Menu granted" if changed else "Menu already granted")


@router.delete("/{role_id}/menus/{menu_id}", response_model=MessageResponse)
async def revoke_menu(
    role_id: int,
    menu_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    changed = grant_service.revoke_menu(db, ctx, role_id, menu_id)
    return MessageResponse(message="Menu revoked" if changed else "Menu was not granted")


@router.post("/{role_id}/buttons/{button_id}", response_model=MessageResponse)
async def grant_button(
    role_id: int,
    button_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    changed = grant_service.grant_button(db, ctx, role_id, button_id)
    return MessageResponse(message="Button granted" if changed else "Button already granted")


@router.delete("/{role_id}/buttons/{button_id}", response_model=MessageResponse)
async def revoke_button(
    role_id: int,
    button_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    changed = grant_service.revoke_button(db, ctx, role_id, button_id)
    return MessageResponse(message="Button revoked" if changed else "Button was not granted")
