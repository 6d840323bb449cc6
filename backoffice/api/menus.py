"""Menu API router: the menu tree store."""

from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.schemas.schemas import MenuCreate, MenuUpdate, MenuOut, MenuTreeOut, RoleOut, MessageResponse
from backoffice.services.audit_service import AuditContext
from backoffice.services.grant_service import grant_service
from backoffice.services.menu_service import menu_service
from backoffice.core.security import require_super_admin

router = APIRouter(prefix="/admin/permissions/menus", tags=["menus"])


@router.get("")
async def list_menus(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Flat menu listing."""
    result = menu_service.search(db, search, page, page_size)
    return {
        "menus": [MenuOut.model_validate(m) for m in result["menus"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.get("/tree")
async def menu_tree(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """The whole menu as a tree."""
    roots = menu_service.get_tree(db, active_only=active_only)
    return {"menus": [MenuTreeOut(**root.to_dict()) for root in roots]}


@router.post("", response_model=MenuOut, status_code=201)
async def create_menu(
    body: MenuCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    return menu_service.create(db, ctx, **body.model_dump())


@router.delete("", response_model=MessageResponse)
async def delete_menus(
    request: Request,
    ids: List[int] = Query(..., description="Menu ids to delete"),
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Delete several menus at once under the configured delete policy."""
    ctx = AuditContext.from_request(request, identity.user_id)
    policy = request.app.state.settings.MENU_DELETE_POLICY
    removed = menu_service.delete_many(db, ctx, ids, policy=policy)
    return MessageResponse(message=f"Deleted {len(removed)} menu(s)")


@router.get("/{menu_id}")
async def get_menu(
    menu_id: int,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """A menu with its children, buttons and the roles that can see it."""
    menu = menu_service.get(db, menu_id)
    return {
        "menu": MenuOut.model_validate(menu),
        "children": [MenuOut.model_validate(c) for c in menu_service.children_of(db, menu_id)],
        "buttons": [
            {"id": b.id, "name": b.name, "identifier": b.identifier, "is_active": b.is_active}
            for b in menu.button_permissions
        ],
        "roles": [
            RoleOut(id=r.id, name=r.name, display_name=r.display_name, is_active=r.is_active)
            for r in grant_service.roles_granted(db, menu_id)
        ],
    }


@router.put("/{menu_id}", response_model=MenuOut)
async def update_menu(
    menu_id: int,
    body: MenuUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Update a menu; send ``parent_id: null`` to move it to the root."""
    ctx = AuditContext.from_request(request, identity.user_id)
    return menu_service.update(db, ctx, menu_id, **body.model_dump(exclude_unset=True))


@router.delete("/{menu_id}", response_model=MessageResponse)
async def delete_menu(
    menu_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    policy = request.app.state.settings.MENU_DELETE_POLICY
    removed = menu_service.delete(db, ctx, menu_id, policy=policy)
    return MessageResponse(message=f"Deleted {len(removed)} menu(s)")
