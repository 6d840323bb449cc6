"""Button permission API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.schemas.schemas import ButtonCreate, ButtonUpdate, ButtonOut, MessageResponse
from backoffice.services.audit_service import AuditContext
from backoffice.services.button_service import button_service
from backoffice.core.security import require_super_admin

router = APIRouter(prefix="/admin/permissions/buttons", tags=["buttons"])


@router.get("")
async def list_buttons(
    search: Optional[str] = Query(None),
    menu_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """List button permissions, optionally for one menu."""
    result = button_service.list_buttons(db, search, menu_id, page, page_size)
    return {
        "buttons": [
            {
                **ButtonOut.model_validate(b).model_dump(),
                "menu_name": b.menu.display_name if b.menu else None,
            }
            for b in result["buttons"]
        ],
        "total": result["total"],
        "page": result["page"],
    }


@router.post("", response_model=ButtonOut, status_code=201)
async def create_button(
    body: ButtonCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    return button_service.create(db, ctx, **body.model_dump())


@router.get("/{button_id}", response_model=ButtonOut)
async def get_button(
    button_id: int,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    return button_service.get(db, button_id)


@router.put("/{button_id}", response_model=ButtonOut)
async def update_button(
    button_id: int,
    body: ButtonUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Update a button; the menu must exist and the identifier stay unique in it."""
    ctx = AuditContext.from_request(request, identity.user_id)
    return button_service.update(db, ctx, button_id, **body.model_dump(exclude_unset=True))


@router.delete("/{button_id}", response_model=MessageResponse)
async def delete_button(
    button_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    ctx = AuditContext.from_request(request, identity.user_id)
    button_service.delete(db, ctx, button_id)
    return MessageResponse(message="Button permission deleted")
