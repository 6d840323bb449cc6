"""Navigation API router: what the signed-in user can see and do."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.models.project import Project
from backoffice.schemas.schemas import PermissionCheckRequest, ProjectOut
from backoffice.services.menu_service import menu_service
from backoffice.services.menu_tree import build_menu_tree, with_ancestors
from backoffice.core.exceptions import ResourceNotFoundError
from backoffice.core.security import get_current_identity

router = APIRouter(tags=["navigation"])


def _menu_tree(request: Request, db: Session, role: str):
    menus = request.app.state.resolver.effective_menus(db, role)
    menus = with_ancestors(menus, menu_service.list_all(db, active_only=True))
    return [node.to_dict() for node in build_menu_tree(menus)]


@router.get("/navigation/menus")
async def my_menus(
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(get_current_identity),
):
    """Menu tree visible to the caller's role."""
    return {"role": identity.role, "menus": _menu_tree(request, db, identity.role)}


@router.get("/navigation/permissions")
async def my_permissions(
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(get_current_identity),
):
    """Button permission identifiers the caller's role holds."""
    permissions = request.app.state.resolver.effective_permissions(db, identity.role)
    return {"role": identity.role, "permissions": sorted(permissions)}


@router.post("/navigation/permissions/check")
async def check_permissions(
    body: PermissionCheckRequest,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(get_current_identity),
):
    """Check several button permissions at once."""
    results = request.app.state.resolver.check_permissions(db, identity.role, body.identifiers)
    return {"role": identity.role, "results": results}


@router.get("/projects/{project_id}/navigation")
async def project_navigation(
    project_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(get_current_identity),
):
    """Project landing data; the project scope is checked before this runs."""
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise ResourceNotFoundError(f"Project {project_id} not found")
    return {
        "project": ProjectOut.model_validate(project),
        "role": identity.role,
        "menus": _menu_tree(request, db, identity.role),
    }
