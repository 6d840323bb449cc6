"""Permission scan API router."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.services.audit_service import AuditContext
from backoffice.services.permission_scanner import PermissionScanner
from backoffice.core.security import require_super_admin

router = APIRouter(prefix="/admin/permissions/scan", tags=["scan"])


def _scanner(request: Request) -> PermissionScanner:
    return PermissionScanner.from_app(request.app, request.app.state.settings.API_PREFIX)


@router.get("")
async def preview_scan(request: Request, identity=Depends(require_super_admin)):
    """Routes and the permissions a scan would generate; nothing is saved."""
    return _scanner(request).preview()


@router.post("")
async def run_scan(
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Scan the API and upsert the button permission catalog."""
    ctx = AuditContext.from_request(request, identity.user_id)
    result = _scanner(request).scan_and_save(db, ctx)
    return {"message": f"Scanned and saved {result['count']} API permissions", **result}
