"""Audit log API router: browse and purge the permission trail."""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from backoffice.db.session import get_db
from backoffice.schemas.schemas import AuditLogOut
from backoffice.services.audit_service import AuditContext, audit_service
from backoffice.core.security import require_super_admin

router = APIRouter(prefix="/admin/audit-logs", tags=["audit"])


@router.get("")
async def get_audit_logs(
    request: Request,
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Query audit logs, with action counts over the stats window."""
    result = audit_service.query_logs(
        db,
        action=action,
        resource_type=resource_type,
        actor_id=user_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        page_size=page_size,
        stats_window_days=request.app.state.settings.AUDIT_STATS_WINDOW_DAYS,
    )
    return {
        "logs": [AuditLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
        "total_pages": result["total_pages"],
        "stats": result["stats"],
    }


@router.delete("")
async def purge_audit_logs(
    request: Request,
    before_date: Optional[datetime] = Query(None),
    keep_days: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    identity=Depends(require_super_admin),
):
    """Delete entries older than ``before_date`` or the last ``keep_days`` days."""
    ctx = AuditContext.from_request(request, identity.user_id)
    result = audit_service.purge(
        db, ctx,
        before_date=before_date,
        keep_days=keep_days,
        default_keep_days=request.app.state.settings.AUDIT_RETENTION_DAYS,
    )
    return {
        "message": f"Purged {result['deleted_count']} audit log entries",
        "deleted_count": result["deleted_count"],
        "cutoff": result["cutoff"],
    }
