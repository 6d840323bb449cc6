"""Audit service: append-only trail for permission mutations."""

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Any, Dict

from fastapi import Request
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.exceptions import AuditWriteError, ValidationError
from backoffice.db.base import utcnow, to_naive_utc
from backoffice.db.session import transaction
from backoffice.models.audit_log import PermissionAuditLog, AuditAction

logger = logging.getLogger("backoffice")


@dataclass(frozen=True)
class AuditContext:
    """Who performed a mutation and from where."""

    actor_id: Optional[int]
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request, actor_id: Optional[int]) -> "AuditContext":
        """Extract the client address and user-agent from the request."""
        ip = (
            request.headers.get("x-forwarded-for")
            or request.headers.get("x-real-ip")
            or (request.client.host if request.client else None)
        )
        if ip and "," in ip:
            ip = ip.split(",")[0].strip()
        ua = request.headers.get("user-agent", "")[:500]
        return cls(actor_id=actor_id, ip_address=ip, user_agent=ua)


def model_snapshot(obj: Any) -> Dict[str, Any]:
    """Column values of a model instance, for before/after audit data."""
    return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}


class AuditService:
    """Records immutable audit log entries for permission changes."""

    @staticmethod
    def _persist(db: Session, entry: PermissionAuditLog) -> None:
        db.add(entry)
        db.flush()

    @staticmethod
    def record(
        db: Session,
        ctx: AuditContext,
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[Any] = None,
        description: Optional[str] = None,
        before: Optional[Any] = None,
        after: Optional[Any] = None,
    ) -> PermissionAuditLog:
        """Write an entry inside the caller's transaction.

        Grant mutations use this form: the entry commits or rolls back with
        the mutation it describes.

        Raises:
            AuditWriteError: if the entry could not be written.
        """
        entry = PermissionAuditLog(
            user_id=ctx.actor_id,
            action=AuditAction(action).value,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            description=description,
            before_data=json.dumps(before, default=str) if before is not None else None,
            after_data=json.dumps(after, default=str) if after is not None else None,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        try:
            AuditService._persist(db, entry)
        except SQLAlchemyError as e:
            raise AuditWriteError(f"Could not write audit entry for {action}: {e}") from e
        return entry

    @staticmethod
    def record_lenient(
        db: Session,
        ctx: AuditContext,
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[Any] = None,
        description: Optional[str] = None,
        after: Optional[Any] = None,
    ) -> Optional[PermissionAuditLog]:
        """Write and commit an entry on its own, logging instead of raising.

        Used for informational operations (scans) whose work is already
        committed. Returns None when the write failed.
        """
        try:
            with transaction(db):
                return AuditService.record(
                    db, ctx, action, resource_type,
                    resource_id=resource_id, description=description, after=after,
                )
        except (AuditWriteError, SQLAlchemyError) as e:
            logger.warning("Audit entry dropped (lenient policy): %s", e)
            return None

    @staticmethod
    def query_logs(
        db: Session,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        actor_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
        stats_window_days: int = 30,
    ) -> Dict[str, Any]:
        """Query audit logs with filters and pagination, plus action stats."""
        query = db.query(PermissionAuditLog)

        if action:
            query = query.filter(PermissionAuditLog.action == action)
        if resource_type:
            query = query.filter(PermissionAuditLog.resource_type == resource_type)
        if actor_id:
            query = query.filter(PermissionAuditLog.user_id == actor_id)
        if start_date:
            query = query.filter(PermissionAuditLog.created_at >= to_naive_utc(start_date))
        if end_date:
            query = query.filter(PermissionAuditLog.created_at <= to_naive_utc(end_date))
        if search:
            query = query.filter(or_(
                PermissionAuditLog.description.ilike(f"%{search}%"),
                PermissionAuditLog.ip_address.ilike(f"%{search}%"),
            ))

        total = query.count()
        logs = (
            query.order_by(PermissionAuditLog.created_at.desc(), PermissionAuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": math.ceil(total / page_size) if page_size else 0,
            "stats": AuditService.action_stats(db, stats_window_days),
        }

    @staticmethod
    def action_stats(db: Session, window_days: int = 30) -> Dict[str, int]:
        """Count entries per action over the trailing window."""
        since = utcnow() - timedelta(days=window_days)
        rows = (
            db.query(PermissionAuditLog.action, func.count(PermissionAuditLog.id))
            .filter(PermissionAuditLog.created_at >= since)
            .group_by(PermissionAuditLog.action)
            .all()
        )
        return {action: int(count) for action, count in rows}

    @staticmethod
    def purge(
        db: Session,
        ctx: AuditContext,
        before_date: Optional[datetime] = None,
        keep_days: Optional[int] = None,
        default_keep_days: int = 90,
    ) -> Dict[str, Any]:
        """Delete entries strictly older than the cutoff.

        The cutoff is ``before_date`` if given, else now minus ``keep_days``
        (``default_keep_days`` when neither is given). Exactly one CLEANUP
        entry describing the purge is written in the same transaction.
        """
        if before_date is not None:
            cutoff = to_naive_utc(before_date)
        else:
            days = keep_days if keep_days is not None else default_keep_days
            if days < 0:
                raise ValidationError("keep_days must not be negative")
            cutoff = utcnow() - timedelta(days=days)

        with transaction(db):
            deleted = (
                db.query(PermissionAuditLog)
                .filter(PermissionAuditLog.created_at < cutoff)
                .delete(synchronize_session=False)
            )
            AuditService.record(
                db, ctx, AuditAction.CLEANUP, "audit_log",
                resource_id=0,
                description=f"Purged {deleted} audit entries older than {cutoff.isoformat()}",
                after={"deleted_count": deleted, "cutoff": cutoff},
            )

        logger.info("Purged %s audit entries older than %s", deleted, cutoff.isoformat())
        return {"deleted_count": deleted, "cutoff": cutoff}


audit_service = AuditService()
