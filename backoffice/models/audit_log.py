"""Permission audit log model: append-only."""

import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey

from backoffice.db.base import Base, utcnow


class AuditAction(str, enum.Enum):
    GRANT = "GRANT"
    REVOKE = "REVOKE"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    BATCH_UPDATE = "BATCH_UPDATE"
    BATCH_DELETE = "BATCH_DELETE"
    SCAN = "SCAN"
    CLEANUP = "CLEANUP"


class PermissionAuditLog(Base):
    """Immutable trail of permission-relevant mutations.

    Rows are never updated; they are deleted only by the retention purge.
    """
    __tablename__ = "permission_audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    resource_type = Column(String(50), nullable=False, index=True)  # menu, role, user, ...
    resource_id = Column(String(100), nullable=True)
    description = Column(String(1000), nullable=True)
    before_data = Column(Text, nullable=True)
    after_data = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
