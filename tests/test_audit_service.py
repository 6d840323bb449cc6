# tests/test_audit_service.py

"""
Tests for the audit log writer: strict and lenient writes, queries, purge.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from backoffice.core.exceptions import AuditWriteError, ValidationError
from backoffice.db.base import utcnow
from backoffice.models import AuditAction, MenuNode, PermissionAuditLog
from backoffice.services.audit_service import AuditService, audit_service
from backoffice.services.menu_service import menu_service


def _failing_persist(db, entry):
    raise OperationalError("INSERT INTO permission_audit_logs", {}, Exception("disk full"))


@pytest.fixture
def aged_logs(db):
    """Entries 100, 91, 89 and 10 days old."""
    now = utcnow()
    for days in (100, 91, 89, 10):
        db.add(PermissionAuditLog(
            action="UPDATE",
            resource_type="menu",
            description=f"{days} days ago",
            created_at=now - timedelta(days=days),
        ))
    db.commit()


def test_strict_write_failure_rolls_back_the_mutation(db, ctx):
    """A grant mutation whose audit entry fails must not commit."""
    with patch.object(AuditService, "_persist", staticmethod(_failing_persist)):
        with pytest.raises(AuditWriteError):
            menu_service.create(db, ctx, name="projects", display_name="Projects")

    assert db.query(MenuNode).count() == 0
    assert db.query(PermissionAuditLog).count() == 0


def test_lenient_write_failure_is_logged_not_raised(db, ctx, caplog):
    with patch.object(AuditService, "_persist", staticmethod(_failing_persist)):
        entry = AuditService.record_lenient(db, ctx, AuditAction.SCAN, "button_permission")

    assert entry is None
    assert "Audit entry dropped" in caplog.text
    assert db.query(PermissionAuditLog).count() == 0


def test_lenient_write_commits_on_its_own(db, ctx):
    entry = AuditService.record_lenient(db, ctx, AuditAction.SCAN, "button_permission", after={"n": 1})
    db.rollback()
    assert entry is not None
    assert db.query(PermissionAuditLog).one().after_data == '{"n": 1}'


def test_record_captures_context(db, ctx):
    AuditService.record(db, ctx, "GRANT", "menu_permission", 7, before=None, after={"role_id": 1})
    db.commit()

    entry = db.query(PermissionAuditLog).one()
    assert entry.action == "GRANT"
    assert entry.resource_id == "7"
    assert entry.before_data is None
    assert entry.ip_address == "127.0.0.1"


def test_purge_keeps_recent_entries(db, ctx, aged_logs):
    result = audit_service.purge(db, ctx, keep_days=90)

    assert result["deleted_count"] == 2
    remaining = db.query(PermissionAuditLog).order_by(PermissionAuditLog.id).all()
    assert [e.description for e in remaining[:-1]] == ["89 days ago", "10 days ago"]
    assert remaining[-1].action == "CLEANUP"
    assert db.query(PermissionAuditLog).filter_by(action="CLEANUP").count() == 1


def test_purge_defaults_to_retention_window(db, ctx, aged_logs):
    assert audit_service.purge(db, ctx, default_keep_days=30)["deleted_count"] == 3


def test_purge_cutoff_is_strict(db, ctx):
    cutoff = utcnow() - timedelta(days=1)
    for offset in (-1, 0, 1):
        db.add(PermissionAuditLog(
            action="GRANT", resource_type="menu", description=str(offset),
            created_at=cutoff + timedelta(seconds=offset),
        ))
    db.commit()

    result = audit_service.purge(db, ctx, before_date=cutoff)

    assert result["deleted_count"] == 1
    left = {e.description for e in db.query(PermissionAuditLog).filter(PermissionAuditLog.action == "GRANT")}
    assert left == {"0", "1"}


def test_purge_rejects_negative_window(db, ctx):
    with pytest.raises(ValidationError):
        audit_service.purge(db, ctx, keep_days=-1)


def test_query_logs_filters_and_stats(db, ctx, aged_logs):
    AuditService.record(db, ctx, AuditAction.GRANT, "menu_permission", 1, description="granted")
    db.commit()

    result = audit_service.query_logs(db, action="UPDATE", page_size=3)
    assert result["total"] == 4
    assert result["total_pages"] == 2
    # newest first
    assert result["logs"][0].description == "10 days ago"

    assert audit_service.query_logs(db, search="granted")["total"] == 1
    assert audit_service.query_logs(db, start_date=utcnow() - timedelta(days=50))["total"] == 2
    assert result["stats"] == {"UPDATE": 1, "GRANT": 1}
