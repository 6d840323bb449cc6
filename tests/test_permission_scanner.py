# tests/test_permission_scanner.py

"""
Tests for the route permission scanner.
"""

from unittest.mock import patch

import pytest
from fastapi import APIRouter, FastAPI
from sqlalchemy.exc import OperationalError

from backoffice.models import ButtonPermission, MenuNode, PermissionAuditLog
from backoffice.services.audit_service import AuditService
from backoffice.services.permission_scanner import (
    FALLBACK_MENU_NAME, PermissionScanner, infer_menu_path, permission_identifier, to_route_path,
)


@pytest.fixture
def sample_app():
    router = APIRouter(prefix="/api")

    @router.get("/admin/roles")
    async def list_roles():
        return []

    @router.get("/admin/roles/{role_id}")
    async def get_role(role_id: int):
        return {}

    @router.put("/admin/roles/{role_id}")
    async def update_role(role_id: int):
        return {}

    @router.get("/reports/daily-sales")
    async def daily_sales():
        return []

    application = FastAPI()
    application.include_router(router)

    @application.get("/outside")
    async def outside():
        return {}

    return application


def test_identifier_format():
    route = to_route_path("/api/admin/roles/{role_id}")
    assert route == "/api/admin/roles/:role_id"
    assert permission_identifier(route, "PUT") == "put_admin_roles_role_id"
    assert permission_identifier("/api/admin/audit-logs", "DELETE") == "delete_admin_audit-logs"


def test_menu_path_drops_prefix_and_params():
    assert infer_menu_path("/api/admin/roles/:role_id/menus/:menu_id") == "/admin/roles/menus"
    assert infer_menu_path("/api") is None


def test_scan_routes_groups_methods(sample_app):
    routes = PermissionScanner.from_app(sample_app).scan_routes()

    assert [r.route_path for r in routes] == [
        "/api/admin/roles", "/api/admin/roles/:role_id", "/api/reports/daily-sales",
    ]
    assert routes[1].methods == ("GET", "PUT")
    assert routes[1].menu_path == "/admin/roles"


def test_preview_saves_nothing(db, sample_app):
    preview = PermissionScanner.from_app(sample_app).preview()

    assert preview["routes_count"] == 3
    assert preview["permissions_count"] == 4
    names = {p["identifier"]: p["name"] for p in preview["permissions"]}
    assert names["get_admin_roles_role_id"] == "View admin roles detail"
    assert db.query(ButtonPermission).count() == 0


def test_scan_and_save_is_idempotent(db, ctx, make_menu, sample_app):
    roles_menu = make_menu("roles", path="/admin/roles")
    scanner = PermissionScanner.from_app(sample_app)

    first = scanner.scan_and_save(db, ctx)
    assert (first["count"], first["created"], first["updated"]) == (4, 4, 0)
    menus_after_first = db.query(MenuNode).count()

    second = scanner.scan_and_save(db, ctx)
    assert (second["count"], second["created"], second["updated"]) == (4, 0, 4)
    assert db.query(ButtonPermission).count() == 4
    assert db.query(MenuNode).count() == menus_after_first
    assert db.query(PermissionAuditLog).filter_by(action="SCAN").count() == 2

    by_identifier = {b.identifier: b for b in db.query(ButtonPermission)}
    assert by_identifier["put_admin_roles_role_id"].menu_id == roles_menu.id


def test_unmapped_routes_go_to_fallback_menu(db, ctx, sample_app):
    PermissionScanner.from_app(sample_app).scan_and_save(db, ctx)

    fallback = db.query(MenuNode).filter_by(name=FALLBACK_MENU_NAME).one()
    assert fallback.sort_order == 999
    button = db.query(ButtonPermission).filter_by(identifier="get_reports_daily-sales").one()
    assert button.menu_id == fallback.id


def test_rescan_reactivates_disabled_permission(db, ctx, sample_app):
    scanner = PermissionScanner.from_app(sample_app)
    scanner.scan_and_save(db, ctx)
    button = db.query(ButtonPermission).filter_by(identifier="get_admin_roles").one()
    button.is_active = False
    db.commit()

    scanner.scan_and_save(db, ctx)
    db.expire_all()
    assert db.query(ButtonPermission).filter_by(identifier="get_admin_roles").one().is_active is True


def test_scan_survives_audit_failure(db, ctx, sample_app):
    def fail(db, entry):
        raise OperationalError("INSERT", {}, Exception("locked"))

    with patch.object(AuditService, "_persist", staticmethod(fail)):
        result = PermissionScanner.from_app(sample_app).scan_and_save(db, ctx)

    assert result["audited"] is False
    assert db.query(ButtonPermission).count() == 4


def test_application_routes_are_scanned(app):
    identifiers = {
        p["identifier"]
        for p in PermissionScanner.from_app(app, app.state.settings.API_PREFIX).preview()["permissions"]
    }
    assert "put_admin_roles_role_id" in identifiers
    assert "post_admin_permissions_scan" in identifiers
    assert "get_projects_project_id_navigation" in identifiers
