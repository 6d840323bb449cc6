# tests/test_button_service.py

"""
Tests for the button permission catalog.
"""

import pytest

from backoffice.core.exceptions import ResourceNotFoundError, ValidationError
from backoffice.models import ButtonPermission, RoleButtonPermission, PermissionAuditLog, RoleName
from backoffice.services.button_service import button_service


def test_create_under_missing_menu(db, ctx):
    with pytest.raises(ResourceNotFoundError):
        button_service.create(db, ctx, name="View", identifier="x_view", menu_id=12)


def test_duplicate_identifier_in_same_menu(db, ctx, make_menu, make_button):
    menu = make_menu("customers")
    make_button(menu, "customer_view")
    with pytest.raises(ValidationError):
        button_service.create(db, ctx, name="View again", identifier="customer_view", menu_id=menu.id)


def test_same_identifier_in_another_menu_is_allowed(db, ctx, make_menu, make_button):
    make_button(make_menu("customers"), "export")
    other = make_menu("finance")
    button = button_service.create(db, ctx, name="Export", identifier="export", menu_id=other.id)
    assert button.menu_id == other.id


def test_update_to_missing_menu_changes_nothing(db, ctx, make_menu, make_button):
    menu = make_menu("customers")
    button = make_button(menu, "customer_view")
    with pytest.raises(ResourceNotFoundError):
        button_service.update(db, ctx, button.id, menu_id=500, name="Moved")
    db.expire_all()
    stored = db.get(ButtonPermission, button.id)
    assert stored.menu_id == menu.id
    assert stored.name == "Customer View"


def test_update_identifier_collision(db, ctx, make_menu, make_button):
    menu = make_menu("customers")
    make_button(menu, "customer_view")
    second = make_button(menu, "customer_edit")
    with pytest.raises(ValidationError):
        button_service.update(db, ctx, second.id, identifier="customer_view")


def test_update_and_list(db, ctx, make_menu, make_button):
    menu = make_menu("customers")
    button = make_button(menu, "customer_view")
    button_service.update(db, ctx, button.id, description="Open the customer list", is_active=False)

    result = button_service.list_buttons(db, search="customer list")
    assert result["total"] == 1
    assert result["buttons"][0].is_active is False
    assert button_service.list_buttons(db, menu_id=menu.id + 1)["total"] == 0


def test_delete_removes_role_grants(db, ctx, roles, make_menu, make_button):
    button = make_button(make_menu("customers"), "customer_delete")
    db.add(RoleButtonPermission(role_id=roles[RoleName.ADMIN].id, button_permission_id=button.id))
    db.commit()

    button_service.delete(db, ctx, button.id)

    assert db.query(ButtonPermission).count() == 0
    assert db.query(RoleButtonPermission).count() == 0
    assert db.query(PermissionAuditLog).one().action == "DELETE"
