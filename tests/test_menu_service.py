# tests/test_menu_service.py

"""
Tests for the menu tree store: validation, cycles and delete policies.
"""

import json

import pytest

from backoffice.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from backoffice.models import (
    MenuNode, ButtonPermission, RoleMenuPermission, RoleButtonPermission,
    PermissionAuditLog, RoleName,
)
from backoffice.services.menu_service import menu_service


@pytest.fixture
def chain(make_menu):
    """a -> b -> c"""
    a = make_menu("a")
    b = make_menu("b", parent=a)
    c = make_menu("c", parent=b)
    return a, b, c


def test_create_menu_writes_audit_entry(db, ctx):
    menu = menu_service.create(db, ctx, name="projects", display_name="Projects", path="/projects")

    entry = db.query(PermissionAuditLog).one()
    assert entry.action == "CREATE"
    assert entry.resource_type == "menu"
    assert entry.resource_id == str(menu.id)
    assert json.loads(entry.after_data)["name"] == "projects"
    assert entry.user_agent == "pytest"


def test_create_rejects_duplicate_name(db, ctx, make_menu):
    make_menu("projects")
    with pytest.raises(ValidationError):
        menu_service.create(db, ctx, name="projects", display_name="Again")


def test_create_rejects_missing_parent(db, ctx):
    with pytest.raises(ResourceNotFoundError):
        menu_service.create(db, ctx, name="orphan", display_name="Orphan", parent_id=42)


def test_menu_cannot_be_its_own_parent(db, ctx, make_menu):
    menu = make_menu("loop")
    with pytest.raises(ValidationError):
        menu_service.update(db, ctx, menu.id, parent_id=menu.id)


def test_menu_cannot_move_under_descendant(db, ctx, chain):
    a, b, c = chain
    with pytest.raises(ValidationError):
        menu_service.update(db, ctx, a.id, parent_id=c.id)
    db.expire_all()
    assert db.get(MenuNode, a.id).parent_id is None


def test_update_moves_node_to_root(db, ctx, chain):
    a, b, c = chain
    moved = menu_service.update(db, ctx, c.id, parent_id=None, sort_order=5)
    assert moved.parent_id is None
    assert moved.sort_order == 5
    assert [root.menu.name for root in menu_service.get_tree(db)] == ["a", "c"]


def test_update_ignores_unset_fields(db, ctx, make_menu):
    menu = make_menu("customers", path="/project/*/customers")
    updated = menu_service.update(db, ctx, menu.id, display_name="Clients", path=None)
    assert updated.display_name == "Clients"
    assert updated.path == "/project/*/customers"


def test_reject_policy_refuses_menu_with_children(db, ctx, chain):
    a, _, _ = chain
    with pytest.raises(ResourceConflictError):
        menu_service.delete(db, ctx, a.id)
    assert db.query(MenuNode).count() == 3


def test_reject_policy_refuses_menu_with_active_buttons(db, ctx, make_menu, make_button):
    menu = make_menu("customers")
    make_button(menu, "customer_view")
    with pytest.raises(ResourceConflictError):
        menu_service.delete(db, ctx, menu.id, policy="reject")


def test_reject_policy_removes_leaf_with_inactive_buttons(db, ctx, make_menu, make_button):
    menu = make_menu("customers")
    make_button(menu, "customer_view", is_active=False)
    menu_id = menu.id

    assert menu_service.delete(db, ctx, menu_id) == [menu_id]
    assert db.query(MenuNode).count() == 0
    assert db.query(ButtonPermission).count() == 0


def test_batch_delete_of_parent_and_child_under_reject(db, ctx, make_menu):
    parent = make_menu("group")
    child = make_menu("leaf", parent=parent)
    ids = [parent.id, child.id]

    removed = menu_service.delete_many(db, ctx, ids)
    assert sorted(removed) == sorted(ids)
    assert db.query(PermissionAuditLog).one().action == "BATCH_DELETE"


def test_cascade_removes_subtree_with_buttons_and_grants(db, ctx, roles, chain, make_menu, make_button):
    a, b, c = chain
    keep = make_menu("keep")
    button = make_button(c, "c_view")
    role = roles[RoleName.SALES_PERSON]
    db.add_all([
        RoleMenuPermission(role_id=role.id, menu_id=b.id),
        RoleMenuPermission(role_id=role.id, menu_id=keep.id),
        RoleButtonPermission(role_id=role.id, button_permission_id=button.id),
    ])
    db.commit()
    ids = (a.id, b.id, c.id, keep.id)

    removed = menu_service.delete(db, ctx, a.id, policy="cascade")

    assert sorted(removed) == sorted(ids[:3])
    assert [m.id for m in db.query(MenuNode)] == [ids[3]]
    assert db.query(ButtonPermission).count() == 0
    assert db.query(RoleButtonPermission).count() == 0
    assert [g.menu_id for g in db.query(RoleMenuPermission)] == [ids[3]]
    entry = db.query(PermissionAuditLog).one()
    assert entry.action == "DELETE"
    assert json.loads(entry.after_data)["removed_ids"] == removed


def test_unknown_policy(db, ctx, make_menu):
    menu = make_menu("x")
    with pytest.raises(ValidationError):
        menu_service.delete(db, ctx, menu.id, policy="orphan")


def test_delete_missing_menu(db, ctx):
    with pytest.raises(ResourceNotFoundError):
        menu_service.delete(db, ctx, 77)


def test_search_and_paginate(db, make_menu):
    for i in range(5):
        make_menu(f"report-{i}", sort_order=i)
    make_menu("customers")

    result = menu_service.search(db, search="report", page=2, page_size=2)
    assert result["total"] == 5
    assert [m.name for m in result["menus"]] == ["report-2", "report-3"]
