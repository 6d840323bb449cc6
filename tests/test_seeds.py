# tests/test_seeds.py

"""
Tests for the database seeds.
"""

from backoffice.db.seeds.seed_menus import seed_menus
from backoffice.db.seeds.seed_roles import seed_roles
from backoffice.db.seeds.seed_super_admin import seed_super_admin
from backoffice.models import MenuNode, Role, RoleMenuPermission, User
from backoffice.services.menu_service import menu_service


def test_seeds_are_idempotent(db, settings):
    seed_roles(db)
    seed_menus(db)
    seed_super_admin(db, settings)
    counts = (
        db.query(Role).count(),
        db.query(MenuNode).count(),
        db.query(RoleMenuPermission).count(),
        db.query(User).count(),
    )

    seed_roles(db)
    seed_menus(db)
    seed_super_admin(db, settings)

    assert counts == (
        db.query(Role).count(),
        db.query(MenuNode).count(),
        db.query(RoleMenuPermission).count(),
        db.query(User).count(),
    )
    assert counts[0] == 7
    assert counts[3] == 1


def test_seeded_menu_tree_shape(db):
    seed_menus(db)

    roots = menu_service.get_tree(db)

    assert [root.menu.name for root in roots] == [
        "projects", "sales", "finance", "handover", "statistics", "admin",
    ]
    admin = roots[-1]
    assert [child.menu.name for child in admin.children] == ["admin-users", "admin-permissions"]
    assert len(admin.children[1].children) == 5


def test_super_admin_has_every_project(db, settings):
    seed_super_admin(db, settings)

    admin = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).one()
    assert admin.role.name == "SUPER_ADMIN"
    assert admin.project_ids == "*"
