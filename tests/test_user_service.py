# tests/test_user_service.py

"""
Tests for role, status and project-scope changes on users.
"""

import json

import pytest

from backoffice.core.exceptions import ResourceNotFoundError, ValidationError
from backoffice.models import PermissionAuditLog, RoleName
from backoffice.services.user_service import user_service


@pytest.mark.parametrize("raw, expected", [
    ("3, 1,", "1,3"),
    ([2, "1"], "1,2"),
    ("*", "*"),
    (["*", 2], "*"),
    ("", ""),
])
def test_normalize_scope(db, projects, raw, expected):
    assert user_service.normalize_scope(db, raw) == expected


def test_normalize_scope_rejects_bad_ids(db, projects):
    with pytest.raises(ValidationError):
        user_service.normalize_scope(db, "1,abc")
    with pytest.raises(ResourceNotFoundError):
        user_service.normalize_scope(db, [1, 7])


def test_update_audits_before_and_after(db, ctx, make_user, projects):
    user = make_user("sales@test.local", project_ids="1")

    user_service.update(db, ctx, user.id, role="SALES_MANAGER", project_ids="1,2")

    entry = db.query(PermissionAuditLog).one()
    assert json.loads(entry.before_data)["role"] == "SALES_PERSON"
    assert json.loads(entry.after_data) == {
        "id": user.id, "email": "sales@test.local", "role": "SALES_MANAGER",
        "is_active": True, "project_ids": "1,2",
    }


def test_batch_update_is_all_or_nothing(db, ctx, make_user):
    first = make_user("one@test.local")
    with pytest.raises(ResourceNotFoundError):
        user_service.batch_update(db, ctx, [first.id, 999], role="FINANCE")
    with pytest.raises(ValidationError):
        user_service.batch_update(db, ctx, [first.id], role="GUEST")

    db.expire_all()
    assert first.role.name == "SALES_PERSON"
    assert db.query(PermissionAuditLog).count() == 0


def test_projects_in_scope(db, make_user, projects):
    everything = make_user("all@test.local", project_ids="*")
    some = make_user("some@test.local", project_ids="3,1")
    nothing = make_user("none@test.local", project_ids=None)

    assert [p.id for p in user_service.projects_in_scope(db, everything)] == [1, 2, 3]
    assert [p.id for p in user_service.projects_in_scope(db, some)] == [1, 3]
    assert user_service.projects_in_scope(db, nothing) == []


def test_list_users_filters(db, make_user):
    make_user("alice@test.local")
    make_user("bob@test.local", RoleName.FINANCE, is_active=False)

    assert user_service.list_users(db, search="ali")["total"] == 1
    assert user_service.list_users(db, role="FINANCE")["users"][0].email == "bob@test.local"
    assert user_service.list_users(db, is_active=True)["total"] == 1
