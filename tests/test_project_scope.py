# tests/test_project_scope.py

"""
Tests for project-scope parsing and access checks.
"""

import pytest

from backoffice.services.project_scope import (
    AllProjects, SpecificProjects, parse_project_scope,
    has_project_access, format_project_scope,
)


@pytest.mark.parametrize("scope, project_id, expected", [
    ("*", "1", True),
    ("*", "999", True),
    ("", "1", False),
    (None, "1", False),
    ("1,2,3", "2", True),
    ("1,2,3", "4", False),
    ("1,2,3", 3, True),
    (" 1, 2 ,3", "2", True),
    ("1,*", "42", True),
    ("12", "1", False),
])
def test_has_project_access(scope, project_id, expected):
    assert has_project_access(scope, project_id) is expected


def test_parse_returns_typed_scope():
    assert parse_project_scope("*") == AllProjects()
    assert parse_project_scope("2, 1,,") == SpecificProjects(frozenset({"1", "2"}))
    assert parse_project_scope("") == SpecificProjects()
    assert parse_project_scope(None) == SpecificProjects()


def test_format_project_scope():
    assert format_project_scope([3, 1, 2]) == "1,2,3"
    assert format_project_scope("10, 9") == "9,10"
    assert format_project_scope(["*", 1]) == "*"
    assert format_project_scope([]) == ""
    assert format_project_scope(None) is None
