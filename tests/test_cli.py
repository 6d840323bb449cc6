# tests/test_cli.py

"""
Tests for the boctl command line.
"""

from unittest.mock import patch

from typer.testing import CliRunner

from backoffice.cli import app as cli
from backoffice.models import PermissionAuditLog

runner = CliRunner()


def test_menus_tree(app, db, make_menu):
    group = make_menu("sales", sort_order=1)
    make_menu("sales-control", parent=group, path="/projects/sales-control")
    make_menu("archive", sort_order=2, is_active=False)

    with patch("backoffice.cli._session_factory", return_value=app.state.session_factory):
        result = runner.invoke(cli, ["menus", "tree", "--active-only"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].endswith("Sales ")
    assert lines[1].startswith("  [")
    assert "/projects/sales-control" in lines[1]
    assert "Archive" not in result.output


def test_audit_purge(app, db):
    with patch("backoffice.cli._session_factory", return_value=app.state.session_factory):
        result = runner.invoke(cli, ["audit", "purge", "--keep-days", "30"])

    assert result.exit_code == 0
    assert "Purged 0 entries" in result.output
    entry = db.query(PermissionAuditLog).one()
    assert entry.action == "CLEANUP"
    assert entry.user_agent == "boctl"


def test_permissions_scan_dry_run():
    result = runner.invoke(cli, ["permissions", "scan", "--dry-run"])

    assert result.exit_code == 0
    assert "put_admin_roles_role_id" in result.output
    assert "(dry run)" in result.output
