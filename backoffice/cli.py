"""Sales Back Office CLI tool (boctl)."""

from typing import Optional

import typer

app = typer.Typer(name="boctl", help="Sales Back Office CLI")
db_app = typer.Typer(help="Database management commands")
permissions_app = typer.Typer(help="Permission catalog commands")
audit_app = typer.Typer(help="Audit log commands")
menus_app = typer.Typer(help="Menu tree commands")
app.add_typer(db_app, name="db")
app.add_typer(permissions_app, name="permissions")
app.add_typer(audit_app, name="audit")
app.add_typer(menus_app, name="menus")

# User agent recorded on audit entries written from the command line
CLI_AUDIT_AGENT = "boctl"


def _session_factory():
    from backoffice.core.config import settings
    from backoffice.db.session import build_engine, build_session_factory

    return build_session_factory(build_engine(settings))


@db_app.command("create")
def db_create():
    """Create the MySQL database if it doesn't exist."""
    import pymysql
    from sqlalchemy.engine import make_url
    from backoffice.core.config import settings

    url = make_url(settings.DATABASE_URL)
    conn = pymysql.connect(
        host=url.host or "localhost",
        port=url.port or 3306,
        user=url.username,
        password=url.password or "",
    )
    try:
        cursor = conn.cursor()
        cursor.execute(
            f"CREATE DATABASE IF NOT EXISTS `{url.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
        typer.echo(f"✅ Database '{url.database}' created (or already exists)")
    finally:
        conn.close()


@db_app.command("init")
def db_init():
    """Create all tables."""
    import backoffice.models  # noqa: F401 - registers every table on the metadata
    from backoffice.core.config import settings
    from backoffice.db.base import Base
    from backoffice.db.session import build_engine

    Base.metadata.create_all(bind=build_engine(settings))
    typer.echo("✅ Tables created")


@db_app.command("seed")
def db_seed():
    """Seed roles, the default menu tree and the super-admin."""
    from backoffice.db.seeds.seed_roles import seed_roles
    from backoffice.db.seeds.seed_menus import seed_menus
    from backoffice.db.seeds.seed_super_admin import seed_super_admin

    db = _session_factory()()
    try:
        seed_roles(db)
        seed_menus(db)
        seed_super_admin(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@menus_app.command("tree")
def menus_tree(
    active_only: bool = typer.Option(False, "--active-only", help="Hide inactive menus"),
):
    """Print the menu tree."""
    from backoffice.services.menu_service import menu_service
    from backoffice.services.menu_tree import walk_tree

    db = _session_factory()()
    try:
        for depth, node in walk_tree(menu_service.get_tree(db, active_only=active_only)):
            menu = node.menu
            flag = "" if menu.is_active else " (inactive)"
            typer.echo(f"{'  ' * depth}[{menu.id}] {menu.display_name} {menu.path or ''}{flag}")
    finally:
        db.close()


@permissions_app.command("scan")
def permissions_scan(
    dry_run: bool = typer.Option(False, "--dry-run", help="Only list what would be saved"),
):
    """Scan the API routes and upsert the button permission catalog."""
    from backoffice.main import app as api
    from backoffice.services.audit_service import AuditContext
    from backoffice.services.permission_scanner import PermissionScanner

    scanner = PermissionScanner.from_app(api, api.state.settings.API_PREFIX)
    if dry_run:
        preview = scanner.preview()
        for permission in preview["permissions"]:
            typer.echo(f"  {permission['method']:<6} {permission['path']:<50} {permission['identifier']}")
        typer.echo(f"{preview['permissions_count']} permissions from {preview['routes_count']} routes (dry run)")
        return

    db = api.state.session_factory()
    try:
        result = scanner.scan_and_save(db, AuditContext(actor_id=None, user_agent=CLI_AUDIT_AGENT))
    finally:
        db.close()
    typer.echo(f"✅ {result['count']} permissions ({result['created']} new, {result['updated']} updated)")
    if not result["audited"]:
        typer.echo("⚠️  Scan audit entry could not be written")


@audit_app.command("purge")
def audit_purge(
    keep_days: Optional[int] = typer.Option(None, "--keep-days", min=0, help="Keep the last N days"),
):
    """Delete audit entries older than the retention window."""
    from backoffice.core.config import settings
    from backoffice.services.audit_service import AuditContext, audit_service

    db = _session_factory()()
    try:
        result = audit_service.purge(
            db,
            AuditContext(actor_id=None, user_agent=CLI_AUDIT_AGENT),
            keep_days=keep_days,
            default_keep_days=settings.AUDIT_RETENTION_DAYS,
        )
    finally:
        db.close()
    typer.echo(f"✅ Purged {result['deleted_count']} entries older than {result['cutoff']:%Y-%m-%d %H:%M}")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("backoffice.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
