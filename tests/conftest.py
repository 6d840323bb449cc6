# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

import pytest
from fastapi.testclient import TestClient
from typing import Generator

import backoffice.models  # noqa: F401
from backoffice.core.config import Settings
from backoffice.core.security import create_access_token, hash_password
from backoffice.db.base import Base
from backoffice.db.seeds.seed_roles import seed_roles
from backoffice.main import create_app
from backoffice.models import Role, RoleName, User, Project, MenuNode, ButtonPermission
from backoffice.services.audit_service import AuditContext


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a private in-memory database."""
    return Settings(
        DATABASE_URL="sqlite://",
        DEBUG=False,
        JWT_SECRET="test-secret",
        SUPER_ADMIN_EMAIL="root@test.local",
        SUPER_ADMIN_PASSWORD="root-password",
    )


@pytest.fixture
def app(settings):
    """Create a test FastAPI application instance with its schema created."""
    application = create_app(settings)
    Base.metadata.create_all(bind=application.state.engine)
    yield application
    Base.metadata.drop_all(bind=application.state.engine)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app):
    """Session on the application's database, with the roles seeded."""
    session = app.state.session_factory()
    seed_roles(session)
    yield session
    session.close()


@pytest.fixture
def ctx() -> AuditContext:
    return AuditContext(actor_id=None, ip_address="127.0.0.1", user_agent="pytest")


@pytest.fixture
def roles(db):
    """Role rows keyed by ``RoleName``."""
    return {RoleName(role.name): role for role in db.query(Role).all()}


@pytest.fixture
def make_user(db, roles):
    """Factory creating committed users."""
    def _make(email, role=RoleName.SALES_PERSON, project_ids="*", is_active=True, password="password"):
        user = User(
            email=email,
            hashed_password=hash_password(password),
            full_name=email.split("@")[0].title(),
            role_id=roles[role].id,
            project_ids=project_ids,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def super_admin(make_user):
    return make_user("root@test.local", RoleName.SUPER_ADMIN, project_ids="*")


@pytest.fixture
def auth_headers(settings):
    """Build a Bearer header for a user."""
    def _headers(user):
        token = create_access_token({"sub": str(user.id)}, config=settings)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def admin_headers(super_admin, auth_headers):
    return auth_headers(super_admin)


@pytest.fixture
def projects(db):
    """Three active projects with ids 1..3."""
    rows = [Project(name=f"Tower {i}") for i in range(1, 4)]
    db.add_all(rows)
    db.commit()
    return rows


@pytest.fixture
def make_menu(db):
    """Factory creating committed menus without going through the service."""
    def _make(name, parent=None, sort_order=0, path=None, is_active=True):
        menu = MenuNode(
            name=name,
            display_name=name.replace("-", " ").title(),
            path=path,
            parent_id=parent.id if parent is not None else None,
            sort_order=sort_order,
            is_active=is_active,
        )
        db.add(menu)
        db.commit()
        db.refresh(menu)
        return menu
    return _make


@pytest.fixture
def make_button(db):
    def _make(menu, identifier, is_active=True):
        button = ButtonPermission(
            name=identifier.replace("_", " ").title(),
            identifier=identifier,
            menu_id=menu.id,
            is_active=is_active,
        )
        db.add(button)
        db.commit()
        db.refresh(button)
        return button
    return _make
