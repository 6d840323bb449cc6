"""Seed the super-admin user from env vars."""

from sqlalchemy.orm import Session
from backoffice.models.user import User
from backoffice.models.role import Role, RoleName
from backoffice.core.security import hash_password
from backoffice.core.config import Settings, settings as default_settings
from backoffice.services.project_scope import ALL_PROJECTS_TOKEN


def seed_super_admin(db: Session, settings: Settings = default_settings) -> None:
    """Create the super-admin user if not already present."""
    super_admin_role = db.query(Role).filter(Role.name == RoleName.SUPER_ADMIN.value).first()
    if not super_admin_role:
        print("⚠️  SUPER_ADMIN role not found. Run seed_roles first.")
        return

    existing = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        print(f"ℹ️  Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
        return

    admin = User(
        email=settings.SUPER_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        full_name="Super Admin",
        is_active=True,
        role_id=super_admin_role.id,
        project_ids=ALL_PROJECTS_TOKEN,
    )
    db.add(admin)
    db.commit()
    print(f"✅ Created super admin: {settings.SUPER_ADMIN_EMAIL}")
