"""Seed the fixed role set into the database."""

from sqlalchemy.orm import Session
from backoffice.models.role import Role, RoleName


ROLES_DATA = [
    {
        "name": RoleName.SUPER_ADMIN.value,
        "display_name": "Super Administrator",
        "description": "Every route, menu and action",
    },
    {
        "name": RoleName.ADMIN.value,
        "display_name": "Administrator",
        "description": "User administration and project settings; inherits sales manager",
    },
    {
        "name": RoleName.SALES_MANAGER.value,
        "display_name": "Sales Manager",
        "description": "Sales, finance, handover and statistics; inherits sales person",
    },
    {
        "name": RoleName.SALES_PERSON.value,
        "display_name": "Sales Person",
        "description": "Sales control, customers, appointments and parking",
    },
    {
        "name": RoleName.FINANCE.value,
        "display_name": "Finance",
        "description": "Finance, customers and statistics",
    },
    {
        "name": RoleName.CUSTOMER_SERVICE.value,
        "display_name": "Customer Service",
        "description": "Customers and appointments",
    },
    {
        "name": RoleName.USER.value,
        "display_name": "User",
        "description": "Project dashboard only",
    },
]


def seed_roles(db: Session) -> None:
    """Insert the roles if they don't already exist."""
    for role_data in ROLES_DATA:
        existing = db.query(Role).filter(Role.name == role_data["name"]).first()
        if not existing:
            db.add(Role(**role_data))

    db.commit()
    print(f"✅ Seeded {len(ROLES_DATA)} roles")
