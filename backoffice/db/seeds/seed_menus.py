"""Seed the default sales back-office menu and its role grants."""

from sqlalchemy.orm import Session
from backoffice.models.grants import RoleMenuPermission
from backoffice.models.menu import MenuNode
from backoffice.models.role import Role, RoleName


# (name, display_name, path, icon, children)
MENU_TREE = [
    ("projects", "Projects", "/projects", "ProjectOutlined", []),
    ("sales", "Sales", None, "ShopOutlined", [
        ("sales-control", "Sales Control", "/projects/sales-control", "TableOutlined", []),
        ("customers", "Customers", "/projects/purchased-customers", "TeamOutlined", []),
        ("appointments", "Appointments", "/projects/appointments", "CalendarOutlined", []),
        ("parking", "Parking", "/projects/parking", "CarOutlined", []),
        ("sales-personnel", "Sales Personnel", "/projects/sales-personnel", "UserOutlined", []),
    ]),
    ("finance", "Finance", None, "AccountBookOutlined", [
        ("deposit", "Deposits", "/projects/deposit", "WalletOutlined", []),
        ("commission", "Commission", "/projects/commission", "PercentageOutlined", []),
        ("budget", "Budget", "/projects/budget", "FundOutlined", []),
        ("expenses", "Expenses", "/projects/expenses", "DollarOutlined", []),
        ("withdrawal-records", "Withdrawals", "/projects/withdrawal-records", "RollbackOutlined", []),
    ]),
    ("handover", "Handover", "/projects/handover", "KeyOutlined", []),
    ("statistics", "Statistics", "/projects/statistics", "BarChartOutlined", []),
    ("admin", "Administration", "/admin", "SettingOutlined", [
        ("admin-users", "Users", "/admin/users", "UserOutlined", []),
        ("admin-permissions", "Permissions", None, "SafetyOutlined", [
            ("permission-menus", "Menus", "/admin/permissions/menus", "MenuOutlined", []),
            ("permission-buttons", "Buttons", "/admin/permissions/buttons", "AppstoreOutlined", []),
            ("permission-roles", "Roles", "/admin/roles", "IdcardOutlined", []),
            ("permission-users", "User Permissions", "/admin/permissions/users", "SolutionOutlined", []),
            ("audit-logs", "Audit Logs", "/admin/audit-logs", "FileSearchOutlined", []),
        ]),
    ]),
]

# Direct grants; inherited roles receive these through the resolver.
ROLE_MENUS = {
    RoleName.ADMIN: ["admin", "admin-users"],
    RoleName.SALES_MANAGER: ["finance", "deposit", "commission", "budget", "expenses",
                             "withdrawal-records", "handover", "statistics"],
    RoleName.SALES_PERSON: ["projects", "sales", "sales-control", "customers",
                            "appointments", "parking", "sales-personnel"],
    RoleName.FINANCE: ["projects", "finance", "deposit", "commission", "budget", "expenses",
                       "withdrawal-records", "customers", "statistics"],
    RoleName.CUSTOMER_SERVICE: ["projects", "customers", "appointments"],
    RoleName.USER: ["projects"],
}


def _seed_nodes(db: Session, nodes, parent_id=None) -> int:
    created = 0
    for sort_order, (name, display_name, path, icon, children) in enumerate(nodes, start=1):
        menu = db.query(MenuNode).filter(MenuNode.name == name).first()
        if not menu:
            menu = MenuNode(
                name=name,
                display_name=display_name,
                path=path,
                icon=icon,
                parent_id=parent_id,
                sort_order=sort_order * 10,
                is_active=True,
            )
            db.add(menu)
            db.flush()
            created += 1
        created += _seed_nodes(db, children, menu.id)
    return created


def seed_menus(db: Session) -> None:
    """Insert the default menu tree and role grants if missing."""
    created = _seed_nodes(db, MENU_TREE)

    granted = 0
    menus = {menu.name: menu.id for menu in db.query(MenuNode).all()}
    for role_name, menu_names in ROLE_MENUS.items():
        role = db.query(Role).filter(Role.name == role_name.value).first()
        if not role:
            print(f"⚠️  {role_name.value} role not found. Run seed_roles first.")
            continue
        for menu_name in menu_names:
            exists = db.query(RoleMenuPermission).filter(
                RoleMenuPermission.role_id == role.id,
                RoleMenuPermission.menu_id == menus[menu_name],
            ).first()
            if not exists:
                db.add(RoleMenuPermission(role_id=role.id, menu_id=menus[menu_name]))
                granted += 1

    db.commit()
    print(f"✅ Seeded {created} menus and {granted} role menu grants")
