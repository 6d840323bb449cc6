"""Models package: import all models so metadata.create_all can discover them."""

from backoffice.models.role import Role, RoleName
from backoffice.models.user import User
from backoffice.models.project import Project
from backoffice.models.menu import MenuNode
from backoffice.models.button_permission import ButtonPermission
from backoffice.models.grants import RoleMenuPermission, RoleButtonPermission
from backoffice.models.audit_log import PermissionAuditLog, AuditAction

__all__ = [
    "Role", "RoleName", "User", "Project",
    "MenuNode", "ButtonPermission",
    "RoleMenuPermission", "RoleButtonPermission",
    "PermissionAuditLog", "AuditAction",
]
