"""Role resolution: inheritance, effective grants, and route allow-lists."""

from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Union

from sqlalchemy.orm import Session

from backoffice.core.exceptions import ValidationError
from backoffice.models.role import Role, RoleName
from backoffice.models.menu import MenuNode
from backoffice.models.button_permission import ButtonPermission
from backoffice.models.grants import RoleMenuPermission, RoleButtonPermission
from backoffice.services.path_patterns import match_any

# role -> roles whose grants it also receives
ROLE_INHERITANCE: Dict[RoleName, FrozenSet[RoleName]] = {
    RoleName.SUPER_ADMIN: frozenset({RoleName.ADMIN}),
    RoleName.ADMIN: frozenset({RoleName.SALES_MANAGER}),
    RoleName.SALES_MANAGER: frozenset({RoleName.SALES_PERSON}),
    RoleName.SALES_PERSON: frozenset(),
    RoleName.FINANCE: frozenset(),
    RoleName.CUSTOMER_SERVICE: frozenset(),
    RoleName.USER: frozenset(),
}

# Routes every authenticated role may reach.
AUTHENTICATED_ROUTES: List[str] = [
    "/project/*",
    "/api/auth/me",
    "/api/navigation/menus",
    "/api/navigation/permissions",
    "/api/navigation/permissions/check",
    "/api/projects/*/navigation",
]

# Direct route grants per role, before inheritance.
ROUTE_ALLOW_LIST: Dict[RoleName, List[str]] = {
    RoleName.SUPER_ADMIN: [
        "/admin",
        "/admin/users",
        "/admin/system",
    ],
    RoleName.ADMIN: [
        "/admin/users",
        "/project/*/settings",
    ],
    RoleName.SALES_MANAGER: [
        "/project/*/sales-control",
        "/project/*/customers",
        "/project/*/appointments",
        "/project/*/parking",
        "/project/*/finance",
        "/project/*/handover",
        "/project/*/statistics",
    ],
    RoleName.SALES_PERSON: [
        "/project/*/sales-control",
        "/project/*/customers",
        "/project/*/appointments",
        "/project/*/parking",
    ],
    RoleName.FINANCE: [
        "/project/*/finance",
        "/project/*/customers",
        "/project/*/statistics",
    ],
    RoleName.CUSTOMER_SERVICE: [
        "/project/*/customers",
        "/project/*/appointments",
    ],
    RoleName.USER: [
        "/project/*/dashboard",
    ],
}


def parse_role(value: Union[str, RoleName, None]) -> RoleName:
    """Coerce a stored or submitted role name.

    Raises:
        ValidationError: for anything outside the closed role set.
    """
    if isinstance(value, RoleName):
        return value
    try:
        return RoleName(value)
    except ValueError:
        raise ValidationError(f"Unknown role '{value}'")


def inherited_roles(
    role: RoleName,
    inheritance: Mapping[RoleName, Iterable[RoleName]] = ROLE_INHERITANCE,
) -> FrozenSet[RoleName]:
    """Transitive closure of ``inheritance`` from ``role``, including itself."""
    closure: Set[RoleName] = set()
    stack = [role]
    while stack:
        current = stack.pop()
        if current in closure:
            continue
        closure.add(current)
        stack.extend(inheritance.get(current, ()))
    return frozenset(closure)


class RoleResolver:
    """Computes what a role may see and do.

    Route checks only read the static allow-lists, so the middleware needs
    no database access for them. Menu and button resolution reads the grant
    tables through the session passed in.
    """

    def __init__(
        self,
        inheritance: Optional[Mapping[RoleName, Iterable[RoleName]]] = None,
        route_allow_list: Optional[Mapping[RoleName, Iterable[str]]] = None,
        authenticated_routes: Optional[Iterable[str]] = None,
    ):
        self.inheritance = dict(inheritance if inheritance is not None else ROLE_INHERITANCE)
        allow_list = route_allow_list if route_allow_list is not None else ROUTE_ALLOW_LIST
        self.route_allow_list = {role: tuple(patterns) for role, patterns in allow_list.items()}
        self.authenticated_routes = tuple(
            authenticated_routes if authenticated_routes is not None else AUTHENTICATED_ROUTES
        )

    def roles_for(self, role) -> FrozenSet[RoleName]:
        return inherited_roles(parse_role(role), self.inheritance)

    def route_patterns(self, role) -> List[str]:
        """Effective route patterns for ``role`` after inheritance."""
        patterns = list(self.authenticated_routes)
        for granted in sorted(self.roles_for(role), key=lambda r: r.value):
            patterns.extend(self.route_allow_list.get(granted, ()))
        return patterns

    def is_route_allowed(self, role, path: str) -> bool:
        role = parse_role(role)
        if role is RoleName.SUPER_ADMIN:
            return True
        return match_any(self.route_patterns(role), path)

    def _role_ids(self, db: Session, role) -> List[int]:
        names = [r.value for r in self.roles_for(role)]
        return [row.id for row in db.query(Role.id).filter(Role.name.in_(names)).all()]

    def effective_menus(self, db: Session, role, active_only: bool = True) -> List[MenuNode]:
        """Menus granted to ``role`` or any role it inherits from."""
        role = parse_role(role)
        query = db.query(MenuNode)
        if role is not RoleName.SUPER_ADMIN:
            role_ids = self._role_ids(db, role)
            if not role_ids:
                return []
            granted = db.query(RoleMenuPermission.menu_id).filter(
                RoleMenuPermission.role_id.in_(role_ids)
            )
            query = query.filter(MenuNode.id.in_(granted))
        if active_only:
            query = query.filter(MenuNode.is_active.is_(True))
        return query.order_by(MenuNode.sort_order, MenuNode.id).all()

    def effective_buttons(self, db: Session, role) -> List[ButtonPermission]:
        role = parse_role(role)
        query = db.query(ButtonPermission).filter(ButtonPermission.is_active.is_(True))
        if role is not RoleName.SUPER_ADMIN:
            role_ids = self._role_ids(db, role)
            if not role_ids:
                return []
            granted = db.query(RoleButtonPermission.button_permission_id).filter(
                RoleButtonPermission.role_id.in_(role_ids)
            )
            query = query.filter(ButtonPermission.id.in_(granted))
        return query.order_by(ButtonPermission.menu_id, ButtonPermission.id).all()

    def effective_permissions(self, db: Session, role) -> Set[str]:
        """Button identifiers ``role`` may use."""
        return {button.identifier for button in self.effective_buttons(db, role)}

    def check_permissions(self, db: Session, role, identifiers: Iterable[str]) -> Dict[str, bool]:
        if parse_role(role) is RoleName.SUPER_ADMIN:
            return {identifier: True for identifier in identifiers}
        granted = self.effective_permissions(db, role)
        return {identifier: identifier in granted for identifier in identifiers}


role_resolver = RoleResolver()
