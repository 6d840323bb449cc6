"""Route permission scanner: keeps the button catalog in step with the API.

Every (path, method) pair registered under the API prefix becomes a button
permission with a stable identifier, e.g. ``PUT /api/admin/roles/{role_id}``
becomes ``put_admin_roles_role_id``. Saving upserts by identifier, so
scanning an unchanged route table twice leaves the catalog as it was.
"""

import logging
import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import FastAPI
from fastapi.routing import APIRoute
from sqlalchemy.orm import Session

from backoffice.db.session import transaction
from backoffice.models.audit_log import AuditAction
from backoffice.models.button_permission import ButtonPermission
from backoffice.models.menu import MenuNode
from backoffice.services.audit_service import AuditService, AuditContext

logger = logging.getLogger("backoffice")

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")

FALLBACK_MENU_NAME = "api-permissions"

ACTION_NAMES = {
    "GET": "View",
    "POST": "Create",
    "PUT": "Update",
    "DELETE": "Delete",
    "PATCH": "Modify",
}

ACTION_DESCRIPTIONS = {
    "GET": "view and fetch",
    "POST": "create new",
    "PUT": "fully update",
    "DELETE": "delete",
    "PATCH": "partially update",
}

# {id} or {path:path}
_PATH_PARAM = re.compile(r"\{([^}:]+)(?::[^}]*)?\}")
_PARAM_SEGMENT = re.compile(r"/:[^/]+")


@dataclass(frozen=True)
class RouteInfo:
    route_path: str
    methods: Tuple[str, ...]
    menu_path: Optional[str] = None


@dataclass(frozen=True)
class PermissionDescriptor:
    identifier: str
    name: str
    description: str
    method: str
    path: str
    menu_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _strip_prefix(path: str, prefix: str) -> str:
    if prefix and (path == prefix or path.startswith(prefix + "/")):
        return path[len(prefix):]
    return path


def to_route_path(path: str) -> str:
    """``/api/roles/{role_id}`` -> ``/api/roles/:role_id``."""
    return _PATH_PARAM.sub(r":\1", path)


def infer_menu_path(route_path: str, api_prefix: str = "/api") -> Optional[str]:
    """Route path without the API prefix and parameter segments."""
    menu_path = _PARAM_SEGMENT.sub("", _strip_prefix(route_path, api_prefix))
    if not menu_path or menu_path == "/":
        return None
    return menu_path


def permission_identifier(route_path: str, method: str, api_prefix: str = "/api") -> str:
    identifier = _strip_prefix(route_path, api_prefix)
    identifier = identifier.replace("/:", "_").replace("/", "_")
    identifier = re.sub(r"^_", "", identifier)
    identifier = re.sub(r"_+", "_", identifier)
    return f"{method.lower()}_{identifier}".lower()


def _resource_name(route_path: str, api_prefix: str) -> str:
    words = []
    for segment in _strip_prefix(route_path, api_prefix).split("/"):
        if not segment:
            continue
        if segment.startswith(":"):
            words.append("detail")
        else:
            words.append(segment.replace("-", " "))
    return " ".join(words) or "resource"


class PermissionScanner:
    """Enumerates API routes and persists one button permission per method."""

    def __init__(self, routes: Iterable, api_prefix: str = "/api"):
        self.routes = routes
        self.api_prefix = api_prefix.rstrip("/")

    @classmethod
    def from_app(cls, app: FastAPI, api_prefix: str = "/api") -> "PermissionScanner":
        return cls(app.routes, api_prefix=api_prefix)

    def scan_routes(self) -> List[RouteInfo]:
        """Distinct API paths with their methods, sorted by path."""
        grouped: Dict[str, set] = {}
        for route in self.routes:
            if not isinstance(route, APIRoute):
                continue
            if _strip_prefix(route.path, self.api_prefix) == route.path:
                continue
            methods = {method.upper() for method in (route.methods or ())}
            grouped.setdefault(to_route_path(route.path), set()).update(methods)

        routes = []
        for path in sorted(grouped):
            methods = tuple(m for m in HTTP_METHODS if m in grouped[path])
            if methods:
                routes.append(RouteInfo(path, methods, infer_menu_path(path, self.api_prefix)))
        return routes

    def generate_permissions(self, routes: Iterable[RouteInfo]) -> List[PermissionDescriptor]:
        permissions = []
        for route in routes:
            resource = _resource_name(route.route_path, self.api_prefix)
            for method in route.methods:
                permissions.append(PermissionDescriptor(
                    identifier=permission_identifier(route.route_path, method, self.api_prefix),
                    name=f"{ACTION_NAMES.get(method, method)} {resource}",
                    description=f"Permission to {ACTION_DESCRIPTIONS.get(method, method.lower())} {resource}",
                    method=method,
                    path=route.route_path,
                    menu_path=route.menu_path,
                ))
        return permissions

    def preview(self) -> Dict[str, Any]:
        """Scan without persisting anything."""
        routes = self.scan_routes()
        permissions = self.generate_permissions(routes)
        return {
            "routes_count": len(routes),
            "permissions_count": len(permissions),
            "routes": [asdict(route) for route in routes],
            "permissions": [p.to_dict() for p in permissions],
        }

    # ---- Persistence ----
    @staticmethod
    def _find_menu(db: Session, menu_path: Optional[str]) -> Optional[MenuNode]:
        """Exact path, then path containing it, then a name containing it."""
        if not menu_path:
            return None
        for condition in (
            MenuNode.path == menu_path,
            MenuNode.path.contains(menu_path),
            MenuNode.name.contains(menu_path.replace("/", "-")),
        ):
            menu = db.query(MenuNode).filter(condition).order_by(MenuNode.id).first()
            if menu:
                return menu
        return None

    @staticmethod
    def _fallback_menu(db: Session) -> MenuNode:
        menu = db.query(MenuNode).filter(MenuNode.name == FALLBACK_MENU_NAME).first()
        if menu:
            return menu
        menu = MenuNode(
            name=FALLBACK_MENU_NAME,
            display_name="API Permissions",
            path="/api-permissions",
            icon="ApiOutlined",
            sort_order=999,
            is_active=True,
            description="Routes not mapped to a menu",
        )
        db.add(menu)
        db.flush()
        logger.info("Created fallback menu '%s' for unmapped routes", FALLBACK_MENU_NAME)
        return menu

    def scan_and_save(self, db: Session, ctx: AuditContext) -> Dict[str, Any]:
        """Scan and upsert the catalog in one transaction, then audit leniently."""
        permissions = self.generate_permissions(self.scan_routes())
        created = updated = 0
        menu_cache: Dict[Optional[str], MenuNode] = {}

        with transaction(db):
            for permission in permissions:
                menu = menu_cache.get(permission.menu_path)
                if menu is None:
                    menu = self._find_menu(db, permission.menu_path) or self._fallback_menu(db)
                    menu_cache[permission.menu_path] = menu

                existing = (
                    db.query(ButtonPermission)
                    .filter(ButtonPermission.identifier == permission.identifier)
                    .order_by(ButtonPermission.id)
                    .first()
                )
                if existing:
                    existing.name = permission.name
                    existing.description = permission.description
                    existing.is_active = True
                    updated += 1
                else:
                    db.add(ButtonPermission(
                        name=permission.name,
                        identifier=permission.identifier,
                        description=permission.description,
                        menu_id=menu.id,
                        is_active=True,
                    ))
                    created += 1

        unmapped = sum(1 for p in permissions if not p.menu_path)
        logger.info(
            "Permission scan: %s permissions (%s new, %s updated, %s without menu path)",
            len(permissions), created, updated, unmapped,
        )
        entry = AuditService.record_lenient(
            db, ctx, AuditAction.SCAN, "button_permission",
            description=f"Scanned {len(permissions)} API permissions ({created} new, {updated} updated)",
            after={"identifiers": [p.identifier for p in permissions]},
        )
        return {
            "count": len(permissions),
            "created": created,
            "updated": updated,
            "audited": entry is not None,
            "permissions": [p.to_dict() for p in permissions],
        }
